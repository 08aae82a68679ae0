"""Application configuration using environment variables."""
import os
from functools import lru_cache
from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Application settings loaded from environment variables."""

    # Persistence
    DATA_DIR: str = os.getenv("SKILLRPG_DATA_DIR", "./data")

    # Server
    HOST: str = os.getenv("HOST", "127.0.0.1")
    PORT: int = int(os.getenv("PORT", "8000"))
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # CORS - Frontend URL
    FRONTEND_URL: str = os.getenv("FRONTEND_URL", "http://localhost:5173")

    # Engine Constants
    UNDO_MAX_SIZE: int = min(int(os.getenv("UNDO_MAX_SIZE", "10")), 10)  # never above 10
    REPETITION_WINDOW_DAYS: int = int(os.getenv("REPETITION_WINDOW_DAYS", "3"))
    DEFAULT_COMMENT_AUTHOR: str = os.getenv("DEFAULT_COMMENT_AUTHOR", "Командир")


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
