"""FastAPI application entry point."""
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from skillrpg import __version__
from skillrpg.config import get_settings
from skillrpg.middleware.error_handler import setup_error_handlers
from skillrpg.api.state import get_engine

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("skillrpg")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events - startup and shutdown."""
    # Startup: load engine state from the data directory
    engine = get_engine()
    logger.info(f"[Startup] Engine loaded ({len(engine.tasks.tasks)} tasks)")

    yield  # Application runs here

    # Shutdown: flush engine state
    get_engine().persist()
    logger.info("[Shutdown] Engine state saved")


app = FastAPI(
    title="Skill RPG",
    description="Fighter skill progression and task lifecycle engine",
    version=__version__,
    lifespan=lifespan,
)

# CORS middleware for the host UI
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        settings.FRONTEND_URL,
        "http://localhost:5173",  # Vite
        "http://127.0.0.1:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

setup_error_handlers(app, debug=settings.DEBUG)


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "online", "service": "Skill RPG", "version": __version__}


@app.get("/api/health")
async def health_check():
    """Detailed health check."""
    engine = get_engine()
    return {
        "status": "healthy",
        "tasks": len(engine.tasks.tasks),
        "fighters": len(engine.roster.fighters),
        "persistent": engine.storage is not None,
        "debug_mode": settings.DEBUG,
    }


# Routes
from skillrpg.api.routes import tasks, progression, fighters, skills, undo  # noqa: E402
app.include_router(tasks.router, prefix="/api/tasks", tags=["tasks"])
app.include_router(progression.router, prefix="/api/progression", tags=["progression"])
app.include_router(fighters.router, prefix="/api/fighters", tags=["fighters"])
app.include_router(skills.router, prefix="/api/skills", tags=["skills"])
app.include_router(undo.router, prefix="/api/undo", tags=["undo"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("skillrpg.main:app", host=settings.HOST, port=settings.PORT, reload=settings.DEBUG)
