"""Middleware package for the Skill RPG engine."""

from skillrpg.middleware.error_handler import setup_error_handlers

__all__ = ["setup_error_handlers"]
