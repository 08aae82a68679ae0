"""Skill RPG - fighter skill progression and task lifecycle engine."""

__version__ = "0.1.0"
