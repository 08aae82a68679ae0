"""
Skill RPG - Custom Error Types
Structured exceptions for engine-facing errors with recovery hints.

The progression core itself never raises for "target not found"; these
errors are raised by the HTTP layer and the persistence collaborator.
"""
from typing import Dict, Any, Optional
from enum import Enum


class ErrorCode(str, Enum):
    """Standard error codes for the progression engine."""
    # General errors
    UNKNOWN = "UNKNOWN"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"

    # Task errors
    TASK_NOT_FOUND = "TASK_NOT_FOUND"
    TASK_INVALID_TRANSITION = "TASK_INVALID_TRANSITION"

    # Roster errors
    FIGHTER_NOT_FOUND = "FIGHTER_NOT_FOUND"
    SKILL_NOT_FOUND = "SKILL_NOT_FOUND"
    CATEGORY_NOT_FOUND = "CATEGORY_NOT_FOUND"

    # Undo errors
    UNDO_EMPTY = "UNDO_EMPTY"

    # Storage errors
    STORAGE_ERROR = "STORAGE_ERROR"


class SkillRpgError(Exception):
    """
    Base exception for all engine-related errors.

    Provides structured error information with:
    - Error code for programmatic handling
    - Human-readable message
    - Additional context details
    - Recovery hints for the frontend
    """

    def __init__(
        self,
        code: ErrorCode = ErrorCode.UNKNOWN,
        message: str = "An unexpected error occurred",
        details: Optional[Dict[str, Any]] = None,
        recoverable: bool = True,
        recovery_hint: Optional[str] = None,
        http_status: int = 500
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable
        self.recovery_hint = recovery_hint
        self.http_status = http_status

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for JSON response."""
        return {
            "error": {
                "code": self.code.value,
                "message": self.message,
                "details": self.details,
                "recoverable": self.recoverable,
                "recovery_hint": self.recovery_hint
            }
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code.value}, message={self.message!r})"


# =============================================================================
# Task Errors
# =============================================================================

class TaskError(SkillRpgError):
    """Task lifecycle errors."""

    def __init__(
        self,
        code: ErrorCode = ErrorCode.TASK_INVALID_TRANSITION,
        message: str = "Task error",
        **kwargs
    ):
        kwargs.setdefault("http_status", 400)
        super().__init__(code=code, message=message, **kwargs)


class TaskNotFoundError(TaskError):
    """Raised when a task id does not resolve to a task."""

    def __init__(self, task_id: Optional[str] = None):
        details = {}
        if task_id:
            details["task_id"] = task_id
        super().__init__(
            code=ErrorCode.TASK_NOT_FOUND,
            message="Task not found",
            details=details,
            http_status=404,
            recovery_hint="Refresh the task board; the task may have been deleted"
        )


class InvalidTransitionError(TaskError):
    """Raised when a status change is not an edge of the task graph."""

    def __init__(self, from_status: str, to_status: str):
        super().__init__(
            code=ErrorCode.TASK_INVALID_TRANSITION,
            message=f"Cannot move task from '{from_status}' to '{to_status}'",
            details={"from_status": from_status, "to_status": to_status},
            http_status=409,
            recovery_hint="Move the task one step along todo -> in_progress -> validation -> done"
        )


# =============================================================================
# Roster Errors
# =============================================================================

class FighterNotFoundError(SkillRpgError):
    """Raised when a fighter is not in the roster."""

    def __init__(self, fighter_id: Optional[str] = None):
        details = {}
        if fighter_id:
            details["fighter_id"] = fighter_id
        super().__init__(
            code=ErrorCode.FIGHTER_NOT_FOUND,
            message="Fighter not found",
            details=details,
            http_status=404,
            recovery_hint="Add the fighter to the roster first"
        )


class UndoEmptyError(SkillRpgError):
    """Raised when undo is requested with nothing recorded."""

    def __init__(self):
        super().__init__(
            code=ErrorCode.UNDO_EMPTY,
            message="Nothing to undo",
            http_status=409,
        )


# =============================================================================
# Storage Errors
# =============================================================================

class StorageError(SkillRpgError):
    """Persistence failures."""

    def __init__(self, message: str = "Failed to persist engine state", path: Optional[str] = None):
        details = {}
        if path:
            details["path"] = path
        super().__init__(
            code=ErrorCode.STORAGE_ERROR,
            message=message,
            details=details,
            http_status=500,
            recoverable=False,
            recovery_hint="Check that the data directory is writable"
        )


# =============================================================================
# Validation Error
# =============================================================================

class ValidationError(SkillRpgError):
    """Input validation errors."""

    def __init__(self, field: str, message: str, value: Any = None):
        details = {"field": field}
        if value is not None:
            details["value"] = str(value)
        super().__init__(
            code=ErrorCode.VALIDATION_ERROR,
            message=message,
            details=details,
            http_status=400,
            recovery_hint=f"Check the value for '{field}'"
        )
