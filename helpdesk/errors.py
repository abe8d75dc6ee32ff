"""Application error hierarchy.

HTTP-facing errors carry a status code and a stable machine-readable code;
``main.py`` renders them as ``{"error": {"code": ..., "message": ...}}``.
The orchestration errors at the bottom never reach HTTP clients directly: the
stream orchestrator turns them into a generic ``error`` event.
"""

from __future__ import annotations

from typing import Any


class AppError(Exception):
    """Base class for errors with an HTTP representation."""

    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        code: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code

    def to_dict(self) -> dict[str, Any]:
        return {"error": {"code": self.code, "message": self.message}}


class ValidationError(AppError):
    status_code = 400
    code = "VALIDATION_ERROR"


class UnauthorizedError(AppError):
    status_code = 401
    code = "UNAUTHORIZED"

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(message)


class ForbiddenError(AppError):
    status_code = 403
    code = "FORBIDDEN"

    def __init__(self, message: str = "Access denied") -> None:
        super().__init__(message)


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, resource: str, identifier: object | None = None) -> None:
        if identifier is not None:
            message = f"{resource} with identifier '{identifier}' not found"
        else:
            message = f"{resource} not found"
        super().__init__(message)


class AIServiceError(AppError):
    status_code = 502
    code = "AI_SERVICE_ERROR"

    def __init__(self, message: str = "AI service encountered an error") -> None:
        super().__init__(message)


# ---------------------------------------------------------------------------
# Orchestration failures


class UnknownAgentError(RuntimeError):
    """Raised when an agent type has no registered specialist."""


class ToolExecutionError(RuntimeError):
    """Raised when a tool cannot be executed."""


class UnknownToolError(ToolExecutionError):
    """Raised when the model requests a tool the agent does not expose."""


class ToolArgumentError(ToolExecutionError):
    """Raised when tool arguments do not match the declared parameters."""
