# backend/povhub/core/errors.py
from __future__ import annotations

from typing import Any

from fastapi import status


class ConfigurationError(Exception):
    """
    Programming error: an unknown role / resource type / action reached the
    authorization layer. Never rendered as a user-facing 4xx.
    """


class PovHubError(Exception):
    code: str = "API_ERROR"
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, *, code: str | None = None, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.details = details or {}

    def to_detail(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, **self.details}


class ForbiddenError(PovHubError):
    code = "FORBIDDEN"
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str, *, reason: str | None = None):
        super().__init__(message, details={"reason": reason} if reason else None)
        self.reason = reason


class NotFoundError(PovHubError):
    code = "NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND


class LaunchValidationError(PovHubError):
    code = "VALIDATION_ERROR"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, errors: list[str]):
        super().__init__("Launch validation failed", details={"errors": list(errors)})
        self.errors = list(errors)


class ConflictError(PovHubError):
    code = "CONFLICT"
    status_code = status.HTTP_409_CONFLICT


class LaunchConflictError(ConflictError):
    pass


class StorageError(PovHubError):
    code = "DATABASE_ERROR"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
