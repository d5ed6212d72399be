"""Application error taxonomy rendered as ``{"error": {...}}`` responses."""

from __future__ import annotations

from typing import Any, Optional

from fastapi import status


class AppError(Exception):
    """Base class for errors that map to a structured HTTP response."""

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        details: Optional[Any] = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details

    def to_payload(self) -> dict[str, Any]:
        body: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details is not None:
            body["details"] = self.details
        return {"error": body}


class ValidationError(AppError):
    """Malformed input or a violated business invariant."""

    def __init__(self, message: str, details: Optional[Any] = None) -> None:
        super().__init__("VALIDATION_ERROR", message, status.HTTP_400_BAD_REQUEST, details)


class NotFoundError(AppError):
    """Referenced entity is absent or belongs to another tenant."""

    def __init__(self, resource: str, identifier: Optional[str] = None) -> None:
        suffix = f" with id {identifier}" if identifier else ""
        super().__init__("NOT_FOUND", f"{resource}{suffix} not found", status.HTTP_404_NOT_FOUND)
        self.resource = resource
        self.identifier = identifier


class ConflictError(AppError):
    """Operation blocked by existing dependents or a uniqueness rule."""

    def __init__(self, message: str, details: Optional[Any] = None) -> None:
        super().__init__("CONFLICT", message, status.HTTP_409_CONFLICT, details)


class InternalError(AppError):
    """Unexpected storage or server failure."""

    def __init__(self, message: str = "Internal server error", details: Optional[Any] = None) -> None:
        super().__init__("INTERNAL_ERROR", message, status.HTTP_500_INTERNAL_SERVER_ERROR, details)


class AuthenticationError(AppError):
    def __init__(self, message: str = "Invalid token") -> None:
        super().__init__("UNAUTHORIZED", message, status.HTTP_401_UNAUTHORIZED)


class PermissionDeniedError(AppError):
    def __init__(self, message: str) -> None:
        super().__init__("FORBIDDEN", message, status.HTTP_403_FORBIDDEN)
