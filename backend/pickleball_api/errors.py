"""
API error taxonomy.

Every failure an operation can report maps to one of these classes. Each
carries a machine-readable message plus optional extra fields (current
server-side state on conflict, upstream status/body on provider failure,
skipped items, ...). The handler registered in main.py renders them as
``{"error": <message>, **extra}`` with the class's status code.
"""
from typing import Any, Dict, Optional

from fastapi import HTTPException


class ApiError(HTTPException):
    status_code = 500

    def __init__(self, message: str, **extra: Any):
        super().__init__(status_code=self.status_code, detail=message)
        self.message = message
        self.extra: Dict[str, Any] = extra

    def to_body(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message}
        body.update(self.extra)
        return body


class ValidationError(ApiError):
    status_code = 400


class AuthError(ApiError):
    status_code = 401


class ForbiddenError(ApiError):
    status_code = 403


class NotFoundError(ApiError):
    status_code = 404


class ConflictError(ApiError):
    """Optimistic-version mismatch. Always carries the current stored state."""

    status_code = 409

    def __init__(self, message: str, current: Optional[Dict[str, Any]] = None, **extra: Any):
        super().__init__(message, conflict=True, current=current, **extra)
        self.current = current


class UpstreamError(ApiError):
    status_code = 502

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        details: Any = None,
        **extra: Any,
    ):
        super().__init__(message, status=status, details=details, **extra)
        self.upstream_status = status
        self.details = details


class InternalError(ApiError):
    status_code = 500
