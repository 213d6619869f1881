"""
Typed failures for the membership and authorization core.

Every expected outcome is an HTTPException subclass carrying the
{"code", "message"} detail body, so services raise them directly and
FastAPI renders them without extra handlers.
"""

from __future__ import annotations

from collections.abc import Sequence

from fastapi import HTTPException, status


class AppError(HTTPException):
    """Base class for expected, typed failures."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "ERROR"
    message: str = "Request failed"

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.message = message or type(self).message
        self.code = code or type(self).code
        super().__init__(
            status_code=type(self).status_code,
            detail=self.detail_body(),
            headers=headers,
        )

    def detail_body(self) -> dict[str, object]:
        return {"code": self.code, "message": self.message}


class Unauthenticated(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "UNAUTHENTICATED"
    message = "Authentication required"

    def __init__(self, message: str | None = None, *, code: str | None = None) -> None:
        super().__init__(message, code=code, headers={"WWW-Authenticate": "Bearer"})


class NoActiveOrganization(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "NO_ACTIVE_ORGANIZATION"
    message = "No active organization"


class Forbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"
    message = "Forbidden: insufficient permissions"


class ReadOnlyOrganization(Forbidden):
    code = "PREVIEW_READ_ONLY"
    message = "This organization is a read-only demo. Editing is disabled here."


class BadRequest(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "BAD_REQUEST"
    message = "Bad request"


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"
    message = "Not found"


class Conflict(AppError):
    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"
    message = "Conflict"


class Gone(AppError):
    status_code = status.HTTP_410_GONE
    code = "LINK_GONE"
    message = "This invite link is no longer valid"


class Exhausted(Gone):
    code = "LINK_EXHAUSTED"
    message = "This invite link has reached its maximum number of uses"


class NoLongerValid(Gone):
    code = "LINK_NO_LONGER_VALID"
    message = "This invite link is no longer valid"


class InvalidTransition(AppError):
    status_code = 422  # Unprocessable Content
    code = "INVALID_TRANSITION"
    message = "Invalid status transition"

    def __init__(
        self,
        current: str,
        requested: str,
        allowed: Sequence[str],
    ) -> None:
        self.current = current
        self.requested = requested
        self.allowed = list(allowed)
        rendered = ", ".join(self.allowed) or "none"
        super().__init__(
            f'Cannot transition from "{current}" to "{requested}". Allowed: {rendered}'
        )

    def detail_body(self) -> dict[str, object]:
        body = super().detail_body()
        body["from"] = self.current
        body["to"] = self.requested
        body["allowed"] = self.allowed
        return body


class TooManyRequests(AppError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    code = "TOO_MANY_REQUESTS"
    message = "Too many requests. Please try again shortly."


class InternalError(AppError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "INTERNAL_SERVER_ERROR"
    message = "An unexpected error occurred"


class Unavailable(AppError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "SERVICE_UNAVAILABLE"
    message = "The service is temporarily unavailable. Please try again."
