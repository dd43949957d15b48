"""
Application error taxonomy.

Services raise these; the handler registered in main.py renders them as JSON
with the matching HTTP status. Anything else is an internal error and goes
through the global exception handler.
"""
from typing import List, Optional

from fastapi import status


class AppError(Exception):
    """Base class for errors reported to the client."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, invalid: Optional[List[str]] = None):
        super().__init__(message)
        self.message = message
        self.invalid = invalid

    def to_dict(self) -> dict:
        body = {"detail": self.message, "error_code": self.error_code}
        if self.invalid:
            body["invalid"] = list(self.invalid)
        return body


class NotFoundError(AppError):
    """Album, image or user does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    error_code = "NOT_FOUND"


class UnauthenticatedError(AppError):
    """Missing, malformed or expired session credential."""

    status_code = status.HTTP_401_UNAUTHORIZED
    error_code = "UNAUTHENTICATED"


class ForbiddenError(AppError):
    """Authorization denial."""

    status_code = status.HTTP_403_FORBIDDEN
    error_code = "FORBIDDEN"


class ValidationFailedError(AppError):
    """Request is well-formed but its values are not acceptable."""

    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "VALIDATION_FAILED"


class UpstreamError(AppError):
    """Identity provider or blob storage call failed. Safe to retry."""

    status_code = status.HTTP_502_BAD_GATEWAY
    error_code = "UPSTREAM_FAILURE"

    def __init__(self, message: str, service: str = "unknown"):
        super().__init__(message)
        self.service = service


class UpstreamTimeoutError(UpstreamError):
    """Upstream call exceeded its timeout."""

    status_code = status.HTTP_504_GATEWAY_TIMEOUT
    error_code = "UPSTREAM_TIMEOUT"


class SignInError(AppError):
    """The verified identity could not be persisted during sign-in."""

    error_code = "SIGN_IN_FAILED"
