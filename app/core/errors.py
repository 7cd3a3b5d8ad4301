"""
Domain errors raised by the services layer.

Routes translate these into HTTP responses via to_http_exception().
"""

from fastapi import HTTPException, status


class ServiceError(Exception):
    """Base class for errors that map to a client-facing HTTP status."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_http_exception(self) -> HTTPException:
        return HTTPException(status_code=self.status_code, detail=self.message)


class ValidationError(ServiceError):
    """Malformed or missing input."""
    status_code = status.HTTP_400_BAD_REQUEST


class AuthenticationError(ServiceError):
    """No session, or bad credentials."""
    status_code = status.HTTP_401_UNAUTHORIZED


class AuthorizationError(ServiceError):
    """Authenticated, but not allowed to touch this resource."""
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND
