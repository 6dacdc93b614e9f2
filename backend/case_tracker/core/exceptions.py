"""
Custom exception classes for unified error handling.

Every handler error ends up as a JSON body ``{"error": ..., "type": ...}``
with the status code carried by the exception class.
"""

from fastapi import status


class AppBaseError(Exception):
    """Base exception for all application errors."""
    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, detail: str | None = None):
        self.message = message
        self.detail = detail
        super().__init__(message)

    def to_dict(self) -> dict:
        body = {"error": self.message, "type": type(self).__name__}
        if self.detail:
            body["detail"] = self.detail
        return body


class ValidationError(AppBaseError):
    """Missing or malformed request fields."""
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, detail: str | None = None, status_code: int | None = None):
        super().__init__(message, detail)
        if status_code is not None:
            self.status_code = status_code


class AuthenticationError(AppBaseError):
    """Raised when the bearer token is missing, invalid or expired."""
    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "Invalid or expired token"):
        super().__init__(message=message, detail="Please sign in again.")


class AuthorizationError(AppBaseError):
    """Caller lacks access to the referenced project."""
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str = "Not authorized to access this project"):
        super().__init__(message=message)


class NotFoundError(AppBaseError):
    """Referenced project/file/note is absent."""
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, resource: str, resource_id: str | None = None):
        message = f"{resource} not found"
        super().__init__(message=message, detail=resource_id)
        self.resource = resource


class ConflictError(AppBaseError):
    """Resource already exists (e.g. duplicate invitation)."""
    status_code = status.HTTP_409_CONFLICT


class ProviderError(AppBaseError):
    """A hosted AI or storage call failed.

    The caller only ever sees the generic message; ``detail`` goes to the log.
    """
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, provider: str, original_error: str):
        super().__init__(
            message=f"{provider} request failed",
            detail=original_error,
        )
        self.provider = provider

    def to_dict(self) -> dict:
        return {"error": self.message, "type": type(self).__name__}


class ParseError(AppBaseError):
    """The hosted model returned non-JSON where JSON was expected."""
    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(self, raw_response: str, message: str = "Model response was not valid JSON"):
        super().__init__(message=message)
        self.raw_response = raw_response

    def to_dict(self) -> dict:
        body = super().to_dict()
        body["raw_response"] = self.raw_response
        return body
