from fastapi import status


class StocktakeError(Exception):
    """Base class for classified failures; carries the HTTP status it maps to."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthenticated(StocktakeError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication required"


class TokenExpired(Unauthenticated):
    default_message = "Token has expired"


class TokenInvalid(Unauthenticated):
    default_message = "Token is invalid"


class InvalidCredentials(StocktakeError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid user name or password"


class Forbidden(StocktakeError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Access denied"


class ValidationError(StocktakeError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class NotFound(StocktakeError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class Conflict(StocktakeError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Already exists"


class StorageError(StocktakeError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Storage operation failed"


class StorageUnavailable(StorageError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Storage did not respond in time"
