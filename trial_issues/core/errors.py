"""Client-facing error categories. Handlers in main render these as JSON."""

from typing import Any


class ApiError(Exception):
    """Base for errors that map directly onto an HTTP response."""

    status_code: int = 500
    error: str = "Internal Server Error"

    def __init__(self, message: str, details: list[Any] | None = None) -> None:
        self.message = message
        self.details = details
        super().__init__(message)

    def to_body(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.error, "message": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class ValidationFailedError(ApiError):
    status_code = 400
    error = "Validation Error"


class BadRequestError(ApiError):
    status_code = 400
    error = "Bad Request"


class NotFoundError(ApiError):
    status_code = 404
    error = "Not Found"


class ConflictError(ApiError):
    status_code = 409
    error = "Conflict"


class PayloadTooLargeError(ApiError):
    status_code = 413
    error = "Payload Too Large"


class ServiceUnavailableError(ApiError):
    status_code = 503
    error = "Service Unavailable"
