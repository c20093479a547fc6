"""Error envelope shared by every non-2xx response (documented in OpenAPI)."""

from typing import Any

from pydantic import BaseModel, Field


class FieldError(BaseModel):
    """One failed rule on a request field."""

    field: str
    message: str
    value: Any = None


class ErrorResponse(BaseModel):
    error: str = Field(..., description="Error category, e.g. 'Validation Error' or 'Not Found'.")
    message: str = Field(..., description="Human-readable description.")
    details: list[FieldError] | list[str] | None = Field(
        default=None,
        description="Field errors for request validation; row messages for CSV import.",
    )
    path: str | None = None
    method: str | None = None
