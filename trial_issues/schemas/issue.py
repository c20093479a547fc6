"""Pydantic schemas for issues: create/update bodies, list filters and the read model."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from trial_issues.services.validation import (
    DEFAULT_STATUS,
    SEARCH_MAX_LENGTH,
    SITE_MAX_LENGTH,
    TITLE_MAX_LENGTH,
    Severity,
    Status,
    clean_text,
    parse_severity,
    parse_status,
    require_text,
)

SortOrder = Literal["asc", "desc"]

# Sort keys accepted at the HTTP boundary; both camelCase and column spellings.
SortField = Literal[
    "id",
    "title",
    "site",
    "severity",
    "status",
    "createdAt",
    "updatedAt",
    "created_at",
    "updated_at",
]


class IssueCreate(BaseModel):
    """Body for creating an issue. Strings are trimmed; enums match case-insensitively."""

    model_config = ConfigDict(extra="ignore")

    # Defaults route missing fields through the validators so the message is ours.
    title: str = Field(default="", validate_default=True, description="Short summary (max 255 chars).")
    description: str = Field(default="", validate_default=True, description="Full description.")
    site: str = Field(default="", validate_default=True, description="Trial site identifier (max 100 chars).")
    severity: Severity = Field(default="", validate_default=True, description="minor, major or critical.")  # type: ignore[assignment]
    status: Status = Field(default=DEFAULT_STATUS, description="open, in_progress or resolved; defaults to open.")

    @field_validator("title", mode="before")
    @classmethod
    def validate_title(cls, v: object) -> str:
        return require_text(v, "Title", max_length=TITLE_MAX_LENGTH)

    @field_validator("description", mode="before")
    @classmethod
    def validate_description(cls, v: object) -> str:
        return require_text(v, "Description")

    @field_validator("site", mode="before")
    @classmethod
    def validate_site(cls, v: object) -> str:
        return require_text(v, "Site", max_length=SITE_MAX_LENGTH)

    @field_validator("severity", mode="before")
    @classmethod
    def validate_severity(cls, v: object) -> str:
        if not clean_text(v):
            raise ValueError("Severity is required")
        return parse_severity(v)

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, v: object) -> str:
        if v is None:
            return DEFAULT_STATUS
        return parse_status(v)


class IssueUpdate(BaseModel):
    """Partial update body. Omitted or null fields are left unchanged."""

    model_config = ConfigDict(extra="ignore")

    title: str | None = None
    description: str | None = None
    site: str | None = None
    severity: Severity | None = None
    status: Status | None = None

    @field_validator("title", mode="before")
    @classmethod
    def validate_title(cls, v: object) -> str | None:
        if v is None:
            return None
        return require_text(
            v, "Title", max_length=TITLE_MAX_LENGTH, empty_message="Title cannot be empty"
        )

    @field_validator("description", mode="before")
    @classmethod
    def validate_description(cls, v: object) -> str | None:
        if v is None:
            return None
        return require_text(v, "Description", empty_message="Description cannot be empty")

    @field_validator("site", mode="before")
    @classmethod
    def validate_site(cls, v: object) -> str | None:
        if v is None:
            return None
        return require_text(
            v, "Site", max_length=SITE_MAX_LENGTH, empty_message="Site cannot be empty"
        )

    @field_validator("severity", mode="before")
    @classmethod
    def validate_severity(cls, v: object) -> str | None:
        return None if v is None else parse_severity(v)

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, v: object) -> str | None:
        return None if v is None else parse_status(v)

    def changes(self) -> dict[str, str]:
        """Only the fields the caller actually supplied."""
        return self.model_dump(exclude_none=True)


class IssueRead(BaseModel):
    """Issue as returned by the API; timestamps serialize as camelCase."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    title: str
    description: str
    site: str
    severity: Severity
    status: Status
    created_at: datetime = Field(serialization_alias="createdAt")
    updated_at: datetime = Field(serialization_alias="updatedAt")


class IssueFilters(BaseModel):
    """
    Filters, sort and pagination for listing issues.

    All fields optional. `sort` is deliberately a plain string here: the query
    builder maps it through its own whitelist and falls back to createdAt.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    search: str | None = Field(default=None, max_length=SEARCH_MAX_LENGTH)
    status: Status | None = None
    severity: Severity | None = None
    site: str | None = Field(default=None, max_length=SITE_MAX_LENGTH)
    sort: str | None = None
    order: SortOrder = "desc"
    page: int | None = Field(default=None, ge=1)
    limit: int | None = Field(default=None, ge=1, le=100)
