"""Schemas for the CSV import pipeline: normalized rows, upsert result and HTTP response."""

from datetime import datetime

from pydantic import BaseModel, Field

from trial_issues.schemas.issue import IssueRead
from trial_issues.services.validation import DEFAULT_STATUS, Severity, Status


class IssueImportRow(BaseModel):
    """One validated, normalized candidate record ready to upsert."""

    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    site: str = Field(..., min_length=1)
    severity: Severity
    status: Status = DEFAULT_STATUS
    created_at: datetime | None = Field(
        default=None,
        description="Creation time from the file; the database default applies when absent.",
    )

    @property
    def natural_key(self) -> tuple[str, str]:
        return (self.title, self.site)


class UpsertResult(BaseModel):
    """Partition of written rows into newly inserted and updated."""

    inserted: list[IssueRead] = Field(default_factory=list)
    updated: list[IssueRead] = Field(default_factory=list)
    total: int = Field(default=0, ge=0)


class ImportResponse(BaseModel):
    """Response after a successful CSV import."""

    success: bool = True
    message: str
    imported: int = Field(..., ge=0, description="Rows inserted as new issues.")
    updated: int = Field(..., ge=0, description="Rows that updated an existing (title, site).")
    skipped: int = Field(default=0, ge=0)
    count: int = Field(..., ge=0, description="imported + updated.")
    issues: list[IssueRead] = Field(
        default_factory=list,
        description="Inserted issues followed by updated issues.",
    )
