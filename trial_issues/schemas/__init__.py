"""Pydantic request/response schemas."""

from trial_issues.schemas.csv_import import ImportResponse, IssueImportRow, UpsertResult
from trial_issues.schemas.dashboard import DashboardCounts, SeverityCounts, StatusCounts
from trial_issues.schemas.errors import ErrorResponse, FieldError
from trial_issues.schemas.health import HealthResponse
from trial_issues.schemas.issue import (
    IssueCreate,
    IssueFilters,
    IssueRead,
    IssueUpdate,
    SortField,
    SortOrder,
)

__all__ = [
    "DashboardCounts",
    "ErrorResponse",
    "FieldError",
    "HealthResponse",
    "ImportResponse",
    "IssueCreate",
    "IssueFilters",
    "IssueImportRow",
    "IssueRead",
    "IssueUpdate",
    "SeverityCounts",
    "SortField",
    "SortOrder",
    "StatusCounts",
    "UpsertResult",
]
