"""Response schema for the dashboard aggregation."""

from pydantic import BaseModel, ConfigDict, Field


class StatusCounts(BaseModel):
    """Issue count per status; every bucket is always present."""

    open: int = Field(default=0, ge=0)
    in_progress: int = Field(default=0, ge=0)
    resolved: int = Field(default=0, ge=0)


class SeverityCounts(BaseModel):
    """Issue count per severity; every bucket is always present."""

    minor: int = Field(default=0, ge=0)
    major: int = Field(default=0, ge=0)
    critical: int = Field(default=0, ge=0)


class DashboardCounts(BaseModel):
    """Grouped counts over the whole issue table, ignoring any list filters."""

    model_config = ConfigDict(populate_by_name=True)

    status_counts: StatusCounts = Field(
        default_factory=StatusCounts,
        serialization_alias="statusCounts",
    )
    severity_counts: SeverityCounts = Field(
        default_factory=SeverityCounts,
        serialization_alias="severityCounts",
    )
    total_issues: int = Field(
        default=0,
        ge=0,
        serialization_alias="totalIssues",
    )
