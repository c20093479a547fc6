"""Dashboard endpoint: issue counts by status and severity."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from trial_issues.core.database import get_db
from trial_issues.schemas.dashboard import DashboardCounts
from trial_issues.services.dashboard import get_counts

router = APIRouter()


@router.get("", response_model=DashboardCounts)
def get_dashboard(
    db: Annotated[Session, Depends(get_db)],
) -> DashboardCounts:
    """
    Return statusCounts, severityCounts and totalIssues over all issues.

    List filters do not apply here. Every status and severity bucket is present,
    zero when no issue has that value.
    """
    return get_counts(db)
