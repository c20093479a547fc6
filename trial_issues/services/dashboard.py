"""Dashboard aggregation: issue counts by status and severity over the whole table."""

import logging

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from trial_issues.models import Issue
from trial_issues.schemas.dashboard import DashboardCounts, SeverityCounts, StatusCounts
from trial_issues.services.validation import SEVERITY_VALUES, STATUS_VALUES

logger = logging.getLogger(__name__)


def get_counts(db: Session) -> DashboardCounts:
    """
    Return counts per status, per severity, and the total.

    A single GROUP BY (status, severity) statement feeds all three figures, so
    they come from one snapshot and both bucket sets always sum to the total.
    Buckets with no issues are reported as zero.
    """
    stmt = select(Issue.status, Issue.severity, func.count(Issue.id)).group_by(
        Issue.status, Issue.severity
    )
    status_counts = dict.fromkeys(STATUS_VALUES, 0)
    severity_counts = dict.fromkeys(SEVERITY_VALUES, 0)
    total = 0
    for status, severity, count in db.execute(stmt).all():
        count = int(count)
        total += count
        if status in status_counts:
            status_counts[status] += count
        else:
            logger.warning("Unknown issue status in store: %r", status)
        if severity in severity_counts:
            severity_counts[severity] += count
        else:
            logger.warning("Unknown issue severity in store: %r", severity)

    return DashboardCounts(
        status_counts=StatusCounts(**status_counts),
        severity_counts=SeverityCounts(**severity_counts),
        total_issues=total,
    )
