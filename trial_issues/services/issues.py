"""Issue store operations used by the HTTP layer: list, get, create, update, resolve, delete."""

import logging

from sqlalchemy import delete, func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from trial_issues.models import Issue
from trial_issues.schemas.issue import IssueCreate, IssueFilters, IssueUpdate
from trial_issues.services.query_builder import build_issue_query

logger = logging.getLogger(__name__)

DUPLICATE_ISSUE_MESSAGE = "An issue with this title already exists for this site"


class IssueConflictError(Exception):
    """Raised when a write would duplicate an existing (title, site)."""

    def __init__(self, message: str = DUPLICATE_ISSUE_MESSAGE) -> None:
        self.message = message
        super().__init__(message)


def list_issues(db: Session, filters: IssueFilters | None = None) -> list[Issue]:
    """Return issues matching the filters, sorted and paginated."""
    return list(db.scalars(build_issue_query(filters)).all())


def get_issue(db: Session, issue_id: int) -> Issue | None:
    return db.get(Issue, issue_id)


def create_issue(db: Session, data: IssueCreate) -> Issue:
    """Insert a new issue; id and both timestamps are assigned by the database."""
    issue = Issue(**data.model_dump())
    db.add(issue)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise IssueConflictError() from e
    db.refresh(issue)
    return issue


def _update_returning(db: Session, issue_id: int, values: dict[str, object]) -> Issue | None:
    stmt = (
        update(Issue)
        .where(Issue.id == issue_id)
        .values(**values, updated_at=func.now())
        .returning(Issue)
    )
    try:
        issue = db.scalars(stmt).one_or_none()
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise IssueConflictError() from e
    return issue


def update_issue(db: Session, issue_id: int, data: IssueUpdate) -> Issue | None:
    """
    Change only the supplied fields and refresh updated_at.

    With nothing supplied this is a plain read. Returns None if the id is unknown.
    """
    changes = data.changes()
    if not changes:
        return get_issue(db, issue_id)
    return _update_returning(db, issue_id, changes)


def resolve_issue(db: Session, issue_id: int) -> Issue | None:
    """Set status to resolved regardless of its current value."""
    return _update_returning(db, issue_id, {"status": "resolved"})


def delete_issue(db: Session, issue_id: int) -> bool:
    """Delete one issue; True if a row was removed."""
    result = db.execute(delete(Issue).where(Issue.id == issue_id))
    db.commit()
    return result.rowcount > 0


def delete_all_issues(db: Session) -> int:
    """Remove every issue. Used by test setup only."""
    result = db.execute(delete(Issue))
    db.commit()
    logger.info("Deleted all issues", extra={"deleted_count": result.rowcount})
    return result.rowcount
