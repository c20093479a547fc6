"""
Build the issue list query from a set of list filters.

Predicates are collected as SQLAlchemy expressions, so every user value is a
bound parameter; the sort key reaches ORDER BY only through SORT_COLUMNS.
"""

import logging

from sqlalchemy import ColumnElement, Select, and_, select

from trial_issues.models import Issue
from trial_issues.schemas.issue import IssueFilters

logger = logging.getLogger(__name__)

DEFAULT_SORT = "createdAt"

# Accepted sort keys -> columns. Both API (camelCase) and column spellings map here.
SORT_COLUMNS = {
    "id": Issue.id,
    "title": Issue.title,
    "site": Issue.site,
    "severity": Issue.severity,
    "status": Issue.status,
    "createdAt": Issue.created_at,
    "updatedAt": Issue.updated_at,
    "created_at": Issue.created_at,
    "updated_at": Issue.updated_at,
}

LIKE_ESCAPE = "\\"


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so the search term matches literally."""
    return (
        term.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


def resolve_sort_column(sort: str | None):
    """Map a sort key onto a whitelisted column; unknown keys fall back to createdAt."""
    if not sort:
        return SORT_COLUMNS[DEFAULT_SORT]
    column = SORT_COLUMNS.get(sort)
    if column is None:
        logger.warning("Unrecognized sort field %r; using %s", sort, DEFAULT_SORT)
        return SORT_COLUMNS[DEFAULT_SORT]
    return column


def build_predicates(filters: IssueFilters) -> list[ColumnElement[bool]]:
    """Return the WHERE predicates for the supplied filters, in a fixed order."""
    predicates: list[ColumnElement[bool]] = []
    if filters.search:
        pattern = f"%{escape_like(filters.search)}%"
        predicates.append(Issue.title.ilike(pattern, escape=LIKE_ESCAPE))
    if filters.status:
        predicates.append(Issue.status == filters.status)
    if filters.severity:
        predicates.append(Issue.severity == filters.severity)
    if filters.site:
        predicates.append(Issue.site == filters.site)
    return predicates


def resolve_pagination(filters: IssueFilters) -> tuple[int | None, int | None]:
    """
    Return (limit, offset).

    limit alone caps the result with no offset; page and limit together give
    offset = (page - 1) * limit; page without limit is ignored.
    """
    if filters.limit is None:
        return None, None
    if filters.page is None:
        return filters.limit, None
    return filters.limit, (filters.page - 1) * filters.limit


def build_issue_query(filters: IssueFilters | None = None) -> Select:
    """
    Build the SELECT for a filtered, sorted, paginated issue list.

    Filters combine with AND; no filters selects every issue. Rows that tie on
    the sort column are ordered by id in the same direction so pages never
    overlap or skip.
    """
    filters = filters or IssueFilters()
    stmt = select(Issue)

    predicates = build_predicates(filters)
    if predicates:
        stmt = stmt.where(and_(*predicates))

    column = resolve_sort_column(filters.sort)
    descending = filters.order != "asc"
    order_by = [column.desc() if descending else column.asc()]
    if column is not Issue.id:
        order_by.append(Issue.id.desc() if descending else Issue.id.asc())
    stmt = stmt.order_by(*order_by)

    limit, offset = resolve_pagination(filters)
    if limit is not None:
        stmt = stmt.limit(limit)
    if offset is not None:
        stmt = stmt.offset(offset)
    return stmt
