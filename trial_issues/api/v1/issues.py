"""Issues endpoints: list with filters, get, create, update, delete, quick resolve."""

from typing import Annotated

from fastapi import APIRouter, Depends, Path, Query, Response
from sqlalchemy.orm import Session

from trial_issues.core.database import get_db
from trial_issues.core.errors import ConflictError, NotFoundError
from trial_issues.schemas.errors import ErrorResponse
from trial_issues.schemas.issue import (
    IssueCreate,
    IssueFilters,
    IssueRead,
    IssueUpdate,
    SortField,
    SortOrder,
)
from trial_issues.services import issues as issue_store
from trial_issues.services.validation import (
    SEARCH_MAX_LENGTH,
    SITE_MAX_LENGTH,
    Severity,
    Status,
)

router = APIRouter(
    responses={
        400: {"model": ErrorResponse, "description": "Validation Error"},
        503: {"model": ErrorResponse, "description": "Database unavailable"},
    },
)

NOT_FOUND_MESSAGE = "Issue not found"

IssueId = Annotated[int, Path(ge=1, description="Issue ID (positive integer).")]


def _found(issue: object) -> IssueRead:
    if issue is None:
        raise NotFoundError(NOT_FOUND_MESSAGE)
    return IssueRead.model_validate(issue)


@router.get("", response_model=list[IssueRead])
def list_issues(
    db: Annotated[Session, Depends(get_db)],
    search: Annotated[
        str | None,
        Query(max_length=SEARCH_MAX_LENGTH, description="Case-insensitive substring of the title."),
    ] = None,
    status: Annotated[Status | None, Query()] = None,
    severity: Annotated[Severity | None, Query()] = None,
    site: Annotated[str | None, Query(max_length=SITE_MAX_LENGTH)] = None,
    sort: Annotated[SortField | None, Query(description="Sort field; defaults to createdAt.")] = None,
    order: Annotated[SortOrder, Query()] = "desc",
    page: Annotated[int | None, Query(ge=1)] = None,
    limit: Annotated[int | None, Query(ge=1, le=100)] = None,
) -> list[IssueRead]:
    """
    List issues. All filters are optional and combine with AND.

    - **search**: substring match on title, case-insensitive
    - **status**, **severity**, **site**: exact match
    - **sort** / **order**: sort field and direction (default createdAt desc)
    - **page** / **limit**: limit alone caps the result; with page, skips (page-1)*limit rows
    """
    filters = IssueFilters(
        search=search,
        status=status,
        severity=severity,
        site=site,
        sort=sort,
        order=order,
        page=page,
        limit=limit,
    )
    return [IssueRead.model_validate(issue) for issue in issue_store.list_issues(db, filters)]


@router.get(
    "/{issue_id}",
    response_model=IssueRead,
    responses={404: {"model": ErrorResponse}},
)
def get_issue(
    issue_id: IssueId,
    db: Annotated[Session, Depends(get_db)],
) -> IssueRead:
    """Return one issue by id."""
    return _found(issue_store.get_issue(db, issue_id))


@router.post(
    "",
    response_model=IssueRead,
    status_code=201,
    responses={409: {"model": ErrorResponse}},
)
def create_issue(
    body: IssueCreate,
    db: Annotated[Session, Depends(get_db)],
) -> IssueRead:
    """Create an issue. Status defaults to open."""
    try:
        issue = issue_store.create_issue(db, body)
    except issue_store.IssueConflictError as e:
        raise ConflictError(e.message) from e
    return IssueRead.model_validate(issue)


@router.put(
    "/{issue_id}",
    response_model=IssueRead,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
def update_issue(
    issue_id: IssueId,
    body: IssueUpdate,
    db: Annotated[Session, Depends(get_db)],
) -> IssueRead:
    """Update only the supplied fields. An empty body returns the issue unchanged."""
    try:
        issue = issue_store.update_issue(db, issue_id, body)
    except issue_store.IssueConflictError as e:
        raise ConflictError(e.message) from e
    return _found(issue)


@router.delete(
    "/{issue_id}",
    status_code=204,
    response_class=Response,
    responses={404: {"model": ErrorResponse}},
)
def delete_issue(
    issue_id: IssueId,
    db: Annotated[Session, Depends(get_db)],
) -> Response:
    """Delete an issue."""
    if not issue_store.delete_issue(db, issue_id):
        raise NotFoundError(NOT_FOUND_MESSAGE)
    return Response(status_code=204)


@router.patch(
    "/{issue_id}/resolve",
    response_model=IssueRead,
    responses={404: {"model": ErrorResponse}},
)
def resolve_issue(
    issue_id: IssueId,
    db: Annotated[Session, Depends(get_db)],
) -> IssueRead:
    """Mark an issue resolved."""
    return _found(issue_store.resolve_issue(db, issue_id))
