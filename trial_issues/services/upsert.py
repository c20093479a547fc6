"""
Validate raw candidate rows and merge them into the issue table by (title, site).

Validation is all-or-nothing: every violated rule of every row is collected and
the whole batch is rejected if any exist. Writes are all-or-nothing too: the
batch runs in a single transaction and rolls back on any failure.
"""

import logging
from collections.abc import Iterable, Mapping, Sequence

from sqlalchemy import func, literal_column
from sqlalchemy.dialects.postgresql import Insert, insert
from sqlalchemy.orm import Session

from trial_issues.core.config import settings
from trial_issues.models import Issue
from trial_issues.schemas.csv_import import IssueImportRow, UpsertResult
from trial_issues.schemas.issue import IssueRead
from trial_issues.services.validation import (
    DEFAULT_STATUS,
    SITE_MAX_LENGTH,
    TITLE_MAX_LENGTH,
    parse_created_at,
    parse_severity,
    parse_status,
    require_text,
)

logger = logging.getLogger(__name__)

# Row 1 of an imported file is the header.
FIRST_DATA_ROW_NUMBER = 2

INVALID_DATA_MESSAGE = "CSV contains invalid data"
EMPTY_IMPORT_MESSAGE = "CSV file is empty or contains no valid data"

_REQUIRED_TEXT_FIELDS = (
    ("title", "Title", TITLE_MAX_LENGTH),
    ("description", "Description", None),
    ("site", "Site", SITE_MAX_LENGTH),
)

_issues = Issue.__table__

# xmax is 0 only on a freshly inserted tuple; an ON CONFLICT update sets it.
_WAS_INSERTED = literal_column("(xmax = 0)").label("was_inserted")


class ImportValidationError(Exception):
    """Raised when one or more rows break a field rule. Nothing has been written."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        self.message = INVALID_DATA_MESSAGE
        super().__init__(f"{INVALID_DATA_MESSAGE}: {len(errors)} error(s)")


class EmptyImportError(Exception):
    """Raised when a batch contains no rows."""

    def __init__(self, message: str = EMPTY_IMPORT_MESSAGE) -> None:
        self.message = message
        super().__init__(message)


def validate_row(
    raw: Mapping[str, object],
    row_number: int,
) -> tuple[IssueImportRow | None, list[str]]:
    """
    Validate and normalize one raw row.

    Returns (row, []) on success or (None, messages) with one message per
    violated rule, each prefixed with the row number.
    """
    errors: list[str] = []
    values: dict[str, object] = {}

    for field, label, max_length in _REQUIRED_TEXT_FIELDS:
        try:
            values[field] = require_text(raw.get(field), label, max_length=max_length)
        except ValueError as e:
            errors.append(f"Row {row_number}: {e}")

    try:
        values["severity"] = parse_severity(raw.get("severity"))
    except ValueError as e:
        errors.append(f"Row {row_number}: {e}")

    # Only a missing or empty cell defaults; whitespace-only is an invalid status.
    raw_status = raw.get("status")
    if raw_status is None or raw_status == "":
        values["status"] = DEFAULT_STATUS
    else:
        try:
            values["status"] = parse_status(raw_status)
        except ValueError as e:
            errors.append(f"Row {row_number}: {e}")

    raw_created_at = raw.get("createdAt", raw.get("created_at"))
    try:
        values["created_at"] = parse_created_at(raw_created_at)
    except ValueError as e:
        errors.append(f"Row {row_number}: {e}")

    if errors:
        return None, errors
    return IssueImportRow.model_validate(values), []


def validate_rows(
    raw_rows: Iterable[Mapping[str, object]],
    first_row_number: int = FIRST_DATA_ROW_NUMBER,
) -> list[IssueImportRow]:
    """
    Validate a whole batch.

    Raises ImportValidationError with every row message if any row fails, and
    EmptyImportError if there were no rows at all.
    """
    rows: list[IssueImportRow] = []
    errors: list[str] = []
    for row_number, raw in enumerate(raw_rows, start=first_row_number):
        row, row_errors = validate_row(raw, row_number)
        if row_errors:
            errors.extend(row_errors)
        elif row is not None:
            rows.append(row)
    if errors:
        raise ImportValidationError(errors)
    if not rows:
        raise EmptyImportError()
    return rows


def collapse_duplicate_keys(rows: Sequence[IssueImportRow]) -> list[IssueImportRow]:
    """
    Keep one row per (title, site). The last row's values win; the key keeps
    the position of its first occurrence.
    """
    by_key: dict[tuple[str, str], IssueImportRow] = {}
    for row in rows:
        by_key[row.natural_key] = row
    return list(by_key.values())


def build_upsert_statement(rows: Sequence[IssueImportRow]) -> Insert:
    """Multi-row INSERT ... ON CONFLICT (title, site) DO UPDATE ... RETURNING."""
    stmt = insert(_issues).values(
        [
            {
                "title": row.title,
                "description": row.description,
                "site": row.site,
                "severity": row.severity,
                "status": row.status,
                "created_at": row.created_at if row.created_at is not None else func.now(),
            }
            for row in rows
        ]
    )
    # title, site and created_at of an existing row are preserved.
    stmt = stmt.on_conflict_do_update(
        index_elements=["title", "site"],
        set_={
            "description": stmt.excluded.description,
            "severity": stmt.excluded.severity,
            "status": stmt.excluded.status,
            "updated_at": func.now(),
        },
    )
    return stmt.returning(*_issues.c, _WAS_INSERTED)


def bulk_upsert(
    db: Session,
    rows: Sequence[IssueImportRow],
    batch_size: int | None = None,
) -> UpsertResult:
    """
    Insert or update every row keyed on (title, site) inside one transaction.

    Rows sharing a key within the batch collapse to the last one first, so each
    key lands exactly once in either `inserted` or `updated`. Both lists follow
    the batch order. Any failure rolls back the entire batch and re-raises.
    Raises ValueError for a batch_size below 1 before touching the session.
    """
    size = settings.IMPORT_BATCH_SIZE if batch_size is None else batch_size
    if size < 1:
        raise ValueError(f"batch_size must be at least 1, got {size}")
    if not rows:
        raise EmptyImportError()
    unique_rows = collapse_duplicate_keys(rows)

    written: dict[tuple[str, str], tuple[IssueRead, bool]] = {}
    try:
        for start in range(0, len(unique_rows), size):
            chunk = unique_rows[start : start + size]
            result = db.execute(build_upsert_statement(chunk))
            for record in result.mappings():
                issue = IssueRead.model_validate(dict(record))
                written[(issue.title, issue.site)] = (issue, bool(record["was_inserted"]))
        db.commit()
    except Exception:
        db.rollback()
        logger.warning(
            "Bulk upsert rolled back",
            extra={"row_count": len(unique_rows)},
        )
        raise

    inserted: list[IssueRead] = []
    updated: list[IssueRead] = []
    for row in unique_rows:
        issue, was_inserted = written[row.natural_key]
        if was_inserted:
            inserted.append(issue)
        else:
            updated.append(issue)

    if len(unique_rows) < len(rows):
        logger.info(
            "Collapsed duplicate (title, site) rows in import batch",
            extra={"row_count": len(rows), "unique_count": len(unique_rows)},
        )
    return UpsertResult(
        inserted=inserted,
        updated=updated,
        total=len(inserted) + len(updated),
    )
