"""
CSV import pipeline: decode the uploaded file, validate every row, upsert the batch.

Expected header columns: title, description, site, severity, status, createdAt.
Unknown columns are ignored; missing optional columns count as blank.
"""

import csv
import io
import logging

from sqlalchemy.orm import Session

from trial_issues.schemas.csv_import import ImportResponse, UpsertResult
from trial_issues.services.upsert import bulk_upsert, validate_rows

logger = logging.getLogger(__name__)

CSV_EXTENSION = ".csv"
CSV_MIME_TYPES = frozenset({"text/csv"})
INVALID_CSV_MESSAGE = "Invalid CSV format"


class CsvParseError(Exception):
    """Raised when the file cannot be decoded or is not well-formed CSV."""

    def __init__(self, message: str = INVALID_CSV_MESSAGE) -> None:
        self.message = message
        super().__init__(message)


def is_csv_upload(filename: str | None, content_type: str | None) -> bool:
    """Accept a file if either its extension or its MIME type says CSV."""
    mime = (content_type or "").split(";")[0].strip().lower()
    return mime in CSV_MIME_TYPES or (filename or "").lower().endswith(CSV_EXTENSION)


def parse_csv(content: bytes) -> list[dict[str, str | None]]:
    """
    Decode UTF-8 CSV bytes (BOM tolerated) into one dict per data row.

    Header names are trimmed. Values are passed through untouched; trimming and
    validation happen in the upsert step.
    """
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise CsvParseError() from e

    reader = csv.DictReader(io.StringIO(text, newline=""))
    try:
        if reader.fieldnames is None:
            return []
        reader.fieldnames = [(name or "").strip() for name in reader.fieldnames]
        # Extra cells beyond the header land under the None key; drop them.
        return [
            {key: value for key, value in row.items() if key is not None}
            for row in reader
        ]
    except csv.Error as e:
        raise CsvParseError() from e


def import_csv(db: Session, content: bytes, batch_size: int | None = None) -> UpsertResult:
    """
    Run the full import for one file.

    Raises CsvParseError, ImportValidationError or EmptyImportError before
    anything is written; store errors propagate after the batch is rolled back.
    """
    raw_rows = parse_csv(content)
    rows = validate_rows(raw_rows)
    result = bulk_upsert(db, rows, batch_size=batch_size)
    logger.info(
        "CSV import completed",
        extra={
            "row_count": len(rows),
            "inserted_count": len(result.inserted),
            "updated_count": len(result.updated),
        },
    )
    return result


def import_summary_message(result: UpsertResult) -> str:
    message = f"CSV imported successfully: {len(result.inserted)} added"
    if result.updated:
        message += f", {len(result.updated)} updated"
    return message


def to_import_response(result: UpsertResult) -> ImportResponse:
    """Shape an upsert result for the client: inserted issues first, then updated."""
    return ImportResponse(
        success=True,
        message=import_summary_message(result),
        imported=len(result.inserted),
        updated=len(result.updated),
        skipped=0,
        count=result.total,
        issues=[*result.inserted, *result.updated],
    )
