"""CSV import endpoint: accept one uploaded CSV file and upsert its rows by (title, site)."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request, UploadFile
from sqlalchemy.orm import Session

from trial_issues.core.config import get_settings
from trial_issues.core.database import get_db
from trial_issues.core.errors import (
    BadRequestError,
    PayloadTooLargeError,
    ValidationFailedError,
)
from trial_issues.schemas.csv_import import ImportResponse
from trial_issues.schemas.errors import ErrorResponse
from trial_issues.services.csv_import import CsvParseError, import_csv, is_csv_upload, to_import_response
from trial_issues.services.upsert import EmptyImportError, ImportValidationError

logger = logging.getLogger(__name__)
router = APIRouter()


def _is_upload_file(obj: object) -> bool:
    """True if obj is an uploaded file (UploadFile or file-like with filename and read)."""
    if isinstance(obj, UploadFile):
        return True
    return (
        hasattr(obj, "read")
        and callable(getattr(obj, "read", None))
        and hasattr(obj, "filename")
    )


async def _read_csv_upload(request: Request, max_bytes: int) -> bytes:
    """Return the bytes of the uploaded CSV, enforcing presence, type and size."""
    content_type = request.headers.get("content-type", "").split(";")[0].strip().lower()
    if content_type != "multipart/form-data":
        raise BadRequestError("No file uploaded")
    form = await request.form()
    try:
        file = form.get("file")
        if file is None or not _is_upload_file(file):
            raise BadRequestError("No file uploaded")
        if not is_csv_upload(getattr(file, "filename", None), getattr(file, "content_type", None)):
            raise BadRequestError("Only CSV files are allowed")
        content = await file.read(max_bytes + 1)
    finally:
        # Releases the spooled temporary files behind every uploaded part.
        await form.close()
    if len(content) > max_bytes:
        raise PayloadTooLargeError("File size exceeds maximum allowed size")
    return content


@router.post(
    "/csv",
    response_model=ImportResponse,
    status_code=201,
    responses={
        400: {"model": ErrorResponse},
        413: {"model": ErrorResponse},
    },
)
async def import_issues_csv(
    request: Request,
    db: Annotated[Session, Depends(get_db)],
) -> ImportResponse:
    """
    Import issues from a CSV file sent as multipart/form-data in the `file` field.

    Columns: title, description, site, severity, status (optional, defaults to
    open), createdAt (optional). Rows whose (title, site) already exists update
    that issue's description, severity and status; other rows are inserted.

    If any row is invalid nothing is written and every row error is returned.
    """
    content = await _read_csv_upload(request, get_settings().IMPORT_MAX_FILE_BYTES)
    try:
        result = import_csv(db, content)
    except CsvParseError as e:
        raise BadRequestError(e.message) from e
    except ImportValidationError as e:
        logger.info(
            "CSV import rejected",
            extra={"error_count": len(e.errors)},
        )
        raise ValidationFailedError(e.message, details=e.errors) from e
    except EmptyImportError as e:
        raise BadRequestError(e.message) from e
    return to_import_response(result)
