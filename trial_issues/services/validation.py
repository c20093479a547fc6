"""Field rules shared by the single-record API and the CSV import.

Every parser trims its input and raises ValueError carrying the exact
client-facing message, so pydantic validators and the row validator report
identical wording.
"""

from datetime import datetime, timezone
from typing import Literal

Severity = Literal["minor", "major", "critical"]
Status = Literal["open", "in_progress", "resolved"]

SEVERITY_VALUES: tuple[Severity, ...] = ("minor", "major", "critical")
STATUS_VALUES: tuple[Status, ...] = ("open", "in_progress", "resolved")
DEFAULT_STATUS: Status = "open"

TITLE_MAX_LENGTH = 255
SITE_MAX_LENGTH = 100
SEARCH_MAX_LENGTH = 255

SEVERITY_ERROR = "Severity must be minor, major, or critical"
STATUS_ERROR = "Status must be open, in_progress, or resolved"
CREATED_AT_ERROR = "createdAt must be a valid ISO 8601 date"


def clean_text(value: object) -> str:
    """Return value as a trimmed string; None becomes the empty string."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    return str(value).strip()


def require_text(
    value: object,
    label: str,
    *,
    max_length: int | None = None,
    empty_message: str | None = None,
) -> str:
    """Trimmed non-empty text, optionally bounded in length."""
    text = clean_text(value)
    if not text:
        raise ValueError(empty_message or f"{label} is required")
    if max_length is not None and len(text) > max_length:
        raise ValueError(f"{label} must be less than {max_length} characters")
    return text


def parse_severity(value: object) -> Severity:
    """Case-insensitive match onto the canonical lowercase severity."""
    normalized = clean_text(value).lower()
    for severity in SEVERITY_VALUES:
        if normalized == severity:
            return severity
    raise ValueError(SEVERITY_ERROR)


def parse_status(value: object) -> Status:
    """Case-insensitive match onto the canonical lowercase status."""
    normalized = clean_text(value).lower()
    for status in STATUS_VALUES:
        if normalized == status:
            return status
    raise ValueError(STATUS_ERROR)


def parse_created_at(value: object) -> datetime | None:
    """
    Blank means absent; anything else must be an ISO 8601 date or datetime.

    A value without an offset is taken as UTC. Bare digit strings such as unix
    timestamps are rejected.
    """
    text = clean_text(value)
    if not text:
        return None
    if text.isdigit():
        raise ValueError(CREATED_AT_ERROR)
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as e:
        raise ValueError(CREATED_AT_ERROR) from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
