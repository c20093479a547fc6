"""
Import issues from a CSV file without going through HTTP. Run from project root:
  python -m trial_issues.scripts.import_csv PATH
Example:
  python -m trial_issues.scripts.import_csv data/site-issues.csv
"""
import argparse
import logging
import sys
from pathlib import Path

from trial_issues.core.config import MAX_IMPORT_BATCH_SIZE, get_settings
from trial_issues.core.database import SessionLocal
from trial_issues.core.logging import configure_logging
from trial_issues.services.csv_import import CsvParseError, import_csv, import_summary_message
from trial_issues.services.upsert import EmptyImportError, ImportValidationError

logger = logging.getLogger(__name__)


def _batch_size(value: str) -> int:
    """argparse type: an integer in the same range IMPORT_BATCH_SIZE accepts."""
    try:
        size = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: {value!r}") from None
    if size < 1 or size > MAX_IMPORT_BATCH_SIZE:
        raise argparse.ArgumentTypeError(f"must be between 1 and {MAX_IMPORT_BATCH_SIZE}, got {size}")
    return size


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Upsert issues from a CSV file by (title, site).")
    parser.add_argument("path", type=Path, help="CSV file with title, description, site, severity[, status, createdAt]")
    parser.add_argument(
        "--batch-size",
        type=_batch_size,
        default=None,
        help="Rows per upsert statement (defaults to IMPORT_BATCH_SIZE)",
    )
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)

    if not args.path.is_file():
        print(f"File not found: {args.path}", file=sys.stderr)
        return 1
    content = args.path.read_bytes()
    if len(content) > settings.IMPORT_MAX_FILE_BYTES:
        print("File size exceeds maximum allowed size.", file=sys.stderr)
        return 1

    db = SessionLocal()
    try:
        result = import_csv(db, content, batch_size=args.batch_size)
    except ImportValidationError as e:
        print(f"{e.message}:", file=sys.stderr)
        for error in e.errors:
            print(f"  {error}", file=sys.stderr)
        return 1
    except (CsvParseError, EmptyImportError) as e:
        print(e.message, file=sys.stderr)
        return 1
    except Exception as e:
        logger.exception("CSV import failed: %s", e)
        return 1
    finally:
        db.close()

    print(import_summary_message(result))
    return 0


if __name__ == "__main__":
    sys.exit(main())
