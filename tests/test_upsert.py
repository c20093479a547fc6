"""Unit tests for trial_issues.services.upsert: row validation, duplicate keys, transactional upsert."""

import unittest
from datetime import datetime, timezone
from unittest.mock import MagicMock

from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import OperationalError

from trial_issues.schemas.csv_import import IssueImportRow
from trial_issues.services.upsert import (
    EMPTY_IMPORT_MESSAGE,
    EmptyImportError,
    ImportValidationError,
    build_upsert_statement,
    bulk_upsert,
    collapse_duplicate_keys,
    validate_row,
    validate_rows,
)

NOW = datetime(2025, 5, 1, 9, 0, tzinfo=timezone.utc)


def _raw(**overrides: object) -> dict[str, object]:
    """Build a valid raw CSV row (as parsed from the file) for tests."""
    row: dict[str, object] = {
        "title": "Missing consent form",
        "description": "Consent form not in file for patient 003",
        "site": "Site-101",
        "severity": "major",
        "status": "open",
        "createdAt": "",
    }
    row.update(overrides)
    return row


def _row(title: str = "Late visit", site: str = "Site-202", **kwargs: object) -> IssueImportRow:
    """Build a validated import row for tests."""
    defaults: dict[str, object] = {
        "description": "Visit week 4 occurred on week 6",
        "severity": "minor",
        "status": "open",
    }
    defaults.update(kwargs)
    return IssueImportRow(title=title, site=site, **defaults)


def _record(
    issue_id: int,
    row: IssueImportRow,
    was_inserted: bool,
) -> dict[str, object]:
    """A RETURNING row as the upsert statement would produce it."""
    return {
        "id": issue_id,
        "title": row.title,
        "description": row.description,
        "site": row.site,
        "severity": row.severity,
        "status": row.status,
        "created_at": NOW,
        "updated_at": NOW,
        "was_inserted": was_inserted,
    }


def _session_returning(*batches: list[dict[str, object]]) -> MagicMock:
    """MagicMock session whose execute() yields the given RETURNING batches in order."""
    session = MagicMock()
    results = []
    for batch in batches:
        result = MagicMock()
        result.mappings.return_value = batch
        results.append(result)
    session.execute.side_effect = results
    return session


class TestValidateRow(unittest.TestCase):
    """Per-row rules and normalization."""

    def test_valid_row_is_normalized(self) -> None:
        row, errors = validate_row(
            _raw(
                title="  Drug temp excursion ",
                site=" Site-101",
                severity=" CRITICAL ",
                status="In_Progress",
                createdAt="2025-05-10T08:15:00Z",
            ),
            2,
        )
        self.assertEqual(errors, [])
        self.assertIsNotNone(row)
        self.assertEqual(row.title, "Drug temp excursion")
        self.assertEqual(row.site, "Site-101")
        self.assertEqual(row.severity, "critical")
        self.assertEqual(row.status, "in_progress")
        self.assertEqual(row.created_at, datetime(2025, 5, 10, 8, 15, tzinfo=timezone.utc))

    def test_missing_status_defaults_to_open(self) -> None:
        raw = _raw()
        del raw["status"]
        row, errors = validate_row(raw, 2)
        self.assertEqual(errors, [])
        self.assertEqual(row.status, "open")
        self.assertIsNone(row.created_at)

    def test_empty_status_defaults_to_open(self) -> None:
        row, errors = validate_row(_raw(status=""), 2)
        self.assertEqual(errors, [])
        self.assertEqual(row.status, "open")

    def test_whitespace_only_status_rejected(self) -> None:
        row, errors = validate_row(_raw(status="   "), 6)
        self.assertIsNone(row)
        self.assertEqual(errors, ["Row 6: Status must be open, in_progress, or resolved"])

    def test_blank_title(self) -> None:
        row, errors = validate_row(_raw(title="   "), 3)
        self.assertIsNone(row)
        self.assertEqual(errors, ["Row 3: Title is required"])

    def test_every_violation_reported(self) -> None:
        _, errors = validate_row(
            {"title": "", "description": None, "site": "", "severity": "", "status": "closed"},
            5,
        )
        self.assertEqual(
            errors,
            [
                "Row 5: Title is required",
                "Row 5: Description is required",
                "Row 5: Site is required",
                "Row 5: Severity must be minor, major, or critical",
                "Row 5: Status must be open, in_progress, or resolved",
            ],
        )

    def test_invalid_severity(self) -> None:
        _, errors = validate_row(_raw(severity="wrong_severity"), 4)
        self.assertEqual(errors, ["Row 4: Severity must be minor, major, or critical"])

    def test_length_limits(self) -> None:
        _, errors = validate_row(_raw(title="t" * 256, site="s" * 101), 2)
        self.assertEqual(
            errors,
            [
                "Row 2: Title must be less than 255 characters",
                "Row 2: Site must be less than 100 characters",
            ],
        )

    def test_invalid_created_at(self) -> None:
        _, errors = validate_row(_raw(createdAt="not-a-date"), 2)
        self.assertEqual(errors, ["Row 2: createdAt must be a valid ISO 8601 date"])

    def test_unix_timestamp_created_at_rejected(self) -> None:
        row, errors = validate_row(_raw(createdAt="1700000000"), 2)
        self.assertIsNone(row)
        self.assertEqual(errors, ["Row 2: createdAt must be a valid ISO 8601 date"])


class TestValidateRows(unittest.TestCase):
    """Batch validation is all-or-nothing and numbers rows after the header."""

    def test_mixed_batch_rejected_with_row_numbers(self) -> None:
        raws = [
            _raw(title="Valid Issue"),
            _raw(title=""),
            _raw(title="Another Valid", severity="nope"),
        ]
        with self.assertRaises(ImportValidationError) as ctx:
            validate_rows(raws)
        self.assertEqual(
            ctx.exception.errors,
            [
                "Row 3: Title is required",
                "Row 4: Severity must be minor, major, or critical",
            ],
        )
        self.assertEqual(ctx.exception.message, "CSV contains invalid data")

    def test_valid_batch(self) -> None:
        rows = validate_rows([_raw(title="A"), _raw(title="B")])
        self.assertEqual([r.title for r in rows], ["A", "B"])

    def test_empty_batch(self) -> None:
        with self.assertRaises(EmptyImportError) as ctx:
            validate_rows([])
        self.assertEqual(ctx.exception.message, EMPTY_IMPORT_MESSAGE)


class TestCollapseDuplicateKeys(unittest.TestCase):
    """Last row wins per (title, site); first position is kept."""

    def test_last_row_wins(self) -> None:
        first = _row(title="X", site="Y", description="first")
        other = _row(title="Z", site="Y")
        second = _row(title="X", site="Y", description="second")
        collapsed = collapse_duplicate_keys([first, other, second])
        self.assertEqual(len(collapsed), 2)
        self.assertEqual(collapsed[0].description, "second")
        self.assertEqual(collapsed[1].title, "Z")

    def test_same_title_different_site_kept(self) -> None:
        rows = [_row(title="X", site="A"), _row(title="X", site="B")]
        self.assertEqual(len(collapse_duplicate_keys(rows)), 2)


class TestUpsertStatement(unittest.TestCase):
    """The statement is a single multi-row INSERT ... ON CONFLICT on the natural key."""

    def _sql(self, rows: list[IssueImportRow]) -> str:
        return str(build_upsert_statement(rows).compile(dialect=postgresql.dialect()))

    def test_conflict_target_and_updated_columns(self) -> None:
        sql = self._sql([_row()])
        self.assertIn("ON CONFLICT (title, site) DO UPDATE SET", sql)
        self.assertIn("description = excluded.description", sql)
        self.assertIn("severity = excluded.severity", sql)
        self.assertIn("status = excluded.status", sql)
        self.assertIn("updated_at = now()", sql)

    def test_title_site_created_at_not_overwritten(self) -> None:
        sql = self._sql([_row()])
        set_clause = sql.split("DO UPDATE SET", 1)[1].split("RETURNING", 1)[0]
        self.assertNotIn("title =", set_clause)
        self.assertNotIn("site =", set_clause)
        self.assertNotIn("created_at =", set_clause)

    def test_returning_reports_insert_or_update(self) -> None:
        sql = self._sql([_row()])
        self.assertIn("RETURNING", sql)
        self.assertIn("(xmax = 0) AS was_inserted", sql)

    def test_missing_created_at_uses_database_now(self) -> None:
        sql = self._sql([_row(created_at=None)])
        values_clause = sql.split("VALUES", 1)[1].split("ON CONFLICT", 1)[0]
        self.assertIn("now()", values_clause)

    def test_supplied_created_at_is_bound(self) -> None:
        compiled = build_upsert_statement([_row(created_at=NOW)]).compile(
            dialect=postgresql.dialect()
        )
        self.assertIn(NOW, compiled.params.values())

    def test_multi_row_values(self) -> None:
        compiled = build_upsert_statement(
            [_row(title="A"), _row(title="B")]
        ).compile(dialect=postgresql.dialect())
        self.assertIn("A", compiled.params.values())
        self.assertIn("B", compiled.params.values())


class TestBulkUpsert(unittest.TestCase):
    """bulk_upsert partitions results and commits or rolls back once."""

    def test_partitions_inserted_and_updated(self) -> None:
        new_row = _row(title="New")
        existing_row = _row(title="Existing")
        session = _session_returning(
            [_record(1, new_row, True), _record(2, existing_row, False)]
        )
        result = bulk_upsert(session, [new_row, existing_row])
        self.assertEqual([i.title for i in result.inserted], ["New"])
        self.assertEqual([i.title for i in result.updated], ["Existing"])
        self.assertEqual(result.total, 2)
        session.commit.assert_called_once()
        session.rollback.assert_not_called()

    def test_order_follows_batch_not_returning(self) -> None:
        a, b, c = _row(title="A"), _row(title="B"), _row(title="C")
        session = _session_returning(
            [_record(3, c, True), _record(1, a, True), _record(2, b, True)]
        )
        result = bulk_upsert(session, [a, b, c])
        self.assertEqual([i.title for i in result.inserted], ["A", "B", "C"])

    def test_duplicate_keys_count_once(self) -> None:
        first = _row(title="X", site="Y", description="first")
        second = _row(title="X", site="Y", description="second")
        session = _session_returning([_record(7, second, False)])
        result = bulk_upsert(session, [first, second])
        self.assertEqual(len(result.inserted), 0)
        self.assertEqual(len(result.updated), 1)
        self.assertEqual(result.updated[0].description, "second")
        self.assertEqual(session.execute.call_count, 1)

    def test_chunks_share_one_transaction(self) -> None:
        rows = [_row(title=t) for t in ("A", "B", "C")]
        session = _session_returning(
            [_record(1, rows[0], True), _record(2, rows[1], True)],
            [_record(3, rows[2], True)],
        )
        result = bulk_upsert(session, rows, batch_size=2)
        self.assertEqual(session.execute.call_count, 2)
        session.commit.assert_called_once()
        self.assertEqual(result.total, 3)

    def test_failure_rolls_back_everything(self) -> None:
        rows = [_row(title=t) for t in ("A", "B")]
        first = MagicMock()
        first.mappings.return_value = [_record(1, rows[0], True)]
        session = MagicMock()
        session.execute.side_effect = [
            first,
            OperationalError("INSERT", {}, Exception("connection lost")),
        ]
        with self.assertRaises(OperationalError):
            bulk_upsert(session, rows, batch_size=1)
        session.rollback.assert_called_once()
        session.commit.assert_not_called()

    def test_non_positive_batch_size_rejected_without_touching_db(self) -> None:
        for size in (0, -1):
            with self.subTest(batch_size=size):
                session = MagicMock()
                with self.assertRaises(ValueError):
                    bulk_upsert(session, [_row()], batch_size=size)
                session.execute.assert_not_called()
                session.commit.assert_not_called()

    def test_empty_batch_rejected_without_touching_db(self) -> None:
        session = MagicMock()
        with self.assertRaises(EmptyImportError):
            bulk_upsert(session, [])
        session.execute.assert_not_called()
        session.commit.assert_not_called()


if __name__ == "__main__":
    unittest.main()
