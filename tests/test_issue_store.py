"""Unit tests for trial_issues.services.issues (store facade) with a mocked session."""

import unittest
from unittest.mock import MagicMock

from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import IntegrityError

from trial_issues.models import Issue
from trial_issues.schemas.issue import IssueCreate, IssueFilters, IssueUpdate
from trial_issues.services.issues import (
    DUPLICATE_ISSUE_MESSAGE,
    IssueConflictError,
    create_issue,
    delete_all_issues,
    delete_issue,
    get_issue,
    list_issues,
    resolve_issue,
    update_issue,
)
from trial_issues.services.validation import SITE_MAX_LENGTH, TITLE_MAX_LENGTH


def _integrity_error() -> IntegrityError:
    return IntegrityError("INSERT INTO issues", {}, Exception("duplicate key value"))


def _create_body(**overrides: str) -> IssueCreate:
    data = {
        "title": "Missing consent form",
        "description": "Consent form not in file",
        "site": "Site-101",
        "severity": "major",
    }
    data.update(overrides)
    return IssueCreate.model_validate(data)


def _statement_sql(session: MagicMock, method: str) -> str:
    stmt = getattr(session, method).call_args[0][0]
    return str(stmt.compile(dialect=postgresql.dialect()))


class TestListAndGet(unittest.TestCase):
    def test_list_executes_built_query(self) -> None:
        session = MagicMock()
        issue = Issue(id=1, title="t")
        session.scalars.return_value.all.return_value = [issue]
        result = list_issues(session, IssueFilters(status="open", limit=5))
        self.assertEqual(result, [issue])
        sql = _statement_sql(session, "scalars")
        self.assertIn("issues.status = ", sql)
        self.assertIn("LIMIT", sql)

    def test_list_without_filters(self) -> None:
        session = MagicMock()
        session.scalars.return_value.all.return_value = []
        self.assertEqual(list_issues(session), [])

    def test_get_by_primary_key(self) -> None:
        session = MagicMock()
        session.get.return_value = None
        self.assertIsNone(get_issue(session, 42))
        session.get.assert_called_once_with(Issue, 42)


class TestCreate(unittest.TestCase):
    def test_adds_commits_and_refreshes(self) -> None:
        session = MagicMock()
        issue = create_issue(session, _create_body())
        self.assertIsInstance(issue, Issue)
        self.assertEqual(issue.title, "Missing consent form")
        self.assertEqual(issue.status, "open")
        session.add.assert_called_once_with(issue)
        session.commit.assert_called_once()
        session.refresh.assert_called_once_with(issue)

    def test_duplicate_title_site_raises_conflict(self) -> None:
        session = MagicMock()
        session.commit.side_effect = _integrity_error()
        with self.assertRaises(IssueConflictError) as ctx:
            create_issue(session, _create_body())
        self.assertEqual(ctx.exception.message, DUPLICATE_ISSUE_MESSAGE)
        session.rollback.assert_called_once()
        session.refresh.assert_not_called()


class TestUpdateAndResolve(unittest.TestCase):
    def test_update_only_supplied_fields(self) -> None:
        session = MagicMock()
        updated = Issue(id=3, status="in_progress")
        session.scalars.return_value.one_or_none.return_value = updated
        result = update_issue(session, 3, IssueUpdate(status="in_progress"))
        self.assertIs(result, updated)
        sql = _statement_sql(session, "scalars")
        self.assertIn("UPDATE issues SET", sql)
        self.assertIn("status=", sql.replace(" ", ""))
        self.assertIn("updated_at=now()", sql.replace(" ", ""))
        self.assertNotIn("title=", sql.replace(" ", ""))
        self.assertIn("RETURNING", sql)
        session.commit.assert_called_once()

    def test_empty_update_is_a_read(self) -> None:
        session = MagicMock()
        existing = Issue(id=3)
        session.get.return_value = existing
        self.assertIs(update_issue(session, 3, IssueUpdate()), existing)
        session.scalars.assert_not_called()
        session.commit.assert_not_called()

    def test_update_unknown_id_returns_none(self) -> None:
        session = MagicMock()
        session.scalars.return_value.one_or_none.return_value = None
        self.assertIsNone(update_issue(session, 999, IssueUpdate(title="New title")))

    def test_update_into_existing_key_raises_conflict(self) -> None:
        session = MagicMock()
        session.scalars.side_effect = _integrity_error()
        with self.assertRaises(IssueConflictError):
            update_issue(session, 3, IssueUpdate(title="Taken"))
        session.rollback.assert_called_once()

    def test_resolve_sets_status(self) -> None:
        session = MagicMock()
        resolved = Issue(id=5, status="resolved")
        session.scalars.return_value.one_or_none.return_value = resolved
        self.assertIs(resolve_issue(session, 5), resolved)
        sql = _statement_sql(session, "scalars")
        self.assertIn("status=", sql.replace(" ", ""))
        self.assertIn("updated_at=now()", sql.replace(" ", ""))

    def test_resolve_unknown_id(self) -> None:
        session = MagicMock()
        session.scalars.return_value.one_or_none.return_value = None
        self.assertIsNone(resolve_issue(session, 404))


class TestDelete(unittest.TestCase):
    def test_delete_reports_removed_row(self) -> None:
        session = MagicMock()
        session.execute.return_value.rowcount = 1
        self.assertTrue(delete_issue(session, 1))
        session.commit.assert_called_once()

    def test_delete_unknown_id(self) -> None:
        session = MagicMock()
        session.execute.return_value.rowcount = 0
        self.assertFalse(delete_issue(session, 1))

    def test_delete_all(self) -> None:
        session = MagicMock()
        session.execute.return_value.rowcount = 12
        self.assertEqual(delete_all_issues(session), 12)
        sql = _statement_sql(session, "execute")
        self.assertEqual(sql.strip(), "DELETE FROM issues")


class TestColumnWidths(unittest.TestCase):
    def test_columns_match_validation_limits(self) -> None:
        columns = Issue.__table__.c
        self.assertEqual(columns.title.type.length, TITLE_MAX_LENGTH)
        self.assertEqual(columns.site.type.length, SITE_MAX_LENGTH)


if __name__ == "__main__":
    unittest.main()
