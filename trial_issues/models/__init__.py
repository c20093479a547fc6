"""SQLAlchemy ORM models."""

from trial_issues.models.base import Base
from trial_issues.models.issue import Issue

__all__ = ["Base", "Issue"]
