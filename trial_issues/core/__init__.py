"""Core app configuration, database, logging and error types."""

from trial_issues.core.config import get_settings, settings
from trial_issues.core.database import get_db

__all__ = ["get_settings", "settings", "get_db"]
