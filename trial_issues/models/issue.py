"""ORM model for clinical-trial site issues."""

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)

from trial_issues.models.base import Base
from trial_issues.services.validation import SITE_MAX_LENGTH, TITLE_MAX_LENGTH


class Issue(Base):
    """
    One issue raised against a trial site.

    (title, site) is the natural key used by the CSV upsert; id is assigned by
    the database and never changes.
    """

    __tablename__ = "issues"
    __table_args__ = (
        UniqueConstraint("title", "site", name="uq_issues_title_site"),
        CheckConstraint(
            "severity IN ('minor', 'major', 'critical')",
            name="severity",
        ),
        CheckConstraint(
            "status IN ('open', 'in_progress', 'resolved')",
            name="status",
        ),
        Index("ix_issues_created_at", "created_at"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(TITLE_MAX_LENGTH), nullable=False)
    description = Column(Text, nullable=False)
    site = Column(String(SITE_MAX_LENGTH), nullable=False, index=True)
    severity = Column(String(16), nullable=False, index=True)
    status = Column(String(16), nullable=False, default="open", server_default="open", index=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
