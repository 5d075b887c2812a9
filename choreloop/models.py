"""
SQLAlchemy models for choreloop.

Two tables: one row per scheduled chore instance, and a single-row
watermark holding the anchor for the next recurrence expansion.
Uses Flask-SQLAlchemy for ORM integration with Flask.
"""

from typing import Optional

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import CheckConstraint, Index

from utils.status import InstanceStatus
from utils.timezone import epoch_now

db = SQLAlchemy()

WATERMARK_ID = 1


class ChoreInstance(db.Model):
    """One scheduled occurrence of a chore template."""

    __tablename__ = 'chore_instances'

    # Title references a configured template by name; there is no foreign key
    title = db.Column(db.String(255), primary_key=True)
    expected_completion_time = db.Column(db.Integer, primary_key=True, autoincrement=False)
    overdue_time = db.Column(db.Integer, nullable=False)
    expiration_time = db.Column(db.Integer, nullable=False)

    status = db.Column(db.String(20), default=InstanceStatus.ASSIGNED.value, nullable=False)
    created_at = db.Column(db.Integer, default=epoch_now, nullable=False)

    __table_args__ = (
        CheckConstraint(
            "status IN ('assigned', 'completed', 'missed')",
            name='check_instance_status'
        ),
        CheckConstraint('overdue_time > expected_completion_time', name='check_overdue_after_expected'),
        Index('idx_chore_instances_status_expiration', 'status', 'expiration_time'),
        Index('idx_chore_instances_expected', 'expected_completion_time'),
    )

    def __repr__(self):
        return f'<ChoreInstance {self.title} due={self.expected_completion_time} status={self.status}>'


class Watermark(db.Model):
    """Anchor timestamp for the next recurrence expansion (single row)."""

    __tablename__ = 'watermark'

    id = db.Column(db.Integer, primary_key=True, autoincrement=False)
    last_update_timestamp = db.Column(db.Integer, nullable=False)

    def __repr__(self):
        return f'<Watermark {self.last_update_timestamp}>'

    @classmethod
    def read(cls) -> Optional[int]:
        """Return the stored anchor, or None before the first tick."""
        row = db.session.get(cls, WATERMARK_ID)
        return row.last_update_timestamp if row else None

    @classmethod
    def write(cls, timestamp: int) -> None:
        """Store the anchor. Does not commit."""
        row = db.session.get(cls, WATERMARK_ID)
        if row is None:
            db.session.add(cls(id=WATERMARK_ID, last_update_timestamp=timestamp))
        else:
            row.last_update_timestamp = timestamp
