"""Chore instance read/write service.

This module contains the request-facing operations:
- Listing recent instances with their display status
- Marking an instance completed

Both return result objects instead of raising on store failures, so routes
can render an error message next to an empty result.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError

from errors import DataIntegrityWarning
from models import db, ChoreInstance
from utils.status import InstanceStatus, derive_display_status
from utils.timezone import epoch_now, start_of_next_local_day

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400


class ChoreServiceError(Exception):
    """Base exception for chore service errors."""

    def __init__(self, message: str, status_code: int = 400):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class BadRequestError(ChoreServiceError):
    def __init__(self, message: str):
        super().__init__(message, 400)


class CompletionOutcome(str, Enum):
    COMPLETED = 'completed'
    NOT_FOUND = 'not_found'


@dataclass
class ChoreView:
    title: str
    description: str
    expected_completion_time: int
    status: str

    def to_dict(self) -> dict:
        return {
            'title': self.title,
            'description': self.description,
            'expected_completion_time': self.expected_completion_time,
            'status': self.status,
        }


@dataclass
class ListChoresResult:
    success: bool
    chores: List[ChoreView] = field(default_factory=list)
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            'success': self.success,
            'error': self.error,
            'chores': [c.to_dict() for c in self.chores],
        }


@dataclass
class CompletionResult:
    success: bool
    outcome: Optional[CompletionOutcome] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            'success': self.success,
            'error': self.error,
            'result': self.outcome.value if self.outcome else None,
        }


class ChoreService:
    """Service for listing and completing chore instances."""

    @staticmethod
    def list_chores(settings, lookback_days: int = 0, now: Optional[int] = None) -> ListChoresResult:
        """List instances due from ``lookback_days`` ago through the end of today.

        Args:
            settings: ChoreSettings used to look up descriptions
            lookback_days: Whole days before now to include
            now: Current epoch seconds (defaults to wall-clock time)

        Returns:
            ListChoresResult ordered by expected completion time. Rows that
            cannot be rendered are logged and left out.

        Raises:
            BadRequestError: lookback_days is negative
        """
        if lookback_days < 0:
            raise BadRequestError('lookback_days must be zero or positive')

        if now is None:
            now = epoch_now()

        window_start = now - lookback_days * SECONDS_PER_DAY
        window_end = start_of_next_local_day(now)

        try:
            instances = ChoreInstance.query.filter(
                ChoreInstance.expected_completion_time >= window_start,
                ChoreInstance.expected_completion_time < window_end
            ).order_by(ChoreInstance.expected_completion_time.asc()).all()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Failed to fetch chores: {e}")
            return ListChoresResult(success=False, error=f'failed to fetch chores: {e}')

        chores = []
        for instance in instances:
            view = ChoreService._render(settings, instance, now)
            if view is not None:
                chores.append(view)

        return ListChoresResult(success=True, chores=chores)

    @staticmethod
    def _render(settings, instance: ChoreInstance, now: int) -> Optional[ChoreView]:
        if not instance.title:
            logger.warning("Chore instance missing title")
            return None

        template = settings.get_template(instance.title)
        if template is None:
            logger.warning(f'Chore "{instance.title}" not found in config')
            return None

        if instance.expected_completion_time is None or instance.overdue_time is None:
            logger.warning(f'Chore "{instance.title}" is missing its due or overdue time')
            return None

        try:
            display = derive_display_status(
                instance.status,
                instance.expected_completion_time,
                instance.overdue_time,
                now,
            )
        except DataIntegrityWarning as e:
            logger.warning(
                f'Skipping chore "{instance.title}" due {instance.expected_completion_time}: {e.message}'
            )
            return None

        return ChoreView(
            title=instance.title,
            description=template.description,
            expected_completion_time=instance.expected_completion_time,
            status=display.value,
        )

    @staticmethod
    def complete_chore(title: str, expected_completion_time: int) -> CompletionResult:
        """Mark an instance completed, whatever its current status.

        Args:
            title: Chore title
            expected_completion_time: Epoch seconds the instance was due

        Returns:
            CompletionResult with outcome COMPLETED or NOT_FOUND, or a failed
            result if the update could not be committed
        """
        try:
            updated = ChoreInstance.query.filter_by(
                title=title,
                expected_completion_time=expected_completion_time
            ).update(
                {ChoreInstance.status: InstanceStatus.COMPLETED.value},
                synchronize_session=False
            )
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Failed to complete chore {title!r} at {expected_completion_time}: {e}")
            return CompletionResult(success=False, error=f'failed to mark chore as completed: {e}')

        if updated == 0:
            logger.info(f"No chore {title!r} due at {expected_completion_time} to complete")
            return CompletionResult(
                success=False,
                outcome=CompletionOutcome.NOT_FOUND,
                error=f'chore "{title}" due at {expected_completion_time} not found',
            )

        logger.info(f"Completed chore {title!r} due at {expected_completion_time}")
        return CompletionResult(success=True, outcome=CompletionOutcome.COMPLETED)
