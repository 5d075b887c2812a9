"""
Chore instance generation job.

One call is one generator tick. Inside a single transaction it:

1. reads the watermark (bootstrapping it to ``now`` on first run),
2. marks expired assigned instances missed,
3. expands every template from the watermark through ``now + lookahead``
   and inserts the resulting instances, ignoring ones that already exist,
4. writes the watermark according to the watermark policy,
5. commits.

A template whose recurrence expression fails to expand is logged and
skipped; the rest of the tick still commits. A database error rolls the
whole tick back.
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Optional
import logging

from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError

from errors import ConfigError, InvalidRecurrenceExpression, StoreError
from utils.recurrence import InstanceBoundary, expand_instances
from utils.status import InstanceStatus
from utils.timezone import epoch_now

logger = logging.getLogger(__name__)

WATERMARK_ADVANCE = 'advance'
WATERMARK_FIXED = 'fixed'
WATERMARK_POLICIES = (WATERMARK_ADVANCE, WATERMARK_FIXED)

INSERT_BATCH_SIZE = 500


@dataclass
class TemplateError:
    """A template that could not be expanded during a tick."""

    title: str
    message: str

    def to_dict(self) -> dict:
        return {'title': self.title, 'message': self.message}


@dataclass
class TickResult:
    """Summary of one committed generator tick."""

    tick: int
    now: int
    anchor: int
    watermark: int
    missed_count: int = 0
    inserted_count: int = 0
    errors: List[TemplateError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict:
        return {
            'tick': self.tick,
            'now': self.now,
            'anchor': self.anchor,
            'watermark': self.watermark,
            'missed_count': self.missed_count,
            'inserted_count': self.inserted_count,
            'errors': [e.to_dict() for e in self.errors],
        }


def insert_instances(title: str, boundaries: Iterable[InstanceBoundary], created_at: int) -> int:
    """
    Insert instances for a template, skipping existing (title, expected) keys.

    Does not commit.

    Returns:
        Number of rows actually inserted
    """
    from models import db, ChoreInstance

    rows = [
        {
            'title': title,
            'expected_completion_time': b.expected_completion_time,
            'overdue_time': b.overdue_time,
            'expiration_time': b.expiration_time,
            'status': InstanceStatus.ASSIGNED.value,
            'created_at': created_at,
        }
        for b in boundaries
    ]

    inserted = 0
    for start in range(0, len(rows), INSERT_BATCH_SIZE):
        batch = rows[start:start + INSERT_BATCH_SIZE]
        stmt = sqlite_insert(ChoreInstance.__table__).values(batch).on_conflict_do_nothing(
            index_elements=['title', 'expected_completion_time']
        )
        result = db.session.execute(stmt)
        inserted += max(result.rowcount, 0)

    return inserted


def generate_chore_instances(settings, now: Optional[int] = None, tick: int = 0,
                             watermark_policy: str = WATERMARK_ADVANCE) -> TickResult:
    """
    Run one generator tick.

    Args:
        settings: ChoreSettings with templates and durations
        now: Current epoch seconds (defaults to wall-clock time)
        tick: Tick number, for logging and the result
        watermark_policy: 'advance' stores ``now`` as the next anchor,
            'fixed' re-stores the anchor that was read

    Returns:
        TickResult for the committed tick

    Raises:
        ConfigError: unknown watermark policy
        StoreError: the tick was rolled back
    """
    from models import db, Watermark
    from jobs.missed_instances import mark_missed_instances

    if watermark_policy not in WATERMARK_POLICIES:
        raise ConfigError(f"Unknown watermark policy: {watermark_policy}")

    if now is None:
        now = epoch_now()

    logger.debug(f"Starting generator tick {tick}")

    try:
        anchor = Watermark.read()
        if anchor is None:
            anchor = now
            logger.info(f"No watermark found, anchoring first expansion at {anchor}")

        result = TickResult(tick=tick, now=now, anchor=anchor, watermark=anchor)

        result.missed_count = mark_missed_instances(now)

        for template in settings.templates.values():
            try:
                boundaries = expand_instances(
                    template.recurrence_expression,
                    anchor,
                    settings.lookahead_time,
                    settings.overdue_time,
                    now=now,
                )
            except InvalidRecurrenceExpression as e:
                logger.error(f"Skipping chore {template.title!r} in tick {tick}: {e.message}")
                result.errors.append(TemplateError(title=template.title, message=e.message))
                continue

            inserted = insert_instances(template.title, boundaries, created_at=now)
            result.inserted_count += inserted
            logger.debug(f"Chore {template.title!r}: {len(boundaries)} candidates, {inserted} new")

        result.watermark = now if watermark_policy == WATERMARK_ADVANCE else anchor
        Watermark.write(result.watermark)

        db.session.commit()

    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Generator tick {tick} rolled back: {e}")
        raise StoreError(f"Generator tick {tick} failed: {e}") from e

    logger.info(
        f"Generator tick {tick} complete: {result.inserted_count} instances created, "
        f"{result.missed_count} marked missed, {len(result.errors)} chore(s) failed"
    )
    if result.errors:
        logger.warning(
            "Chores with invalid recurrence: " + ", ".join(e.title for e in result.errors)
        )

    return result
