"""
Recurrence expansion for chore instance generation.

A chore's recurrence expression is a cron expression in one of two layouts:

- 5 fields: minute hour day-of-month month day-of-week
- 6 fields: second minute hour day-of-month month day-of-week

Day-of-week numbers follow cron (0 or 7 is Sunday). Six-field expressions
are the layout older chore files use, where weekdays were numbered 1-7
starting on Sunday, so a number there would silently land one day off.
Six-field expressions therefore have to name their weekdays (``sun``,
``mon-fri``); only steps such as ``*/2`` may use digits. A trailing year
field is not supported.

Occurrences are computed in the configured local timezone and returned as
epoch seconds. Consecutive occurrences are then paired so that every
instance expires when the following occurrence becomes due.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional
import logging

from croniter import croniter, CroniterBadCronError, CroniterBadDateError
from zoneinfo import ZoneInfo

from errors import ConfigError, InvalidRecurrenceExpression
from utils.timezone import from_epoch, get_timezone

logger = logging.getLogger(__name__)

MAX_OCCURRENCES_PER_EXPANSION = 10000


@dataclass(frozen=True)
class InstanceBoundary:
    """Time bounds of one chore instance, in epoch seconds."""

    expected_completion_time: int
    overdue_time: int
    expiration_time: int


def _field_count(expression: str) -> int:
    return len(expression.split())


def _has_numeric_weekday(field: str) -> bool:
    # Digits after '/' are step sizes, not weekdays
    return any(
        ch.isdigit()
        for part in field.split(',')
        for ch in part.split('/')[0]
    )


def _make_iterator(expression: str, start: datetime) -> croniter:
    if not isinstance(expression, str) or not expression.strip():
        raise InvalidRecurrenceExpression(str(expression), "expression is empty")

    fields = _field_count(expression)
    if fields not in (5, 6):
        raise InvalidRecurrenceExpression(
            expression, f"expected 5 or 6 fields, got {fields}"
        )

    if fields == 6 and _has_numeric_weekday(expression.split()[5]):
        raise InvalidRecurrenceExpression(
            expression, "day-of-week in 6-field expressions must use names (sun-sat)"
        )

    try:
        return croniter(expression, start, second_at_beginning=(fields == 6))
    except (CroniterBadCronError, ValueError, KeyError) as e:
        raise InvalidRecurrenceExpression(expression, str(e)) from e


def validate_recurrence_expression(expression: str, title: Optional[str] = None) -> None:
    """
    Check that an expression can be expanded.

    Raises:
        InvalidRecurrenceExpression: the expression cannot be parsed
    """
    try:
        iterator = _make_iterator(expression, datetime.now(get_timezone()))
        iterator.get_next(datetime)
    except InvalidRecurrenceExpression as e:
        raise InvalidRecurrenceExpression(e.expression, e.reason, title=title) from e
    except (CroniterBadCronError, CroniterBadDateError, ValueError) as e:
        raise InvalidRecurrenceExpression(expression, str(e), title=title) from e


def _next_occurrence(iterator: croniter, expression: str, backwards: bool = False) -> int:
    try:
        value = iterator.get_prev(datetime) if backwards else iterator.get_next(datetime)
    except (CroniterBadCronError, CroniterBadDateError, ValueError) as e:
        raise InvalidRecurrenceExpression(expression, str(e)) from e
    return int(value.timestamp())


def expand_occurrences(expression: str, anchor: int, lookahead: int,
                       now: Optional[int] = None, tz: Optional[ZoneInfo] = None) -> List[int]:
    """
    Expand a recurrence expression into occurrence timestamps.

    Occurrences are strictly after ``anchor``. Expansion stops after the
    first occurrence later than the horizon; that boundary occurrence is
    included so the caller can use it as the previous occurrence's
    expiration.

    The occurrence cap applies separately to the backlog before ``now``
    and to the occurrences from ``now`` on. When the backlog is larger
    than the cap only its most recent occurrences are kept, so current
    and upcoming occurrences are always produced however far the anchor
    lags behind.

    Args:
        expression: Cron expression (5 or 6 fields)
        anchor: Epoch seconds to expand from (exclusive)
        lookahead: Seconds past the reference time to materialize
        now: Reference time for the horizon (defaults to ``anchor``)
        tz: Timezone the expression is evaluated in (defaults to TZ)

    Returns:
        Ascending list of epoch seconds

    Raises:
        InvalidRecurrenceExpression: the expression cannot be parsed
    """
    tz = tz or get_timezone()
    if now is None:
        now = anchor
    horizon = now + lookahead

    # Backlog in (anchor, now), walked backwards from now
    backlog = []
    if anchor < now:
        iterator = _make_iterator(expression, from_epoch(now, tz))
        while len(backlog) < MAX_OCCURRENCES_PER_EXPANSION:
            timestamp = _next_occurrence(iterator, expression, backwards=True)
            if timestamp <= anchor:
                break
            backlog.append(timestamp)
        else:
            logger.warning(
                f"Backlog of {expression!r} since {anchor} exceeds the "
                f"{MAX_OCCURRENCES_PER_EXPANSION} occurrence cap; keeping the most recent"
            )
        backlog.reverse()

    # Occurrences from now on; starting one second early makes ``now`` itself eligible
    start = max(anchor, now - 1)
    iterator = _make_iterator(expression, from_epoch(start, tz))

    upcoming = []
    while len(upcoming) < MAX_OCCURRENCES_PER_EXPANSION:
        timestamp = _next_occurrence(iterator, expression)
        upcoming.append(timestamp)

        if timestamp > horizon:
            break
    else:
        logger.warning(
            f"Expansion of {expression!r} hit the {MAX_OCCURRENCES_PER_EXPANSION} occurrence cap "
            f"before reaching the horizon; truncating"
        )

    return backlog + upcoming


def pair_occurrences(occurrences: List[int], overdue_duration: int) -> List[InstanceBoundary]:
    """
    Turn consecutive occurrences into instance boundaries.

    The instance for occurrence ``t[i]`` is due at ``t[i]``, overdue at
    ``t[i] + overdue_duration`` and expires at ``t[i + 1]``. The last
    occurrence has no successor yet, so it produces no instance.

    Example:
        [t0, t1, t2] → [(t0, t0 + d, t1), (t1, t1 + d, t2)]
    """
    if overdue_duration <= 0:
        raise ConfigError(f"overdue duration must be positive, got {overdue_duration}")

    boundaries = []
    previous = None
    for occurrence in occurrences:
        if previous is not None:
            boundaries.append(InstanceBoundary(
                expected_completion_time=previous,
                overdue_time=previous + overdue_duration,
                expiration_time=occurrence,
            ))
        previous = occurrence

    return boundaries


def expand_instances(expression: str, anchor: int, lookahead: int, overdue_duration: int,
                     now: Optional[int] = None, tz: Optional[ZoneInfo] = None) -> List[InstanceBoundary]:
    """Expand an expression and pair the occurrences into instance boundaries."""
    occurrences = expand_occurrences(expression, anchor, lookahead, now=now, tz=tz)
    return pair_occurrences(occurrences, overdue_duration)
