"""
Display status derivation for chore instances.

The persisted lifecycle status only knows assigned/completed/missed. What a
user sees also depends on the clock:

| persisted | now < expected | now > overdue | display   |
|-----------|----------------|---------------|-----------|
| assigned  | yes            | no            | upcoming  |
| assigned  | no             | no            | assigned  |
| assigned  | no             | yes           | overdue   |
| assigned  | yes            | yes           | (invalid) |
| completed | -              | -             | completed |
| missed    | -              | -             | missed    |
"""

from enum import Enum
from itertools import product
from typing import Dict, Optional, Tuple

from errors import StatusInvariantError, UnknownStatusError


class InstanceStatus(str, Enum):
    """Lifecycle status stored on a chore instance."""

    ASSIGNED = 'assigned'
    COMPLETED = 'completed'
    MISSED = 'missed'


class DisplayStatus(str, Enum):
    """Status shown to users, derived at read time."""

    UPCOMING = 'upcoming'
    ASSIGNED = 'assigned'
    OVERDUE = 'overdue'
    COMPLETED = 'completed'
    MISSED = 'missed'


StatusKey = Tuple[InstanceStatus, bool, bool]

# (persisted, upcoming, overdue) -> display; None marks the impossible row
DERIVATION_TABLE: Dict[StatusKey, Optional[DisplayStatus]] = {
    (InstanceStatus.ASSIGNED, True, False): DisplayStatus.UPCOMING,
    (InstanceStatus.ASSIGNED, False, False): DisplayStatus.ASSIGNED,
    (InstanceStatus.ASSIGNED, False, True): DisplayStatus.OVERDUE,
    (InstanceStatus.ASSIGNED, True, True): None,
}
for _upcoming, _overdue in product((True, False), repeat=2):
    DERIVATION_TABLE[(InstanceStatus.COMPLETED, _upcoming, _overdue)] = DisplayStatus.COMPLETED
    DERIVATION_TABLE[(InstanceStatus.MISSED, _upcoming, _overdue)] = DisplayStatus.MISSED


def check_derivation_table(table: Dict[StatusKey, Optional[DisplayStatus]]) -> None:
    """
    Ensure every (status, upcoming, overdue) combination has an entry.

    Raises:
        RuntimeError: a combination is missing from the table
    """
    expected = set(product(InstanceStatus, (True, False), (True, False)))
    missing = expected - set(table)
    if missing:
        raise RuntimeError(
            "Status derivation table is missing combinations: "
            + ", ".join(f"({s.value}, upcoming={u}, overdue={o})" for s, u, o in sorted(missing))
        )


check_derivation_table(DERIVATION_TABLE)


def parse_status(value: str) -> InstanceStatus:
    """
    Parse a persisted status string.

    Raises:
        UnknownStatusError: value is not a known lifecycle status
    """
    try:
        return InstanceStatus(value)
    except ValueError:
        raise UnknownStatusError(value) from None


def derive_display_status(status, expected_completion_time: int, overdue_time: int,
                          now: int) -> DisplayStatus:
    """
    Derive the display status of an instance at time ``now``.

    Args:
        status: Persisted status (InstanceStatus or its string value)
        expected_completion_time: Epoch seconds the instance is due
        overdue_time: Epoch seconds the grace period ends
        now: Current epoch seconds

    Returns:
        DisplayStatus for the instance

    Raises:
        UnknownStatusError: status is not a known lifecycle status
        StatusInvariantError: instance would be both upcoming and overdue
    """
    if not isinstance(status, InstanceStatus):
        status = parse_status(status)

    upcoming = now < expected_completion_time
    overdue = now > overdue_time

    display = DERIVATION_TABLE[(status, upcoming, overdue)]
    if display is None:
        raise StatusInvariantError(expected_completion_time, overdue_time, now)
    return display
