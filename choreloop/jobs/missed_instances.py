"""
Missed instance sweep.
"""

import logging

logger = logging.getLogger(__name__)


def mark_missed_instances(now: int) -> int:
    """
    Mark expired assigned instances as missed.

    Transitions instances to 'missed' status if:
    - status = 'assigned'
    - expiration_time < now

    An instance that is only past its overdue_time stays assigned. Runs
    inside the caller's transaction and does not commit.

    Args:
        now: Current epoch seconds

    Returns:
        Number of instances marked missed
    """
    from models import ChoreInstance
    from utils.status import InstanceStatus

    marked_count = ChoreInstance.query.filter(
        ChoreInstance.status == InstanceStatus.ASSIGNED.value,
        ChoreInstance.expiration_time < now
    ).update(
        {ChoreInstance.status: InstanceStatus.MISSED.value},
        synchronize_session=False
    )

    if marked_count > 0:
        logger.info(f"Marked {marked_count} instances as missed")
    else:
        logger.debug("No expired instances to mark missed")

    return marked_count
