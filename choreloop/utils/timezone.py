"""
Timezone utilities for choreloop.

Recurrence expressions are evaluated in the timezone named by the TZ
environment variable. Everything persisted is plain epoch seconds.
"""

import logging
import os
import time
from datetime import datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dateutil.relativedelta import relativedelta

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = 'UTC'


def get_timezone() -> ZoneInfo:
    """Get the configured timezone from environment.

    Returns:
        ZoneInfo for the configured timezone, defaults to UTC
    """
    tz_name = os.environ.get('TZ', DEFAULT_TIMEZONE)
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown timezone {tz_name!r}, falling back to {DEFAULT_TIMEZONE}")
        return ZoneInfo(DEFAULT_TIMEZONE)


def epoch_now() -> int:
    """Current wall-clock time in whole epoch seconds."""
    return int(time.time())


def from_epoch(timestamp: int, tz: ZoneInfo = None) -> datetime:
    """Convert epoch seconds to an aware datetime in the given (or configured) zone."""
    return datetime.fromtimestamp(timestamp, tz or get_timezone())


def start_of_next_local_day(timestamp: int, tz: ZoneInfo = None) -> int:
    """Epoch seconds of local midnight following the given instant.

    Examples (UTC):
    - 2024-01-15 00:00 → 2024-01-16 00:00
    - 2024-01-15 23:59 → 2024-01-16 00:00
    """
    local = from_epoch(timestamp, tz)
    midnight = local + relativedelta(days=+1, hour=0, minute=0, second=0, microsecond=0)
    return int(midnight.timestamp())
