"""
Chore configuration loading.

The chores file is JSON:

    {
        "chores": {
            "dishes": {"description": "Do the dishes", "frequency": "0 0 19 * * *"}
        },
        "overdue_time": "2h",
        "lookahead_time": "1d",
        "check_interval": "1h"
    }

Durations are either integer seconds or strings such as "90s", "2h" or
"1h30m". Everything is validated up front; a bad file is fatal at startup.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from errors import ConfigError
from utils.recurrence import validate_recurrence_expression

logger = logging.getLogger(__name__)

DEFAULT_LOOKAHEAD_SECONDS = 24 * 3600
DEFAULT_CHECK_INTERVAL_SECONDS = 3600
DEFAULT_PORT = 4040

DURATION_PART_RE = re.compile(r'(\d+)\s*([a-z]+)')
DURATION_RE = re.compile(r'^(?:\d+\s*[a-z]+\s*)+$')

UNIT_SECONDS = {
    's': 1, 'sec': 1, 'secs': 1, 'second': 1, 'seconds': 1,
    'm': 60, 'min': 60, 'mins': 60, 'minute': 60, 'minutes': 60,
    'h': 3600, 'hr': 3600, 'hrs': 3600, 'hour': 3600, 'hours': 3600,
    'd': 86400, 'day': 86400, 'days': 86400,
    'w': 604800, 'week': 604800, 'weeks': 604800,
}


@dataclass(frozen=True)
class ChoreTemplate:
    """A recurring chore definition from the configuration file."""

    title: str
    description: str
    recurrence_expression: str


@dataclass(frozen=True)
class ChoreSettings:
    """Parsed chores configuration. Durations are in seconds."""

    templates: Dict[str, ChoreTemplate] = field(default_factory=dict)
    overdue_time: int = 3600
    lookahead_time: int = DEFAULT_LOOKAHEAD_SECONDS
    check_interval: int = DEFAULT_CHECK_INTERVAL_SECONDS
    port: int = DEFAULT_PORT

    def get_template(self, title: str) -> Optional[ChoreTemplate]:
        return self.templates.get(title)


def parse_duration(value: Any, field_path: str) -> int:
    """
    Parse a duration into whole seconds.

    Args:
        value: Integer seconds or a string like "2h", "1d" or "1h30m"
        field_path: Config key, used in error messages

    Returns:
        Number of seconds

    Raises:
        ConfigError: value is not a valid duration
    """
    if isinstance(value, bool):
        raise ConfigError(f"{field_path} must be a duration like 30m, 2h, 1d.")

    if isinstance(value, int):
        return value

    if not isinstance(value, str):
        raise ConfigError(f"{field_path} must be a duration like 30m, 2h, 1d.")

    text = value.strip().lower()
    if text.isdigit():
        return int(text)

    if not DURATION_RE.match(text):
        raise ConfigError(f'{field_path} must be in format <number><unit>, got "{value}".')

    total = 0
    for amount, unit in DURATION_PART_RE.findall(text):
        if unit not in UNIT_SECONDS:
            raise ConfigError(f'Unknown duration unit "{unit}" in {field_path}.')
        total += int(amount) * UNIT_SECONDS[unit]
    return total


def _parse_template(title: Any, raw: Any) -> ChoreTemplate:
    if not isinstance(title, str) or not title.strip():
        raise ConfigError("Chore titles must be non-empty strings.")

    if not isinstance(raw, dict):
        raise ConfigError(f'chores.{title} must be an object.')

    expression = raw.get('frequency', raw.get('recurrence_expression'))
    if not isinstance(expression, str):
        raise ConfigError(f'chores.{title}.frequency must be a cron expression string.')

    description = raw.get('description', '')
    if not isinstance(description, str):
        raise ConfigError(f'chores.{title}.description must be a string.')

    validate_recurrence_expression(expression, title=title)

    return ChoreTemplate(title=title, description=description, recurrence_expression=expression)


def parse_chore_config(raw: Any) -> ChoreSettings:
    """
    Build ChoreSettings from decoded JSON.

    Raises:
        ConfigError: missing keys, bad durations or bad recurrence expressions
    """
    if not isinstance(raw, dict):
        raise ConfigError("Chores configuration must be a JSON object.")

    chores = raw.get('chores')
    if not isinstance(chores, dict):
        raise ConfigError("chores must be an object mapping title to chore definition.")

    if 'overdue_time' not in raw:
        raise ConfigError("overdue_time is required.")

    overdue_time = parse_duration(raw['overdue_time'], 'overdue_time')
    lookahead_time = parse_duration(raw.get('lookahead_time', DEFAULT_LOOKAHEAD_SECONDS), 'lookahead_time')
    check_interval = parse_duration(
        raw.get('check_interval', DEFAULT_CHECK_INTERVAL_SECONDS), 'check_interval'
    )

    if overdue_time <= 0:
        raise ConfigError("overdue_time must be > 0.")
    if lookahead_time < 0:
        raise ConfigError("lookahead_time must be >= 0.")
    if check_interval <= 0:
        raise ConfigError("check_interval must be > 0.")

    port = raw.get('port', DEFAULT_PORT)
    if not isinstance(port, int) or isinstance(port, bool) or not 0 < port < 65536:
        raise ConfigError("port must be an integer between 1 and 65535.")

    templates = {}
    for title, chore in chores.items():
        templates[title] = _parse_template(title, chore)

    return ChoreSettings(
        templates=templates,
        overdue_time=overdue_time,
        lookahead_time=lookahead_time,
        check_interval=check_interval,
        port=port,
    )


def load_chore_config(path) -> ChoreSettings:
    """
    Load and validate the chores configuration file.

    Raises:
        ConfigError: file missing, not JSON, or invalid
    """
    path = Path(path)
    try:
        contents = path.read_text(encoding='utf-8')
    except OSError as e:
        raise ConfigError(f"Could not read chores config {path}: {e}") from e

    try:
        raw = json.loads(contents)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Chores config {path} is not valid JSON: {e}") from e

    settings = parse_chore_config(raw)
    logger.info(f"Loaded {len(settings.templates)} chore(s) from {path}")
    return settings
