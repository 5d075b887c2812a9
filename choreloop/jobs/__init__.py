"""
Background jobs for choreloop.

- chore_generator: one generator tick (sweep, expand, insert, watermark)
- missed_instances: sweep expired assigned instances to missed
"""

from jobs.chore_generator import generate_chore_instances, TickResult, TemplateError
from jobs.missed_instances import mark_missed_instances

__all__ = [
    'generate_chore_instances',
    'mark_missed_instances',
    'TickResult',
    'TemplateError',
]
