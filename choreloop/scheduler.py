"""
Background generator scheduling using APScheduler.

The generator runs one tick, then schedules the next tick
``check_interval`` seconds after the previous one finished. Each
follow-up is a one-shot DateTrigger job, so a slow tick pushes the next
one back instead of overlapping it.
"""

from datetime import datetime, timedelta
from typing import Optional
import atexit
import logging
import threading

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.date import DateTrigger

from errors import StoreError
from jobs.chore_generator import generate_chore_instances, TickResult, WATERMARK_ADVANCE
from utils.timezone import get_timezone

logger = logging.getLogger(__name__)

GENERATOR_JOB_ID = 'chore_generator'
EXTENSION_KEY = 'chore_generator'


class GeneratorScheduler:
    """Owns the generator loop: tick counter, stop signal and pending job."""

    def __init__(self, app, settings, scheduler: Optional[BackgroundScheduler] = None,
                 watermark_policy: str = WATERMARK_ADVANCE):
        self.app = app
        self.settings = settings
        self.watermark_policy = watermark_policy
        self.tick_count = 0
        self.last_result: Optional[TickResult] = None
        self.last_error: Optional[str] = None
        self._scheduler = scheduler or BackgroundScheduler(timezone=get_timezone())
        self._stop_event = threading.Event()
        self._tick_lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._scheduler.running and not self._stop_event.is_set()

    def run_tick(self, now: Optional[int] = None) -> Optional[TickResult]:
        """
        Run exactly one generator tick in the app context.

        Store failures are logged and recorded; they never propagate.

        Returns:
            TickResult, or None if the tick was rolled back
        """
        with self._tick_lock:
            self.tick_count += 1
            tick = self.tick_count

            with self.app.app_context():
                try:
                    result = generate_chore_instances(
                        self.settings,
                        now=now,
                        tick=tick,
                        watermark_policy=self.watermark_policy,
                    )
                except StoreError as e:
                    logger.error(f"Generator tick {tick} failed, retrying next interval: {e}")
                    self.last_error = e.message
                    return None

            self.last_result = result
            self.last_error = None
            return result

    def _run_and_reschedule(self):
        try:
            self.run_tick()
        finally:
            if not self._stop_event.is_set():
                self._schedule_at(datetime.now(get_timezone()) + timedelta(seconds=self.settings.check_interval))

    def _schedule_at(self, run_date: datetime):
        self._scheduler.add_job(
            self._run_and_reschedule,
            trigger=DateTrigger(run_date=run_date),
            id=GENERATOR_JOB_ID,
            name='Generate chore instances',
            replace_existing=True,
            misfire_grace_time=None,
        )

    def start(self):
        """Start the background scheduler; the first tick runs immediately."""
        self._stop_event.clear()
        self._schedule_at(datetime.now(get_timezone()))
        if not self._scheduler.running:
            self._scheduler.start()
        logger.info(f"Chore generator started, checking every {self.settings.check_interval}s")

    def stop(self):
        """Cancel the pending tick and shut the scheduler down."""
        self._stop_event.set()
        if self._scheduler.get_job(GENERATOR_JOB_ID):
            self._scheduler.remove_job(GENERATOR_JOB_ID)
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Chore generator stopped")

    def get_status(self) -> dict:
        """
        Get generator status.

        Returns:
            dict with running flag, tick counter, next run and last tick summary
        """
        job = self._scheduler.get_job(GENERATOR_JOB_ID) if self._scheduler.running else None
        next_run = getattr(job, 'next_run_time', None) if job else None
        return {
            'running': self.running,
            'tick_count': self.tick_count,
            'check_interval': self.settings.check_interval,
            'watermark_policy': self.watermark_policy,
            'next_run': next_run.isoformat() if next_run else None,
            'last_result': self.last_result.to_dict() if self.last_result else None,
            'last_error': self.last_error,
        }


def init_scheduler(app, settings) -> GeneratorScheduler:
    """
    Create the generator and start it unless disabled.

    The generator is always registered on ``app.extensions`` so ticks can
    be run on demand even when the background loop is off.

    Args:
        app: Flask application instance
        settings: ChoreSettings

    Returns:
        GeneratorScheduler
    """
    generator = GeneratorScheduler(
        app,
        settings,
        watermark_policy=app.config.get('WATERMARK_POLICY', WATERMARK_ADVANCE),
    )
    app.extensions[EXTENSION_KEY] = generator

    if not app.config.get('SCHEDULER_ENABLED', True):
        logger.info("Background scheduler disabled via configuration")
        return generator

    # Don't run scheduler in testing mode
    if app.config.get('TESTING', False):
        logger.info("Background scheduler disabled in testing mode")
        return generator

    generator.start()
    atexit.register(generator.stop)
    return generator


def get_generator(app) -> GeneratorScheduler:
    """Get the generator registered on the app."""
    return app.extensions[EXTENSION_KEY]
