"""
Cron job registry.

Jobs are registered by name with a five-field crontab schedule and run on
an APScheduler AsyncIOScheduler. A job name that is still running is never
started a second time; the overlapping trigger is skipped and logged.
State is held in memory, so the guard covers a single process only.
"""
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Set

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.date import DateTrigger
from apscheduler.jobstores.base import JobLookupError

from ..config import settings
from ..core.logging_config import log_exception

logger = logging.getLogger(__name__)

JobHandler = Callable[[], Awaitable[None]]


@dataclass
class CronJobDefinition:
    """
    A named scheduled task.

    Attributes:
        name: Unique job name
        schedule: Five-field crontab expression
        description: Human readable summary
        handler: Coroutine function doing the work
        run_on_startup: Also run once shortly after startup (development only)
        startup_delay: Seconds to wait before that startup run
    """
    name: str
    schedule: str
    description: str
    handler: JobHandler
    run_on_startup: bool = False
    startup_delay: float = 10.0


class CronJobRegistry:
    """Holds job definitions, schedules them and guards against overlap."""

    def __init__(self, scheduler: Optional[AsyncIOScheduler] = None):
        self._definitions: Dict[str, CronJobDefinition] = {}
        self._running: Set[str] = set()
        self._scheduler = scheduler

    @property
    def definitions(self) -> List[CronJobDefinition]:
        return list(self._definitions.values())

    def job_names(self) -> List[str]:
        return list(self._definitions)

    def get(self, name: str) -> Optional[CronJobDefinition]:
        return self._definitions.get(name)

    def is_running(self, name: str) -> bool:
        return name in self._running

    @property
    def started(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def register_job(self, definition: CronJobDefinition) -> None:
        """
        Add a job. The schedule is validated immediately.

        Raises:
            ValueError: If the name is taken or the schedule is not valid crontab
        """
        if definition.name in self._definitions:
            raise ValueError(f"Cron job '{definition.name}' is already registered")
        CronTrigger.from_crontab(definition.schedule)

        self._definitions[definition.name] = definition
        if self.started:
            self._schedule(definition)

    def register_all(self, definitions: Iterable[CronJobDefinition]) -> None:
        """Register several jobs and log a summary table."""
        definitions = list(definitions)
        for definition in definitions:
            self.register_job(definition)

        logger.info(f"⏰ Registered {len(definitions)} cron job(s):")
        for definition in definitions:
            logger.info(f"   {definition.name:<28} {definition.schedule:<14} {definition.description}")

    async def run_job(self, name: str, trigger: str = "scheduled") -> bool:
        """
        Run a job now unless it is already running.

        Failures are logged and swallowed so one bad run does not stop the
        schedule; the running flag is always cleared.

        Returns:
            bool: False when the job was skipped because a run is in progress

        Raises:
            KeyError: If no job has that name
        """
        definition = self._definitions[name]
        if name in self._running:
            logger.warning(f"⏭️ Cron job '{name}' is already running, skipping {trigger} run")
            return False

        self._running.add(name)
        started_at = time.monotonic()
        logger.info(f"▶️ Cron job '{name}' started ({trigger})")
        try:
            await definition.handler()
            logger.info(f"✅ Cron job '{name}' finished in {time.monotonic() - started_at:.2f}s")
        except Exception as e:
            log_exception(logger, f"❌ Cron job '{name}' failed", e)
        finally:
            self._running.discard(name)
        return True

    def _schedule(self, definition: CronJobDefinition) -> None:
        self._scheduler.add_job(
            self.run_job,
            trigger=CronTrigger.from_crontab(definition.schedule),
            args=[definition.name],
            id=definition.name,
            name=definition.description,
            replace_existing=True,
        )

        if definition.run_on_startup and settings.is_development:
            self._scheduler.add_job(
                self.run_job,
                trigger=DateTrigger(run_date=datetime.now() + timedelta(seconds=definition.startup_delay)),
                args=[definition.name, "startup"],
                id=f"{definition.name}:startup",
                replace_existing=True,
            )
            logger.info(f"🚀 Cron job '{definition.name}' will also run in {definition.startup_delay:.0f}s")

    def start(self) -> None:
        """Schedule every registered job and start the scheduler."""
        if self.started:
            return
        if self._scheduler is None:
            self._scheduler = AsyncIOScheduler()
        for definition in self._definitions.values():
            self._schedule(definition)
        self._scheduler.start()
        logger.info(f"⏰ Cron scheduler started with {len(self._definitions)} job(s)")

    def stop(self, name: str) -> bool:
        """
        Unschedule one job. The definition stays registered for manual runs.

        Returns:
            bool: False when the job was not scheduled
        """
        if not self.started:
            return False
        try:
            self._scheduler.remove_job(name)
        except JobLookupError:
            return False
        logger.info(f"⏹️ Cron job '{name}' stopped")
        return True

    def stop_all(self) -> None:
        """Shut the scheduler down."""
        if self.started:
            self._scheduler.shutdown(wait=False)
            logger.info("⏰ Cron scheduler stopped")
        self._scheduler = None
