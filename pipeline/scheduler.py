"""Wall-clock scheduler for automated blog generation (APScheduler).

One cron job per configured ``HH:MM`` time fires a single generation cycle.
The scheduler is a two-state machine, Idle and Running; whatever happens
inside a cycle it returns to Idle, because every exception is caught and
logged at the cycle boundary. Cycles are serialized by the service lock and
APScheduler's ``max_instances=1``.

The APScheduler instance and the clock are injectable so trigger timing can be
tested without real sleeps.
"""

import re
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from app import config
from app.errors import ConfigurationError
from pipeline.service import BlogAutomationService
from pipeline.state import GeneratedBlogPost

logger = structlog.get_logger(__name__)

_TIME_PATTERN = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")
MISFIRE_GRACE_SECONDS = 15 * 60


class SchedulerState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"


def parse_schedule_times(times: Sequence[str]) -> List[Tuple[int, int]]:
    """Parse ``HH:MM`` strings into sorted, unique ``(hour, minute)`` pairs.

    Raises:
        ConfigurationError: If *times* is empty or an entry is not a valid time.
    """
    parsed = set()
    for raw in times:
        match = _TIME_PATTERN.match(str(raw).strip())
        if not match:
            raise ConfigurationError(f"Invalid schedule time '{raw}', expected HH:MM")
        parsed.add((int(match.group(1)), int(match.group(2))))
    if not parsed:
        raise ConfigurationError("At least one schedule time is required")
    return sorted(parsed)


def next_fire_time(now: datetime, times: Sequence[Tuple[int, int]]) -> datetime:
    """Return the first trigger strictly after *now* (same tzinfo as *now*)."""
    for day_offset in (0, 1):
        day = now + timedelta(days=day_offset)
        for hour, minute in times:
            candidate = day.replace(hour=hour, minute=minute, second=0, microsecond=0)
            if candidate > now:
                return candidate
    raise ConfigurationError("No schedule times configured")


def _zone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ConfigurationError(f"Unknown timezone '{name}'") from e


class BlogScheduler:
    """Fires ``BlogAutomationService.generate_now`` at the configured times."""

    def __init__(
        self,
        service: BlogAutomationService,
        times: Sequence[str] = config.SCHEDULE_TIMES,
        *,
        timezone: str = config.SCHEDULE_TIMEZONE,
        scheduler: Optional[AsyncIOScheduler] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.service = service
        self.times = parse_schedule_times(times)
        self.tz = _zone(timezone)
        self.scheduler = scheduler if scheduler is not None else AsyncIOScheduler(timezone=self.tz)
        self.clock = clock or (lambda: datetime.now(self.tz))
        self.state = SchedulerState.IDLE
        self.last_error: Optional[str] = None
        self._active_cycles = 0

    @property
    def schedule_labels(self) -> List[str]:
        return [f"{h:02d}:{m:02d}" for h, m in self.times]

    def start(self) -> None:
        for (hour, minute), label in zip(self.times, self.schedule_labels):
            self.scheduler.add_job(
                self.fire,
                trigger=CronTrigger(hour=hour, minute=minute, timezone=self.tz),
                kwargs={"trigger_time": label},
                id=f"blog_generation_{hour:02d}{minute:02d}",
                replace_existing=True,
                max_instances=1,
                coalesce=True,
                misfire_grace_time=MISFIRE_GRACE_SECONDS,
            )
            logger.info("scheduler.job_added", time=label, timezone=str(self.tz))

        self.scheduler.start()
        self.service.automation_active = True
        self.service.schedule = self.schedule_labels
        logger.info("scheduler.started", schedule=self.schedule_labels, next_run=self.next_fire_time().isoformat())

    def shutdown(self, wait: bool = False) -> None:
        logger.info("scheduler.shutting_down")
        self.scheduler.shutdown(wait=wait)
        self.service.automation_active = False

    def next_fire_time(self) -> datetime:
        return next_fire_time(self.clock(), self.times)

    async def fire(self, trigger_time: str = "manual") -> Optional[GeneratedBlogPost]:
        """Run one cycle. Never raises; always returns to Idle."""
        self._active_cycles += 1
        self.state = SchedulerState.RUNNING
        log = logger.bind(trigger_time=trigger_time)
        log.info("scheduler.cycle_triggered", fired_at=self.clock().isoformat())
        try:
            post = await self.service.generate_now()
            self.last_error = None
            if post is None:
                log.info("scheduler.cycle_idle", reason="queue_empty")
            else:
                log.info("scheduler.cycle_succeeded", post_id=post.id, sequence_number=post.sequence_number)
            return post
        except Exception as e:
            self.last_error = str(e)
            log.exception("scheduler.cycle_failed", error=str(e))
            return None
        finally:
            self._active_cycles -= 1
            if self._active_cycles == 0:
                self.state = SchedulerState.IDLE
