"""Reminder scheduling: one cancellable timer per (appointment, offset).

schedule_reminders() is idempotent per appointment: a second call cancels and
replaces the jobs the first one created. Cancellation is best-effort; a job
whose callback has already started still delivers its message.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from functools import partial
from zoneinfo import ZoneInfo

from turno_bot.config import TZ
from turno_bot.dispatch import DeliveryError, Dispatcher
from turno_bot.formatting import format_reminder
from turno_bot.scheduling.policy import DEFAULT_OFFSETS, ReminderOffset, trigger_times
from turno_bot.scheduling.registry import Job, JobRegistry, job_key
from turno_bot.scheduling.timer import Timer
from turno_bot.storage import Appointment

Clock = Callable[[], datetime]

log = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ReminderScheduler:
    def __init__(
        self,
        registry: JobRegistry,
        timer: Timer,
        dispatcher: Dispatcher,
        *,
        offsets: tuple[ReminderOffset, ...] = DEFAULT_OFFSETS,
        tz: ZoneInfo = TZ,
        clock: Clock = utc_now,
    ) -> None:
        self.registry = registry
        self.offsets = offsets
        self._timer = timer
        self._dispatcher = dispatcher
        self._tz = tz
        self._clock = clock

    def schedule_reminders(self, appointment: Appointment) -> list[Job]:
        """Register a job for every offset whose trigger is still in the future."""
        now = self._clock()
        created: list[Job] = []
        for offset, trigger_at in trigger_times(appointment.target_at, self.offsets):
            if trigger_at <= now:
                log.debug(
                    "appointment %d: %s reminder already due (%s), skipped",
                    appointment.id,
                    offset.key,
                    trigger_at.isoformat(),
                )
                continue
            key = job_key(appointment.id, offset.key)
            build = partial(self._build_job, key, appointment, offset, trigger_at)
            created.append(self.registry.replace(key, build))
        log.info(
            "appointment %d: %d of %d reminder(s) scheduled",
            appointment.id,
            len(created),
            len(self.offsets),
        )
        return created

    def cancel_reminders(self, appointment_id: int) -> int:
        cancelled = 0
        for offset in self.offsets:
            if self.registry.cancel(job_key(appointment_id, offset.key)):
                cancelled += 1
        log.info("appointment %d: %d reminder(s) cancelled", appointment_id, cancelled)
        return cancelled

    def _build_job(
        self,
        key: str,
        appointment: Appointment,
        offset: ReminderOffset,
        trigger_at: datetime,
    ) -> Job:
        job = Job(
            key=key,
            appointment_id=appointment.id,
            offset_key=offset.key,
            trigger_at=trigger_at,
        )

        async def fire() -> None:
            await self._fire(job, appointment, offset)

        job.handle = self._timer.schedule(trigger_at, fire, name=key)
        return job

    async def _fire(
        self, job: Job, appointment: Appointment, offset: ReminderOffset
    ) -> None:
        # Delivery is attempted exactly once; the job ends FIRED whatever happens.
        message = format_reminder(offset.label, appointment, self._tz)
        try:
            await self._dispatcher.send(appointment.subscriber_id, message)
        except DeliveryError as e:
            log.warning("Reminder %s not delivered: %s", job.key, e)
        except Exception:
            log.exception("Reminder %s failed", job.key)
            raise
        finally:
            self.registry.complete(job)
