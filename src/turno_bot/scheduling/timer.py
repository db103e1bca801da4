"""Timer capability: run an async action once at an instant, cancellably.

APSchedulerTimer is the production implementation (DateTrigger one-shots on
an AsyncIOScheduler). Tests swap in a fake with the same two methods.
"""

from __future__ import annotations

import contextlib
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Protocol

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger

Action = Callable[[], Awaitable[None]]

# No lateness limit: every job runs, however late, so its action always
# reaches registry.complete().
MISFIRE_GRACE_SECONDS: int | None = None

log = logging.getLogger(__name__)


class CancellationHandle(Protocol):
    def cancel(self) -> None: ...


class Timer(Protocol):
    def schedule(
        self, instant: datetime, action: Action, *, name: str | None = None
    ) -> CancellationHandle: ...


class _APSchedulerHandle:
    def __init__(self, scheduler: AsyncIOScheduler, job_id: str) -> None:
        self._scheduler = scheduler
        self._job_id = job_id

    def cancel(self) -> None:
        # One-shot jobs leave the jobstore once dispatched
        with contextlib.suppress(JobLookupError):
            self._scheduler.remove_job(self._job_id)


class APSchedulerTimer:
    def __init__(self, scheduler: AsyncIOScheduler) -> None:
        self._scheduler = scheduler
        self._seq = 0

    def schedule(
        self, instant: datetime, action: Action, *, name: str | None = None
    ) -> CancellationHandle:
        self._seq += 1
        # Unique per registration so a stale handle never removes a replacement
        job_id = f"{name or 'timer'}#{self._seq}"
        self._scheduler.add_job(
            action,
            DateTrigger(run_date=instant),
            id=job_id,
            name=name,
            misfire_grace_time=MISFIRE_GRACE_SECONDS,
        )
        log.debug("timer %s set for %s", job_id, instant.isoformat())
        return _APSchedulerHandle(self._scheduler, job_id)
