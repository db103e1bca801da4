"""In-memory registry of live reminder jobs.

Holds at most one live job per (appointment, offset) key. Every map mutation
happens under a threading.Lock: bookings run in worker threads while job
callbacks run on the event loop.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from turno_bot.scheduling.timer import CancellationHandle


def job_key(appointment_id: int, offset_key: str) -> str:
    return f"turno-{appointment_id}-{offset_key}"


class JobState(Enum):
    SCHEDULED = "scheduled"
    FIRED = "fired"
    CANCELLED = "cancelled"


@dataclass(eq=False, slots=True)
class Job:
    key: str
    appointment_id: int
    offset_key: str
    trigger_at: datetime
    handle: CancellationHandle | None = None
    state: JobState = field(default=JobState.SCHEDULED)

    def cancel(self) -> bool:
        """SCHEDULED -> CANCELLED and release the timer. No-op otherwise."""
        if self.state is not JobState.SCHEDULED:
            return False
        self.state = JobState.CANCELLED
        if self.handle is not None:
            self.handle.cancel()
        return True


class JobRegistry:
    def __init__(self) -> None:
        self._jobs: dict[str, Job] = {}
        self._lock = threading.Lock()

    def replace(self, key: str, build: Callable[[], Job]) -> Job:
        """Cancel whatever is live under `key`, then install `build()`.

        Both steps run under one lock acquisition, so concurrent schedules
        for the same key never leave two live jobs.
        """
        with self._lock:
            previous = self._jobs.pop(key, None)
            if previous is not None:
                previous.cancel()
            job = build()
            self._jobs[key] = job
            return job

    def cancel(self, key: str) -> Job | None:
        with self._lock:
            job = self._jobs.pop(key, None)
            if job is not None:
                job.cancel()
            return job

    def complete(self, job: Job) -> bool:
        """Mark a fired job FIRED and drop it, unless a newer job owns its key."""
        with self._lock:
            if job.state is JobState.SCHEDULED:
                job.state = JobState.FIRED
            if self._jobs.get(job.key) is job:
                del self._jobs[job.key]
                return True
            return False

    def get(self, key: str) -> Job | None:
        with self._lock:
            return self._jobs.get(key)

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._jobs)

    def jobs_for(self, appointment_id: int) -> list[Job]:
        with self._lock:
            return [j for j in self._jobs.values() if j.appointment_id == appointment_id]

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._jobs

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)
