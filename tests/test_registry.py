"""Tests for scheduling/registry.py — job keys, replace, cancel, complete."""

import threading
from datetime import datetime, timezone

from turno_bot.scheduling.registry import Job, JobRegistry, JobState, job_key

from conftest import FakeHandle

WHEN = datetime(2026, 3, 11, 12, 0, tzinfo=timezone.utc)


def _job(key: str = "turno-1-24h", appointment_id: int = 1) -> Job:
    return Job(
        key=key,
        appointment_id=appointment_id,
        offset_key=key.rsplit("-", 1)[1],
        trigger_at=WHEN,
        handle=FakeHandle(),
    )


def test_job_key_format():
    assert job_key(42, "30m") == "turno-42-30m"


def test_job_key_distinct_per_pair():
    keys = {job_key(a, o) for a in (1, 2, 12) for o in ("1h", "2h")}

    assert len(keys) == 6


def test_replace_installs_job():
    registry = JobRegistry()
    job = _job()

    assert registry.replace(job.key, lambda: job) is job
    assert registry.get(job.key) is job
    assert job.key in registry
    assert len(registry) == 1


def test_replace_cancels_previous():
    registry = JobRegistry()
    old, new = _job(), _job()
    registry.replace(old.key, lambda: old)

    registry.replace(new.key, lambda: new)

    assert old.state is JobState.CANCELLED
    assert old.handle.cancelled is True
    assert new.state is JobState.SCHEDULED
    assert registry.get(new.key) is new
    assert len(registry) == 1


def test_cancel_removes_and_releases_timer():
    registry = JobRegistry()
    job = _job()
    registry.replace(job.key, lambda: job)

    assert registry.cancel(job.key) is job
    assert job.state is JobState.CANCELLED
    assert job.handle.cancelled is True
    assert registry.get(job.key) is None


def test_cancel_missing_key_returns_none():
    assert JobRegistry().cancel("turno-9-1h") is None


def test_complete_marks_fired_and_frees_key():
    registry = JobRegistry()
    job = _job()
    registry.replace(job.key, lambda: job)

    assert registry.complete(job) is True
    assert job.state is JobState.FIRED
    assert job.key not in registry


def test_complete_does_not_evict_replacement():
    registry = JobRegistry()
    old, new = _job(), _job()
    registry.replace(old.key, lambda: old)
    registry.replace(new.key, lambda: new)

    assert registry.complete(old) is False
    assert registry.get(new.key) is new


def test_cancelled_job_stays_cancelled():
    job = _job()
    job.cancel()

    assert job.cancel() is False
    assert job.state is JobState.CANCELLED


def test_fired_job_cannot_be_cancelled():
    registry = JobRegistry()
    job = _job()
    registry.replace(job.key, lambda: job)
    registry.complete(job)

    assert job.cancel() is False
    assert job.state is JobState.FIRED
    assert job.handle.cancelled is False


def test_jobs_for_filters_by_appointment():
    registry = JobRegistry()
    for key, aid in (("turno-1-1h", 1), ("turno-1-2h", 1), ("turno-2-1h", 2)):
        job = _job(key, aid)
        registry.replace(key, lambda job=job: job)

    assert {j.key for j in registry.jobs_for(1)} == {"turno-1-1h", "turno-1-2h"}


def test_concurrent_replace_leaves_one_live_job():
    registry = JobRegistry()
    built: list[Job] = []
    barrier = threading.Barrier(8)

    def worker() -> None:
        barrier.wait()
        for _ in range(50):
            registry.replace("turno-1-1h", lambda: built.append(_job()) or built[-1])

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    live = [j for j in built if j.state is JobState.SCHEDULED]
    assert len(registry) == 1
    assert live == [registry.get("turno-1-1h")]
