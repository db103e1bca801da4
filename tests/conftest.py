"""Shared fixtures for turno-bot tests."""

import os

os.environ.setdefault("TURNO_TIMEZONE", "America/Argentina/Buenos_Aires")

from datetime import datetime, timedelta, timezone

import pytest

from turno_bot.scheduling.policy import DEFAULT_OFFSETS
from turno_bot.scheduling.registry import JobRegistry
from turno_bot.scheduling.scheduler import ReminderScheduler
from turno_bot.storage import Appointment, AppointmentStore

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


class FakeHandle:
    def __init__(self) -> None:
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeTimer:
    """Records scheduled actions; tests fire them by advancing the clock."""

    def __init__(self, clock: FakeClock) -> None:
        self.clock = clock
        self.entries: list[tuple[datetime, object, FakeHandle, str | None]] = []

    def schedule(self, instant, action, *, name=None):
        handle = FakeHandle()
        self.entries.append((instant, action, handle, name))
        return handle

    def pending(self) -> list[tuple[datetime, object, FakeHandle, str | None]]:
        return [e for e in self.entries if not e[2].cancelled]

    async def advance_to(self, instant: datetime) -> int:
        """Move the clock and run every uncancelled action due by then."""
        self.clock.now = instant
        due = sorted(
            (e for e in self.pending() if e[0] <= instant), key=lambda e: e[0]
        )
        for entry in due:
            self.entries.remove(entry)
            await entry[1]()
        return len(due)


class FakeDispatcher:
    def __init__(self, error: Exception | None = None) -> None:
        self.sent: list[tuple[int, str]] = []
        self.error = error

    async def send(self, subscriber_id: int, message: str) -> None:
        self.sent.append((subscriber_id, message))
        if self.error is not None:
            raise self.error


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def timer(clock):
    return FakeTimer(clock)


@pytest.fixture()
def dispatcher():
    return FakeDispatcher()


@pytest.fixture()
def registry():
    return JobRegistry()


@pytest.fixture()
def scheduler(registry, timer, dispatcher, clock):
    from turno_bot.config import TZ

    return ReminderScheduler(
        registry, timer, dispatcher, offsets=DEFAULT_OFFSETS, tz=TZ, clock=clock
    )


@pytest.fixture()
def data_dir(tmp_path, monkeypatch):
    """Redirect all data file paths to a temp directory."""
    import turno_bot.main as main_mod
    import turno_bot.storage as storage_mod

    state_dir = tmp_path / "state"
    monkeypatch.setattr(storage_mod, "DATA_DIR", tmp_path)
    monkeypatch.setattr(storage_mod, "STATE_DIR", state_dir)
    monkeypatch.setattr(storage_mod, "DB_FILE", tmp_path / "turnos.db")
    monkeypatch.setattr(main_mod, "STATE_DIR", state_dir)
    monkeypatch.setattr(main_mod, "PID_FILE", state_dir / "bot.pid")
    return tmp_path


@pytest.fixture()
def store(data_dir):
    return AppointmentStore()


def make_appointment(
    target_at: datetime,
    *,
    id: int = 1,
    subscriber_id: int = 555,
    description: str = "Dentista",
) -> Appointment:
    return Appointment(
        id=id,
        subscriber_id=subscriber_id,
        target_at=target_at,
        description=description,
        created_at=NOW,
    )


@pytest.fixture()
def appointment():
    """Factory for in-memory appointments (no database row)."""
    return make_appointment
