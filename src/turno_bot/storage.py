"""SQLite persistence for appointments (the `turnos` table)."""

import logging
import sqlite3
from contextlib import closing
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from turno_bot.config import DATA_DIR

STATE_DIR = DATA_DIR / "state"
DB_FILE = DATA_DIR / "turnos.db"

log = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS turnos (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    subscriber_id INTEGER NOT NULL,
    target_at TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS turnos_target_at ON turnos (target_at);
"""

_COLUMNS = "id, subscriber_id, target_at, description, created_at"


class StoreError(Exception):
    """Raised when the appointment database cannot be read or written."""


@dataclass(frozen=True, slots=True)
class Appointment:
    id: int
    subscriber_id: int
    target_at: datetime  # aware, UTC
    description: str = ""
    created_at: datetime | None = None


def to_db(instant: datetime) -> str:
    """Serialize an aware datetime as second-precision UTC ISO-8601.

    Every stored instant shares this exact shape, so range filters can
    compare the TEXT column lexically.
    """
    if instant.tzinfo is None:
        raise ValueError(f"naive datetime not allowed: {instant!r}")
    return instant.astimezone(timezone.utc).isoformat(timespec="seconds")


def from_db(text: str) -> datetime:
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _row_to_appointment(row: tuple) -> Appointment:
    id_, subscriber_id, target_at, description, created_at = row
    return Appointment(
        id=id_,
        subscriber_id=subscriber_id,
        target_at=from_db(target_at),
        description=description or "",
        created_at=from_db(created_at),
    )


class AppointmentStore:
    """Durable CRUD for appointments. One short-lived connection per call."""

    def __init__(self, db_path: Path | None = None) -> None:
        self.db_path = db_path or DB_FILE
        self._initialized = False

    def _connect(self) -> sqlite3.Connection:
        if not self._initialized:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.db_path)
        if not self._initialized:
            try:
                conn.executescript(_SCHEMA)
            except sqlite3.Error:
                conn.close()
                raise
            self._initialized = True
        return conn

    def create(
        self, subscriber_id: int, target_at: datetime, description: str = ""
    ) -> int:
        now = to_db(datetime.now(timezone.utc))
        try:
            with closing(self._connect()) as conn, conn:
                cur = conn.execute(
                    "INSERT INTO turnos (subscriber_id, target_at, description, created_at)"
                    " VALUES (?, ?, ?, ?)",
                    (subscriber_id, to_db(target_at), description or "", now),
                )
                appointment_id = cur.lastrowid
        except sqlite3.Error as e:
            raise StoreError(f"could not create appointment: {e}") from e
        assert appointment_id is not None
        log.info("created appointment %d for %d at %s", appointment_id, subscriber_id, to_db(target_at))
        return appointment_id

    def get(self, appointment_id: int) -> Appointment | None:
        try:
            with closing(self._connect()) as conn:
                row = conn.execute(
                    f"SELECT {_COLUMNS} FROM turnos WHERE id = ?", (appointment_id,)
                ).fetchone()
        except sqlite3.Error as e:
            raise StoreError(f"could not read appointment {appointment_id}: {e}") from e
        return _row_to_appointment(row) if row else None

    def list_upcoming(
        self, subscriber_id: int, now: datetime | None = None
    ) -> list[Appointment]:
        """A subscriber's appointments at or after `now`, soonest first."""
        cutoff = to_db(now or datetime.now(timezone.utc))
        try:
            with closing(self._connect()) as conn:
                rows = conn.execute(
                    f"SELECT {_COLUMNS} FROM turnos"
                    " WHERE subscriber_id = ? AND target_at >= ?"
                    " ORDER BY target_at, id",
                    (subscriber_id, cutoff),
                ).fetchall()
        except sqlite3.Error as e:
            raise StoreError(f"could not list appointments: {e}") from e
        return [_row_to_appointment(r) for r in rows]

    def list_all_upcoming(self, now: datetime | None = None) -> list[Appointment]:
        """Every appointment strictly after `now`, across all subscribers."""
        cutoff = to_db(now or datetime.now(timezone.utc))
        try:
            with closing(self._connect()) as conn:
                rows = conn.execute(
                    f"SELECT {_COLUMNS} FROM turnos WHERE target_at > ?"
                    " ORDER BY target_at, id",
                    (cutoff,),
                ).fetchall()
        except sqlite3.Error as e:
            raise StoreError(f"could not list appointments: {e}") from e
        return [_row_to_appointment(r) for r in rows]

    def delete(self, appointment_id: int, subscriber_id: int) -> bool:
        """True iff a row matching both id and subscriber was removed."""
        try:
            with closing(self._connect()) as conn, conn:
                cur = conn.execute(
                    "DELETE FROM turnos WHERE id = ? AND subscriber_id = ?",
                    (appointment_id, subscriber_id),
                )
        except sqlite3.Error as e:
            raise StoreError(f"could not delete appointment {appointment_id}: {e}") from e
        return cur.rowcount > 0
