"""Tests for storage.py — SQLite appointment store."""

import sqlite3
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from turno_bot.storage import AppointmentStore, StoreError, from_db, to_db

from conftest import NOW


def test_create_assigns_sequential_ids(store):
    first = store.create(1, NOW + timedelta(days=1), "a")
    second = store.create(1, NOW + timedelta(days=2), "b")

    assert second == first + 1


def test_get_roundtrip(store):
    target = NOW + timedelta(days=1)
    appointment_id = store.create(42, target, "Dentista")

    appt = store.get(appointment_id)

    assert appt is not None
    assert appt.subscriber_id == 42
    assert appt.target_at == target
    assert appt.target_at.tzinfo is not None
    assert appt.description == "Dentista"
    assert appt.created_at is not None


def test_get_missing_returns_none(store):
    assert store.get(12345) is None


def test_non_utc_input_is_stored_as_utc(store):
    local = datetime(2026, 3, 20, 9, 30, tzinfo=ZoneInfo("America/Argentina/Buenos_Aires"))
    appointment_id = store.create(1, local)

    appt = store.get(appointment_id)

    assert appt.target_at == datetime(2026, 3, 20, 12, 30, tzinfo=timezone.utc)
    assert appt.description == ""


def test_naive_datetime_rejected():
    with pytest.raises(ValueError, match="naive"):
        to_db(datetime(2026, 1, 1, 12, 0))


def test_to_db_shape():
    assert to_db(datetime(2026, 1, 2, 3, 4, 5, 999, tzinfo=timezone.utc)) == (
        "2026-01-02T03:04:05+00:00"
    )
    assert from_db("2026-01-02T03:04:05+00:00") == datetime(
        2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc
    )


def test_list_upcoming_filters_and_orders(store):
    later = store.create(7, NOW + timedelta(days=3), "later")
    sooner = store.create(7, NOW + timedelta(hours=2), "sooner")
    store.create(7, NOW - timedelta(hours=1), "past")
    store.create(8, NOW + timedelta(hours=1), "someone else")

    result = store.list_upcoming(7, now=NOW)

    assert [a.id for a in result] == [sooner, later]


def test_list_upcoming_includes_exactly_now(store):
    appointment_id = store.create(7, NOW, "now")

    assert [a.id for a in store.list_upcoming(7, now=NOW)] == [appointment_id]


def test_list_all_upcoming_is_strictly_future(store):
    store.create(7, NOW, "now")
    future = store.create(8, NOW + timedelta(minutes=1), "soon")
    store.create(9, NOW - timedelta(days=1), "past")

    assert [a.id for a in store.list_all_upcoming(now=NOW)] == [future]


def test_delete_requires_matching_subscriber(store):
    appointment_id = store.create(7, NOW + timedelta(days=1))

    assert store.delete(appointment_id, 8) is False
    assert store.get(appointment_id) is not None
    assert store.delete(appointment_id, 7) is True
    assert store.get(appointment_id) is None
    assert store.delete(appointment_id, 7) is False


def test_schema_columns(store, data_dir):
    store.create(1, NOW + timedelta(days=1))

    with sqlite3.connect(data_dir / "turnos.db") as conn:
        cols = [row[1] for row in conn.execute("PRAGMA table_info(turnos)")]

    assert cols == ["id", "subscriber_id", "target_at", "description", "created_at"]


def test_store_persists_across_instances(store, data_dir):
    appointment_id = store.create(1, NOW + timedelta(days=1), "x")

    reopened = AppointmentStore(data_dir / "turnos.db")

    assert reopened.get(appointment_id).description == "x"


def test_unreadable_database_raises_store_error(tmp_path):
    bad = tmp_path / "turnos.db"
    bad.write_text("this is not a sqlite database" * 100)
    store = AppointmentStore(bad)

    with pytest.raises(StoreError):
        store.list_all_upcoming(now=NOW)


def test_failed_schema_setup_closes_connection(tmp_path, monkeypatch):
    bad = tmp_path / "turnos.db"
    bad.write_text("this is not a sqlite database" * 100)
    opened: list[sqlite3.Connection] = []
    real_connect = sqlite3.connect

    def tracking_connect(*args, **kwargs):
        conn = real_connect(*args, **kwargs)
        opened.append(conn)
        return conn

    monkeypatch.setattr(sqlite3, "connect", tracking_connect)

    with pytest.raises(StoreError):
        AppointmentStore(bad).list_all_upcoming(now=NOW)

    (conn,) = opened
    with pytest.raises(sqlite3.ProgrammingError):
        conn.execute("SELECT 1")
