"""Booking flow: keeps stored appointments and their reminder jobs in step.

Every path that removes an appointment also cancels its reminders; moving an
appointment is delete-and-recreate, never an in-place time change.
"""

from __future__ import annotations

import logging
from datetime import datetime

from turno_bot.scheduling.scheduler import Clock, ReminderScheduler, utc_now
from turno_bot.storage import Appointment, AppointmentStore

DEFAULT_DESCRIPTION = "Turno"

log = logging.getLogger(__name__)


class SlotInPastError(ValueError):
    """The requested appointment time has already passed."""


class Booking:
    def __init__(
        self,
        store: AppointmentStore,
        scheduler: ReminderScheduler,
        *,
        clock: Clock = utc_now,
    ) -> None:
        self.store = store
        self.scheduler = scheduler
        self._clock = clock

    def _check_future(self, starts_at: datetime) -> None:
        if starts_at <= self._clock():
            raise SlotInPastError(f"{starts_at.isoformat()} is in the past")

    def book(
        self,
        subscriber_id: int,
        starts_at: datetime,
        description: str = DEFAULT_DESCRIPTION,
    ) -> Appointment:
        self._check_future(starts_at)
        appointment_id = self.store.create(subscriber_id, starts_at, description)
        appointment = self.store.get(appointment_id)
        assert appointment is not None, f"appointment {appointment_id} vanished"
        self.scheduler.schedule_reminders(appointment)
        return appointment

    def upcoming(self, subscriber_id: int) -> list[Appointment]:
        return self.store.list_upcoming(subscriber_id, now=self._clock())

    def cancel(self, appointment_id: int, subscriber_id: int) -> bool:
        if not self.store.delete(appointment_id, subscriber_id):
            return False
        self.scheduler.cancel_reminders(appointment_id)
        return True

    def reschedule(
        self, appointment_id: int, subscriber_id: int, starts_at: datetime
    ) -> Appointment | None:
        """Move an appointment to a new time. None if it isn't the subscriber's."""
        self._check_future(starts_at)
        current = self.store.get(appointment_id)
        if current is None or current.subscriber_id != subscriber_id:
            return None
        if not self.cancel(appointment_id, subscriber_id):
            return None
        moved = self.book(subscriber_id, starts_at, current.description)
        log.info("appointment %d moved to %d", appointment_id, moved.id)
        return moved
