"""Startup recovery: rebuild in-memory reminder jobs from stored appointments."""

from __future__ import annotations

import logging

from turno_bot.scheduling.scheduler import Clock, ReminderScheduler, utc_now
from turno_bot.storage import AppointmentStore, StoreError

log = logging.getLogger(__name__)


class RecoveryCoordinator:
    def __init__(
        self,
        store: AppointmentStore,
        scheduler: ReminderScheduler,
        *,
        clock: Clock = utc_now,
    ) -> None:
        self._store = store
        self._scheduler = scheduler
        self._clock = clock

    def recover_all(self) -> int:
        """Schedule reminders for every appointment still ahead. Returns the count.

        A store failure here is fatal: starting with an unknown set of pending
        reminders would silently drop them.
        """
        try:
            upcoming = self._store.list_all_upcoming(now=self._clock())
        except StoreError:
            log.critical("Cannot read appointments for recovery; refusing to start")
            raise

        for appointment in upcoming:
            self._scheduler.schedule_reminders(appointment)
        log.info(
            "Recovered %d upcoming appointment(s), %d reminder job(s) pending",
            len(upcoming),
            len(self._scheduler.registry),
        )
        return len(upcoming)
