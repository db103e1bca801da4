"""Discord select-menu picker for choosing an appointment day and time."""

from __future__ import annotations

import asyncio
import logging
import math
from datetime import date, datetime, time, timedelta

import discord

from turno_bot.booking import Booking, SlotInPastError
from turno_bot.config import BOOKING_DAYS, FIRST_HOUR, LAST_HOUR, SLOT_MINUTES, TZ
from turno_bot.formatting import format_local
from turno_bot.storage import StoreError

MAX_OPTIONS = 25  # Discord's per-select limit
PICKER_TIMEOUT = 300

log = logging.getLogger(__name__)


def day_choices(today: date, days: int = BOOKING_DAYS) -> list[date]:
    return [today + timedelta(days=i) for i in range(min(days, MAX_OPTIONS))]


def hour_slots(
    first_hour: int = FIRST_HOUR,
    last_hour: int = LAST_HOUR,
    step_minutes: int = SLOT_MINUTES,
) -> list[str]:
    """``HH:MM`` slots from first_hour:00 through the last slot of last_hour."""
    slots: list[str] = []
    minutes = first_hour * 60
    end = last_hour * 60 + 59
    while minutes <= end:
        slots.append(f"{minutes // 60:02d}:{minutes % 60:02d}")
        minutes += step_minutes
    return slots


def split_evenly(items: list[str], limit: int = MAX_OPTIONS) -> list[list[str]]:
    """Split into the fewest chunks of at most `limit`, sized as evenly as possible."""
    if not items:
        return []
    chunks = math.ceil(len(items) / limit)
    size = math.ceil(len(items) / chunks)
    return [items[i : i + size] for i in range(0, len(items), size)]


class DaySelect(discord.ui.Select["BookingView"]):
    def __init__(self, days: list[date]) -> None:
        options = [
            discord.SelectOption(label=d.strftime("%d/%m"), value=d.isoformat())
            for d in days
        ]
        super().__init__(placeholder="Elegí el día del turno", options=options)

    async def callback(self, interaction: discord.Interaction) -> None:
        assert self.view is not None
        await self.view.pick_day(interaction, date.fromisoformat(self.values[0]))


class HourSelect(discord.ui.Select["BookingView"]):
    def __init__(self, day: date, slots: list[str]) -> None:
        self.day = day
        options = [discord.SelectOption(label=s, value=s) for s in slots]
        super().__init__(placeholder=f"{slots[0]} a {slots[-1]}", options=options)

    async def callback(self, interaction: discord.Interaction) -> None:
        assert self.view is not None
        await self.view.pick_hour(interaction, self.day, self.values[0])


class BookingView(discord.ui.View):
    """Day select, then hour selects. Books (or moves) on the final pick.

    With `replaces` set, the chosen slot reschedules that appointment instead
    of creating a new one.
    """

    def __init__(
        self,
        booking: Booking,
        *,
        today: date,
        description: str,
        replaces: int | None = None,
    ) -> None:
        super().__init__(timeout=PICKER_TIMEOUT)
        self.booking = booking
        self.description = description
        self.replaces = replaces
        self.add_item(DaySelect(day_choices(today)))

    async def pick_day(self, interaction: discord.Interaction, day: date) -> None:
        self.clear_items()
        for chunk in split_evenly(hour_slots()):
            self.add_item(HourSelect(day, chunk))
        await interaction.response.edit_message(
            content=f"📅 Día elegido: {day.strftime('%d/%m/%Y')}\n⏰ Elegí la hora:",
            view=self,
        )

    async def pick_hour(
        self, interaction: discord.Interaction, day: date, slot: str
    ) -> None:
        starts_at = datetime.combine(day, time.fromisoformat(slot), tzinfo=TZ)
        subscriber_id = interaction.channel_id
        assert subscriber_id is not None
        try:
            if self.replaces is None:
                appointment = await asyncio.to_thread(
                    self.booking.book, subscriber_id, starts_at, self.description
                )
            else:
                appointment = await asyncio.to_thread(
                    self.booking.reschedule, self.replaces, subscriber_id, starts_at
                )
        except SlotInPastError:
            await interaction.response.send_message(
                "Ese horario ya pasó, elegí otro.", ephemeral=True
            )
            return
        except StoreError:
            log.exception("booking failed for %d", subscriber_id)
            await interaction.response.send_message(
                "No se pudo guardar el turno, probá de nuevo.", ephemeral=True
            )
            return

        self.stop()
        if appointment is None:
            content = f"No se encontró el turno {self.replaces}"
        elif self.replaces is None:
            content = (
                f"✅ Turno agendado (ID {appointment.id}) para "
                f"{format_local(appointment.target_at, TZ)}"
            )
        else:
            content = (
                f"🔁 Turno {self.replaces} movido (nuevo ID {appointment.id}) a "
                f"{format_local(appointment.target_at, TZ)}"
            )
        await interaction.response.edit_message(content=content, view=None)
