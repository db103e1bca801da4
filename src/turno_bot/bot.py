"""Discord bot: booking slash commands wired to the reminder engine."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime

import discord
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from discord import app_commands
from discord.ext import commands

from turno_bot.booking import DEFAULT_DESCRIPTION, Booking
from turno_bot.config import TZ
from turno_bot.dispatch import DiscordDispatcher
from turno_bot.formatting import format_appointment_list, format_help
from turno_bot.scheduling import (
    DEFAULT_OFFSETS,
    APSchedulerTimer,
    JobRegistry,
    RecoveryCoordinator,
    ReminderOffset,
    ReminderScheduler,
)
from turno_bot.storage import AppointmentStore, StoreError
from turno_bot.views import BookingView

log = logging.getLogger(__name__)


@dataclass(slots=True)
class Services:
    """Everything the commands need, built once per process."""

    store: AppointmentStore
    registry: JobRegistry
    aps: AsyncIOScheduler
    scheduler: ReminderScheduler
    recovery: RecoveryCoordinator
    booking: Booking


def build_services(
    client: discord.Client,
    *,
    store: AppointmentStore | None = None,
    offsets: tuple[ReminderOffset, ...] = DEFAULT_OFFSETS,
) -> Services:
    store = store or AppointmentStore()
    registry = JobRegistry()
    aps = AsyncIOScheduler(timezone="UTC")
    scheduler = ReminderScheduler(
        registry,
        APSchedulerTimer(aps),
        DiscordDispatcher(client),
        offsets=offsets,
        tz=TZ,
    )
    return Services(
        store=store,
        registry=registry,
        aps=aps,
        scheduler=scheduler,
        recovery=RecoveryCoordinator(store, scheduler),
        booking=Booking(store, scheduler),
    )


def create_bot(
    *,
    store: AppointmentStore | None = None,
    offsets: tuple[ReminderOffset, ...] = DEFAULT_OFFSETS,
) -> commands.Bot:
    """Recovery runs in setup_hook: after login, before any interaction arrives."""
    intents = discord.Intents.default()

    bot = commands.Bot(
        command_prefix="!",
        intents=intents,
        activity=discord.Activity(type=discord.ActivityType.watching, name="tus turnos"),
    )
    services = build_services(bot, store=store, offsets=offsets)
    bot.services = services  # type: ignore[attr-defined]

    @bot.event
    async def setup_hook() -> None:
        services.aps.start()
        recovered = await asyncio.to_thread(services.recovery.recover_all)
        print(f"recovered {recovered} upcoming appointments, {len(services.registry)} reminders pending")

        bot.tree.allowed_contexts = app_commands.AppCommandContext(
            guild=True, dm_channel=True, private_channel=True
        )
        synced = await bot.tree.sync()
        print(f"synced {len(synced)} slash commands")

    @bot.event
    async def on_ready() -> None:
        print(f"turno-bot online as {bot.user}")

    def _today() -> datetime:
        return datetime.now(TZ)

    @bot.tree.command(name="turno", description="Agendar un turno")
    @app_commands.describe(descripcion="Qué es el turno (opcional)")
    async def slash_turno(
        interaction: discord.Interaction, descripcion: str | None = None
    ) -> None:
        view = BookingView(
            services.booking,
            today=_today().date(),
            description=descripcion or DEFAULT_DESCRIPTION,
        )
        await interaction.response.send_message("📅 Elegí el día del turno:", view=view)

    @bot.tree.command(name="turnos", description="Listar tus próximos turnos")
    async def slash_turnos(interaction: discord.Interaction) -> None:
        assert interaction.channel_id is not None
        upcoming = await asyncio.to_thread(
            services.booking.upcoming, interaction.channel_id
        )
        await interaction.response.send_message(format_appointment_list(upcoming, TZ))

    @bot.tree.command(name="borrar", description="Borrar un turno por ID")
    @app_commands.describe(id="ID del turno")
    async def slash_borrar(interaction: discord.Interaction, id: int) -> None:
        assert interaction.channel_id is not None
        deleted = await asyncio.to_thread(
            services.booking.cancel, id, interaction.channel_id
        )
        if deleted:
            await interaction.response.send_message(f"🗑️ Turno {id} borrado")
        else:
            await interaction.response.send_message(f"No se encontró el turno {id}")

    @bot.tree.command(name="mover", description="Cambiar el horario de un turno")
    @app_commands.describe(id="ID del turno")
    async def slash_mover(interaction: discord.Interaction, id: int) -> None:
        view = BookingView(
            services.booking,
            today=_today().date(),
            description=DEFAULT_DESCRIPTION,
            replaces=id,
        )
        await interaction.response.send_message(
            f"📅 Elegí el nuevo día para el turno {id}:", view=view
        )

    @bot.tree.command(name="ayuda", description="Ver los comandos disponibles")
    async def slash_ayuda(interaction: discord.Interaction) -> None:
        labels = [o.label for o in services.scheduler.offsets]
        await interaction.response.send_message(format_help(labels), ephemeral=True)

    @bot.tree.error
    async def on_app_command_error(
        interaction: discord.Interaction,
        error: app_commands.AppCommandError,
    ) -> None:
        original = getattr(error, "original", None)
        if isinstance(original, StoreError):
            log.error("command /%s failed: %s", interaction.command and interaction.command.name, original)
            if not interaction.response.is_done():
                await interaction.response.send_message(
                    "No se pudo acceder a los turnos, probá de nuevo.", ephemeral=True
                )
            return
        raise error

    return bot
