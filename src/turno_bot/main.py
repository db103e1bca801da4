"""Entry point for turno-bot."""

from __future__ import annotations

import asyncio
import atexit
import contextlib
import logging
import os
import signal
import sys
from pathlib import Path
from typing import TYPE_CHECKING

import discord
from dotenv import load_dotenv

if TYPE_CHECKING:
    from discord.ext.commands import Bot

from turno_bot.storage import STATE_DIR

PROJECT_DIR = Path(__file__).resolve().parent.parent.parent
PID_FILE = STATE_DIR / "bot.pid"


HELP = """\
turno-bot -- appointment reminders over Discord

commands:
  turno-bot                   Run the Discord bot
  turno-bot turnos list       Show upcoming appointments
  turno-bot turnos offsets    Show the reminder lead times
  turno-bot help              Show this help message

slash commands (in Discord):
  /turno [descripcion]        Book an appointment with the day/hour picker
  /turnos                     List upcoming appointments in this channel
  /borrar ID                  Delete an appointment
  /mover ID                   Move an appointment to a new time
  /ayuda                      List the slash commands

environment:
  DISCORD_TOKEN               Bot token (required)
  TURNO_TIMEZONE              Display timezone (default America/Argentina/Buenos_Aires)
  TURNO_DATA_DIR              Where turnos.db lives (default ~/.turno-bot)
  TURNO_OFFSETS_FILE          YAML list of reminder offsets
"""


def _running_pid() -> int | None:
    """The pid recorded in PID_FILE, if that process is still a turno-bot."""
    try:
        pid = int(PID_FILE.read_text().strip())
    except (FileNotFoundError, ValueError):
        return None
    cmdline = Path(f"/proc/{pid}/cmdline")
    if not cmdline.exists():
        return None
    if "turno-bot" not in cmdline.read_bytes().decode(errors="replace"):
        return None
    return pid


def _check_already_running() -> None:
    """Two instances on one database would deliver every reminder twice."""
    STATE_DIR.mkdir(parents=True, exist_ok=True)
    pid = _running_pid()
    if pid is not None and pid != os.getpid():
        print(f"turno-bot is already running (pid {pid})")
        raise SystemExit(1)
    PID_FILE.write_text(str(os.getpid()))
    atexit.register(PID_FILE.unlink, missing_ok=True)


def _dispatch_subcommand() -> bool:
    """Handle `help` and `turnos ...`. False means: run the bot."""
    args = sys.argv[1:]
    if not args:
        return False
    if args[0] in ("help", "--help", "-h"):
        print(HELP)
        return True
    if args[0] == "turnos":
        from turno_bot.turno_cmd import run_turno_command

        run_turno_command(args[1:])
        return True
    return False


log = logging.getLogger(__name__)


async def _run(bot: Bot, token: str) -> None:
    """Run the bot until a signal or fatal error, then stop the scheduler."""
    loop = asyncio.get_running_loop()
    _background_tasks: set[asyncio.Task[None]] = set()

    def _on_signal(sig_name: str) -> None:
        async def _shutdown() -> None:
            log.info("received %s, shutting down", sig_name)
            if not bot.is_closed():
                await bot.close()

        task = loop.create_task(_shutdown())
        _background_tasks.add(task)
        task.add_done_callback(_background_tasks.discard)

    loop.add_signal_handler(signal.SIGTERM, _on_signal, "SIGTERM")
    loop.add_signal_handler(signal.SIGINT, _on_signal, "SIGINT")

    aps = bot.services.aps  # type: ignore[attr-defined]
    try:
        await bot.start(token)
    except asyncio.CancelledError:
        pass  # Signal handler already closed the bot
    finally:
        if aps.running:
            aps.shutdown(wait=False)
        if not bot.is_closed():
            await bot.close()


def main() -> None:
    if _dispatch_subcommand():
        return

    load_dotenv(PROJECT_DIR / ".env")

    token = os.environ.get("DISCORD_TOKEN")
    if not token:
        print("Set DISCORD_TOKEN in .env")
        raise SystemExit(1)

    from turno_bot.config import OFFSETS_FILE
    from turno_bot.scheduling import candidate_offsets

    try:
        offsets = candidate_offsets(OFFSETS_FILE)
    except (OSError, ValueError) as e:
        print(f"Invalid TURNO_OFFSETS_FILE: {e}")
        raise SystemExit(1) from None

    _check_already_running()
    discord.utils.setup_logging()

    from turno_bot.bot import create_bot

    bot = create_bot(offsets=offsets)
    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(_run(bot, token))


if __name__ == "__main__":
    main()
