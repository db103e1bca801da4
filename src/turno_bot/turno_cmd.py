"""CLI handler for `turno-bot turnos` subcommand."""

import argparse
import sys

from turno_bot.config import OFFSETS_FILE, TZ
from turno_bot.formatting import format_local
from turno_bot.scheduling.policy import candidate_offsets
from turno_bot.storage import AppointmentStore


def run_turno_command(argv: list[str]) -> None:
    parser = argparse.ArgumentParser(prog="turno-bot turnos")
    sub = parser.add_subparsers(dest="action")

    list_p = sub.add_parser("list", help="Show upcoming appointments")
    list_p.add_argument(
        "--subscriber", type=int, default=None, help="Only this channel id"
    )
    sub.add_parser("offsets", help="Show the reminder lead times")

    args = parser.parse_args(argv)

    if args.action == "list":
        _handle_list(args.subscriber)
    elif args.action == "offsets":
        _handle_offsets()
    else:
        parser.print_help()
        sys.exit(1)


def _handle_list(subscriber_id: int | None) -> None:
    store = AppointmentStore()
    if subscriber_id is None:
        appointments = store.list_all_upcoming()
    else:
        appointments = store.list_upcoming(subscriber_id)
    if not appointments:
        print("no upcoming appointments")
        return
    for a in appointments:
        when = format_local(a.target_at, TZ)
        print(f"  {a.id:>5}  {when}  {a.subscriber_id:>20}  {a.description}")


def _handle_offsets() -> None:
    try:
        offsets = candidate_offsets(OFFSETS_FILE)
    except ValueError as e:
        print(f"invalid offsets file: {e}")
        sys.exit(1)
    source = OFFSETS_FILE or "built-in defaults"
    print(f"reminder offsets ({source}):")
    for o in offsets:
        print(f"  {o.key:6s}  {o.label:12s}  {o.lead}")
