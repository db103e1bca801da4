"""User-configurable values loaded from environment variables."""

import math
import os
import sys
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

load_dotenv()


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        print(f"{name} must be an integer, got {raw!r}", file=sys.stderr)
        raise SystemExit(1) from None


_tz_name = os.environ.get("TURNO_TIMEZONE") or "America/Argentina/Buenos_Aires"
try:
    TZ: ZoneInfo = ZoneInfo(_tz_name)
except (ZoneInfoNotFoundError, ValueError):
    print(f"Unknown TURNO_TIMEZONE: {_tz_name}", file=sys.stderr)
    raise SystemExit(1) from None

DATA_DIR: Path = Path(os.environ.get("TURNO_DATA_DIR") or Path.home() / ".turno-bot")

_offsets = os.environ.get("TURNO_OFFSETS_FILE")
OFFSETS_FILE: Path | None = Path(_offsets).expanduser() if _offsets else None

# Discord select menus hold at most 25 options
BOOKING_DAYS: int = min(max(_int_env("TURNO_BOOKING_DAYS", 25), 1), 25)
FIRST_HOUR: int = _int_env("TURNO_FIRST_HOUR", 7)
LAST_HOUR: int = _int_env("TURNO_LAST_HOUR", 19)
SLOT_MINUTES: int = _int_env("TURNO_SLOT_MINUTES", 30)

if not 0 <= FIRST_HOUR <= LAST_HOUR <= 23:
    print("TURNO_FIRST_HOUR/TURNO_LAST_HOUR must satisfy 0 <= first <= last <= 23", file=sys.stderr)
    raise SystemExit(1)
if not 0 < SLOT_MINUTES <= 60:
    print("TURNO_SLOT_MINUTES must be between 1 and 60", file=sys.stderr)
    raise SystemExit(1)

# The hour picker is one view: at most 5 selects of 25 slots each
_slot_count = (LAST_HOUR * 60 + 59 - FIRST_HOUR * 60) // SLOT_MINUTES + 1
if math.ceil(_slot_count / 25) > 5:
    print(
        f"{_slot_count} hour slots do not fit the picker (max 125); "
        "narrow TURNO_FIRST_HOUR/TURNO_LAST_HOUR or raise TURNO_SLOT_MINUTES",
        file=sys.stderr,
    )
    raise SystemExit(1)
