"""Reminder policy: which lead times get a reminder, and when each fires.

The policy is an ordered tuple of offsets, loaded once at startup either from
the built-in defaults or from a YAML file like:

    - key: 24h
      label: 1 día
      lead: {days: 1}
    - key: 30m
      label: 30 minutos
      lead: {minutes: 30}
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path

import yaml


@dataclass(frozen=True, slots=True)
class ReminderOffset:
    key: str  # stable id, part of the job key
    label: str  # shown to the subscriber, e.g. "2 horas"
    lead: timedelta


DEFAULT_OFFSETS: tuple[ReminderOffset, ...] = (
    ReminderOffset("24h", "1 día", timedelta(days=1)),
    ReminderOffset("10h", "10 horas", timedelta(hours=10)),
    ReminderOffset("2h", "2 horas", timedelta(hours=2)),
    ReminderOffset("1h", "1 hora", timedelta(hours=1)),
    ReminderOffset("30m", "30 minutos", timedelta(minutes=30)),
)

_LEAD_UNITS = frozenset({"days", "hours", "minutes"})


def _parse_offset(entry: object, index: int) -> ReminderOffset:
    if not isinstance(entry, dict):
        raise ValueError(f"offset #{index} is not a mapping")
    key = entry.get("key")
    label = entry.get("label")
    lead = entry.get("lead")
    if not key or not isinstance(key, str):
        raise ValueError(f"offset #{index} needs a string 'key'")
    if not isinstance(lead, dict) or not lead:
        raise ValueError(f"offset {key!r} needs a 'lead' mapping")
    unknown = set(lead) - _LEAD_UNITS
    if unknown:
        raise ValueError(f"offset {key!r} has unknown lead units: {sorted(unknown)}")
    try:
        delta = timedelta(**{unit: float(n) for unit, n in lead.items()})
    except (TypeError, ValueError) as e:
        raise ValueError(f"offset {key!r} has a non-numeric lead") from e
    if delta <= timedelta(0):
        raise ValueError(f"offset {key!r} must have a positive lead")
    return ReminderOffset(key=key, label=str(label or key), lead=delta)


def load_offsets(path: Path) -> tuple[ReminderOffset, ...]:
    """Parse a YAML list of offsets. Raises ValueError on anything malformed."""
    try:
        data = yaml.safe_load(path.read_text())
    except yaml.YAMLError as e:
        raise ValueError(f"{path}: invalid YAML") from e
    if not isinstance(data, list) or not data:
        raise ValueError(f"{path}: expected a non-empty list of offsets")

    offsets = tuple(_parse_offset(entry, i) for i, entry in enumerate(data, 1))
    seen: set[str] = set()
    for offset in offsets:
        if offset.key in seen:
            raise ValueError(f"{path}: duplicate offset key {offset.key!r}")
        seen.add(offset.key)
    return offsets


def candidate_offsets(path: Path | None = None) -> tuple[ReminderOffset, ...]:
    return load_offsets(path) if path is not None else DEFAULT_OFFSETS


def trigger_times(
    target_at: datetime, offsets: tuple[ReminderOffset, ...]
) -> list[tuple[ReminderOffset, datetime]]:
    """Candidate trigger instants in policy order. Past ones are not filtered here."""
    return [(offset, target_at - offset.lead) for offset in offsets]
