"""Subscriber-facing text for reminders and appointment lists."""

from datetime import datetime
from zoneinfo import ZoneInfo

from turno_bot.storage import Appointment

DISPLAY_FORMAT = "%d/%m/%Y %H:%M"

COMMANDS_HELP = """\
/turno [descripcion] - Agendar un turno
/turnos - Ver tus próximos turnos
/borrar ID - Borrar un turno
/mover ID - Cambiar el horario de un turno
/ayuda - Ver esta ayuda"""


def format_local(instant: datetime, tz: ZoneInfo) -> str:
    return instant.astimezone(tz).strftime(DISPLAY_FORMAT)


def format_reminder(label: str, appointment: Appointment, tz: ZoneInfo) -> str:
    """``⏰ Recordatorio (2 horas antes): 05/03/2026 14:30 Turno``"""
    when = format_local(appointment.target_at, tz)
    return f"⏰ Recordatorio ({label} antes): {when} {appointment.description}".rstrip()


def format_appointment_line(appointment: Appointment, tz: ZoneInfo) -> str:
    when = format_local(appointment.target_at, tz)
    return f"{appointment.id}. {when} - {appointment.description or 'Sin descripción'}"


def format_appointment_list(appointments: list[Appointment], tz: ZoneInfo) -> str:
    if not appointments:
        return "No hay turnos agendados."
    return "\n".join(format_appointment_line(a, tz) for a in appointments)


def format_help(labels: list[str]) -> str:
    """Command list, preceded by the lead times reminders go out at."""
    if not labels:
        return COMMANDS_HELP
    leads = labels[0] if len(labels) == 1 else f"{', '.join(labels[:-1])} y {labels[-1]}"
    return f"👋 Te aviso antes de cada turno: {leads} antes.\n\n{COMMANDS_HELP}"
