"""Scheduling: reminder policy, job registry, timers, and startup recovery."""

from turno_bot.scheduling.policy import (
    DEFAULT_OFFSETS,
    ReminderOffset,
    candidate_offsets,
    load_offsets,
    trigger_times,
)
from turno_bot.scheduling.recovery import RecoveryCoordinator
from turno_bot.scheduling.registry import Job, JobRegistry, JobState, job_key
from turno_bot.scheduling.scheduler import ReminderScheduler, utc_now
from turno_bot.scheduling.timer import APSchedulerTimer

__all__ = [
    "APSchedulerTimer",
    "DEFAULT_OFFSETS",
    "Job",
    "JobRegistry",
    "JobState",
    "RecoveryCoordinator",
    "ReminderOffset",
    "ReminderScheduler",
    "candidate_offsets",
    "job_key",
    "load_offsets",
    "trigger_times",
    "utc_now",
]
