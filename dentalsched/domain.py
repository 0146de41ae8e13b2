from __future__ import annotations

import enum
from dataclasses import dataclass
from decimal import Decimal

MAX_OPERATION_NAME_BYTES = 49

MINUTES_PER_DAY = 24 * 60

MIN_YEAR = 2024
MAX_YEAR = 2050


def truncate_name(name: str) -> str:
    """Cut a name down to MAX_OPERATION_NAME_BYTES of UTF-8.

    The cut never splits a multi-byte character, so the result may be
    a few bytes shorter than the limit. Undecodable bytes read from the data
    files (surrogate escapes) count as one byte each.
    """
    size = 0
    for i, char in enumerate(name):
        size += len(char.encode("utf-8", errors="surrogateescape"))
        if size > MAX_OPERATION_NAME_BYTES:
            return name[:i]
    return name


def time_in_range(hour: int, minute: int) -> bool:
    return 0 <= hour <= 23 and 0 <= minute <= 59


@dataclass(frozen=True)
class Operation:
    """A catalogued clinic service."""

    name: str
    price: Decimal
    duration: int  # minutes


@dataclass(frozen=True)
class Appointment:
    """A scheduled operation on a given date and time.

    The operation is a snapshot taken when the appointment was scheduled
    (or loaded), later catalogue edits do not change it.
    """

    day: int
    month: int
    year: int
    hour: int
    minute: int
    operation: Operation

    @property
    def start_minute(self) -> int:
        return self.hour * 60 + self.minute

    @property
    def end_minute(self) -> int:
        # exclusive
        return self.start_minute + self.operation.duration

    @property
    def sort_key(self) -> tuple[int, int, int, int, int]:
        return (self.year, self.month, self.day, self.hour, self.minute)

    def same_date(self, day: int, month: int, year: int) -> bool:
        return self.day == day and self.month == month and self.year == year


class ScheduleStatus(enum.Enum):
    SCHEDULED = "scheduled"
    INVALID_OPERATION = "invalid_operation"
    INVALID_DATETIME = "invalid_datetime"
    PAST_MIDNIGHT = "past_midnight"
    SLOT_UNAVAILABLE = "slot_unavailable"


@dataclass(frozen=True)
class ScheduleOutcome:
    status: ScheduleStatus
    day: int
    month: int
    year: int
    hour: int
    minute: int
    operation: Operation | None = None
    conflict: Appointment | None = None

    @property
    def ok(self) -> bool:
        return self.status is ScheduleStatus.SCHEDULED

    @property
    def reason(self) -> str:
        when = f"{self.day}/{self.month}/{self.year} at {self.hour:02d}:{self.minute:02d}"
        if self.status is ScheduleStatus.SCHEDULED:
            return f"Appointment scheduled: '{self.operation.name}' on {when}."
        if self.status is ScheduleStatus.INVALID_OPERATION:
            return "Invalid operation number."
        if self.status is ScheduleStatus.INVALID_DATETIME:
            return "Invalid date or time for appointment."
        if self.status is ScheduleStatus.PAST_MIDNIGHT:
            return (
                f"Appointment for '{self.operation.name}' on {when} "
                "cannot be scheduled (extends past midnight)."
            )
        text = (
            f"Time slot {when} for '{self.operation.name}' "
            f"(duration {self.operation.duration} min) is not available."
        )
        if self.conflict is not None:
            c = self.conflict
            text += (
                f" It overlaps '{c.operation.name}' at {c.hour:02d}:{c.minute:02d}"
                f"-{c.end_minute // 60:02d}:{c.end_minute % 60:02d}."
            )
        return text


class SchedulerError(RuntimeError):
    """Base class for scheduler failures that abort a command."""


class SourceUnavailableError(SchedulerError):
    """A data file could not be opened for reading."""

    def __init__(self, path: str, reason: str = "") -> None:
        self.path = path
        message = f"Could not open {path}"
        super().__init__(f"{message}: {reason}" if reason else message)


class PersistenceError(SchedulerError):
    """Appointments could not be written (or not completely) to disk."""

    def __init__(self, path: str, reason: str = "") -> None:
        self.path = path
        message = f"Could not save appointments to {path}"
        super().__init__(f"{message}: {reason}" if reason else message)
