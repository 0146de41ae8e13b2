from __future__ import annotations

import logging

from dentalsched.domain import (
    MAX_YEAR,
    MIN_YEAR,
    MINUTES_PER_DAY,
    Appointment,
    Operation,
    ScheduleOutcome,
    ScheduleStatus,
    SourceUnavailableError,
    time_in_range,
    truncate_name,
)
from dentalsched.records import (
    parse_appointment_records,
    parse_operations,
    read_tokens,
    write_appointments,
)

logger = logging.getLogger(__name__)


class Scheduler:
    """Operations catalogue plus the chronologically sorted appointment history.

    Only load_* and save_appointments touch the filesystem; queries and
    scheduling work on the in-memory state.
    """

    def __init__(self) -> None:
        self.operations: list[Operation] = []
        self.appointments: list[Appointment] = []

    # --- persistence -----------------------------------------------------

    def load_operations(self, path: str, *, warn_if_empty: bool = True) -> int:
        """Append the catalogue stored in `path`.

        Raises SourceUnavailableError when the file cannot be read.
        Returns how many operations were appended.
        """
        loaded = parse_operations(read_tokens(path))
        self.operations.extend(loaded)

        if not self.operations and warn_if_empty:
            logger.warning("No operations loaded from %s. Check the file format and content.", path)
        else:
            logger.info("Loaded %d operations from %s", len(loaded), path)
        return len(loaded)

    def load_appointments(self, path: str) -> int:
        """Append the appointments stored in `path` and re-sort the history.

        A missing file means there is no history yet. Rows naming an operation
        that is not in the catalogue are dropped with a warning.
        """
        if not self.operations:
            logger.warning("Operations should be loaded before appointments.")

        try:
            tokens = read_tokens(path)
        except SourceUnavailableError:
            logger.info("No appointments file at %s, starting with an empty history", path)
            return 0

        added = 0
        for record in parse_appointment_records(tokens):
            operation = self.find_operation_by_name(record.operation_name)
            if operation is None:
                logger.warning(
                    "Operation %r from an appointment was not found. Appointment skipped.",
                    record.operation_name,
                )
                continue
            self.appointments.append(
                Appointment(
                    day=record.day,
                    month=record.month,
                    year=record.year,
                    hour=record.hour,
                    minute=record.minute,
                    operation=operation,
                )
            )
            added += 1

        self._sort_appointments()
        logger.info("Loaded %d appointments from %s", added, path)
        return added

    def save_appointments(self, path: str) -> None:
        """Write the whole history to `path`. Raises PersistenceError on failure."""
        write_appointments(path, self.appointments)
        logger.info("Saved %d appointments to %s", len(self.appointments), path)

    # --- queries ---------------------------------------------------------

    def find_operation_by_name(self, name: str) -> Operation | None:
        # Names are not guaranteed unique in the catalogue; the first one wins.
        name = truncate_name(name)
        for operation in self.operations:
            if operation.name == name:
                return operation
        return None

    def catalogue_entries(self) -> list[tuple[int, Operation]]:
        return list(enumerate(self.operations, start=1))

    def find_conflict(
        self, day: int, month: int, year: int, hour: int, minute: int, duration: int
    ) -> Appointment | None:
        start = hour * 60 + minute
        end = start + duration
        for existing in self.appointments:
            if not existing.same_date(day, month, year):
                continue
            if max(start, existing.start_minute) < min(end, existing.end_minute):
                return existing
        return None

    def is_slot_available(
        self, day: int, month: int, year: int, hour: int, minute: int, duration: int
    ) -> bool:
        if not time_in_range(hour, minute):
            return False
        if hour * 60 + minute + duration > MINUTES_PER_DAY:
            return False
        return self.find_conflict(day, month, year, hour, minute, duration) is None

    def is_exact_minute_available(self, day: int, month: int, year: int, hour: int, minute: int) -> bool:
        """True if no appointment on that date covers the given minute."""
        if not time_in_range(hour, minute):
            return False
        point = hour * 60 + minute
        return not any(
            a.start_minute <= point < a.end_minute
            for a in self.appointments
            if a.same_date(day, month, year)
        )

    # --- mutation --------------------------------------------------------

    def schedule_appointment(
        self, day: int, month: int, year: int, hour: int, minute: int, operation_number: int
    ) -> ScheduleOutcome:
        """Book `operation_number` (1-based catalogue position) at the given date and time.

        Nothing is changed unless the returned outcome is ok.
        """
        when = dict(day=day, month=month, year=year, hour=hour, minute=minute)

        if not 1 <= operation_number <= len(self.operations):
            return ScheduleOutcome(ScheduleStatus.INVALID_OPERATION, **when)
        operation = self.operations[operation_number - 1]

        # Every month is allowed 31 days; there is no calendar check.
        if not (
            1 <= month <= 12
            and 1 <= day <= 31
            and MIN_YEAR <= year <= MAX_YEAR
            and time_in_range(hour, minute)
        ):
            return ScheduleOutcome(ScheduleStatus.INVALID_DATETIME, operation=operation, **when)

        if hour * 60 + minute + operation.duration > MINUTES_PER_DAY:
            return ScheduleOutcome(ScheduleStatus.PAST_MIDNIGHT, operation=operation, **when)

        if not self.is_slot_available(day, month, year, hour, minute, operation.duration):
            conflict = self.find_conflict(day, month, year, hour, minute, operation.duration)
            return ScheduleOutcome(
                ScheduleStatus.SLOT_UNAVAILABLE, operation=operation, conflict=conflict, **when
            )

        self.appointments.append(Appointment(operation=operation, **when))
        self._sort_appointments()
        logger.info("Scheduled %r on %d/%d/%d at %02d:%02d", operation.name, day, month, year, hour, minute)
        return ScheduleOutcome(ScheduleStatus.SCHEDULED, operation=operation, **when)

    def _sort_appointments(self) -> None:
        # list.sort is stable, equal keys keep their insertion order.
        self.appointments.sort(key=lambda a: a.sort_key)
