from __future__ import annotations

import argparse
import logging
import sys
from typing import NoReturn

from tenacity import RetryCallState, retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from dentalsched.config import Settings
from dentalsched.domain import PersistenceError, ScheduleStatus
from dentalsched.formatting import (
    format_availability,
    format_error,
    format_history,
    format_operations,
    format_schedule_outcome,
    format_warning,
    palette_for,
)
from dentalsched.scheduler import Scheduler

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1  # usage, validation or slot conflict
EXIT_IO_ERROR = 2  # catalogue unreadable or appointments not saved


def _printable(text: str) -> str:
    # Undecodable bytes from the data files are shown as U+FFFD.
    return text.encode("utf-8", errors="surrogateescape").decode("utf-8", errors="replace")


def _out(text: str) -> None:
    print(_printable(text))


def _err(text: str) -> None:
    print(_printable(text), file=sys.stderr)


def open_scheduler(settings: Settings) -> Scheduler:
    """Build a Scheduler from the shared files.

    Raises SourceUnavailableError if the catalogue cannot be read; a missing
    appointments file just means an empty history.
    """
    scheduler = Scheduler()
    scheduler.load_operations(settings.operations_file)
    scheduler.load_appointments(settings.appointments_file)
    return scheduler


def _short_exc(retry_state: RetryCallState) -> str | None:
    if retry_state.outcome is None or not retry_state.outcome.failed:
        return None
    exc = retry_state.outcome.exception()
    if exc is None:
        return None
    msg = str(exc).strip()
    return f"{type(exc).__name__}: {msg}" if msg else type(exc).__name__


def _log_after_attempt(retry_state: RetryCallState) -> None:
    if retry_state.outcome is not None and retry_state.outcome.failed:
        logger.error("Save attempt %s failed (%s)", retry_state.attempt_number, _short_exc(retry_state))


def _log_before_sleep(retry_state: RetryCallState) -> None:
    sleep_seconds = getattr(retry_state.next_action, "sleep", None)
    if sleep_seconds is None:
        logger.info("Retrying save...")
        return
    logger.info("Retrying save in %.1f sec.", sleep_seconds)


def save_with_retry(scheduler: Scheduler, settings: Settings) -> None:
    decorated = retry(
        stop=stop_after_attempt(settings.save_retry_attempts),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=2),
        retry=retry_if_exception_type(PersistenceError),
        after=_log_after_attempt,
        before_sleep=_log_before_sleep,
        reraise=True,
    )(scheduler.save_appointments)

    decorated(settings.appointments_file)


def view_operations(scheduler: Scheduler, settings: Settings) -> int:
    _out(format_operations(scheduler.catalogue_entries(), palette_for(settings.color)))
    return EXIT_OK


def view_history(scheduler: Scheduler, settings: Settings) -> int:
    _out(format_history(scheduler.appointments, palette_for(settings.color)))
    return EXIT_OK


def check_availability(
    scheduler: Scheduler, settings: Settings, day: int, month: int, year: int, hour: int, minute: int
) -> int:
    available = scheduler.is_exact_minute_available(day, month, year, hour, minute)
    _out(format_availability(day, month, year, hour, minute, available, palette_for(settings.color)))
    return EXIT_OK


def schedule(
    scheduler: Scheduler,
    settings: Settings,
    day: int,
    month: int,
    year: int,
    hour: int,
    minute: int,
    operation_number: int,
) -> int:
    """Schedule an appointment and, on success, save the whole history."""
    palette = palette_for(settings.color)
    outcome = scheduler.schedule_appointment(day, month, year, hour, minute, operation_number)

    if not outcome.ok:
        _err(format_schedule_outcome(outcome, palette))
        if outcome.status is ScheduleStatus.INVALID_OPERATION:
            _out(format_operations(scheduler.catalogue_entries(), palette))
        return EXIT_FAILURE

    _out(format_schedule_outcome(outcome, palette))

    try:
        save_with_retry(scheduler, settings)
    except PersistenceError as e:
        # The appointment exists only in this process now.
        logger.error("Automatic save failed (%s)", e)
        _err(
            f"{palette.red}{palette.bold}CRITICAL WARNING: {palette.reset}"
            f"Appointment was added to memory, but automatic saving to file "
            f"{settings.appointments_file}{palette.red} FAILED!{palette.reset}"
        )
        _err(format_warning("Memory and disk are now inconsistent. Please contact the administrator.", palette))
        return EXIT_IO_ERROR

    return EXIT_OK


def save_and_exit(scheduler: Scheduler, settings: Settings) -> int:
    p = palette_for(settings.color)
    try:
        save_with_retry(scheduler, settings)
    except PersistenceError as e:
        _err(format_error(str(e), p))
        _out(
            f"{p.red}{p.bold}Failed to save appointments to {p.reset}{settings.appointments_file}"
            f"{p.red}. Admin app is closing anyway.{p.reset}"
        )
        return EXIT_IO_ERROR

    _out(
        f"{p.green}{p.bold}Appointments successfully saved to {p.reset}{settings.appointments_file}"
        f"{p.green}. Admin app is closing.{p.reset}"
    )
    return EXIT_OK


def report_catalogue_unavailable(settings: Settings, exc: Exception) -> int:
    p = palette_for(settings.color)
    _err(
        f"{p.red}{p.bold}Critical error: {p.reset}Could not load operations from "
        f"{settings.operations_file} ({exc}). The program cannot continue."
    )
    return EXIT_IO_ERROR


class CommandParser(argparse.ArgumentParser):
    """ArgumentParser whose usage errors exit with EXIT_FAILURE instead of 2."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(EXIT_FAILURE, f"{self.prog}: error: {message}\n")


def add_date_time_arguments(parser: argparse.ArgumentParser) -> None:
    for name in ("day", "month", "year", "hour", "minute"):
        parser.add_argument(name, type=int)
