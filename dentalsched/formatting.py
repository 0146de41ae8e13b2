"""Terminal presentation for the scheduler.

Everything here takes plain records and returns strings; printing is left to
the caller. Colours are ANSI escape sequences and can be switched off with a
plain palette.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from dentalsched.domain import Appointment, Operation, ScheduleOutcome, ScheduleStatus


@dataclass(frozen=True)
class Palette:
    reset: str = "\033[0m"
    red: str = "\033[31m"
    green: str = "\033[32m"
    yellow: str = "\033[33m"
    blue: str = "\033[34m"
    magenta: str = "\033[35m"
    cyan: str = "\033[36m"
    white: str = "\033[37m"
    bold: str = "\033[1m"


ANSI = Palette()
PLAIN = Palette(*([""] * 9))


def palette_for(color: bool) -> Palette:
    return ANSI if color else PLAIN


def _clock(hour: int, minute: int) -> str:
    return f"{hour:02d}:{minute:02d}"


def format_error(message: str, p: Palette = ANSI) -> str:
    return f"{p.red}{p.bold}Error: {p.reset}{message}"


def format_warning(message: str, p: Palette = ANSI) -> str:
    return f"{p.yellow}{p.bold}Warning: {p.reset}{message}"


def format_operations(entries: Iterable[tuple[int, Operation]], p: Palette = ANSI) -> str:
    entries = list(entries)
    if not entries:
        return f"{p.yellow}{p.bold}No dental operations available.{p.reset}"

    rule = f"{p.blue}{'-' * 65}{p.reset}"
    lines = [
        f"\n{p.cyan}{p.bold}Available Dental Operations:{p.reset}",
        rule,
        f"{p.magenta}{p.bold}{'No.':<5}{'Operation Name':<25}{'Price (RON)':<15}{'Duration (min)':<15}{p.reset}",
        rule,
    ]
    for number, op in entries:
        lines.append(
            f"{p.white}{number:<5}"
            f"{p.green}{op.name:<25}"
            f"{p.yellow}{f'{op.price:.2f}':<15}"
            f"{p.cyan}{op.duration:<15}{p.reset}"
        )
    lines.append(rule + "\n")
    return "\n".join(lines)


def format_history(appointments: Iterable[Appointment], p: Palette = ANSI) -> str:
    appointments = list(appointments)
    if not appointments:
        return f"{p.yellow}{p.bold}No appointments in history.{p.reset}"

    rule = f"{p.blue}{'-' * 84}{p.reset}"
    lines = [
        f"\n{p.cyan}{p.bold}Appointment History:{p.reset}",
        rule,
        f"{p.magenta}{p.bold}{'Date':<12}{'Time':<8}{'Operation':<25}{'Price (RON)':<15}{'Duration (min)':<15}{p.reset}",
        rule,
    ]
    for a in appointments:
        lines.append(
            f"{p.white}{a.day:02d}/{a.month:02d}/{a.year:04d}  "
            f"{p.cyan}{_clock(a.hour, a.minute)}   "
            f"{p.green}{a.operation.name:<25}"
            f"{p.yellow}{f'{a.operation.price:.2f}':<15}"
            f"{p.magenta}{a.operation.duration:<15}{p.reset}"
        )
    lines.append(rule + "\n")
    return "\n".join(lines)


def format_schedule_outcome(outcome: ScheduleOutcome, p: Palette = ANSI) -> str:
    if outcome.ok:
        return f"{p.green}{p.bold}{outcome.reason}{p.reset}"
    if outcome.status in (ScheduleStatus.INVALID_OPERATION, ScheduleStatus.INVALID_DATETIME):
        return format_error(outcome.reason, p)
    return f"{p.red}{p.bold}{outcome.reason}{p.reset}"


def format_availability(
    day: int, month: int, year: int, hour: int, minute: int, available: bool, p: Palette = ANSI
) -> str:
    slot = f"Time slot (time {_clock(hour, minute)} on {day}/{month}/{year})"
    if available:
        return f"{p.green}{p.bold}{slot} is AVAILABLE{p.reset}{p.green} (exact minute is not covered).{p.reset}"
    return f"{p.red}{p.bold}{slot} is NOT AVAILABLE{p.reset}{p.red} (exact minute is covered).{p.reset}"
