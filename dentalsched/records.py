from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Iterable, Iterator

from dentalsched.domain import (
    Appointment,
    Operation,
    PersistenceError,
    SourceUnavailableError,
    truncate_name,
)

# Both files are whitespace-separated token streams; line breaks carry no meaning.
OPERATION_FIELDS = 3
APPOINTMENT_FIELDS = 6

# Prices of 10**10 and above are treated as malformed.
MAX_PRICE_EXPONENT = 9


@dataclass(frozen=True)
class AppointmentRecord:
    """One row of the appointments file before the operation name is resolved."""

    day: int
    month: int
    year: int
    hour: int
    minute: int
    operation_name: str


def read_tokens(path: str) -> list[str]:
    # Stray non-UTF-8 bytes survive as surrogate escapes and are written back unchanged.
    try:
        with open(path, "r", encoding="utf-8", errors="surrogateescape") as f:
            return f.read().split()
    except OSError as e:
        raise SourceUnavailableError(path, str(e)) from e


def _chunks(tokens: list[str], size: int) -> Iterator[list[str]]:
    # An incomplete trailing chunk is dropped.
    for i in range(0, len(tokens) - size + 1, size):
        yield tokens[i : i + size]


def _parse_price(raw: str) -> Decimal | None:
    try:
        price = Decimal(raw)
    except (InvalidOperation, ValueError):
        return None
    if not price.is_finite() or price < 0 or price.adjusted() > MAX_PRICE_EXPONENT:
        return None
    return price


def _parse_int(raw: str) -> int | None:
    try:
        return int(raw)
    except ValueError:
        return None


def parse_operations(tokens: list[str]) -> list[Operation]:
    """Turn `name price duration` triplets into operations, in file order.

    The first malformed triplet ends the read; everything before it is kept.
    """
    operations: list[Operation] = []
    for name, raw_price, raw_duration in _chunks(tokens, OPERATION_FIELDS):
        price = _parse_price(raw_price)
        duration = _parse_int(raw_duration)
        if price is None or duration is None or duration <= 0:
            break
        operations.append(Operation(name=truncate_name(name), price=price, duration=duration))
    return operations


def parse_appointment_records(tokens: list[str]) -> list[AppointmentRecord]:
    """Turn `day month year hour minute name` rows into records.

    Like parse_operations, reading stops at the first malformed row.
    """
    records: list[AppointmentRecord] = []
    for chunk in _chunks(tokens, APPOINTMENT_FIELDS):
        numbers = [_parse_int(raw) for raw in chunk[:5]]
        if any(n is None for n in numbers):
            break
        day, month, year, hour, minute = numbers
        records.append(
            AppointmentRecord(
                day=day,
                month=month,
                year=year,
                hour=hour,
                minute=minute,
                operation_name=truncate_name(chunk[5]),
            )
        )
    return records


def format_appointment_line(appointment: Appointment) -> str:
    a = appointment
    return f"{a.day} {a.month} {a.year} {a.hour} {a.minute} {a.operation.name}\n"


def write_appointments(path: str, appointments: Iterable[Appointment]) -> None:
    """Replace the appointments file with the given appointments.

    The new content is written to a temporary file next to `path` and moved
    over it, so readers see either the old or the new file, never a partial one.
    """
    folder = os.path.dirname(os.path.abspath(path))
    tmp_name: str | None = None
    try:
        if folder and not os.path.exists(folder):
            os.makedirs(folder, exist_ok=True)

        # Atomic write
        with tempfile.NamedTemporaryFile(
            "w", delete=False, encoding="utf-8", errors="surrogateescape", dir=folder, suffix=".tmp"
        ) as tf:
            tmp_name = tf.name
            tf.writelines(format_appointment_line(a) for a in appointments)
            tf.flush()
            os.fsync(tf.fileno())

        os.replace(tmp_name, path)
    except OSError as e:
        if tmp_name is not None and os.path.exists(tmp_name):
            os.remove(tmp_name)
        raise PersistenceError(path, str(e)) from e
