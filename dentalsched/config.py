from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv


@dataclass(frozen=True)
class Settings:
    # Shared flat-file state, relative paths resolve against the working directory.
    operations_file: str = "op_details.txt"
    appointments_file: str = "app_details.txt"

    # How many times we try to write the appointments file before giving up.
    save_retry_attempts: int = 2

    log_level: str = "WARNING"
    color: bool = True


def _parse_bool(name: str, default: str) -> bool:
    raw = os.getenv(name, default).strip().lower()
    return raw not in {"0", "false", "no", "off"}


def _parse_log_level(raw: str) -> str:
    level = raw.strip().upper()
    if not isinstance(logging.getLevelName(level), int):
        raise RuntimeError(f"Invalid LOG_LEVEL value: {raw!r}")
    return level


def _parse_positive_int(name: str, default: str) -> int:
    raw = os.getenv(name, default)
    try:
        value = int(raw)
    except ValueError as e:
        raise RuntimeError(f"Invalid {name} value: {raw!r}. Expected an integer.") from e
    if value < 1:
        raise RuntimeError(f"{name} must be >= 1")
    return value


def load_settings(dotenv_path: str | None = None) -> Settings:
    # Prefer .env in the working directory; dotenv_path allows overriding in tests.
    load_dotenv(dotenv_path=dotenv_path, override=False)

    # https://no-color.org: any non-empty NO_COLOR disables colours.
    color = _parse_bool("COLOR", "1") and not os.getenv("NO_COLOR")

    return Settings(
        operations_file=os.getenv("OPERATIONS_FILE", "op_details.txt"),
        appointments_file=os.getenv("APPOINTMENTS_FILE", "app_details.txt"),
        save_retry_attempts=_parse_positive_int("SAVE_RETRY_ATTEMPTS", "2"),
        log_level=_parse_log_level(os.getenv("LOG_LEVEL", "WARNING")),
        color=color,
    )
