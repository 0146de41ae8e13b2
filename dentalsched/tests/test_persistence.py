from __future__ import annotations

import logging
from collections import Counter
from decimal import Decimal
from pathlib import Path

import pytest

from dentalsched.domain import MAX_OPERATION_NAME_BYTES, Operation, PersistenceError, SourceUnavailableError
from dentalsched.records import parse_operations
from dentalsched.scheduler import Scheduler

OPERATIONS = "Cleaning 100.0 30\nFilling 200.50 45\nExtraction 350 20\n"


def _write(path: Path, text: str) -> str:
    path.write_text(text, encoding="utf-8")
    return str(path)


def _loaded(tmp_path: Path, appointments: str | None = None) -> Scheduler:
    scheduler = Scheduler()
    scheduler.load_operations(_write(tmp_path / "op_details.txt", OPERATIONS))
    if appointments is not None:
        scheduler.load_appointments(_write(tmp_path / "app_details.txt", appointments))
    return scheduler


def test_load_operations_keeps_file_order(tmp_path: Path) -> None:
    scheduler = Scheduler()
    count = scheduler.load_operations(_write(tmp_path / "ops.txt", OPERATIONS))

    assert count == 3
    assert scheduler.operations == [
        Operation("Cleaning", Decimal("100.0"), 30),
        Operation("Filling", Decimal("200.50"), 45),
        Operation("Extraction", Decimal("350"), 20),
    ]


def test_load_operations_ignores_line_layout(tmp_path: Path) -> None:
    scheduler = Scheduler()
    scheduler.load_operations(_write(tmp_path / "ops.txt", "Cleaning\n100.0 30 Filling 200\n45"))
    assert [op.name for op in scheduler.operations] == ["Cleaning", "Filling"]


@pytest.mark.parametrize(
    "text, expected_names",
    [
        ("Cleaning 100 30\nFilling abc 45\nExtraction 350 20\n", ["Cleaning"]),
        ("Cleaning 100 30\nFilling 200 4.5\nExtraction 350 20\n", ["Cleaning"]),
        ("Cleaning 100 30\nFilling -1 45\n", ["Cleaning"]),
        ("Cleaning 100 30\nFilling 200 0\n", ["Cleaning"]),
        ("Cleaning 100 30\nFilling 200\n", ["Cleaning"]),
        ("Cleaning NaN 30\n", []),
        ("Cleaning 1e999999999 30\nFilling 200 45\n", []),
        ("Cleaning 9999999999.99 30\nFilling 1E+10 45\n", ["Cleaning"]),
    ],
)
def test_malformed_operation_stops_the_read(text: str, expected_names: list[str]) -> None:
    assert [op.name for op in parse_operations(text.split())] == expected_names


def test_load_operations_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(SourceUnavailableError, match="Could not open"):
        Scheduler().load_operations(str(tmp_path / "missing.txt"))


def test_empty_catalogue_warns(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    scheduler = Scheduler()
    with caplog.at_level(logging.WARNING):
        assert scheduler.load_operations(_write(tmp_path / "ops.txt", "")) == 0
    assert "No operations loaded" in caplog.text


def test_empty_secondary_catalogue_does_not_warn(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING):
        Scheduler().load_operations(_write(tmp_path / "ops.txt", ""), warn_if_empty=False)
    assert caplog.text == ""


def test_long_operation_names_are_truncated(tmp_path: Path) -> None:
    long_name = "X" * 60
    scheduler = Scheduler()
    scheduler.load_operations(_write(tmp_path / "ops.txt", f"{long_name} 10 15\n"))

    assert scheduler.operations[0].name == "X" * MAX_OPERATION_NAME_BYTES
    # An appointment row with the full name still resolves to the truncated entry.
    scheduler.load_appointments(_write(tmp_path / "apps.txt", f"1 2 2025 9 0 {long_name}\n"))
    assert len(scheduler.appointments) == 1


def test_truncation_does_not_split_multibyte_characters(tmp_path: Path) -> None:
    # 'ă' is two bytes in UTF-8; 25 of them are 50 bytes.
    scheduler = Scheduler()
    scheduler.load_operations(_write(tmp_path / "ops.txt", f"{'ă' * 25} 10 15\n"))
    assert scheduler.operations[0].name == "ă" * 24


def test_load_appointments_sorts_chronologically(tmp_path: Path) -> None:
    scheduler = _loaded(
        tmp_path,
        "10 6 2025 14 0 Filling\n"
        "9 6 2025 16 0 Cleaning\n"
        "10 6 2025 9 0 Extraction\n"
        "1 1 2026 8 0 Cleaning\n",
    )
    assert [a.sort_key for a in scheduler.appointments] == [
        (2025, 6, 9, 16, 0),
        (2025, 6, 10, 9, 0),
        (2025, 6, 10, 14, 0),
        (2026, 1, 1, 8, 0),
    ]


def test_unknown_operation_is_skipped_with_warning(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING):
        scheduler = _loaded(
            tmp_path,
            "10 6 2025 9 0 Cleaning\n"
            "10 6 2025 10 0 Whitening\n"
            "10 6 2025 11 0 Filling\n",
        )

    assert [a.operation.name for a in scheduler.appointments] == ["Cleaning", "Filling"]
    assert "'Whitening'" in caplog.text
    assert "Appointment skipped" in caplog.text


def test_malformed_appointment_stops_the_read(tmp_path: Path) -> None:
    scheduler = _loaded(
        tmp_path,
        "10 6 2025 9 0 Cleaning\n"
        "10 six 2025 10 0 Filling\n"
        "10 6 2025 11 0 Filling\n",
    )
    assert len(scheduler.appointments) == 1


def test_non_utf8_row_does_not_discard_the_history(tmp_path: Path) -> None:
    apps = tmp_path / "app_details.txt"
    apps.write_bytes(b"10 6 2025 9 0 Cleaning\n11 6 2025 9 0 Filling\n12 6 2025 9 0 Caf\xe9\n")
    scheduler = _loaded(tmp_path)

    assert scheduler.load_appointments(str(apps)) == 2

    assert scheduler.schedule_appointment(13, 6, 2025, 9, 0, 1).ok
    scheduler.save_appointments(str(apps))

    reloaded = _loaded(tmp_path)
    reloaded.load_appointments(str(apps))
    assert [a.sort_key[2] for a in reloaded.appointments] == [10, 11, 13]


def test_non_utf8_operation_name_is_kept_byte_for_byte(tmp_path: Path) -> None:
    ops = tmp_path / "op_details.txt"
    ops.write_bytes(b"Caf\xe9 50 15\nCleaning 100 30\n")
    apps = tmp_path / "app_details.txt"
    apps.write_bytes(b"10 6 2025 9 0 Caf\xe9\n")

    scheduler = Scheduler()
    assert scheduler.load_operations(str(ops)) == 2
    assert scheduler.load_appointments(str(apps)) == 1

    scheduler.save_appointments(str(apps))
    assert apps.read_bytes() == b"10 6 2025 9 0 Caf\xe9\n"


def test_load_keeps_file_order_for_equal_times(tmp_path: Path) -> None:
    scheduler = _loaded(
        tmp_path,
        "10 6 2025 9 0 Filling\n"
        "9 6 2025 9 0 Extraction\n"
        "10 6 2025 9 0 Cleaning\n",
    )
    assert [a.operation.name for a in scheduler.appointments] == ["Extraction", "Filling", "Cleaning"]


def test_missing_appointments_file_means_empty_history(tmp_path: Path) -> None:
    scheduler = _loaded(tmp_path)
    assert scheduler.load_appointments(str(tmp_path / "nope.txt")) == 0
    assert scheduler.appointments == []


def test_loading_appointments_before_operations_warns(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING):
        Scheduler().load_appointments(_write(tmp_path / "apps.txt", "10 6 2025 9 0 Cleaning\n"))
    assert "Operations should be loaded before appointments" in caplog.text


def test_save_then_reload_round_trip(tmp_path: Path) -> None:
    scheduler = _loaded(tmp_path)
    for args in [
        (12, 7, 2025, 15, 0, 2),
        (10, 6, 2025, 9, 0, 1),
        (10, 6, 2025, 9, 30, 2),
        (1, 1, 2030, 0, 0, 3),
    ]:
        assert scheduler.schedule_appointment(*args).ok

    path = str(tmp_path / "app_details.txt")
    scheduler.save_appointments(path)

    reloaded = _loaded(tmp_path)
    reloaded.load_appointments(path)

    assert Counter(reloaded.appointments) == Counter(scheduler.appointments)
    assert reloaded.appointments == scheduler.appointments


def test_saved_file_format(tmp_path: Path) -> None:
    scheduler = _loaded(tmp_path)
    scheduler.schedule_appointment(10, 6, 2025, 9, 30, 2)
    scheduler.schedule_appointment(10, 6, 2025, 9, 0, 1)

    path = tmp_path / "out.txt"
    scheduler.save_appointments(str(path))

    assert path.read_text(encoding="utf-8") == "10 6 2025 9 0 Cleaning\n10 6 2025 9 30 Filling\n"


def test_save_replaces_whole_file(tmp_path: Path) -> None:
    path = tmp_path / "app_details.txt"
    scheduler = _loaded(tmp_path, "10 6 2025 9 0 Cleaning\n11 6 2025 9 0 Cleaning\n")
    scheduler.appointments.pop()

    scheduler.save_appointments(str(path))

    assert path.read_text(encoding="utf-8") == "10 6 2025 9 0 Cleaning\n"
    assert [p.name for p in tmp_path.iterdir() if p.suffix == ".tmp"] == []


def test_save_failure_raises_persistence_error(tmp_path: Path) -> None:
    scheduler = _loaded(tmp_path)
    # A directory cannot be replaced by a file.
    target = tmp_path / "app_details.txt"
    target.mkdir()

    with pytest.raises(PersistenceError, match="Could not save appointments"):
        scheduler.save_appointments(str(target))

    assert [p.name for p in tmp_path.iterdir() if p.suffix == ".tmp"] == []
