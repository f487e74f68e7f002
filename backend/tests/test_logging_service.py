"""Tests for the fetch audit log."""

import csv
from datetime import datetime

from market_intel.services.logging_service import FETCH_LOG_COLUMNS, FetchLogEntry, FetchLogService


def entry(dataset="suppliers", errors=0) -> FetchLogEntry:
    return FetchLogEntry(
        timestamp=datetime(2025, 6, 2, 15, 30),
        dataset=dataset,
        trigger="load",
        records=10,
        live_records=10 - errors,
        fallback_records=errors,
        errors=errors,
        duration_ms=1234.56,
    )


def test_header_written_once(tmp_path):
    service = FetchLogService(tmp_path)

    service.log_fetch(entry())
    service.log_fetch(entry(errors=2))

    with open(service.get_log_file("suppliers"), newline="") as f:
        rows = list(csv.reader(f))
    assert rows[0] == FETCH_LOG_COLUMNS
    assert len(rows) == 3
    assert rows[1] == ["2025-06-02T15:30:00", "suppliers", "load", "10", "10", "0", "0", "1234.6"]
    assert rows[2][6] == "2"


def test_one_file_per_dataset(tmp_path):
    service = FetchLogService(tmp_path)

    service.log_fetch(entry("news"))
    service.log_fetch(entry("weather"))

    assert service.get_log_file("news") == tmp_path / "news" / "fetches.csv"
    assert service.get_log_file("news").exists()
    assert service.get_log_file("weather").exists()


def test_write_failure_is_logged_not_raised(tmp_path, caplog):
    blocker = tmp_path / "blocked"
    blocker.write_text("not a directory")
    service = FetchLogService(blocker)

    service.log_fetch(entry())

    assert "Failed to log suppliers fetch" in caplog.text
