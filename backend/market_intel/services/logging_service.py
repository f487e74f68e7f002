"""Logging setup and per-dataset fetch audit log."""

import csv
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, Union
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Base logs directory
LOGS_BASE_DIR = Path(__file__).parent.parent.parent / "logs"

FETCH_LOG_COLUMNS = [
    'timestamp', 'dataset', 'trigger', 'records', 'live_records',
    'fallback_records', 'errors', 'duration_ms'
]


def configure_logging(level: str = "INFO", format: Optional[str] = None) -> None:
    """Install the root log handler.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format: Log record format string
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=format or DEFAULT_LOG_FORMAT,
    )


@dataclass
class FetchLogEntry:
    """Represents one dataset completion."""
    timestamp: datetime
    dataset: str
    trigger: str  # load, refresh, single
    records: int
    live_records: int
    fallback_records: int
    errors: int
    duration_ms: float


class FetchLogService:
    """Service for appending dataset fetch results to CSV audit files."""

    def __init__(self, log_dir: Optional[Union[str, Path]] = None):
        """Initialize the fetch log.

        Args:
            log_dir: Base directory; one subdirectory per dataset is created under it
        """
        self.log_dir = Path(log_dir) if log_dir else LOGS_BASE_DIR

    def get_log_file(self, dataset: str) -> Path:
        """Get the CSV path for a dataset."""
        return self.log_dir / dataset / "fetches.csv"

    def log_fetch(self, entry: FetchLogEntry) -> None:
        """Append a fetch entry to the dataset's log file.

        Args:
            entry: Fetch log entry to write
        """
        log_file = self.get_log_file(entry.dataset)

        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            # Check if file exists to determine if we need headers
            write_header = not log_file.exists()

            with open(log_file, 'a', newline='', encoding='utf-8') as f:
                writer = csv.writer(f)

                if write_header:
                    writer.writerow(FETCH_LOG_COLUMNS)

                writer.writerow([
                    entry.timestamp.isoformat(),
                    entry.dataset,
                    entry.trigger,
                    entry.records,
                    entry.live_records,
                    entry.fallback_records,
                    entry.errors,
                    f"{entry.duration_ms:.1f}",
                ])

            logger.debug(f"Logged {entry.dataset} fetch to {log_file}")

        except OSError as e:
            logger.error(f"Failed to log {entry.dataset} fetch: {e}")
