from __future__ import annotations

from collections import Counter
from datetime import UTC, datetime
from pathlib import Path

from ..models.error_record import ErrorRecord

"""Run-scoped error log.

Records collect in memory while workbooks are processed and are appended as JSON
Lines to logs/errors-YYYYMMDD-HHMMSS.log (UTC) on flush. A run without errors
leaves no file behind.
"""

__all__ = [
    "ErrorRecord",
    "ErrorLogBuffer",
]

LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"


class ErrorLogBuffer:

    def __init__(self, logs_dir: Path | None = None) -> None:
        self._logs_dir = LOGS_DIR if logs_dir is None else logs_dir
        self._pending: list[ErrorRecord] = []
        self._file_path: Path | None = None
        # survives flush() so the run summary can report every record
        self.counts: Counter[str] = Counter()

    @property
    def file_path(self) -> Path:
        """Fixed on first use; later flushes of the same run append to it."""
        if self._file_path is None:
            started = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self._logs_dir / f"errors-{started}.log"
        return self._file_path

    def append(self, record: ErrorRecord) -> None:
        self._pending.append(record)
        self.counts[record.error_type] += 1

    def __len__(self) -> int:
        return len(self._pending)

    def describe_counts(self) -> str:
        """``"PERIOD_ERROR=1 WORKBOOK_READ_ERROR=2"`` (sorted by type)."""
        return " ".join(f"{kind}={n}" for kind, n in sorted(self.counts.items()))

    def flush(self) -> Path | None:
        """Append pending records; returns the log path, or None if nothing was pending."""
        if not self._pending:
            return None
        path = self.file_path
        path.parent.mkdir(parents=True, exist_ok=True)
        lines = "".join(record.to_json_line() + "\n" for record in self._pending)
        with path.open("a", encoding="utf-8") as f:
            f.write(lines)
        self._pending.clear()
        return path
