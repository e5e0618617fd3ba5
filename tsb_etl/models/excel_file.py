from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path

"""ExcelFile and FileStatus: per-workbook processing state."""


class FileStatus(Enum):
    """pending -> processing -> (success | failed)"""
    PENDING = "pending"
    PROCESSING = "processing"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class ExcelFile:
    """One quarterly workbook as seen by the orchestrator."""
    path: Path
    name: str
    period: str | None = None            # YYYYQ token from the file name
    start_time: datetime | None = None
    end_time: datetime | None = None
    status: FileStatus = FileStatus.PENDING
    total_rows: int = 0                  # extracted HD rows
    skipped_sheets: int = 0              # missing sheets or sheets without a header
    error: str | None = None

    @property
    def elapsed_seconds(self) -> float:
        if self.start_time is None or self.end_time is None:
            return 0.0
        return (self.end_time - self.start_time).total_seconds()
