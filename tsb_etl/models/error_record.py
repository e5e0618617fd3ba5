from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord: one JSON object per line in logs/errors-*.log.

Records either point at a branch sheet of a workbook or, with sheet="<FILE_LEVEL>"
and row=-1, at the workbook as a whole (bad period in the file name, unreadable
workbook, failed transaction).

Contract: tsb_etl/contracts/error_log_schema.json
"""

__all__ = [
    "FILE_LEVEL",
    "UNKNOWN_ROW",
    "ErrorRecord",
]

FILE_LEVEL = "<FILE_LEVEL>"
UNKNOWN_ROW = -1


def _utc_timestamp() -> str:
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class ErrorRecord:
    """
    Attributes:
        timestamp: ISO8601 UTC with 'Z' suffix
        file: workbook file name
        sheet: branch code, or FILE_LEVEL
        row: 1-based sheet row, UNKNOWN_ROW when not applicable
        error_type: UPPER_SNAKE_CASE classification
        message: human readable description
    """
    timestamp: str
    file: str
    sheet: str
    row: int
    error_type: str
    message: str

    @staticmethod
    def create(file: str, sheet: str, row: int, error_type: str, message: str) -> ErrorRecord:
        return ErrorRecord(_utc_timestamp(), file, sheet, row, error_type, message)

    @classmethod
    def for_file(cls, file: str, error_type: str, message: str) -> ErrorRecord:
        return cls.create(file, FILE_LEVEL, UNKNOWN_ROW, error_type, message)

    @classmethod
    def for_sheet(cls, file: str, branch_code: str, error_type: str, message: str) -> ErrorRecord:
        return cls.create(file, branch_code, UNKNOWN_ROW, error_type, message)

    @property
    def is_file_level(self) -> bool:
        return self.sheet == FILE_LEVEL

    def to_json_line(self) -> str:
        # Turkish company names stay readable in the log
        return json.dumps(asdict(self), ensure_ascii=False)
