from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .financial_row import FinancialRow

"""SheetProcess model: outcome of extracting one branch-code sheet."""

__all__ = [
    "SheetStatus",
    "SheetProcess",
]


class SheetStatus(Enum):
    """Per-sheet outcome.

    - EXTRACTED: header found, rows walked (zero retained rows is still EXTRACTED)
    - MISSING: workbook has no sheet with this branch code
    - HEADER_NOT_FOUND: anchor label absent from the scanned top rows
    """
    EXTRACTED = "extracted"
    MISSING = "missing"
    HEADER_NOT_FOUND = "header_not_found"


@dataclass(frozen=True)
class SheetProcess:
    sheet_name: str  # branch code
    status: SheetStatus
    rows: list[FinancialRow] = field(default_factory=list)
    header_row: int | None = None  # 0-based index of the header row
    warnings: tuple[str, ...] = ()  # layout warnings (offset alignment)
    error: str | None = None  # structural-absence reason

    @property
    def extracted_rows(self) -> int:
        return len(self.rows)

    @property
    def skipped(self) -> bool:
        return self.status is not SheetStatus.EXTRACTED
