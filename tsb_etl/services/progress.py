from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

"""Terminal progress for a run (TTY only).

A tqdm bar counts workbooks and shows running ok/failed/rows totals; inside a
workbook each branch sheet gets one status line. Nothing is drawn when stdout is
not a terminal.
"""

__all__ = [
    "ProgressTracker",
    "is_tty_enabled",
    "SheetProgressIndicator",
]


def is_tty_enabled() -> bool:
    return sys.stdout.isatty()


class ProgressTracker:
    """Workbook-level bar with ok/failed/rows counters."""

    def __init__(self, total_files: int, *, description: str = "Importing workbooks") -> None:
        self.description = description
        self.total_files = total_files
        self.current_file = 0
        self.succeeded = 0
        self.failed = 0
        self.rows = 0

        self.enabled = is_tty_enabled()
        self.pbar: TqdmType[Any] | None = None
        if self.enabled:
            self.pbar = tqdm(
                total=total_files,
                desc=description,
                unit="file",
                leave=True,
                position=0,
                ncols=80,
                ascii=True,
            )

    def start_file(self, file_path: Path) -> None:
        self.current_file += 1
        if self.pbar is not None:
            self.pbar.set_description(f"{self.description} ({file_path.name})")

    def finish_file(self, success: bool = True, rows: int = 0) -> None:
        if success:
            self.succeeded += 1
            self.rows += rows
        else:
            self.failed += 1
        if self.pbar is None:
            return
        self.pbar.set_description(self.description)
        self.pbar.set_postfix(ok=self.succeeded, failed=self.failed, rows=self.rows)
        self.pbar.update(1)

    def close(self) -> None:
        if self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressTracker:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()


class SheetProgressIndicator:
    """One line per branch sheet: "  [i/n] <code> <rows> HD rows".

    Sheets are parsed in well under a second, so a nested bar would only flicker.
    """

    def __init__(self, file_name: str, total_sheets: int) -> None:
        self.file_name = file_name
        self.total_sheets = total_sheets
        self.current_sheet = 0
        self.enabled = is_tty_enabled()
        self._code = ""

    def start_sheet(self, sheet_name: str) -> None:
        self.current_sheet += 1
        self._code = sheet_name

    def finish_sheet(self, success: bool = True, rows_processed: int = 0) -> None:
        if not self.enabled:
            return
        prefix = f"  [{self.current_sheet}/{self.total_sheets}] {self._code}"
        if success:
            print(f"{prefix} {rows_processed} HD rows")
        else:
            print(f"{prefix} skipped")
