from __future__ import annotations

import io
from collections.abc import Iterable
from pathlib import Path
from typing import Any, Union

import pandas as pd

"""Workbook reading and sheet location.

Sheets are read raw (no header inference) and turned into plain cell grids:
list of rows, each a list of cell values, with blank cells normalized to "".
Header detection is left to excel.header because its position varies by vintage.
"""

__all__ = [
    "SheetGrid",
    "WorkbookReadError",
    "read_workbook",
    "locate_sheet",
    "dataframe_to_grid",
]

SheetGrid = list[list[Any]]
WorkbookSource = Union[Path, str, bytes]


class WorkbookReadError(Exception):
    """Raised when workbook bytes cannot be opened as an xlsx file."""


def _blank_to_empty(value: Any) -> Any:
    if value is None:
        return ""
    try:
        if pd.isna(value):
            return ""
    except (TypeError, ValueError):  # pragma: no cover - non scalar cell
        return value
    return value


def dataframe_to_grid(df: pd.DataFrame) -> SheetGrid:
    """Convert a header-less DataFrame into a 0-based cell grid."""
    return [
        [_blank_to_empty(v) for v in row]
        for row in df.astype(object).itertuples(index=False, name=None)
    ]


def read_workbook(
    source: WorkbookSource, target_sheets: Iterable[str] | None = None
) -> dict[str, SheetGrid]:
    """Read a workbook returning cell grids keyed by sheet name.

    Parameters
    ----------
    source: path to an .xlsx file or its raw bytes
    target_sheets: restrict to these sheet names (None = every sheet)

    Raises
    ------
    WorkbookReadError: file missing, unreadable or not a spreadsheet
    """
    wanted = None if target_sheets is None else {str(s) for s in target_sheets}
    handle: Any = io.BytesIO(source) if isinstance(source, (bytes, bytearray)) else source
    try:
        xls = pd.ExcelFile(handle)
    except Exception as e:
        raise WorkbookReadError(f"cannot open workbook: {e}") from e

    grids: dict[str, SheetGrid] = {}
    with xls:
        for name in xls.sheet_names:
            sheet_name = str(name)
            if wanted is not None and sheet_name not in wanted:
                continue
            try:
                # keep_default_na=False: blank cells stay "" and strings such as "NA" survive
                df = xls.parse(name, header=None, keep_default_na=False)
            except Exception as e:
                raise WorkbookReadError(f"cannot read sheet {sheet_name}: {e}") from e
            grids[sheet_name] = dataframe_to_grid(df)
    return grids


def locate_sheet(workbook: dict[str, SheetGrid], sheet_name: str) -> SheetGrid | None:
    """Return the grid for ``sheet_name`` or None when the workbook omits it."""
    return workbook.get(str(sheet_name))
