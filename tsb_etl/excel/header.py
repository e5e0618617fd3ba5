from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from .fields import COMPANY_NAME_ANCHOR, HEADER_SCAN_LIMIT

"""Header row resolution for branch sheets.

The header row moves between file vintages but always sits near the top of the
sheet, so only the first HEADER_SCAN_LIMIT rows are scanned for the anchor label.
"""

__all__ = [
    "HeaderInfo",
    "resolve_header",
    "check_offset_alignment",
]


@dataclass(frozen=True)
class HeaderInfo:
    row_index: int  # 0-based grid row holding the header labels
    columns: dict[str, int]  # trimmed label -> column index (last duplicate wins)
    width: int  # number of cells in the header row


def resolve_header(
    grid: Sequence[Sequence[Any]],
    anchor: str = COMPANY_NAME_ANCHOR,
    scan_limit: int = HEADER_SCAN_LIMIT,
) -> HeaderInfo | None:
    """Locate the header row and build its label -> column index map.

    Returns None when no string cell containing ``anchor`` appears in the first
    ``scan_limit`` rows.
    """
    for row_index, row in enumerate(grid[:scan_limit]):
        if not any(isinstance(cell, str) and anchor in cell for cell in row):
            continue
        columns: dict[str, int] = {}
        for col_index, cell in enumerate(row):
            if cell is None:
                continue
            label = str(cell).strip()
            if label:
                columns[label] = col_index
        return HeaderInfo(row_index=row_index, columns=columns, width=len(row))
    return None


def check_offset_alignment(
    header: HeaderInfo,
    offsets: Mapping[str, int],
    labeled_columns: Mapping[str, int],
) -> list[str]:
    """Return human readable problems with the fixed claim-column offsets.

    Two structural checks: the header row must reach the largest offset, and no
    header-resolved field may sit on a column reserved for an unlabeled claim figure.
    An empty list means the layout looks as expected.
    """
    problems: list[str] = []
    if offsets:
        widest = max(offsets.values())
        if header.width <= widest:
            problems.append(
                f"header row has {header.width} columns but claim offset {widest} is expected"
            )
    reserved = {index: name for name, index in offsets.items()}
    for field_name, index in labeled_columns.items():
        if index in reserved:
            problems.append(
                f"labeled field {field_name} found at column {index} reserved for {reserved[index]}"
            )
    return problems
