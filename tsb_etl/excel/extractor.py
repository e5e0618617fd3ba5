from __future__ import annotations

import numbers
from collections.abc import Mapping, Sequence
from typing import Any

from ..models.financial_row import FinancialRow
from ..services.net_metrics import compute_net_metrics
from .fields import (
    COMPANY_CODE_FALLBACK_INDEX,
    COMPANY_CODE_LABEL,
    COMPANY_TYPE_FALLBACK_INDEX,
    COMPANY_TYPE_LABEL,
    DEFAULT_CLAIM_COLUMN_OFFSETS,
    FIELD_HEADER_VARIANTS,
    RETAINED_COMPANY_TYPE,
    TOTAL_ROW_MARKER,
    parse_number,
)
from .header import HeaderInfo

"""Row extraction & field mapping for a single branch sheet.

Walks the data rows below the header and turns every retained company row into a
FinancialRow. Rules:
- rows whose first cell is blank or not text are separator rows and are skipped
- the first row whose first cell contains TOPLAM ends the walk (summary footer)
- only rows whose company type equals the retained type ("HD") are emitted
- labeled figures use FIELD_HEADER_VARIANTS, unlabeled claim figures use fixed offsets
"""

__all__ = [
    "extract_rows",
    "resolve_field_columns",
]


def resolve_field_columns(columns: Mapping[str, int]) -> dict[str, int]:
    """Map each labeled field to a column index using the first header variant present.

    Fields with no matching header are omitted (their value extracts as 0).
    """
    resolved: dict[str, int] = {}
    for field_name, variants in FIELD_HEADER_VARIANTS.items():
        for label in variants:
            if label in columns:
                resolved[field_name] = columns[label]
                break
    return resolved


def _cell(row: Sequence[Any], index: int) -> Any:
    return row[index] if 0 <= index < len(row) else None


def _company_code(value: Any) -> str:
    if value is None or isinstance(value, bool):
        return ""
    if isinstance(value, numbers.Real) and float(value).is_integer():
        # Excel stores numeric codes as floats (e.g. 12.0)
        return str(int(value))
    return str(value).strip()


def extract_rows(
    grid: Sequence[Sequence[Any]],
    header: HeaderInfo,
    branch_code: str,
    period: str,
    *,
    company_type: str = RETAINED_COMPANY_TYPE,
    claim_column_offsets: Mapping[str, int] | None = None,
) -> list[FinancialRow]:
    """Extract retained company rows from ``grid`` below ``header``.

    Parameters
    ----------
    grid: sheet cells, 0-based rows/columns, blanks already normalized to ""
    header: resolved header row (see excel.header.resolve_header)
    branch_code: sheet name, stored on every row
    period: YYYYQ token, stored on every row
    company_type: only rows whose type cell equals this value are kept
    claim_column_offsets: field -> column index for unlabeled claim figures
    """
    offsets = DEFAULT_CLAIM_COLUMN_OFFSETS if claim_column_offsets is None else claim_column_offsets
    type_index = header.columns.get(COMPANY_TYPE_LABEL, COMPANY_TYPE_FALLBACK_INDEX)
    code_index = header.columns.get(COMPANY_CODE_LABEL, COMPANY_CODE_FALLBACK_INDEX)
    field_columns = resolve_field_columns(header.columns)

    result: list[FinancialRow] = []
    for row in grid[header.row_index + 1:]:
        first = _cell(row, 0)
        if not isinstance(first, str) or not first.strip():
            continue
        if TOTAL_ROW_MARKER in first:
            break
        if _cell(row, type_index) != company_type:
            continue

        raw: dict[str, float] = {
            name: parse_number(_cell(row, index)) for name, index in field_columns.items()
        }
        for name, index in offsets.items():
            raw[name] = parse_number(_cell(row, index))

        result.append(
            FinancialRow(
                company_name=first.strip(),
                company_code=_company_code(_cell(row, code_index)),
                company_type=company_type,
                branch_code=branch_code,
                period=period,
                **raw,
                **compute_net_metrics(raw),
            )
        )
    return result
