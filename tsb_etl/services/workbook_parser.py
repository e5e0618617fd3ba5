from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from ..excel.extractor import extract_rows, resolve_field_columns
from ..excel.header import check_offset_alignment, resolve_header
from ..excel.reader import WorkbookSource, locate_sheet, read_workbook
from ..models.config_models import ExtractionConfig
from ..models.financial_row import FinancialRow
from ..models.period import Period
from ..models.sheet_process import SheetProcess, SheetStatus
from .progress import SheetProgressIndicator

"""Period/workbook orchestration.

Runs locate -> header -> extract (-> net metrics) for every branch-code sheet of
one workbook, in branch-code order, and concatenates the results. A sheet that is
missing or has no recognizable header is skipped with a warning; it never stops
the remaining sheets.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "WorkbookParseResult",
    "parse_sheet",
    "parse_workbook",
]


@dataclass(frozen=True)
class WorkbookParseResult:
    period: str
    sheets: list[SheetProcess] = field(default_factory=list)

    @property
    def rows(self) -> list[FinancialRow]:
        out: list[FinancialRow] = []
        for sheet in self.sheets:
            out.extend(sheet.rows)
        return out

    @property
    def skipped_sheets(self) -> int:
        return sum(1 for s in self.sheets if s.skipped)


def parse_sheet(
    grid: Sequence[Sequence[Any]],
    sheet_name: str,
    period: str,
    extraction: ExtractionConfig | None = None,
) -> SheetProcess:
    """Resolve the header of one branch sheet and extract its retained rows."""
    cfg = extraction or ExtractionConfig()
    header = resolve_header(grid, anchor=cfg.header_anchor, scan_limit=cfg.header_scan_limit)
    if header is None:
        logger.warning(
            "sheet=%s header %r not found in first %d rows, skipped",
            sheet_name,
            cfg.header_anchor,
            cfg.header_scan_limit,
        )
        return SheetProcess(
            sheet_name=sheet_name,
            status=SheetStatus.HEADER_NOT_FOUND,
            error=f"header anchor {cfg.header_anchor!r} not found",
        )

    problems = check_offset_alignment(
        header, cfg.claim_column_offsets, resolve_field_columns(header.columns)
    )
    for problem in problems:
        logger.warning("sheet=%s claim offset check: %s", sheet_name, problem)

    rows = extract_rows(
        grid,
        header,
        branch_code=sheet_name,
        period=period,
        company_type=cfg.company_type,
        claim_column_offsets=cfg.claim_column_offsets,
    )
    logger.debug("sheet=%s header_row=%d labels=%d", sheet_name, header.row_index, len(header.columns))
    return SheetProcess(
        sheet_name=sheet_name,
        status=SheetStatus.EXTRACTED,
        rows=rows,
        header_row=header.row_index,
        warnings=tuple(problems),
    )


def parse_workbook(
    source: WorkbookSource,
    period: str | Period,
    extraction: ExtractionConfig | None = None,
    *,
    file_name: str = "<workbook>",
) -> WorkbookParseResult:
    """Parse every branch-code sheet of one workbook for one reporting period.

    Raises
    ------
    WorkbookReadError: the workbook itself cannot be read (file-level failure)
    PeriodError: ``period`` is not a valid YYYYQ token
    """
    cfg = extraction or ExtractionConfig()
    token = period.token if isinstance(period, Period) else Period.parse(period).token
    workbook = read_workbook(source, target_sheets=cfg.branch_codes)

    present = [code for code in cfg.branch_codes if code in workbook]
    indicator = SheetProgressIndicator(file_name=file_name, total_sheets=len(present))

    sheets: list[SheetProcess] = []
    for code in cfg.branch_codes:
        grid = locate_sheet(workbook, code)
        if grid is None:
            logger.warning("sheet=%s not found in %s", code, file_name)
            sheets.append(
                SheetProcess(sheet_name=code, status=SheetStatus.MISSING, error="sheet not found")
            )
            continue
        indicator.start_sheet(code)
        sheet = parse_sheet(grid, code, token, cfg)
        indicator.finish_sheet(success=not sheet.skipped, rows_processed=sheet.extracted_rows)
        if not sheet.skipped:
            logger.info("sheet=%s rows=%d", code, sheet.extracted_rows)
        sheets.append(sheet)

    result = WorkbookParseResult(period=token, sheets=sheets)
    logger.info(
        "file=%s period=%s rows=%d sheets=%d skipped_sheets=%d",
        file_name,
        token,
        len(result.rows),
        len(present),
        result.skipped_sheets,
    )
    return result
