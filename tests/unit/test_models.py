from __future__ import annotations

from dataclasses import FrozenInstanceError
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from tsb_etl.models import FinancialRow, SheetProcess, SheetStatus
from tsb_etl.models.excel_file import ExcelFile, FileStatus
from tsb_etl.models.financial_row import NET_FIELDS, PQ_FIELDS, PYE_FIELDS, RAW_FIELDS
from tsb_etl.models.processing_result import BatchStatsAccumulator, ProcessingResult


def _row() -> FinancialRow:
    return FinancialRow("A Sigorta", "1001", "HD", "715", "20244")


def test_financial_row_defaults():
    row = _row()
    assert all(getattr(row, f) == 0.0 for f in RAW_FIELDS + NET_FIELDS)
    assert all(getattr(row, f) is None for f in PYE_FIELDS + PQ_FIELDS)
    assert row.key == ("A Sigorta", "715", "20244")
    assert len(RAW_FIELDS) == 17 and len(NET_FIELDS) == 6 and len(PYE_FIELDS + PQ_FIELDS) == 8


def test_financial_row_is_immutable():
    with pytest.raises(FrozenInstanceError):
        _row().net_premium = 1.0  # type: ignore[misc]


def test_to_dict_contains_every_field():
    data = _row().to_dict()
    assert data["company_code"] == "1001"
    assert set(RAW_FIELDS + NET_FIELDS + PYE_FIELDS + PQ_FIELDS) <= set(data)


def test_sheet_process_properties():
    sheet = SheetProcess("715", SheetStatus.EXTRACTED, rows=[_row(), _row()])
    assert sheet.extracted_rows == 2 and not sheet.skipped
    missing = SheetProcess("760", SheetStatus.MISSING, error="sheet not found")
    assert missing.skipped and missing.rows == []


def test_excel_file_elapsed():
    start = datetime(2025, 1, 1, tzinfo=UTC)
    f = ExcelFile(Path("20244.xlsx"), "20244.xlsx", start_time=start, end_time=start + timedelta(seconds=3))
    assert f.elapsed_seconds == 3.0
    assert ExcelFile(Path("x.xlsx"), "x.xlsx").elapsed_seconds == 0.0
    assert ExcelFile(Path("x.xlsx"), "x.xlsx").status is FileStatus.PENDING


def test_processing_result_total_files():
    now = datetime.now(UTC)
    result = ProcessingResult(2, 1, 10, 0, 1, now, now, 0.0, 0.0)
    assert result.total_files == 3


def test_batch_stats_accumulator():
    acc = BatchStatsAccumulator()
    assert acc.get_stats() == (0, 0.0, 0.0)
    acc.add_batch_time(0.5)
    assert acc.get_stats() == (1, 0.5, 0.5)
    for t in (0.1, 0.2, 0.3, 0.4):
        acc.add_batch_time(t)
    total, avg, p95 = acc.get_stats()
    assert total == 5
    assert avg == pytest.approx(0.3)
    assert 0.4 <= p95 <= 0.5
