from __future__ import annotations

import logging
from pathlib import Path

import pytest

from tsb_etl.excel.reader import WorkbookReadError
from tsb_etl.models.config_models import ExtractionConfig
from tsb_etl.models.period import Period, PeriodError
from tsb_etl.models.sheet_process import SheetStatus
from tsb_etl.services.workbook_parser import parse_sheet, parse_workbook

CODES = ExtractionConfig(branch_codes=("701", "715", "760"))


def test_parse_sheet_extracted(make_sheet, make_company):
    sheet = parse_sheet(make_sheet([make_company("A Sigorta", "1")]), "715", "20244")
    assert sheet.status is SheetStatus.EXTRACTED
    assert sheet.header_row == 5
    assert sheet.extracted_rows == 1
    assert sheet.warnings == ()
    assert not sheet.skipped


def test_parse_sheet_header_not_found(caplog):
    grid = [["no anchor here"]] * 5
    with caplog.at_level(logging.WARNING):
        sheet = parse_sheet(grid, "715", "20244")
    assert sheet.status is SheetStatus.HEADER_NOT_FOUND
    assert sheet.skipped
    assert sheet.rows == []
    assert "header" in caplog.text


def test_parse_sheet_warns_on_narrow_layout(make_sheet, make_company, caplog):
    grid = make_sheet([make_company("A Sigorta", "1")], width=60)
    with caplog.at_level(logging.WARNING):
        sheet = parse_sheet(grid, "715", "20244")
    assert sheet.status is SheetStatus.EXTRACTED
    assert len(sheet.warnings) == 1
    assert "claim offset" in caplog.text


def test_missing_sheet_does_not_stop_other_sheets(tmp_path: Path, make_workbook, make_sheet, make_company, caplog):
    path = make_workbook(
        tmp_path / "20244.xlsx",
        {
            "701": make_sheet([make_company("A Sigorta", "1"), make_company("B Sigorta", "2")]),
            "715": make_sheet([make_company("A Sigorta", "1")], header_row=2),
        },
    )
    with caplog.at_level(logging.INFO):
        result = parse_workbook(path, "20244", CODES, file_name=path.name)

    assert result.period == "20244"
    by_code = {s.sheet_name: s for s in result.sheets}
    assert [s.sheet_name for s in result.sheets] == ["701", "715", "760"]
    assert by_code["760"].status is SheetStatus.MISSING
    assert by_code["760"].rows == []
    assert by_code["701"].extracted_rows == 2
    assert by_code["715"].extracted_rows == 1
    assert len(result.rows) == 3
    assert result.skipped_sheets == 1
    assert "sheet=760 not found" in caplog.text
    assert "sheet=701 rows=2" in caplog.text


def test_header_not_found_sheet_is_skipped_and_others_continue(tmp_path: Path, make_workbook, make_sheet, make_company):
    path = make_workbook(
        tmp_path / "20244.xlsx",
        {
            "701": [["bozuk sayfa"], ["veri yok"]],
            "715": make_sheet([make_company("A Sigorta", "1")]),
        },
    )
    result = parse_workbook(path, Period(2024, 4), CODES)
    statuses = {s.sheet_name: s.status for s in result.sheets}
    assert statuses == {
        "701": SheetStatus.HEADER_NOT_FOUND,
        "715": SheetStatus.EXTRACTED,
        "760": SheetStatus.MISSING,
    }
    assert [r.branch_code for r in result.rows] == ["715"]
    assert result.skipped_sheets == 2


def test_rows_roundtrip_through_xlsx_match_in_memory_extraction(tmp_path: Path, make_workbook, make_sheet, make_company):
    grid = make_sheet([make_company("A Sigorta", "1001"), make_company("B Sigorta", "1002")])
    path = make_workbook(tmp_path / "20251.xlsx", {"715": grid})
    from_file = parse_workbook(path.read_bytes(), "20251", CODES).rows
    in_memory = parse_sheet(grid, "715", "20251").rows
    assert from_file == in_memory


def test_parse_workbook_is_deterministic(tmp_path: Path, make_workbook, make_sheet, make_company):
    path = make_workbook(tmp_path / "20251.xlsx", {"715": make_sheet([make_company("A", "1")])})
    assert parse_workbook(path, "20251", CODES).rows == parse_workbook(path, "20251", CODES).rows


def test_parse_workbook_invalid_period(tmp_path: Path, make_workbook, make_sheet, make_company):
    path = make_workbook(tmp_path / "x.xlsx", {"715": make_sheet([make_company("A", "1")])})
    with pytest.raises(PeriodError):
        parse_workbook(path, "2024Q4", CODES)


def test_parse_workbook_unreadable():
    with pytest.raises(WorkbookReadError):
        parse_workbook(b"garbage", "20244", CODES)
