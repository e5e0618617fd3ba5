# Shared pytest fixtures
from __future__ import annotations

import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pandas as pd
import pytest

from tsb_etl.excel.fields import (
    COMPANY_CODE_LABEL,
    COMPANY_NAME_ANCHOR,
    COMPANY_TYPE_LABEL,
    DEFAULT_CLAIM_COLUMN_OFFSETS,
    FIELD_HEADER_VARIANTS,
)
from tsb_etl.logging.init import reset_logging
from tsb_etl.models.financial_row import LABELED_FIELDS

# Real sheets are ~140 columns wide; the last fixed claim offset is 129
SHEET_WIDTH = 130
LABELED_START_COLUMN = 3

# Values chosen so that net_premium == 750000
DEFAULT_VALUES: dict[str, float] = {
    "gross_written_premium": 1_000_000,
    "ceded_to_reinsurer": -200_000,
    "transferred_to_sgk": -50_000,
    "unearned_premium_reserve": -300_000,
    "previous_unearned_premium_reserve": 250_000,
    "gross_paid_claims": -400_000,
    "reinsurer_share_paid_claims": 100_000,
    "incurred_claims": -120_000,
    "unreported_claims": -30_000,
    "discount_provision": 5_000,
    "reinsurer_share_incurred": 20_000,
    "reinsurer_share_unreported": 6_000,
}


def company(name: str, code: Any, company_type: str = "HD", **values: Any) -> dict[str, Any]:
    merged = dict(DEFAULT_VALUES)
    merged.update(values)
    return {"name": name, "code": code, "type": company_type, "values": merged}


def sheet_grid(
    companies: list[dict[str, Any]],
    *,
    header_row: int = 5,
    variant: int = 0,
    after_total: list[dict[str, Any]] | None = None,
    width: int = SHEET_WIDTH,
) -> list[list[Any]]:
    """Build a branch sheet grid laid out like the regulator's workbooks.

    variant 0 uses the semicolon-terminated labels, variant 1 the bare labels.
    """
    grid: list[list[Any]] = []
    for i in range(header_row):
        grid.append([f"Gelir Tablosu başlık {i}"] + [None] * (width - 1))

    header: list[Any] = [None] * width
    header[0] = COMPANY_NAME_ANCHOR
    header[1] = COMPANY_CODE_LABEL
    header[2] = COMPANY_TYPE_LABEL
    for i, field in enumerate(LABELED_FIELDS):
        header[LABELED_START_COLUMN + i] = FIELD_HEADER_VARIANTS[field][variant]
    grid.append(header)

    def data_row(c: dict[str, Any]) -> list[Any]:
        row: list[Any] = [None] * width
        row[0] = c["name"]
        row[1] = c["code"]
        row[2] = c["type"]
        for i, field in enumerate(LABELED_FIELDS):
            row[LABELED_START_COLUMN + i] = c["values"].get(field, 0)
        for field, column in DEFAULT_CLAIM_COLUMN_OFFSETS.items():
            if column < width:
                row[column] = c["values"].get(field, 0)
        return row

    for c in companies:
        grid.append(data_row(c))
    grid.append(["TOPLAM"] + [None] * (width - 1))
    for c in after_total or []:
        grid.append(data_row(c))
    return grid


def write_workbook(path: Path, sheets: dict[str, list[list[Any]]]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        for name, grid in sheets.items():
            pd.DataFrame(grid).to_excel(writer, sheet_name=name, header=False, index=False)
    return path


@pytest.fixture(autouse=True)
def _clean_logging():
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        monkeypatch.delenv("DATABASE_URL", raising=False)
        monkeypatch.delenv("PGDSN", raising=False)
        monkeypatch.delenv("DISABLE_DB_CONNECT", raising=False)
        monkeypatch.delenv("SUPPRESS_DB_WARNING", raising=False)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """source_directory: ./data
combined_output: ./output/combined_data.xlsx
branch_codes: ["701", "715", "760"]
database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: tsb
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def make_company() -> Callable[..., dict[str, Any]]:
    return company


@pytest.fixture()
def make_sheet() -> Callable[..., list[list[Any]]]:
    return sheet_grid


@pytest.fixture()
def make_workbook() -> Callable[[Path, dict[str, list[list[Any]]]], Path]:
    return write_workbook
