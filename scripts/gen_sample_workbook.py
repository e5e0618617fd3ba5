#!/usr/bin/env python3
"""Synthetic TSB workbook generator.

Writes a quarterly workbook laid out like the regulator's files so the ETL can be
run locally without real data:
- a few title rows, then the header row (anchor "Şirket Adı") at --header-row
- one row per company: name, code, type (mostly HD, some HS), labeled figures
- the unlabeled claim figures at the fixed claim-column offsets
- a TOPLAM footer row followed by a couple of note rows

Example:
  python scripts/gen_sample_workbook.py data/20244.xlsx --companies 40 --branches 701 715 760
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

from tsb_etl.excel.fields import (
    BRANCH_CODES,
    COMPANY_CODE_LABEL,
    COMPANY_NAME_ANCHOR,
    COMPANY_TYPE_LABEL,
    DEFAULT_CLAIM_COLUMN_OFFSETS,
    FIELD_HEADER_VARIANTS,
    TOTAL_ROW_MARKER,
)

LABELED_START_COLUMN = 3


def build_sheet_grid(
    rng: np.random.Generator,
    companies: int,
    header_row: int,
    non_hd_share: float = 0.2,
) -> list[list[Any]]:
    """Return one branch sheet as a list of rows (0-based grid)."""
    width = max(DEFAULT_CLAIM_COLUMN_OFFSETS.values()) + 1
    grid: list[list[Any]] = []
    for i in range(header_row):
        grid.append([f"Şirket Bazında Gelir Tablosu Detayları ({i + 1})"] + [None] * (width - 1))

    header: list[Any] = [None] * width
    header[0] = COMPANY_NAME_ANCHOR
    header[1] = COMPANY_CODE_LABEL
    header[2] = COMPANY_TYPE_LABEL
    for offset, variants in enumerate(FIELD_HEADER_VARIANTS.values()):
        header[LABELED_START_COLUMN + offset] = variants[0]
    grid.append(header)

    for n in range(companies):
        row: list[Any] = [None] * width
        row[0] = f"Örnek Sigorta A.Ş. {n + 1:03d}"
        row[1] = str(1000 + n)
        row[2] = "HS" if rng.random() < non_hd_share else "HD"
        premium = float(np.round(rng.uniform(1e5, 5e7), 2))
        # Signs follow the source: cessions and transfers are negative
        labeled = [
            premium,
            -premium * rng.uniform(0.05, 0.4),
            -premium * rng.uniform(0.0, 0.02),
            -premium * rng.uniform(0.2, 0.5),
            premium * rng.uniform(0.15, 0.45),
            premium * rng.uniform(0.01, 0.1),
            -premium * rng.uniform(0.01, 0.1),
            premium * rng.uniform(0.0, 0.01),
            -premium * rng.uniform(0.0, 0.01),
            premium * rng.uniform(0.0, 0.05),
            -premium * rng.uniform(0.2, 0.7),
            premium * rng.uniform(0.01, 0.2),
        ]
        for offset, value in enumerate(labeled):
            row[LABELED_START_COLUMN + offset] = round(float(value), 2)
        for column in DEFAULT_CLAIM_COLUMN_OFFSETS.values():
            row[column] = round(float(-premium * rng.uniform(0.0, 0.3)), 2)
        grid.append(row)

    grid.append([f"{TOTAL_ROW_MARKER} / TOTAL"] + [None] * (width - 1))
    grid.append(["Kaynak: Türkiye Sigorta Birliği"] + [None] * (width - 1))
    return grid


def create_workbook(
    output_path: Path,
    branches: list[str],
    companies: int,
    header_row: int,
    seed: int = 42,
) -> None:
    rng = np.random.default_rng(seed)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with pd.ExcelWriter(output_path, engine="openpyxl") as writer:
        for code in branches:
            grid = build_sheet_grid(rng, companies, header_row)
            pd.DataFrame(grid).to_excel(writer, sheet_name=code, header=False, index=False)
    print(f"Created workbook: {output_path}")
    print(f"  Sheets: {len(branches)}")
    print(f"  Companies per sheet: {companies}")


def main() -> int:
    parser = argparse.ArgumentParser(description="Generate a synthetic TSB quarterly workbook")
    parser.add_argument("output", type=Path, help="Output path, e.g. data/20244.xlsx")
    parser.add_argument("--companies", type=int, default=30, help="Companies per sheet (default: 30)")
    parser.add_argument(
        "--branches",
        nargs="+",
        default=list(BRANCH_CODES),
        help="Branch-code sheets to write (default: all)",
    )
    parser.add_argument("--header-row", type=int, default=5, help="0-based header row (default: 5)")
    parser.add_argument("--seed", type=int, default=42, help="Random seed (default: 42)")
    args = parser.parse_args()

    if args.companies <= 0:
        print("Error: --companies must be positive", file=sys.stderr)
        return 1
    if not 0 <= args.header_row < 30:
        print("Error: --header-row must be within the first 30 rows", file=sys.stderr)
        return 1

    create_workbook(args.output, args.branches, args.companies, args.header_row, args.seed)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
