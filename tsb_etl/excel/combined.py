from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import pandas as pd

from ..models.financial_row import FinancialRow, NET_FIELDS, PQ_FIELDS, PYE_FIELDS, RAW_FIELDS
from ..models.period import Period, PeriodError
from ..services.ratios import loss_ratio, net_ultimate
from .fields import parse_number
from .reader import WorkbookReadError

"""Combined dataset workbook (combined_data.xlsx).

One sheet holding every enriched row across periods, with the Turkish column
labels analysts already know. The same file is read back as the "existing rows"
input of the next run's enrichment.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "COMBINED_SHEET",
    "COLUMN_LABELS",
    "write_combined",
    "read_combined",
]

COMBINED_SHEET = "Combined Data"

COLUMN_LABELS: dict[str, str] = {
    "company_name": "Şirket Adı",
    "company_code": "Şirket Kodu",
    "company_type": "Şirket Tipi",
    "gross_written_premium": "Brüt Yazılan Primler (+/-)",
    "ceded_to_reinsurer": "Reasüröre Devredilen Primler (+/-)",
    "transferred_to_sgk": "SGK ya Aktarılan Primler (-)",
    "unearned_premium_reserve": "Kazanılmamış Primler Karşılığı (+/-)",
    "previous_unearned_premium_reserve": "Devreden Kazanılmamış Primler Karşılığı (+/-)",
    "reinsurer_share_unearned": "Kazanılmamış Primler Karşılığında Reasürör Payı (+/-)",
    "previous_reinsurer_share_unearned": "Devreden Kazanılmamış Primler Karşılığında Reasürör Payı (+/-)",
    "sgk_share_unearned": "Kazanılmamış Primler Karşılığında SGK Payı (+/-)",
    "previous_sgk_share_unearned": "Devreden Kazanılmamış Primler Karşılığında SGK Payı (+/-)",
    "technical_investment_income": "Teknik Olmayan Bölümden Aktarılan Yatırım Gelirleri",
    "gross_paid_claims": "Brüt Ödenen Tazminatlar (+/-)",
    "reinsurer_share_paid_claims": "Ödenen Tazminatlarda Reasürör Payı (+/-)",
    "incurred_claims": "Tahakkuk Eden Muallak Tazminat",
    "unreported_claims": "Raporlanmayan Muallak Tazminat",
    "discount_provision": "Nakit Akışlarından Kaynaklanan İskonto",
    "reinsurer_share_incurred": "Tahakkuk Eden Muallak Tazminat Reasürör Payı",
    "reinsurer_share_unreported": "Raporlanmayan Muallak Tazminat Reasürör Payı",
    "net_premium": "Net Prim",
    "net_unearned_reserve": "Net KPK",
    "net_payment": "Net Ödeme",
    "net_unreported": "Net Raporlanmayan",
    "net_incurred": "Net Tahakkuk Eden",
    "net_earned_premium": "Net EP",
    "pye_net_payment": "PYE Net Ödeme",
    "pye_net_unreported": "PYE Net Raporlanmayan",
    "pye_net_incurred": "PYE Net Tahakkuk Eden",
    "pye_net_earned_premium": "PYE Net EP",
    "pq_net_payment": "PQ Net Ödeme",
    "pq_net_unreported": "PQ Net Raporlanmayan",
    "pq_net_incurred": "PQ Net Tahakkuk Eden",
    "pq_net_earned_premium": "PQ Net EP",
    "branch_code": "Hazine Kodu",
    "period": "Dönem",
}
# Derived on export only, ignored on reload
NET_ULTIMATE_LABEL = "Net Ultimate"
LOSS_RATIO_LABEL = "Loss Ratio"


def _to_record(row: FinancialRow) -> dict[str, Any]:
    data = row.to_dict()
    record = {label: data[name] for name, label in COLUMN_LABELS.items()}
    record[NET_ULTIMATE_LABEL] = net_ultimate(row)
    record[LOSS_RATIO_LABEL] = loss_ratio(row)
    return record


def write_combined(rows: Iterable[FinancialRow], path: Path) -> Path:
    """Write ``rows`` to a single-sheet workbook at ``path`` (overwrites)."""
    records = [_to_record(r) for r in rows]
    columns = [*COLUMN_LABELS.values(), NET_ULTIMATE_LABEL, LOSS_RATIO_LABEL]
    df = pd.DataFrame.from_records(records, columns=columns)
    path.parent.mkdir(parents=True, exist_ok=True)
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name=COMBINED_SHEET, index=False)
    logger.info("combined export rows=%d path=%s", len(records), path)
    return path


def _text(value: Any) -> str:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _optional_number(value: Any) -> float | None:
    if value is None or value == "":
        return None
    if isinstance(value, float) and pd.isna(value):
        return None
    return parse_number(value)


def read_combined(path: Path) -> list[FinancialRow]:
    """Load a combined workbook back into FinancialRows.

    Returns an empty list when ``path`` does not exist. Rows without a company name
    or with an invalid period token are dropped with a warning.

    Raises:
        WorkbookReadError: the file exists but cannot be read
    """
    if not path.exists():
        logger.info("no existing combined workbook at %s, starting fresh", path)
        return []
    try:
        df = pd.read_excel(path, sheet_name=0, dtype=object)
    except Exception as e:
        raise WorkbookReadError(f"cannot read combined workbook {path}: {e}") from e

    rows: list[FinancialRow] = []
    dropped = 0
    for record in df.to_dict(orient="records"):
        values = {name: record.get(label) for name, label in COLUMN_LABELS.items()}
        name = _text(values["company_name"])
        period = _text(values["period"])
        try:
            Period.parse(period)
        except PeriodError:
            dropped += 1
            continue
        if not name:
            dropped += 1
            continue
        numbers = {f: parse_number(values[f]) for f in (*RAW_FIELDS, *NET_FIELDS)}
        companions = {f: _optional_number(values[f]) for f in (*PYE_FIELDS, *PQ_FIELDS)}
        rows.append(
            FinancialRow(
                company_name=name,
                company_code=_text(values["company_code"]),
                company_type=_text(values["company_type"]),
                branch_code=_text(values["branch_code"]),
                period=period,
                **numbers,
                **companions,
            )
        )
    if dropped:
        logger.warning("combined workbook %s: dropped %d unusable rows", path.name, dropped)
    logger.info("loaded %d existing rows from %s", len(rows), path.name)
    return rows
