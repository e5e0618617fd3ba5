from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import replace

from ..models.financial_row import COMPANION_SOURCE_FIELDS, FinancialRow
from ..models.period import Period

"""Cross-period enrichment.

Batch operation over the whole accumulated dataset: rows are de-duplicated on
(company_name, branch_code, period), then each row receives the net figures of its
previous-year-end (PYE) and previous-quarter (PQ) row for the same company and
branch. A companion that does not exist leaves the PYE_*/PQ_* fields as None,
which means "no comparable period", not zero.

Existing rows (e.g. reloaded from the combined workbook) are passed in explicitly;
nothing is merged behind the caller's back.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "deduplicate",
    "enrich",
    "merge_and_enrich",
    "pye_period",
    "pq_period",
]

RowKey = tuple[str, str, str]


def pye_period(period: str) -> str:
    """Previous-year-end token: "20251" -> "20244", "20254" -> "20244"."""
    return Period.parse(period).previous_year_end().token


def pq_period(period: str) -> str:
    """Previous-quarter token: "20251" -> "20244", "20253" -> "20252"."""
    return Period.parse(period).previous_quarter().token


def deduplicate(rows: Iterable[FinancialRow]) -> list[FinancialRow]:
    """Collapse rows sharing a key; the last occurrence wins.

    Output keeps the position of each key's first appearance so that re-runs are
    deterministic.
    """
    index: dict[RowKey, FinancialRow] = {}
    for row in rows:
        index[row.key] = row
    return list(index.values())


def _companions(prefix: str, source: FinancialRow | None) -> dict[str, float | None]:
    return {
        f"{prefix}_{name}": (getattr(source, name) if source is not None else None)
        for name in COMPANION_SOURCE_FIELDS
    }


def enrich(rows: Iterable[FinancialRow]) -> list[FinancialRow]:
    """De-duplicate and attach PYE / PQ companion figures to every row.

    Base fields are never recomputed; only the eight companion fields change.
    """
    all_rows = list(rows)
    unique = deduplicate(all_rows)
    index: dict[RowKey, FinancialRow] = {row.key: row for row in unique}

    enriched: list[FinancialRow] = []
    pye_hits = 0
    pq_hits = 0
    for row in unique:
        pye = index.get((row.company_name, row.branch_code, pye_period(row.period)))
        pq = index.get((row.company_name, row.branch_code, pq_period(row.period)))
        pye_hits += pye is not None
        pq_hits += pq is not None
        enriched.append(replace(row, **_companions("pye", pye), **_companions("pq", pq)))

    logger.info(
        "enrich rows=%d duplicates_removed=%d pye=%d pq=%d",
        len(enriched),
        len(all_rows) - len(unique),
        pye_hits,
        pq_hits,
    )
    return enriched


def merge_and_enrich(
    existing: Iterable[FinancialRow], new: Iterable[FinancialRow]
) -> list[FinancialRow]:
    """Enrich the union of previously stored rows and freshly extracted rows.

    New rows come last so they replace stored rows with the same key.
    """
    return enrich([*existing, *new])
