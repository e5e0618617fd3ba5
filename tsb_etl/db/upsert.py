from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from psycopg2.extras import execute_values

from ..models.financial_row import FinancialRow
from ..models.period import Period
from .schema import FINANCIAL_COLUMNS

"""Batched idempotent upserts into PostgreSQL.

All statements go through psycopg2.extras.execute_values. Re-running a period is
safe: companies are keyed on code, periods on the token and financial rows on
(company_id, branch_code, period) with last-write-wins updates.

Transaction boundaries (BEGIN / COMMIT / ROLLBACK) belong to the caller.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "BatchMetrics",
    "UpsertError",
    "UpsertResult",
    "upsert_periods",
    "upsert_companies",
    "upsert_financial_rows",
    "store_rows",
]

MetricsCallback = Callable[["BatchMetrics"], None]


class UpsertError(Exception):
    pass


@dataclass(frozen=True)
class BatchMetrics:
    """Timing of a single execute_values call."""
    batch_size: int
    elapsed_seconds: float
    start_time: float
    end_time: float


@dataclass(frozen=True)
class UpsertResult:
    upserted_rows: int
    skipped_rows: int = 0  # rows whose company could not be resolved


def _execute(
    cursor: Any,
    sql: str,
    rows: Sequence[Sequence[Any]],
    *,
    page_size: int,
    metrics_callback: MetricsCallback | None,
    fetch: bool = False,
) -> list[tuple[Any, ...]] | None:
    start_time = time.time()
    try:
        return execute_values(cursor, sql, rows, page_size=page_size, fetch=fetch)
    except Exception as e:
        raise UpsertError(str(e)) from e
    finally:
        end_time = time.time()
        if metrics_callback is not None:
            metrics_callback(
                BatchMetrics(
                    batch_size=len(rows),
                    elapsed_seconds=end_time - start_time,
                    start_time=start_time,
                    end_time=end_time,
                )
            )


def upsert_periods(
    cursor: Any,
    periods: Iterable[str],
    *,
    page_size: int = 1000,
    metrics_callback: MetricsCallback | None = None,
) -> int:
    """Ensure every period token exists as (period, year, quarter)."""
    values = []
    for token in sorted(set(periods)):
        p = Period.parse(token)
        values.append((p.token, p.year, p.quarter))
    if not values:
        return 0
    _execute(
        cursor,
        "INSERT INTO periods (period, year, quarter) VALUES %s ON CONFLICT (period) DO NOTHING",
        values,
        page_size=page_size,
        metrics_callback=metrics_callback,
    )
    return len(values)


def upsert_companies(
    cursor: Any,
    rows: Iterable[FinancialRow],
    *,
    page_size: int = 1000,
    metrics_callback: MetricsCallback | None = None,
) -> dict[str, int]:
    """Create-if-absent companies keyed by code and return code -> id.

    The latest name seen for a code is written back on conflict. Rows with an empty
    code are ignored here.
    """
    companies: dict[str, tuple[str, str, str]] = {}
    for row in rows:
        if row.company_code:
            companies[row.company_code] = (row.company_code, row.company_name, row.company_type)
    if not companies:
        return {}
    returned = _execute(
        cursor,
        "INSERT INTO companies (code, name, type) VALUES %s "
        "ON CONFLICT (code) DO UPDATE SET name = EXCLUDED.name, type = EXCLUDED.type "
        "RETURNING code, id",
        list(companies.values()),
        page_size=page_size,
        metrics_callback=metrics_callback,
        fetch=True,
    )
    return {str(code): int(company_id) for code, company_id in (returned or [])}


def upsert_financial_rows(
    cursor: Any,
    rows: Iterable[FinancialRow],
    company_ids: dict[str, int],
    *,
    page_size: int = 1000,
    metrics_callback: MetricsCallback | None = None,
) -> UpsertResult:
    """Upsert financial rows; rows whose company id is unknown are skipped."""
    # One statement cannot touch the same conflict key twice, so collapse first
    keyed: dict[tuple[int, str, str], tuple[Any, ...]] = {}
    skipped = 0
    for row in rows:
        company_id = company_ids.get(row.company_code) if row.company_code else None
        if company_id is None:
            skipped += 1
            continue
        data = row.to_dict()
        keyed[(company_id, row.branch_code, row.period)] = (
            company_id,
            row.branch_code,
            row.period,
            *(data[c] for c in FINANCIAL_COLUMNS),
        )
    if not keyed:
        return UpsertResult(upserted_rows=0, skipped_rows=skipped)

    cols_sql = ", ".join(("company_id", "branch_code", "period", *FINANCIAL_COLUMNS))
    updates_sql = ", ".join(f"{c} = EXCLUDED.{c}" for c in FINANCIAL_COLUMNS)
    sql = (
        f"INSERT INTO financial_data ({cols_sql}) VALUES %s "
        f"ON CONFLICT (company_id, branch_code, period) DO UPDATE SET {updates_sql}"
    )
    _execute(
        cursor,
        sql,
        list(keyed.values()),
        page_size=page_size,
        metrics_callback=metrics_callback,
    )
    return UpsertResult(upserted_rows=len(keyed), skipped_rows=skipped)


def store_rows(
    cursor: Any,
    rows: Sequence[FinancialRow],
    *,
    page_size: int = 1000,
    metrics_callback: MetricsCallback | None = None,
) -> UpsertResult:
    """Persist rows in dependency order: periods, companies, financial data."""
    if not rows:
        return UpsertResult(upserted_rows=0)
    upsert_periods(
        cursor, (r.period for r in rows), page_size=page_size, metrics_callback=metrics_callback
    )
    company_ids = upsert_companies(
        cursor, rows, page_size=page_size, metrics_callback=metrics_callback
    )
    result = upsert_financial_rows(
        cursor, rows, company_ids, page_size=page_size, metrics_callback=metrics_callback
    )
    if result.skipped_rows:
        logger.warning("skipped %d rows without a resolvable company code", result.skipped_rows)
    return result
