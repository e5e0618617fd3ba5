from __future__ import annotations

import pytest

import tsb_etl.db.upsert as upsert_module
from tsb_etl.db.schema import FINANCIAL_COLUMNS, SCHEMA_STATEMENTS, ensure_schema
from tsb_etl.db.upsert import (
    UpsertError,
    store_rows,
    upsert_companies,
    upsert_financial_rows,
    upsert_periods,
)
from tsb_etl.models.financial_row import FinancialRow


class DummyCursor:
    def __init__(self) -> None:
        self.calls: list[tuple[str, list]] = []
        self.executed: list[str] = []
        self.next_id = 1

    def execute(self, sql: str) -> None:
        self.executed.append(sql)


# execute_values is swapped for a recorder so no database or driver round trip is needed
@pytest.fixture(autouse=True)
def fake_execute_values(monkeypatch):
    def fake(cursor, sql, rows, page_size=1000, fetch=False):
        cursor.calls.append((sql, list(rows)))
        if fetch:
            returned = []
            for row in rows:
                returned.append((row[0], cursor.next_id))
                cursor.next_id += 1
            return returned
        return None

    monkeypatch.setattr(upsert_module, "execute_values", fake)
    return fake


def _row(name: str, code: str, period: str = "20244", branch: str = "715", **kwargs) -> FinancialRow:
    return FinancialRow(
        company_name=name,
        company_code=code,
        company_type="HD",
        branch_code=branch,
        period=period,
        **kwargs,
    )


def test_upsert_periods_splits_year_and_quarter():
    cur = DummyCursor()
    count = upsert_periods(cur, ["20251", "20244", "20251"])
    assert count == 2
    sql, rows = cur.calls[0]
    assert "ON CONFLICT (period) DO NOTHING" in sql
    assert rows == [("20244", 2024, 4), ("20251", 2025, 1)]


def test_upsert_periods_empty():
    cur = DummyCursor()
    assert upsert_periods(cur, []) == 0
    assert cur.calls == []


def test_upsert_companies_returns_ids_and_skips_empty_codes():
    cur = DummyCursor()
    ids = upsert_companies(
        cur, [_row("A", "1001"), _row("A Sigorta", "1001"), _row("B", ""), _row("C", "1003")]
    )
    assert ids == {"1001": 1, "1003": 2}
    sql, rows = cur.calls[0]
    assert "RETURNING code, id" in sql
    assert "ON CONFLICT (code) DO UPDATE" in sql
    # latest name for a code is sent
    assert rows[0] == ("1001", "A Sigorta", "HD")


def test_upsert_financial_rows_statement_and_values():
    cur = DummyCursor()
    row = _row("A", "1001", net_premium=750.0, pye_net_payment=None)
    result = upsert_financial_rows(cur, [row], {"1001": 7})
    assert result.upserted_rows == 1
    assert result.skipped_rows == 0
    sql, rows = cur.calls[0]
    assert sql.startswith("INSERT INTO financial_data (company_id, branch_code, period, ")
    assert "ON CONFLICT (company_id, branch_code, period) DO UPDATE SET" in sql
    assert "net_premium = EXCLUDED.net_premium" in sql
    values = rows[0]
    assert values[:3] == (7, "715", "20244")
    assert len(values) == 3 + len(FINANCIAL_COLUMNS)
    assert values[3 + FINANCIAL_COLUMNS.index("net_premium")] == 750.0
    assert values[3 + FINANCIAL_COLUMNS.index("pye_net_payment")] is None


def test_upsert_financial_rows_skips_unresolved_and_collapses_duplicates():
    cur = DummyCursor()
    rows = [
        _row("A", "1001", net_payment=1.0),
        _row("A", "1001", net_payment=2.0),
        _row("B", ""),
        _row("C", "9999"),
    ]
    result = upsert_financial_rows(cur, rows, {"1001": 1})
    assert result.upserted_rows == 1
    assert result.skipped_rows == 2
    _, sent = cur.calls[0]
    assert sent[0][3 + FINANCIAL_COLUMNS.index("net_payment")] == 2.0


def test_upsert_financial_rows_nothing_to_send():
    cur = DummyCursor()
    result = upsert_financial_rows(cur, [_row("B", "")], {})
    assert result.upserted_rows == 0 and result.skipped_rows == 1
    assert cur.calls == []


def test_store_rows_order_and_metrics():
    cur = DummyCursor()
    metrics = []
    result = store_rows(
        cur,
        [_row("A", "1001"), _row("B", "1002", period="20251"), _row("X", "")],
        metrics_callback=metrics.append,
    )
    statements = [sql.split(" (")[0] for sql, _ in cur.calls]
    assert statements == [
        "INSERT INTO periods",
        "INSERT INTO companies",
        "INSERT INTO financial_data",
    ]
    assert result.upserted_rows == 2
    assert result.skipped_rows == 1
    assert [m.batch_size for m in metrics] == [2, 2, 2]
    assert all(m.elapsed_seconds >= 0 for m in metrics)


def test_store_rows_empty():
    cur = DummyCursor()
    assert store_rows(cur, []).upserted_rows == 0
    assert cur.calls == []


def test_driver_error_wrapped(monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("duplicate key value violates unique constraint")

    monkeypatch.setattr(upsert_module, "execute_values", boom)
    metrics = []
    with pytest.raises(UpsertError, match="duplicate key"):
        upsert_periods(DummyCursor(), ["20244"], metrics_callback=metrics.append)
    # timing is still reported for the failed batch
    assert len(metrics) == 1


def test_ensure_schema_runs_every_statement():
    cur = DummyCursor()
    ensure_schema(cur)
    assert cur.executed == list(SCHEMA_STATEMENTS)
    ddl = "\n".join(cur.executed)
    assert "UNIQUE (company_id, branch_code, period)" in ddl
    assert "pye_net_payment DOUBLE PRECISION," in ddl
    assert "net_premium DOUBLE PRECISION NOT NULL DEFAULT 0" in ddl
