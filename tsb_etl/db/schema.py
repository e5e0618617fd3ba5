from __future__ import annotations

from typing import Any

from ..models.financial_row import NET_FIELDS, PQ_FIELDS, PYE_FIELDS, RAW_FIELDS

"""PostgreSQL schema for the ETL output.

companies / periods / financial_data, with financial_data unique on
(company_id, branch_code, period) so that re-importing a period replaces rows.
"""

__all__ = [
    "FINANCIAL_COLUMNS",
    "SCHEMA_STATEMENTS",
    "ensure_schema",
]

# Column order shared by DDL and upsert statements
FINANCIAL_COLUMNS: tuple[str, ...] = RAW_FIELDS + NET_FIELDS + PYE_FIELDS + PQ_FIELDS

_NUMERIC_DDL = ",\n    ".join(
    f"{c} DOUBLE PRECISION NOT NULL DEFAULT 0" for c in RAW_FIELDS + NET_FIELDS
)
_COMPANION_DDL = ",\n    ".join(f"{c} DOUBLE PRECISION" for c in PYE_FIELDS + PQ_FIELDS)

SCHEMA_STATEMENTS: tuple[str, ...] = (
    """CREATE TABLE IF NOT EXISTS companies (
    id SERIAL PRIMARY KEY,
    code TEXT NOT NULL UNIQUE,
    name TEXT NOT NULL,
    type TEXT NOT NULL DEFAULT 'HD'
)""",
    """CREATE TABLE IF NOT EXISTS periods (
    period TEXT PRIMARY KEY,
    year INTEGER NOT NULL,
    quarter INTEGER NOT NULL CHECK (quarter BETWEEN 1 AND 4)
)""",
    f"""CREATE TABLE IF NOT EXISTS financial_data (
    id SERIAL PRIMARY KEY,
    company_id INTEGER NOT NULL REFERENCES companies(id),
    branch_code TEXT NOT NULL,
    period TEXT NOT NULL REFERENCES periods(period),
    {_NUMERIC_DDL},
    {_COMPANION_DDL},
    UNIQUE (company_id, branch_code, period)
)""",
)


def ensure_schema(cursor: Any) -> None:
    """Create the tables when absent (idempotent)."""
    for statement in SCHEMA_STATEMENTS:
        cursor.execute(statement)
