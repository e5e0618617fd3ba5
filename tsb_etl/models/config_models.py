from __future__ import annotations

from dataclasses import dataclass, field

from ..excel.fields import (
    BRANCH_CODES,
    COMPANY_NAME_ANCHOR,
    DEFAULT_CLAIM_COLUMN_OFFSETS,
    HEADER_SCAN_LIMIT,
    RETAINED_COMPANY_TYPE,
)

"""Config dataclasses for the TSB workbook ETL.

The loader (tsb_etl.config.loader) validates the YAML document and builds these
objects; everything downstream receives typed configuration only.
"""

__all__ = [
    "DatabaseConfig",
    "ExtractionConfig",
    "ImportConfig",
]


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection configuration.

    Used as fallback when environment variables are not set.
    Environment variables take precedence over these values.
    """
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class ExtractionConfig:
    """Sheet-level extraction settings.

    claim_column_offsets is the single edit point for the unlabeled claim columns;
    if the regulator ever shifts its layout only this table changes.
    """
    branch_codes: tuple[str, ...] = BRANCH_CODES
    company_type: str = RETAINED_COMPANY_TYPE
    header_anchor: str = COMPANY_NAME_ANCHOR
    header_scan_limit: int = HEADER_SCAN_LIMIT
    claim_column_offsets: dict[str, int] = field(
        default_factory=lambda: dict(DEFAULT_CLAIM_COLUMN_OFFSETS)
    )


@dataclass(frozen=True)
class ImportConfig:
    """Root configuration object for an ETL run."""
    source_directory: str  # Directory scanned for <YYYY><Q>.xlsx workbooks
    database: DatabaseConfig
    extraction: ExtractionConfig = field(default_factory=ExtractionConfig)
    combined_output: str | None = None  # combined_data.xlsx (existing rows + export)
