"""Domain models for the TSB workbook ETL."""

from .config_models import DatabaseConfig, ExtractionConfig, ImportConfig
from .financial_row import FinancialRow
from .period import Period, PeriodError
from .sheet_process import SheetProcess, SheetStatus

__all__ = [
    # Configuration models
    "DatabaseConfig",
    "ExtractionConfig",
    "ImportConfig",
    # Processing models
    "FinancialRow",
    "Period",
    "PeriodError",
    "SheetProcess",
    "SheetStatus",
]
