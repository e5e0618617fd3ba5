from __future__ import annotations

import logging
from dataclasses import replace
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from ..db.schema import ensure_schema
from ..db.upsert import BatchMetrics, UpsertError, store_rows
from ..excel.combined import read_combined, write_combined
from ..excel.reader import WorkbookReadError
from ..logging.error_log import ErrorLogBuffer
from ..models.error_record import ErrorRecord
from ..models.config_models import ImportConfig
from ..models.excel_file import ExcelFile, FileStatus
from ..models.financial_row import FinancialRow
from ..models.period import PeriodError, period_from_filename
from ..models.processing_result import BatchStatsAccumulator, FileStat, ProcessingResult
from ..models.sheet_process import SheetStatus
from .enricher import merge_and_enrich
from .progress import ProgressTracker
from .workbook_parser import parse_workbook

"""Run orchestration: directory scan -> per-file parse -> enrichment -> persistence.

1. Every <YYYY><Q>.xlsx in source_directory is parsed on its own; a file that cannot
   be read or whose name carries no period fails alone.
2. Rows from the combined workbook (if configured) plus all freshly parsed rows are
   enriched in a single batch, since PYE/PQ lookups need every period at once.
3. With a cursor, each parsed file's period is upserted in its own transaction.
   Rows of other periods whose PYE/PQ companions changed are re-upserted in one
   carry-over transaction. Without a cursor (mock mode) rows are only counted.
4. The combined workbook is rewritten with the enriched dataset.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "ProcessingError",
    "scan_excel_files",
    "process_all",
]

class ProcessingError(Exception):
    """Fatal run-level error (source directory unusable, combined workbook unreadable)."""


def _is_lock_file(path: Path) -> bool:
    # Excel leaves "~$name.xlsx" owner files next to open workbooks
    return path.name.startswith("~$")


def scan_excel_files(directory: Path, exclude: Path | None = None) -> list[Path]:
    """Return the .xlsx files of ``directory`` (non-recursive) in name order.

    Raises:
        ProcessingError: directory missing, not a directory or unreadable
    """
    if not directory.exists():
        raise ProcessingError(f"Directory not found: {directory}")
    if not directory.is_dir():
        raise ProcessingError(f"Path is not a directory: {directory}")

    excluded = exclude.resolve() if exclude is not None else None
    try:
        paths = [
            p
            for p in directory.iterdir()
            if p.is_file() and p.suffix.lower() == ".xlsx" and not _is_lock_file(p)
        ]
    except OSError as e:
        raise ProcessingError(f"Error reading directory {directory}: {e}") from e
    return sorted(
        (p for p in paths if excluded is None or p.resolve() != excluded),
        key=lambda p: p.name,
    )


def _failed(path: Path, start: datetime, error: str, period: str | None = None) -> ExcelFile:
    return ExcelFile(
        path=path,
        name=path.name,
        period=period,
        start_time=start,
        end_time=datetime.now(UTC),
        status=FileStatus.FAILED,
        error=error,
    )


def _parse_file(
    path: Path, config: ImportConfig, error_log: ErrorLogBuffer
) -> tuple[ExcelFile, list[FinancialRow]]:
    start = datetime.now(UTC)
    try:
        period = period_from_filename(path.name)
    except PeriodError as e:
        logger.error("file=%s %s", path.name, e)
        error_log.append(ErrorRecord.for_file(path.name, "PERIOD_ERROR", str(e)))
        return _failed(path, start, str(e)), []

    try:
        parsed = parse_workbook(path, period, config.extraction, file_name=path.name)
    except WorkbookReadError as e:
        logger.error("file=%s %s", path.name, e)
        error_log.append(ErrorRecord.for_file(path.name, "WORKBOOK_READ_ERROR", str(e)))
        return _failed(path, start, str(e), period.token), []

    for sheet in parsed.sheets:
        # Absent branch sheets are routine; only unreadable layouts are recorded
        if sheet.status is SheetStatus.HEADER_NOT_FOUND:
            error_log.append(
                ErrorRecord.for_sheet(
                    path.name,
                    sheet.sheet_name,
                    sheet.status.name,
                    sheet.error or "sheet skipped",
                )
            )
    rows = parsed.rows
    return (
        ExcelFile(
            path=path,
            name=path.name,
            period=parsed.period,
            start_time=start,
            end_time=datetime.now(UTC),
            status=FileStatus.PROCESSING,
            total_rows=len(rows),
            skipped_sheets=parsed.skipped_sheets,
        ),
        rows,
    )


def _record_missing_codes(
    file_name: str, rows: list[FinancialRow], error_log: ErrorLogBuffer
) -> None:
    for row in rows:
        if not row.company_code:
            error_log.append(
                ErrorRecord.for_sheet(
                    file_name,
                    row.branch_code,
                    "MISSING_COMPANY_CODE",
                    f"company {row.company_name!r} period {row.period} has no company code",
                )
            )


def _persist(
    cursor: Any,
    file_name: str,
    rows: list[FinancialRow],
    error_log: ErrorLogBuffer,
    stats: BatchStatsAccumulator,
) -> str | None:
    """Upsert ``rows`` inside one transaction; returns an error message on failure."""

    def on_batch(metrics: BatchMetrics) -> None:
        stats.add_batch_time(metrics.elapsed_seconds)

    try:
        cursor.execute("BEGIN")
        result = store_rows(cursor, rows, metrics_callback=on_batch)
        cursor.execute("COMMIT")
    except Exception as e:
        try:
            cursor.execute("ROLLBACK")
        except Exception as rollback_e:
            error_log.append(
                ErrorRecord.for_file(file_name, "TRANSACTION_ROLLBACK_ERROR", str(rollback_e))
            )
        error_type = "UPSERT_ERROR" if isinstance(e, UpsertError) else "TRANSACTION_ERROR"
        error_log.append(ErrorRecord.for_file(file_name, error_type, str(e)))
        logger.error("file=%s persistence failed, rolled back: %s", file_name, e)
        return str(e)

    if result.skipped_rows:
        _record_missing_codes(file_name, rows, error_log)
    logger.info("file=%s upserted=%d skipped=%d", file_name, result.upserted_rows, result.skipped_rows)
    return None


def _carry_over(
    existing: list[FinancialRow], enriched: list[FinancialRow], fresh_periods: set[str]
) -> list[FinancialRow]:
    """Rows of already-stored periods whose companion figures changed."""
    before = {row.key: row for row in existing}
    return [
        row
        for row in enriched
        if row.period not in fresh_periods and before.get(row.key) != row
    ]


def _restore_stored(
    enriched: list[FinancialRow], existing: list[FinancialRow], carried: list[FinancialRow]
) -> list[FinancialRow]:
    stored = {row.key: row for row in existing}
    retry = {row.key for row in carried}
    return [stored.get(row.key, row) if row.key in retry else row for row in enriched]


def process_all(config: ImportConfig, cursor: Any = None) -> ProcessingResult:
    """Process every workbook of ``config.source_directory``.

    Args:
        config: loaded ImportConfig
        cursor: psycopg2 cursor (None = mock mode, nothing is stored)

    Raises:
        ProcessingError: fatal errors that prevent the run as a whole
    """
    start_time = datetime.now(UTC)
    error_log = ErrorLogBuffer()
    combined_path = Path(config.combined_output) if config.combined_output else None

    file_paths = scan_excel_files(Path(config.source_directory), exclude=combined_path)
    if not file_paths:
        logger.warning("no .xlsx files found in %s", config.source_directory)
        end_time = datetime.now(UTC)
        return ProcessingResult(
            success_files=0,
            failed_files=0,
            total_rows=0,
            skipped_sheets=0,
            periods=0,
            start_time=start_time,
            end_time=end_time,
            elapsed_seconds=(end_time - start_time).total_seconds(),
            throughput_rows_per_sec=0.0,
            file_stats=[],
        )

    files: list[ExcelFile] = []
    rows_by_file: dict[str, list[FinancialRow]] = {}
    with ProgressTracker(len(file_paths)) as progress:
        for path in file_paths:
            progress.start_file(path)
            excel_file, rows = _parse_file(path, config, error_log)
            files.append(excel_file)
            rows_by_file[path.name] = rows
            progress.finish_file(
                success=excel_file.status is not FileStatus.FAILED, rows=excel_file.total_rows
            )

    try:
        existing = read_combined(combined_path) if combined_path is not None else []
    except WorkbookReadError as e:
        error_log.flush()
        raise ProcessingError(str(e)) from e

    parsed = [f for f in files if f.status is not FileStatus.FAILED]
    new_rows = [row for f in parsed for row in rows_by_file[f.name]]
    enriched = merge_and_enrich(existing, new_rows)

    by_period: dict[str, list[FinancialRow]] = {}
    for row in enriched:
        by_period.setdefault(row.period, []).append(row)

    stats_by_file: dict[str, BatchStatsAccumulator] = {}
    if cursor is not None:
        try:
            ensure_schema(cursor)
        except Exception as e:
            error_log.flush()
            raise ProcessingError(f"cannot prepare database schema: {e}") from e

    finished: list[ExcelFile] = []
    for f in files:
        if f.status is FileStatus.FAILED:
            finished.append(f)
            continue
        error = None
        if cursor is not None:
            stats = stats_by_file.setdefault(f.name, BatchStatsAccumulator())
            error = _persist(cursor, f.name, by_period.get(f.period or "", []), error_log, stats)
        else:
            _record_missing_codes(f.name, rows_by_file[f.name], error_log)
        finished.append(
            replace(
                f,
                status=FileStatus.FAILED if error else FileStatus.SUCCESS,
                end_time=datetime.now(UTC),
                error=error,
            )
        )

    carry_over_error = None
    if cursor is not None and existing:
        fresh_periods = {f.period for f in parsed if f.period}
        carried = _carry_over(existing, enriched, fresh_periods)
        if carried:
            logger.info("carry-over rows=%d", len(carried))
            carry_over_error = _persist(
                cursor, combined_path.name, carried, error_log, BatchStatsAccumulator()
            )
            if carry_over_error:
                # Export the stored version so the next run retries these rows
                enriched = _restore_stored(enriched, existing, carried)

    if combined_path is not None and enriched:
        try:
            write_combined(enriched, combined_path)
        except OSError as e:
            error_log.flush()
            raise ProcessingError(f"cannot write combined workbook {combined_path}: {e}") from e

    log_path = error_log.flush()
    if log_path is not None:
        logger.warning("error records written to %s (%s)", log_path, error_log.describe_counts())

    file_stats: list[FileStat] = []
    for f in finished:
        total_batches, avg_batch, p95_batch = (
            stats_by_file[f.name].get_stats() if f.name in stats_by_file else (0, 0.0, 0.0)
        )
        file_stats.append(
            FileStat(
                file_name=f.name,
                status=f.status.value,
                period=f.period,
                extracted_rows=f.total_rows,
                elapsed_seconds=f.elapsed_seconds,
                total_batches=total_batches,
                avg_batch_seconds=avg_batch,
                p95_batch_seconds=p95_batch,
            )
        )

    success = [f for f in finished if f.status is FileStatus.SUCCESS]
    total_rows = sum(f.total_rows for f in success)
    end_time = datetime.now(UTC)
    elapsed_seconds = (end_time - start_time).total_seconds()
    return ProcessingResult(
        success_files=len(success),
        failed_files=len(finished) - len(success),
        total_rows=total_rows,
        skipped_sheets=sum(f.skipped_sheets for f in finished),
        periods=len(by_period),
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=elapsed_seconds,
        throughput_rows_per_sec=total_rows / elapsed_seconds if elapsed_seconds > 0 else 0.0,
        file_stats=file_stats,
        combined_output=str(combined_path) if combined_path is not None and enriched else None,
        carry_over_error=carry_over_error,
    )
