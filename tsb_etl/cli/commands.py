from __future__ import annotations

import argparse
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import psycopg2
from dotenv import load_dotenv

from ..config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config
from ..excel.extractor import extract_rows, resolve_field_columns
from ..excel.header import resolve_header
from ..excel.reader import WorkbookReadError, locate_sheet, read_workbook
from ..logging.init import log_summary, setup_logging
from ..models.config_models import ImportConfig
from ..models.period import PeriodError, period_from_filename
from ..services.orchestrator import ProcessingError, process_all, scan_excel_files
from ..services.ratios import loss_ratio
from ..services.summary import render_summary_line

"""CLI entrypoint.

Flow: logging -> .env -> config -> source directory check -> (inspect | run).
A run uses a live psycopg2 cursor when a connection can be made and falls back to
mock mode (extract + enrich + export, nothing stored) otherwise.

Exit codes: 0 every file succeeded (or none found), 2 some file failed, 1 fatal.
"""

__all__ = [
    "EXIT_SUCCESS_ALL",
    "EXIT_PARTIAL_FAILURE",
    "EXIT_FATAL",
    "main",
]

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1

INSPECT_SAMPLE_ROWS = 3


def _dsn(cfg: ImportConfig) -> str:
    """Resolve connection parameters.

    DATABASE_URL / PGDSN win, then the individual PG* variables, then the
    database section of the config file.
    """
    db_cfg = cfg.database
    dsn = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if dsn:
        return dsn
    host = os.getenv("PGHOST", db_cfg.host or "localhost")
    port = os.getenv("PGPORT", str(db_cfg.port) if db_cfg.port else "5432")
    user = os.getenv("PGUSER", db_cfg.user or "postgres")
    password = os.getenv("PGPASSWORD", db_cfg.password or "")
    database = os.getenv("PGDATABASE", db_cfg.database or "postgres")
    dsn = f"host={host} port={port} user={user} dbname={database}"
    if password:
        dsn += f" password={password}"
    return dsn


@contextmanager
def _db_connection(cfg: ImportConfig) -> Iterator[Any]:  # pragma: no cover (needs a server)
    """Yield a cursor on a non-autocommit connection.

    The orchestrator issues BEGIN/COMMIT itself; anything left open is committed
    on a clean exit.
    """
    conn = psycopg2.connect(_dsn(cfg))
    cur = None
    try:
        conn.autocommit = False
        cur = conn.cursor()
        yield cur
        if not conn.closed:
            conn.commit()
    finally:
        if cur is not None:
            cur.close()
        conn.close()


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env with python-dotenv; its values override the process environment."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="tsb-etl",
        description="TSB quarterly insurance workbooks -> PostgreSQL ETL",
    )
    p.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help=f"Config file (default: {DEFAULT_CONFIG_PATH})",
    )
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument(
        "--inspect-data",
        action="store_true",
        help="Print header rows, mapped labels and first HD rows per sheet, then exit",
    )
    return p.parse_args(argv)


def _inspect_data(cfg: ImportConfig) -> int:
    directory = Path(cfg.source_directory)
    excluded = Path(cfg.combined_output) if cfg.combined_output else None
    try:
        excel_files = scan_excel_files(directory, exclude=excluded)
    except ProcessingError as e:
        print(f"inspect: {e}")
        return EXIT_FATAL
    if not excel_files:
        print("inspect: no .xlsx files")
        return EXIT_SUCCESS_ALL

    extraction = cfg.extraction
    for f in excel_files:
        try:
            period = period_from_filename(f.name).token
        except PeriodError as e:
            print(f"FILE: {f.name} period_error: {e}")
            continue
        print(f"FILE: {f.name} period={period}")
        try:
            workbook = read_workbook(f, target_sheets=extraction.branch_codes)
        except WorkbookReadError as e:
            print(f"  read_error: {e}")
            continue
        for code in extraction.branch_codes:
            grid = locate_sheet(workbook, code)
            if grid is None:
                continue
            header = resolve_header(
                grid, anchor=extraction.header_anchor, scan_limit=extraction.header_scan_limit
            )
            if header is None:
                print(f"  SHEET: {code} header not found")
                continue
            fields = resolve_field_columns(header.columns)
            rows = extract_rows(
                grid,
                header,
                branch_code=code,
                period=period,
                company_type=extraction.company_type,
                claim_column_offsets=extraction.claim_column_offsets,
            )
            print(
                f"  SHEET: {code} header_row={header.row_index} "
                f"fields={len(fields)} labels={sorted(fields)} rows={len(rows)}"
            )
            for row in rows[:INSPECT_SAMPLE_ROWS]:
                print(
                    f"    {row.company_code or '-'} {row.company_name}: "
                    f"net_premium={row.net_premium} net_earned_premium={row.net_earned_premium} "
                    f"loss_ratio={loss_ratio(row):.2f}"
                )
    return EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    # [] from tests must not fall back to sys.argv
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    logger = setup_logging(debug=args.debug)
    logger.debug("debug mode enabled")

    _load_env_file(Path(".env"), override=True)
    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    directory = Path(cfg.source_directory)
    if not directory.is_dir():
        logger.error(f"directory not found: {directory}")
        return EXIT_FATAL

    logger.info(f"Processing files from: {directory}")

    if args.inspect_data:
        return _inspect_data(cfg)

    db_mode = "mock"
    if os.getenv("DISABLE_DB_CONNECT") == "1":
        logger.debug("DB connect disabled via DISABLE_DB_CONNECT=1 -> mock mode")
        try:
            result = process_all(cfg, cursor=None)
        except ProcessingError as e:
            logger.error(f"processing(mock): {e}")
            return EXIT_FATAL
    else:
        try:
            with _db_connection(cfg) as cur:
                db_mode = "live"
                try:
                    result = process_all(cfg, cursor=cur)
                except ProcessingError as e:
                    logger.error(f"processing: {e}")
                    return EXIT_FATAL
        except psycopg2.Error as db_e:
            if os.getenv("SUPPRESS_DB_WARNING") == "1":
                logger.debug(f"DB connection failed -> fallback to mock mode: {db_e}")
            else:
                logger.warning(f"DB connection failed -> fallback to mock mode: {db_e}")
            db_mode = "mock"
            try:
                result = process_all(cfg, cursor=None)
            except ProcessingError as e:
                logger.error(f"processing(mock): {e}")
                return EXIT_FATAL

    logger.info(f"mode={db_mode} total_rows={result.total_rows} periods={result.periods}")
    if result.combined_output:
        logger.info(f"combined output: {result.combined_output}")

    summary_line = render_summary_line(result.total_files, result)
    # log_summary adds the "SUMMARY " label itself
    log_summary(summary_line.removeprefix("SUMMARY "))

    if result.carry_over_error:
        logger.error(f"carry-over failed, retried on the next run: {result.carry_over_error}")
    if result.failed_files > 0 or result.carry_over_error:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL
