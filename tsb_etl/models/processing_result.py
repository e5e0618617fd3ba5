from __future__ import annotations

import statistics
from dataclasses import dataclass
from datetime import datetime

"""Run-level result models and batch timing statistics."""


@dataclass(frozen=True)
class FileStat:
    """Per-file statistics, including upsert batch timings."""
    file_name: str
    status: str  # success/failed
    period: str | None
    extracted_rows: int
    elapsed_seconds: float
    total_batches: int = 0
    avg_batch_seconds: float = 0.0
    p95_batch_seconds: float = 0.0


@dataclass(frozen=True)
class ProcessingResult:
    """Aggregated outcome of one run; feeds the SUMMARY line and the exit code."""
    success_files: int
    failed_files: int
    total_rows: int  # rows extracted from successful files
    skipped_sheets: int
    periods: int  # distinct periods in the enriched dataset
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    throughput_rows_per_sec: float
    file_stats: list[FileStat] | None = None
    combined_output: str | None = None
    carry_over_error: str | None = None  # companion re-upsert of stored periods failed

    @property
    def total_files(self) -> int:
        return self.success_files + self.failed_files


class BatchStatsAccumulator:
    """Collects execute_values timings for one file."""

    def __init__(self) -> None:
        self.batch_times: list[float] = []

    def add_batch_time(self, elapsed_seconds: float) -> None:
        self.batch_times.append(elapsed_seconds)

    def get_stats(self) -> tuple[int, float, float]:
        """Return (total_batches, avg_batch_seconds, p95_batch_seconds)."""
        if not self.batch_times:
            return (0, 0.0, 0.0)

        total_batches = len(self.batch_times)
        avg_batch_seconds = statistics.mean(self.batch_times)
        if total_batches == 1:
            p95_batch_seconds = self.batch_times[0]
        else:
            # 19th of 20 inclusive quantiles
            p95_batch_seconds = statistics.quantiles(
                self.batch_times, n=20, method="inclusive"
            )[18]
        return (total_batches, avg_batch_seconds, p95_batch_seconds)
