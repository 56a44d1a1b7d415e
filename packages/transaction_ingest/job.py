"""The recurring ingestion job: Load -> Process -> Analyze -> Report -> Purge.

One pass runs under the repair-and-restart loop, and the whole run holds the
``process-transactions`` lock so overlapping triggers never interleave.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from os import PathLike
from pathlib import Path

from .config import JobSettings
from .ingest.csv_loader import load_all
from .locking import job_lock
from .logging_setup import get_logger
from .models import AnalysisReport
from .processor import TransactionProcessor
from .retry import RepairingRetry

logger = get_logger("transaction_ingest.job")

JOB_ID = "process-transactions"


@dataclass(frozen=True, slots=True)
class JobResult:
    inserted: int
    purged: int
    report: AnalysisReport
    report_path: Path
    attempts: int


class TransactionJob:
    def __init__(
        self,
        settings: JobSettings,
        *,
        processor: TransactionProcessor | None = None,
        retry: RepairingRetry | None = None,
    ) -> None:
        self.settings = settings
        self.processor = processor or TransactionProcessor(settings)
        self.retry = retry or RepairingRetry(
            max_attempts=settings.retry_max_attempts,
            backoff_seconds=settings.retry_backoff_seconds,
        )

    def _one_pass(
        self, input_path: Path, output_path: Path
    ) -> tuple[int, int, AnalysisReport, Path]:
        transactions = load_all(input_path)
        inserted = self.processor.process(transactions)
        report = self.processor.perform_analysis()
        written = self.processor.save_report(report, output_path)
        purged = self.processor.purge_all()
        return inserted, purged, report, written

    def run(
        self,
        input_path: str | PathLike[str] | None = None,
        output_path: str | PathLike[str] | None = None,
    ) -> JobResult | None:
        """Run the job once; ``None`` only when an unrepairable failure is tolerated."""

        src = Path(input_path or self.settings.input_path)
        dst = Path(output_path or self.settings.output_path)

        with job_lock(JOB_ID, self.settings.lock_timeout_seconds):
            t0 = time.perf_counter()
            logger.info("job:start input=%s output=%s", src, dst)
            try:
                outcome = self.retry.run(lambda: self._one_pass(src, dst), csv_path=src)
            except Exception:
                logger.exception("job:failed input=%s attempts=%d", src, self.retry.attempts)
                raise
            if outcome is None:
                return None
            inserted, purged, report, written = outcome
            logger.info(
                "job:done inserted=%d purged=%d attempts=%d seconds=%.2f",
                inserted,
                purged,
                self.retry.attempts,
                time.perf_counter() - t0,
            )
            return JobResult(
                inserted=inserted,
                purged=purged,
                report=report,
                report_path=written,
                attempts=self.retry.attempts,
            )


def run_job(
    input_path: str | PathLike[str] | None = None,
    output_path: str | PathLike[str] | None = None,
    *,
    settings: JobSettings | None = None,
) -> JobResult | None:
    """Single entry point used by the CLI and the scheduler."""

    settings = settings or JobSettings.from_env()
    return TransactionJob(settings).run(input_path, output_path)


__all__ = ["JOB_ID", "JobResult", "TransactionJob", "run_job"]
