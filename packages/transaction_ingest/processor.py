"""Pipeline steps run by the job: process, analyze, report, purge.

``TransactionProcessor.process`` validates the whole batch, drops duplicate
identifiers (logging them), then inserts the unique records in fixed-size
sub-batches on a bounded worker pool. Each sub-batch uses its own store handle
and its own transactions.

Error handling: ``ValidationError`` always propagates unwrapped so the retry
orchestrator can see it. Store and mapping errors propagate as-is. File-system
errors surface as ``FileProcessingError``; anything else as
``TransactionProcessingError``.
"""

from __future__ import annotations

from collections.abc import Sequence
from os import PathLike
from pathlib import Path

from .analysis import analyze
from .config import JobSettings
from .duplicates import partition_duplicates, write_duplicate_log
from .errors import (
    FileProcessingError,
    IngestError,
    TransactionProcessingError,
)
from .logging_setup import get_logger
from .models import AnalysisReport, Transaction
from .persistence import BulkStore
from .pmap import chunked, p_map
from .report import write_report
from .validation import ErrorLog, validate_batch

logger = get_logger("transaction_ingest.processor")


class TransactionProcessor:
    def __init__(self, settings: JobSettings, *, store: BulkStore | None = None) -> None:
        self.settings = settings
        self.store = store or BulkStore(settings.database_url)
        self.error_log = ErrorLog(settings.data_dir)

    def _insert_chunk(self, chunk: Sequence[Transaction]) -> int:
        # Fresh handle per sub-batch; sessions are never shared across workers.
        return BulkStore(self.store.database_url).bulk_insert(
            chunk, batch_size=self.settings.insert_batch_size
        )

    def process(self, transactions: Sequence[Transaction]) -> int:
        """Validate, de-duplicate and store ``transactions``; return rows inserted."""

        try:
            validate_batch(
                transactions,
                error_log=self.error_log,
                concurrency=self.settings.max_workers,
            )

            unique, duplicates = partition_duplicates(transactions)
            if duplicates:
                logger.warning(
                    "process:duplicates count=%d unique=%d", len(duplicates), len(unique)
                )
                write_duplicate_log(duplicates, self.settings.data_dir)

            chunks = list(chunked(unique, self.settings.batch_size))
            inserted = sum(
                p_map(
                    chunks,
                    self._insert_chunk,
                    concurrency=max(1, min(self.settings.max_workers, len(chunks) or 1)),
                )
            )
        except IngestError:
            raise
        except OSError as e:
            raise FileProcessingError(
                f"file error while processing transactions: {e}",
                file_path=getattr(e, "filename", None),
            ) from e
        except Exception as e:
            raise TransactionProcessingError(f"unexpected error while processing: {e}") from e

        logger.info(
            "process:done input=%d inserted=%d chunks=%d", len(transactions), inserted, len(chunks)
        )
        return inserted

    def perform_analysis(self) -> AnalysisReport:
        snapshot = self.store.get_all()
        return analyze(snapshot)

    def save_report(self, report: AnalysisReport, output_path: str | PathLike[str]) -> Path:
        return write_report(report, output_path)

    def purge_all(self) -> int:
        ids = self.store.get_all_ids()
        if not ids:
            logger.info("purge:empty")
            return 0
        return self.store.delete_by_ids(ids)


__all__ = ["TransactionProcessor"]
