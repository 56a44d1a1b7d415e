"""transaction_ingest: recurring CSV ingestion with self-healing validation.

Primary API
-----------
- :func:`run_job` runs Load -> Process -> Analyze -> Report -> Purge once.
- :class:`TransactionProcessor` exposes the individual pipeline steps.
- :func:`load_all` / :func:`repair_description` read and repair input files.
"""

from __future__ import annotations

from .analysis import analyze, highest_spender, top_categories, user_summaries
from .config import JobSettings
from .duplicates import partition_duplicates
from .ingest.csv_loader import load_all, repair_description
from .job import JobResult, TransactionJob, run_job
from .models import AnalysisReport, CategoryCount, HighestSpender, Transaction, UserSummary
from .persistence import BulkStore
from .processor import TransactionProcessor
from .retry import RepairingRetry, RetryState
from .validation import validate_batch, validate_transaction

__all__ = [
    "AnalysisReport",
    "BulkStore",
    "CategoryCount",
    "HighestSpender",
    "JobResult",
    "JobSettings",
    "RepairingRetry",
    "RetryState",
    "Transaction",
    "TransactionJob",
    "TransactionProcessor",
    "UserSummary",
    "analyze",
    "highest_spender",
    "load_all",
    "partition_duplicates",
    "repair_description",
    "run_job",
    "top_categories",
    "user_summaries",
    "validate_batch",
    "validate_transaction",
]
