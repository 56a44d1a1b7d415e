"""Exception taxonomy for the ingestion pipeline.

Every error raised on purpose by ``transaction_ingest`` derives from
``IngestError`` so callers (the job runner, the CLI) can separate pipeline
failures from programming errors. Validation failures are the only kind the
retry orchestrator recovers from; everything else terminates the run.
"""

from __future__ import annotations

from collections.abc import Sequence
from os import PathLike
from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .validation import FieldFailure


class IngestError(Exception):
    """Base class for pipeline failures."""


class ParseError(IngestError):
    """The input file is malformed (missing header, bad cell value)."""


class ValidationError(IngestError):
    """One or more records violate field rules.

    ``failures`` carries every individual ``FieldFailure`` collected across the
    batch, not only the first one.
    """

    def __init__(self, message: str, failures: Sequence[FieldFailure] = ()) -> None:
        super().__init__(message)
        self.failures: tuple[FieldFailure, ...] = tuple(failures)

    @property
    def messages(self) -> list[str]:
        return [f.message for f in self.failures]


class NotFoundError(IngestError, LookupError):
    """A repair target identifier is absent from the source file."""


class FileProcessingError(IngestError):
    """File-system failure while reading or writing pipeline files."""

    def __init__(self, message: str, file_path: str | PathLike[str] | None = None) -> None:
        super().__init__(message)
        self.file_path = file_path


class StoreError(IngestError):
    """Persistence layer failure."""


class MappingError(IngestError):
    """Record could not be converted between domain and storage shapes."""


class ReportSerializationError(IngestError):
    """The analysis report could not be encoded or decoded."""


class TransactionProcessingError(IngestError):
    """Unexpected failure inside the processing step."""


class ArgumentError(IngestError, ValueError):
    """A caller passed an invalid argument (e.g., an empty id list)."""


class JobAlreadyRunningError(IngestError):
    """Another run of the same job identity holds the lock past the wait limit."""


class RetryExhaustedError(IngestError):
    """The repair-and-restart loop hit its attempt cap."""

    def __init__(self, message: str, attempts: int, last_error: ValidationError) -> None:
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error


class UnrepairableValidationError(IngestError):
    """A validation failure carries no repairable description failure."""

    def __init__(self, message: str, last_error: ValidationError) -> None:
        super().__init__(message)
        self.last_error = last_error


__all__ = [
    "ArgumentError",
    "FileProcessingError",
    "IngestError",
    "JobAlreadyRunningError",
    "MappingError",
    "NotFoundError",
    "ParseError",
    "ReportSerializationError",
    "RetryExhaustedError",
    "StoreError",
    "TransactionProcessingError",
    "UnrepairableValidationError",
    "ValidationError",
]
