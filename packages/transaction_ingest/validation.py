"""Field rules for transaction records and the shared validation error log.

Every rule for a record is evaluated; one record can yield several
``FieldFailure`` entries. The two description failures embed the record
identifier between ``|`` sentinels (``Transaction ID: |<id>|``) so the retry
orchestrator can recover the identifier from the message text alone.
"""

from __future__ import annotations

import threading
import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from os import PathLike
from pathlib import Path

from .config import DEFAULT_DATA_DIR
from .errors import ValidationError
from .logging_setup import get_logger
from .models import NIL_UUID, Transaction
from .pmap import p_map

logger = get_logger("transaction_ingest.validation")

MAX_CATEGORY_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 255
MAX_MERCHANT_LENGTH = 100

DESCRIPTION_EMPTY_MESSAGE = "Description cannot be null or empty."
DESCRIPTION_TOO_LONG_MESSAGE = (
    f"Description must not exceed {MAX_DESCRIPTION_LENGTH} characters."
)
ID_MARKER = "Transaction ID: |"

ERROR_LOG_FILE_NAME = "ErrorsInTheProcessing.txt"

# Serializes appends to the error log across every thread in the process.
_ERROR_LOG_LOCK = threading.Lock()


@dataclass(frozen=True, slots=True)
class FieldFailure:
    field: str
    message: str
    transaction_id: uuid.UUID | None = None


def _blank(value: str | None) -> bool:
    return value is None or not value.strip()


def _tagged(message: str, transaction_id: uuid.UUID | None) -> str:
    return f"{message} {ID_MARKER}{transaction_id if transaction_id else ''}|"


def validate_transaction(record: Transaction, *, now: datetime | None = None) -> list[FieldFailure]:
    """Return every rule violation of ``record`` (empty when valid)."""

    now = now or datetime.now(UTC)
    tid = record.transaction_id
    failures: list[FieldFailure] = []

    def fail(field: str, message: str) -> None:
        failures.append(FieldFailure(field=field, message=message, transaction_id=tid))

    if tid is None or tid == NIL_UUID:
        fail("TransactionId", "TransactionId is required.")
    if record.user_id is None or record.user_id == NIL_UUID:
        fail("UserId", "UserId is required.")

    if record.date is None:
        fail("Date", "Date is required.")
    else:
        when = record.date if record.date.tzinfo else record.date.replace(tzinfo=UTC)
        if when > now:
            fail("Date", "Date cannot be in the future.")

    if _blank(record.category):
        fail("Category", "Category is required.")
    elif len(record.category or "") > MAX_CATEGORY_LENGTH:
        fail("Category", f"Category must not exceed {MAX_CATEGORY_LENGTH} characters.")

    if _blank(record.description):
        fail("Description", _tagged(DESCRIPTION_EMPTY_MESSAGE, tid))
    elif len(record.description or "") > MAX_DESCRIPTION_LENGTH:
        fail("Description", _tagged(DESCRIPTION_TOO_LONG_MESSAGE, tid))

    if _blank(record.merchant):
        fail("Merchant", "Merchant is required.")
    elif len(record.merchant or "") > MAX_MERCHANT_LENGTH:
        fail("Merchant", f"Merchant must not exceed {MAX_MERCHANT_LENGTH} characters.")

    return failures


def is_repairable(failure: FieldFailure) -> bool:
    """True for the description failures the retry layer knows how to fix."""

    return failure.message.startswith((DESCRIPTION_EMPTY_MESSAGE, DESCRIPTION_TOO_LONG_MESSAGE))


def extract_transaction_id(message: str) -> uuid.UUID | None:
    """Return the identifier between the ``|`` sentinels of ``message``.

    The token runs from the first ``|`` to the last ``|``. ``None`` when the
    marker is absent or the token is not a valid UUID.
    """

    if ID_MARKER not in message:
        return None
    start = message.find("|")
    end = message.rfind("|")
    if end <= start:
        return None
    try:
        return uuid.UUID(message[start + 1 : end].strip())
    except ValueError:
        return None


class ErrorLog:
    """Append-only text log of records that failed validation."""

    def __init__(self, directory: str | PathLike[str] = DEFAULT_DATA_DIR) -> None:
        self.directory = Path(directory)
        self.path = self.directory / ERROR_LOG_FILE_NAME

    def append(self, record: Transaction, failures: Sequence[FieldFailure]) -> None:
        stamp = datetime.now(UTC).strftime("%Y-%m-%d %H:%M:%S")
        lines = [
            f"--------------------- Validation Error Logged at {stamp} ---------------------",
            "Transaction Details:",
            f"TransactionId: {record.transaction_id}",
            f"UserId: {record.user_id}",
            f"Date: {record.date.isoformat() if record.date else None}",
            f"Amount: {record.amount}",
            f"Category: {record.category}",
            f"Description: {record.description}",
            f"Merchant: {record.merchant}",
            "Errors:",
            *(f"- {f.message}" for f in failures),
            "-" * 82,
            "",
        ]
        with _ERROR_LOG_LOCK:
            self.directory.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as f:
                f.write("\n".join(lines) + "\n")


def validate_batch(
    records: Sequence[Transaction] | None,
    *,
    error_log: ErrorLog | None = None,
    concurrency: int = 1,
    now: datetime | None = None,
) -> None:
    """Validate every record; raise ``ValidationError`` carrying all failures.

    Failing records are appended to ``error_log`` when one is given.
    """

    if records is None:
        raise ValidationError(
            "The transaction list cannot be null.",
            [FieldFailure(field="Transactions", message="The transaction list cannot be null.")],
        )
    if len(records) == 0:
        raise ValidationError(
            "The transaction list cannot be empty.",
            [FieldFailure(field="Transactions", message="The transaction list cannot be empty.")],
        )

    checked_at = now or datetime.now(UTC)

    def _check(record: Transaction) -> list[FieldFailure]:
        failures = validate_transaction(record, now=checked_at)
        if failures and error_log is not None:
            error_log.append(record, failures)
        return failures

    per_record = p_map(records, _check, concurrency=max(1, concurrency))
    failures = [f for group in per_record for f in group]
    if failures:
        bad = sum(1 for group in per_record if group)
        logger.warning("validation:failed records=%d failures=%d", bad, len(failures))
        raise ValidationError(
            f"{bad} of {len(records)} transactions failed validation",
            failures,
        )
    logger.info("validation:ok records=%d", len(records))


__all__ = [
    "DESCRIPTION_EMPTY_MESSAGE",
    "DESCRIPTION_TOO_LONG_MESSAGE",
    "ERROR_LOG_FILE_NAME",
    "ErrorLog",
    "FieldFailure",
    "extract_transaction_id",
    "is_repairable",
    "validate_batch",
    "validate_transaction",
]
