"""Identifier-based de-duplication of a loaded batch.

Public surface:
- ``partition_duplicates``: split a batch into the first-seen representative of
  each identifier and every later copy. Pure, order preserving.
- ``write_duplicate_log``: timestamped text dump of the discarded
  copies for later inspection.
"""

from __future__ import annotations

import json
import uuid
from collections.abc import Iterable, Sequence
from datetime import UTC, datetime
from os import PathLike
from pathlib import Path

from .logging_setup import get_logger
from .models import Transaction

logger = get_logger("transaction_ingest.duplicates")


def partition_duplicates(
    records: Iterable[Transaction],
) -> tuple[list[Transaction], list[Transaction]]:
    """Return ``(unique, duplicates)`` for ``records``.

    Uniqueness is decided by ``transaction_id`` only. The first record seen for
    an identifier is kept; every later record with the same identifier is a
    duplicate, so a group of ``k`` copies yields 1 unique and ``k - 1``
    duplicates.
    """

    seen: set[uuid.UUID | None] = set()
    unique: list[Transaction] = []
    duplicates: list[Transaction] = []
    for record in records:
        if record.transaction_id in seen:
            duplicates.append(record)
        else:
            seen.add(record.transaction_id)
            unique.append(record)
    return unique, duplicates


def write_duplicate_log(
    duplicates: Sequence[Transaction],
    directory: str | PathLike[str],
    *,
    now: datetime | None = None,
) -> Path | None:
    """Write ``duplicate_transactions_<YYYYmmdd_HHMMSS>.txt`` under ``directory``.

    Returns the written path, or ``None`` when there is nothing to log.
    """

    if not duplicates:
        return None

    now = now or datetime.now(UTC)
    out_dir = Path(directory)
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / f"duplicate_transactions_{now.strftime('%Y%m%d_%H%M%S')}.txt"

    stamp = now.strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]
    with path.open("a", encoding="utf-8") as f:
        for record in duplicates:
            details = json.dumps(record.to_json_dict(), ensure_ascii=False)
            f.write(
                f"Timestamp: {stamp}, TransactionId: {record.transaction_id}, "
                f"Details: {details}\n"
            )

    logger.info("duplicates:logged count=%d file=%s", len(duplicates), path)
    return path


__all__ = ["partition_duplicates", "write_duplicate_log"]
