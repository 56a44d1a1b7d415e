from __future__ import annotations

import json
import uuid
from datetime import UTC, datetime
from pathlib import Path

from transaction_ingest.duplicates import partition_duplicates, write_duplicate_log

from tests.helpers.records import make_tx


def test_unique_batch_passes_through_unchanged():
    batch = [make_tx() for _ in range(5)]

    unique, duplicates = partition_duplicates(batch)

    assert unique == batch
    assert duplicates == []


def test_group_of_k_yields_one_unique_and_k_minus_one_duplicates():
    tid = uuid.uuid4()
    copies = [make_tx(transaction_id=tid, description=f"copy {i}") for i in range(4)]
    other = make_tx()

    unique, duplicates = partition_duplicates([copies[0], other, *copies[1:]])

    assert unique == [copies[0], other]
    assert duplicates == copies[1:]


def test_write_duplicate_log_lines(tmp_path: Path):
    tid = uuid.uuid4()
    dup = make_tx(transaction_id=tid)
    now = datetime(2025, 2, 3, 4, 5, 6, 789000, tzinfo=UTC)

    path = write_duplicate_log([dup], tmp_path / "logs", now=now)

    assert path == tmp_path / "logs" / "duplicate_transactions_20250203_040506.txt"
    [line] = path.read_text(encoding="utf-8").splitlines()
    prefix = f"Timestamp: 2025-02-03 04:05:06.789, TransactionId: {tid}, Details: "
    assert line.startswith(prefix)
    details = json.loads(line[len(prefix) :])
    assert details["TransactionId"] == str(tid)
    assert details["Amount"] == "12.50"


def test_write_duplicate_log_skips_empty(tmp_path: Path):
    assert write_duplicate_log([], tmp_path / "logs") is None
    assert not (tmp_path / "logs").exists()
