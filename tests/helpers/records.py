"""Small builders for transaction records and CSV fixtures used across tests."""

from __future__ import annotations

import csv
import uuid
from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any

from transaction_ingest.ingest.csv_loader import REQUIRED_COLUMNS
from transaction_ingest.models import Transaction

PAST = datetime(2024, 5, 1, 12, 30, tzinfo=UTC)


def make_tx(**overrides: Any) -> Transaction:
    base: dict[str, Any] = {
        "transaction_id": uuid.uuid4(),
        "user_id": uuid.uuid4(),
        "date": PAST,
        "amount": Decimal("12.50"),
        "category": "Groceries",
        "description": "Weekly shop",
        "merchant": "Corner Market",
    }
    base.update(overrides)
    return Transaction(**base)


def csv_row(tx: Transaction) -> dict[str, str]:
    return {
        "TransactionId": str(tx.transaction_id) if tx.transaction_id else "",
        "UserId": str(tx.user_id) if tx.user_id else "",
        "Date": tx.date.isoformat() if tx.date else "",
        "Amount": str(tx.amount) if tx.amount is not None else "",
        "Category": tx.category or "",
        "Description": tx.description or "",
        "Merchant": tx.merchant or "",
    }


def write_csv(
    path: Path,
    rows: Iterable[Transaction | Mapping[str, str]],
    *,
    fieldnames: Iterable[str] = REQUIRED_COLUMNS,
) -> Path:
    with path.open("w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=list(fieldnames))
        writer.writeheader()
        for row in rows:
            writer.writerow(csv_row(row) if isinstance(row, Transaction) else dict(row))
    return path
