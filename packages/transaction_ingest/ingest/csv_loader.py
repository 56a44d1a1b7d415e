"""Load transaction records from a header-bearing CSV and repair them in place.

CSV header (exact keys expected, any order):
TransactionId, UserId, Date, Amount, Category, Description, Merchant

Parsing rules
-------------
- Blank cells become ``None``; the validator decides whether that is allowed.
- ``TransactionId``/``UserId``: UUID text (any case, with or without braces).
- ``Date``: ISO 8601. Naive timestamps are taken as UTC.
- ``Amount``: decimal text (``1234.56``, ``-30``) with at most two fractional
  digits and at most 16 integer digits, the range of the ``NUMERIC(18, 2)``
  column. Thousands separators are not accepted.
- A leading UTF-8 byte order mark is ignored.

Malformed values raise ``ParseError`` naming the 1-based data row and column.
"""

from __future__ import annotations

import codecs
import contextlib
import csv
import os
import uuid
from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from decimal import Decimal, InvalidOperation
from os import PathLike
from pathlib import Path
from typing import IO

from ..errors import FileProcessingError, NotFoundError, ParseError
from ..logging_setup import get_logger
from ..models import Transaction

logger = get_logger("transaction_ingest.ingest.csv_loader")

# Largest magnitude the NUMERIC(18, 2) amount column holds.
_AMOUNT_LIMIT = Decimal(10) ** 16
_CENT = Decimal("0.01")

REQUIRED_COLUMNS: tuple[str, ...] = (
    "TransactionId",
    "UserId",
    "Date",
    "Amount",
    "Category",
    "Description",
    "Merchant",
)


def _cell(row: Mapping[str, str | None], column: str) -> str | None:
    value = row.get(column)
    if value is None:
        return None
    value = value.strip()
    return value if value else None


def _parse_uuid(raw: str | None, *, row_no: int, column: str) -> uuid.UUID | None:
    if raw is None:
        return None
    try:
        return uuid.UUID(raw)
    except ValueError as e:
        raise ParseError(f"row {row_no}: invalid {column} {raw!r}") from e


def _parse_datetime(raw: str | None, *, row_no: int, column: str) -> datetime | None:
    if raw is None:
        return None
    try:
        value = datetime.fromisoformat(raw)
    except ValueError as e:
        raise ParseError(f"row {row_no}: invalid {column} {raw!r}") from e
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value


def _parse_decimal(raw: str | None, *, row_no: int, column: str) -> Decimal | None:
    if raw is None:
        return None
    try:
        value = Decimal(raw)
    except InvalidOperation as e:
        raise ParseError(f"row {row_no}: invalid {column} {raw!r}") from e
    if not value.is_finite():
        raise ParseError(f"row {row_no}: invalid {column} {raw!r}")
    if abs(value) >= _AMOUNT_LIMIT:
        raise ParseError(f"row {row_no}: {column} {raw!r} is out of range")
    if value != value.quantize(_CENT):
        raise ParseError(f"row {row_no}: {column} {raw!r} has more than 2 decimal places")
    return value


def _to_transaction(row: Mapping[str, str | None], row_no: int) -> Transaction:
    def cell(column: str) -> str | None:
        return _cell(row, column)

    return Transaction(
        transaction_id=_parse_uuid(cell("TransactionId"), row_no=row_no, column="TransactionId"),
        user_id=_parse_uuid(cell("UserId"), row_no=row_no, column="UserId"),
        date=_parse_datetime(cell("Date"), row_no=row_no, column="Date"),
        amount=_parse_decimal(cell("Amount"), row_no=row_no, column="Amount"),
        category=cell("Category"),
        description=cell("Description"),
        merchant=cell("Merchant"),
    )


def _check_header(fieldnames: Iterable[str] | None, source: object) -> None:
    headers = set(fieldnames or [])
    if not headers:
        raise ParseError(f"CSV appears to have no header row: {source}")
    missing = [h for h in REQUIRED_COLUMNS if h not in headers]
    if missing:
        raise ParseError(f"CSV header mismatch. Missing columns: {', '.join(missing)}")


def _read_rows(f: IO[str], source: object) -> list[Transaction]:
    reader = csv.DictReader(f)
    if reader.fieldnames:
        # Streams opened as plain utf-8 keep the BOM on the first header.
        reader.fieldnames = [reader.fieldnames[0].lstrip("\ufeff"), *reader.fieldnames[1:]]
    _check_header(reader.fieldnames, source)
    try:
        return [_to_transaction(row, row_no) for row_no, row in enumerate(reader, start=1)]
    except csv.Error as e:
        raise ParseError(f"malformed CSV in {source}: {e}") from e


def load_all(source: str | PathLike[str] | IO[str]) -> list[Transaction]:
    """Read every record from ``source`` (a path or an open text stream).

    The whole file is materialized before returning.
    """

    if isinstance(source, (str, PathLike)):
        path = Path(source)
        try:
            with path.open(encoding="utf-8-sig", newline="") as f:
                records = _read_rows(f, path)
        except OSError as e:
            raise ParseError(f"cannot read CSV {path}: {e}") from e
    else:
        records = _read_rows(source, "<stream>")

    logger.info("csv:load records=%d", len(records))
    return records


def _same_id(raw: str | None, target: uuid.UUID) -> bool:
    if raw is None:
        return False
    try:
        return uuid.UUID(raw.strip()) == target
    except ValueError:
        return False


def repair_description(
    file_path: str | PathLike[str],
    transaction_id: uuid.UUID | str,
    new_description: str,
) -> None:
    """Replace the ``Description`` of every row carrying ``transaction_id``.

    Duplicate copies of an identifier are all rewritten, since any of them may
    be the one that failed validation.

    Every other cell is copied verbatim and row order and header order are
    preserved, as is a leading byte order mark. The rewritten file is written to
    ``<file>.tmp`` and renamed over the original, so a crash leaves either the
    old or the new file intact.

    Raises ``NotFoundError`` when no row carries ``transaction_id``.
    """

    path = Path(file_path)
    target = transaction_id if isinstance(transaction_id, uuid.UUID) else uuid.UUID(transaction_id)

    try:
        with path.open("rb") as raw:
            had_bom = raw.read(len(codecs.BOM_UTF8)) == codecs.BOM_UTF8
        with path.open(encoding="utf-8-sig", newline="") as f:
            reader = csv.DictReader(f)
            _check_header(reader.fieldnames, path)
            fieldnames = list(reader.fieldnames or [])
            rows = list(reader)
    except OSError as e:
        raise FileProcessingError(f"cannot read CSV {path}: {e}", file_path=path) from e

    matched = 0
    for row in rows:
        if _same_id(row.get("TransactionId"), target):
            row["Description"] = new_description
            matched += 1
    if not matched:
        raise NotFoundError(f"Transaction with ID {target} not found in {path}")

    tmp = path.with_name(path.name + ".tmp")
    try:
        with tmp.open("w", encoding="utf-8-sig" if had_bom else "utf-8", newline="") as out:
            writer = csv.DictWriter(out, fieldnames=fieldnames, extrasaction="ignore")
            writer.writeheader()
            writer.writerows(rows)
        os.replace(tmp, path)
    except OSError as e:
        with contextlib.suppress(FileNotFoundError):
            tmp.unlink()
        raise FileProcessingError(f"cannot rewrite CSV {path}: {e}", file_path=path) from e

    logger.info("csv:repair id=%s rows=%d file=%s", target, matched, path)


__all__ = ["REQUIRED_COLUMNS", "load_all", "repair_description"]
