# ruff: noqa: I001
"""Persistence of transaction records in the shared ``transactions`` table.

Functions here rely on the SQLAlchemy ORM model ``IngestTransaction`` from
``ingest_db.models.transactions`` and on sessions from ``ingest_db.client``.

Transaction boundaries:
- ``bulk_insert`` commits each batch in its own session. A failure in a later
  batch leaves earlier batches committed; there is no compensating rollback.
- ``delete_by_ids`` deletes in fixed-size batches and reports the real number
  of rows removed.
- ``delete`` (single record) reports failure as ``False`` instead of raising.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable, Sequence

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError

from ingest_db.client import session_scope
from ingest_db.models.transactions import IngestTransaction

from .config import DEFAULT_INSERT_BATCH_SIZE
from .errors import ArgumentError, MappingError, StoreError
from .logging_setup import get_logger
from .models import Transaction
from .pmap import chunked

logger = get_logger("transaction_ingest.persistence")

DELETE_BATCH_SIZE = 10_000
# Keeps IN (...) lists under the bound-parameter limits of small backends.
_LOOKUP_CHUNK = 5_000


def to_row(record: Transaction) -> IngestTransaction:
    """Map a domain record onto a new ORM row."""

    if not isinstance(record.transaction_id, uuid.UUID):
        raise MappingError(f"cannot store a transaction without an id: {record!r}")
    if record.user_id is not None and not isinstance(record.user_id, uuid.UUID):
        raise MappingError(f"user id must be a UUID: {record.user_id!r}")
    return IngestTransaction(
        transaction_id=record.transaction_id,
        user_id=record.user_id,
        date=record.date,
        amount=record.amount,
        category=record.category,
        description=record.description,
        merchant=record.merchant,
    )


def from_row(row: IngestTransaction) -> Transaction:
    """Map an ORM row back to a domain record."""

    try:
        return Transaction(
            transaction_id=row.transaction_id,
            user_id=row.user_id,
            date=row.date,
            amount=row.amount,
            category=row.category,
            description=row.description,
            merchant=row.merchant,
        )
    except AttributeError as e:
        raise MappingError(f"unexpected row shape: {row!r}") from e


class BulkStore:
    """Batched access to the ``transactions`` table for one database URL."""

    def __init__(self, database_url: str | None = None) -> None:
        self.database_url = database_url

    # ---- reads ---------------------------------------------------------------

    def _existing_ids(self, ids: Sequence[uuid.UUID]) -> set[uuid.UUID]:
        found: set[uuid.UUID] = set()
        try:
            with session_scope(database_url=self.database_url) as session:
                for part in chunked(ids, _LOOKUP_CHUNK):
                    stmt = select(IngestTransaction.transaction_id).where(
                        IngestTransaction.transaction_id.in_(part)
                    )
                    found.update(session.execute(stmt).scalars())
        except SQLAlchemyError as e:
            raise StoreError(f"failed to look up existing transactions: {e}") from e
        return found

    def get_all(self) -> list[Transaction]:
        try:
            with session_scope(database_url=self.database_url) as session:
                stmt = select(IngestTransaction).order_by(
                    IngestTransaction.date, IngestTransaction.transaction_id
                )
                return [from_row(r) for r in session.execute(stmt).scalars()]
        except SQLAlchemyError as e:
            raise StoreError(f"failed to read transactions: {e}") from e

    def get_all_ids(self) -> list[uuid.UUID]:
        try:
            with session_scope(database_url=self.database_url) as session:
                return list(session.execute(select(IngestTransaction.transaction_id)).scalars())
        except SQLAlchemyError as e:
            raise StoreError(f"failed to read transaction ids: {e}") from e

    def get_by_id(self, transaction_id: uuid.UUID) -> Transaction | None:
        try:
            with session_scope(database_url=self.database_url) as session:
                row = session.get(IngestTransaction, transaction_id)
                return from_row(row) if row is not None else None
        except SQLAlchemyError as e:
            raise StoreError(f"failed to read transaction {transaction_id}: {e}") from e

    def exists(self, transaction_id: uuid.UUID) -> bool:
        return bool(self._existing_ids([transaction_id]))

    # ---- writes --------------------------------------------------------------

    def bulk_insert(
        self,
        records: Iterable[Transaction],
        batch_size: int = DEFAULT_INSERT_BATCH_SIZE,
    ) -> int:
        """Insert records not yet stored, committing one batch at a time.

        Records whose identifier is already stored (or repeated within
        ``records``) are skipped. Returns the number of rows inserted. A failing
        batch raises ``StoreError``; batches before it stay committed.
        """

        if batch_size < 1:
            raise ArgumentError("batch_size must be a positive integer")

        items = list(records)
        if not items:
            return 0

        ids = [r.transaction_id for r in items if isinstance(r.transaction_id, uuid.UUID)]
        skip = self._existing_ids(ids)
        fresh: list[Transaction] = []
        for record in items:
            if record.transaction_id in skip:
                continue
            if record.transaction_id is not None:
                skip.add(record.transaction_id)
            fresh.append(record)

        if len(fresh) < len(items):
            logger.info("store:skip_existing count=%d", len(items) - len(fresh))

        inserted = 0
        for batch_no, batch in enumerate(chunked(fresh, batch_size), start=1):
            rows = [to_row(r) for r in batch]
            try:
                with session_scope(database_url=self.database_url) as session:
                    session.add_all(rows)
            except SQLAlchemyError as e:
                logger.error(
                    "store:batch_failed batch=%d size=%d committed=%d",
                    batch_no,
                    len(rows),
                    inserted,
                )
                raise StoreError(
                    f"bulk insert failed in batch {batch_no} after {inserted} rows: {e}"
                ) from e
            inserted += len(rows)
            logger.debug("store:batch_committed batch=%d size=%d", batch_no, len(rows))

        logger.info("store:inserted rows=%d", inserted)
        return inserted

    def delete(self, transaction_id: uuid.UUID) -> bool:
        """Delete one record; ``False`` when it is absent or the delete fails."""

        try:
            with session_scope(database_url=self.database_url) as session:
                row = session.get(IngestTransaction, transaction_id)
                if row is None:
                    logger.warning("store:delete_missing id=%s", transaction_id)
                    return False
                session.delete(row)
        except SQLAlchemyError as e:
            logger.error("store:delete_failed id=%s error=%s", transaction_id, e)
            return False
        return True

    def delete_by_ids(self, ids: Sequence[uuid.UUID] | None) -> int:
        """Delete every record in ``ids`` and return the number of rows removed."""

        if not ids:
            raise ArgumentError("The list of transaction IDs cannot be null or empty.")

        deleted = 0
        for part in chunked(list(ids), DELETE_BATCH_SIZE):
            try:
                with session_scope(database_url=self.database_url) as session:
                    result = session.execute(
                        delete(IngestTransaction).where(
                            IngestTransaction.transaction_id.in_(part)
                        )
                    )
                    deleted += result.rowcount or 0
            except SQLAlchemyError as e:
                raise StoreError(f"failed to delete transactions after {deleted} rows: {e}") from e

        logger.info("store:deleted rows=%d requested=%d", deleted, len(ids))
        return deleted


__all__ = ["DELETE_BATCH_SIZE", "BulkStore", "from_row", "to_row"]
