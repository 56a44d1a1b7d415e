from __future__ import annotations

import uuid
from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import DateTime, Index, Numeric, String, TypeDecorator, Uuid
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class UtcDateTime(TypeDecorator[datetime]):
    """Timezone-aware timestamp normalized to UTC on the way in and out.

    SQLite stores ``DateTime(timezone=True)`` values without their offset, so
    values read back are naive. Tagging them as UTC keeps round trips exact on
    every backend.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)


# ---------------------------
# Core: transactions
# ---------------------------


class IngestTransaction(Base):
    __tablename__ = "transactions"

    # Identifier comes from the input file and is never regenerated.
    transaction_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    date: Mapped[datetime] = mapped_column(UtcDateTime, nullable=False)
    # NULL means "unspecified", which is distinct from zero.
    amount: Mapped[Decimal | None] = mapped_column(Numeric(18, 2), nullable=True)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(String(255), nullable=False)
    merchant: Mapped[str] = mapped_column(String(100), nullable=False)

    __table_args__ = (
        Index("ix_transactions_user_id_date", "user_id", "date"),
        Index("ix_transactions_category", "category"),
        Index("ix_transactions_description", "description"),
        Index("ix_transactions_amount", "amount"),
    )


__all__ = [
    "Base",
    "IngestTransaction",
    "UtcDateTime",
]
