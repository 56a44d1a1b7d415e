# ruff: noqa: I001
"""Create the transactions table and its lookup indexes.

Revision ID: 0001_ingest_transactions
Revises:
Create Date: 2026-10-17
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "0001_ingest_transactions"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "transactions",
        sa.Column("transaction_id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("amount", sa.Numeric(18, 2), nullable=True),
        sa.Column("category", sa.String(length=100), nullable=False),
        sa.Column("description", sa.String(length=255), nullable=False),
        sa.Column("merchant", sa.String(length=100), nullable=False),
    )

    # Per-user time-range scans used by the analytics pass
    op.create_index("ix_transactions_user_id_date", "transactions", ["user_id", "date"])
    op.create_index("ix_transactions_category", "transactions", ["category"])
    op.create_index("ix_transactions_description", "transactions", ["description"])
    op.create_index("ix_transactions_amount", "transactions", ["amount"])


def downgrade() -> None:
    op.drop_index("ix_transactions_amount", table_name="transactions")
    op.drop_index("ix_transactions_description", table_name="transactions")
    op.drop_index("ix_transactions_category", table_name="transactions")
    op.drop_index("ix_transactions_user_id_date", table_name="transactions")
    op.drop_table("transactions")
