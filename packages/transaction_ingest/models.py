"""Data models for ``transaction_ingest``.

Two families live here:

- ``Transaction``: the immutable in-memory record produced by the CSV loader
  and consumed by every pipeline step. Any field may be ``None`` right after
  loading (a blank CSV cell); the validator decides what is acceptable.
- Report models (``UserSummary``, ``CategoryCount``, ``HighestSpender``,
  ``AnalysisReport``): the fixed, schema-driven shape of the JSON report. Field
  aliases carry the external key names (``UsersSummary``, ``TotalIncome`` ...).
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer

# Nil identifier used as the "no spender" sentinel.
NIL_UUID = uuid.UUID(int=0)


@dataclass(frozen=True, slots=True)
class Transaction:
    """A single financial transaction as loaded from the input file.

    ``amount`` of ``None`` means "unspecified" and is distinct from zero.
    ``transaction_id`` is assigned by the source and never regenerated.
    """

    transaction_id: uuid.UUID | None
    user_id: uuid.UUID | None
    date: datetime | None
    amount: Decimal | None
    category: str | None
    description: str | None
    merchant: str | None

    def with_description(self, description: str) -> Transaction:
        """Return a copy with only ``description`` replaced."""

        return replace(self, description=description)

    def to_json_dict(self) -> dict[str, Any]:
        """Return a JSON-ready mapping using the external column names."""

        return {
            "TransactionId": str(self.transaction_id) if self.transaction_id else None,
            "UserId": str(self.user_id) if self.user_id else None,
            "Date": self.date.isoformat() if self.date else None,
            "Amount": str(self.amount) if self.amount is not None else None,
            "Category": self.category,
            "Description": self.description,
            "Merchant": self.merchant,
        }


# ---------------------------------------------------------------------------
# Report models
# ---------------------------------------------------------------------------


def _decimal_text(value: Decimal) -> str:
    # Fixed-point text, never exponent notation; report.py emits it unquoted.
    return format(value, "f")


Money = Annotated[Decimal, PlainSerializer(_decimal_text, when_used="json")]

# Aliases of every ``Money`` field in the report.
MONEY_FIELDS: tuple[str, ...] = ("TotalIncome", "TotalExpense", "TotalSpent")


class _ReportModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")


class UserSummary(_ReportModel):
    user_id: uuid.UUID = Field(alias="UserId")
    total_income: Money = Field(alias="TotalIncome")
    total_expense: Money = Field(alias="TotalExpense")


class CategoryCount(_ReportModel):
    category: str = Field(alias="Category")
    transactions_count: int = Field(alias="TransactionsCount")


class HighestSpender(_ReportModel):
    user_id: uuid.UUID = Field(alias="UserId")
    total_spent: Money = Field(alias="TotalSpent")

    @classmethod
    def none(cls) -> HighestSpender:
        """Sentinel returned when there is nothing to rank."""

        return cls(user_id=NIL_UUID, total_spent=Decimal(0))


class AnalysisReport(_ReportModel):
    users_summary: tuple[UserSummary, ...] = Field(alias="UsersSummary")
    top_categories: tuple[CategoryCount, ...] = Field(alias="TopCategories")
    highest_spender: HighestSpender = Field(alias="HighestSpender")


__all__ = [
    "MONEY_FIELDS",
    "NIL_UUID",
    "AnalysisReport",
    "CategoryCount",
    "HighestSpender",
    "Transaction",
    "UserSummary",
]
