from __future__ import annotations

import uuid
from decimal import Decimal

from transaction_ingest.analysis import (
    analyze,
    highest_spender,
    top_categories,
    user_summaries,
)
from transaction_ingest.models import NIL_UUID, CategoryCount, HighestSpender, UserSummary

from tests.helpers.records import make_tx

U1 = uuid.UUID("11111111-1111-1111-1111-111111111111")
U2 = uuid.UUID("22222222-2222-2222-2222-222222222222")
U3 = uuid.UUID("33333333-3333-3333-3333-333333333333")


def test_user_summaries_split_income_and_expense():
    records = [
        make_tx(user_id=U1, amount=Decimal("100")),
        make_tx(user_id=U1, amount=Decimal("-30")),
        make_tx(user_id=U2, amount=None),
    ]

    assert user_summaries(records) == [
        UserSummary(user_id=U1, total_income=Decimal("100"), total_expense=Decimal("-30")),
        UserSummary(user_id=U2, total_income=Decimal(0), total_expense=Decimal(0)),
    ]


def test_top_categories_orders_by_count_then_first_seen():
    cats = ["Rent", "Food", "Travel", "Food", "Rent", "Fuel", "Travel", "Fuel", "Gym"]
    records = [make_tx(category=c) for c in cats]

    assert top_categories(records) == [
        CategoryCount(category="Rent", transactions_count=2),
        CategoryCount(category="Food", transactions_count=2),
        CategoryCount(category="Travel", transactions_count=2),
    ]
    assert top_categories(records, n=1) == [CategoryCount(category="Rent", transactions_count=2)]


def test_highest_spender_sums_amounts_with_none_as_zero():
    records = [
        make_tx(user_id=U1, amount=Decimal("10")),
        make_tx(user_id=U2, amount=Decimal("25.50")),
        make_tx(user_id=U2, amount=None),
        make_tx(user_id=U3, amount=Decimal("25.50")),
    ]

    assert highest_spender(records) == HighestSpender(user_id=U2, total_spent=Decimal("25.50"))


def test_highest_spender_empty_returns_sentinel():
    assert highest_spender([]) == HighestSpender(user_id=NIL_UUID, total_spent=Decimal(0))


def test_analyze_combines_all_aggregates():
    records = [
        make_tx(user_id=U1, amount=Decimal("100"), category="Salary"),
        make_tx(user_id=U1, amount=Decimal("-30"), category="Food"),
        make_tx(user_id=U2, amount=None, category="Food"),
    ]

    report = analyze(records)

    assert [s.user_id for s in report.users_summary] == [U1, U2]
    assert report.top_categories[0] == CategoryCount(category="Food", transactions_count=2)
    assert report.highest_spender == HighestSpender(user_id=U1, total_spent=Decimal("70"))


def test_analyze_empty_snapshot():
    report = analyze([])

    assert report.users_summary == ()
    assert report.top_categories == ()
    assert report.highest_spender.user_id == NIL_UUID
