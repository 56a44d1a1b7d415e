"""Aggregate analytics over a snapshot of stored transactions.

All functions are pure. ``analyze`` runs the three aggregates concurrently on
the same immutable tuple and joins them into an ``AnalysisReport``. Ordering is
deterministic: groups appear in first-seen order and ties keep that order.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

from .logging_setup import get_logger
from .models import AnalysisReport, CategoryCount, HighestSpender, Transaction, UserSummary

logger = get_logger("transaction_ingest.analysis")

DEFAULT_TOP_CATEGORIES = 3


def user_summaries(records: Iterable[Transaction]) -> list[UserSummary]:
    """Per-user income (sum of positive amounts) and expense (sum of negatives).

    ``None`` amounts contribute to neither. Users appear in first-seen order.
    """

    totals: dict[uuid.UUID, list[Decimal]] = {}
    for r in records:
        if r.user_id is None:
            continue
        income_expense = totals.setdefault(r.user_id, [Decimal(0), Decimal(0)])
        if r.amount is None:
            continue
        if r.amount > 0:
            income_expense[0] += r.amount
        elif r.amount < 0:
            income_expense[1] += r.amount
    return [
        UserSummary(user_id=uid, total_income=inc, total_expense=exp)
        for uid, (inc, exp) in totals.items()
    ]


def top_categories(
    records: Iterable[Transaction], n: int = DEFAULT_TOP_CATEGORIES
) -> list[CategoryCount]:
    """The ``n`` most frequent categories, ties broken by first appearance."""

    counts: dict[str, int] = {}
    for r in records:
        if r.category is None:
            continue
        counts[r.category] = counts.get(r.category, 0) + 1
    # sorted() is stable, so equal counts keep first-seen order.
    ranked = sorted(counts.items(), key=lambda kv: kv[1], reverse=True)
    return [CategoryCount(category=c, transactions_count=k) for c, k in ranked[: max(0, n)]]


def highest_spender(records: Iterable[Transaction]) -> HighestSpender:
    """User with the largest total amount (``None`` counted as zero).

    Empty input returns the nil-identifier sentinel with a zero total. Ties go
    to the user seen first.
    """

    totals: dict[uuid.UUID, Decimal] = {}
    for r in records:
        if r.user_id is None:
            continue
        totals[r.user_id] = totals.get(r.user_id, Decimal(0)) + (r.amount or Decimal(0))
    if not totals:
        return HighestSpender.none()

    best_id, best_total = next(iter(totals.items()))
    for uid, total in totals.items():
        if total > best_total:
            best_id, best_total = uid, total
    return HighestSpender(user_id=best_id, total_spent=best_total)


def analyze(records: Sequence[Transaction], *, max_workers: int = 3) -> AnalysisReport:
    """Compute every aggregate over one snapshot of ``records``."""

    snapshot = tuple(records)
    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as pool:
        f_users = pool.submit(user_summaries, snapshot)
        f_top = pool.submit(top_categories, snapshot)
        f_spender = pool.submit(highest_spender, snapshot)
        report = AnalysisReport(
            users_summary=tuple(f_users.result()),
            top_categories=tuple(f_top.result()),
            highest_spender=f_spender.result(),
        )

    logger.info(
        "analysis:done records=%d users=%d categories=%d",
        len(snapshot),
        len(report.users_summary),
        len(report.top_categories),
    )
    return report


__all__ = [
    "DEFAULT_TOP_CATEGORIES",
    "analyze",
    "highest_spender",
    "top_categories",
    "user_summaries",
]
