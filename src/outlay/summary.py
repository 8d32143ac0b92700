"""
Expense summary - dashboard totals and category breakdown.

All functions are pure: they read the expense list and return freshly
built structures. The only time dependence is the reference instant used
for the current-month total, which callers may pass explicitly.
"""

from datetime import datetime
from typing import Dict, List, Optional, Sequence

from .models import (
    Category,
    CategoryBreakdownEntry,
    Expense,
    ExpenseSummary,
    TopCategory,
)

RECENT_LIMIT = 5


def percentage_of(amount: float, total: float) -> float:
    """Share of total as a percentage, or 0 when total is 0."""
    if total == 0:
        return 0.0
    return amount / total * 100


def category_totals(expenses: Sequence[Expense]) -> Dict[Category, float]:
    """Sum amounts per category, with every category present (zero if unused)."""
    totals = {category: 0.0 for category in Category}
    for expense in expenses:
        totals[expense.category] += expense.amount
    return totals


def build_category_breakdown(totals: Dict[Category, float], total_spending: float) -> List[CategoryBreakdownEntry]:
    """Turn per-category totals into breakdown entries.

    Zero-amount categories are dropped; the rest are sorted by amount,
    largest first. The sort is stable over enum order, so equal amounts
    keep their declared category order.
    """
    entries = [
        CategoryBreakdownEntry(
            category=category,
            amount=totals[category],
            percentage=percentage_of(totals[category], total_spending),
        )
        for category in Category
        if totals[category] > 0
    ]
    entries.sort(key=lambda e: e.amount, reverse=True)
    return entries


def monthly_total(expenses: Sequence[Expense], now: datetime) -> float:
    """Total of expenses dated in the same calendar month and year as now."""
    return sum(
        (e.amount for e in expenses
         if e.date.year == now.year and e.date.month == now.month),
        0.0,
    )


def recent_expenses(expenses: Sequence[Expense], limit: int = RECENT_LIMIT) -> List[Expense]:
    """Most recent expenses first. Equal dates keep their input order."""
    return sorted(expenses, key=lambda e: e.date, reverse=True)[:limit]


def calculate_summary(expenses: Sequence[Expense], now: Optional[datetime] = None,
                      recent_limit: int = RECENT_LIMIT) -> ExpenseSummary:
    """Compute dashboard statistics for a list of expenses.

    Args:
        expenses: Expense records (not modified)
        now: Reference instant for the current-month total (default: now)
        recent_limit: How many recent expenses to include

    Returns:
        ExpenseSummary. Percentages are relative to the all-time total,
        not the monthly total.
    """
    if now is None:
        now = datetime.now()

    expenses = list(expenses)
    totals = category_totals(expenses)
    total_spending = sum(totals.values())

    breakdown = build_category_breakdown(totals, total_spending)
    top = None
    if breakdown:
        top = TopCategory(category=breakdown[0].category, amount=breakdown[0].amount)

    return ExpenseSummary(
        total_spending=total_spending,
        monthly_spending=monthly_total(expenses, now),
        category_breakdown=breakdown,
        recent_expenses=recent_expenses(expenses, recent_limit),
        top_category=top,
    )
