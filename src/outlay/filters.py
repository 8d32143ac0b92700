"""
Expense filtering by category, date range, and free-text search.
"""

from datetime import date as date_type
from datetime import datetime
from typing import Iterable, List, Optional

from .models import ALL_CATEGORIES, Expense, FilterSpec, parse_datetime


def amount_text(amount: float) -> str:
    """Render an amount the way search matches against it.

    Whole amounts drop the trailing '.0' so that searching "50" finds 50.0
    and "50.0" does not.
    """
    if float(amount).is_integer():
        return str(int(amount))
    return repr(float(amount))


def _as_datetime(value) -> Optional[datetime]:
    # A bare date bound means midnight of that day; aware bounds become naive UTC
    if value is None:
        return None
    if isinstance(value, (datetime, date_type)):
        return parse_datetime(value)
    return value


def matches_search(expense: Expense, query: str) -> bool:
    """True if the query appears in the description, category, or amount."""
    if not query:
        return True
    query = query.lower()
    return (
        query in expense.description.lower()
        or query in expense.category.value.lower()
        or query in amount_text(expense.amount)
    )


def filter_expenses(expenses: Iterable[Expense], spec: Optional[FilterSpec] = None) -> List[Expense]:
    """Return the expenses matching every criterion in spec.

    Args:
        expenses: Expense records, in any order
        spec: Filter criteria (default matches everything)

    Returns:
        New list of matching expenses in their original order.
    """
    if spec is None:
        spec = FilterSpec()

    start = _as_datetime(spec.date_range.start)
    end = _as_datetime(spec.date_range.end)

    result = []
    for expense in expenses:
        if spec.category != ALL_CATEGORIES and expense.category != spec.category:
            continue
        if start is not None and expense.date < start:
            continue
        if end is not None and expense.date > end:
            continue
        if not matches_search(expense, spec.search_query):
            continue
        result.append(expense)
    return result
