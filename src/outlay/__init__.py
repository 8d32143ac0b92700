"""Outlay - personal expense tracking with category and vendor breakdowns."""

__version__ = '0.1.0'

from .filters import filter_expenses
from .models import (
    Category,
    CategoryBreakdownEntry,
    DateRange,
    Expense,
    ExpenseSummary,
    FilterSpec,
    TopCategory,
    VendorSummary,
)
from .summary import calculate_summary
from .vendor_utils import calculate_vendor_summaries, detect_vendor

__all__ = [
    'Category',
    'CategoryBreakdownEntry',
    'DateRange',
    'Expense',
    'ExpenseSummary',
    'FilterSpec',
    'TopCategory',
    'VendorSummary',
    'calculate_summary',
    'calculate_vendor_summaries',
    'detect_vendor',
    'filter_expenses',
]
