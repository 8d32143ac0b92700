"""
Expense data model.

Defines the closed category enumeration, the Expense record, filter
criteria, and the derived summary structures produced by the aggregators.
"""

from dataclasses import dataclass, field, replace
from datetime import date as date_type
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union


class Category(str, Enum):
    """Expense categories. Declaration order is the breakdown tie-break order."""

    FOOD = 'Food'
    TRANSPORTATION = 'Transportation'
    ENTERTAINMENT = 'Entertainment'
    SHOPPING = 'Shopping'
    BILLS = 'Bills'
    OTHER = 'Other'

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, label: str) -> 'Category':
        """Look up a category by label, ignoring case."""
        wanted = label.strip().lower()
        for category in cls:
            if category.value.lower() == wanted:
                return category
        valid = ', '.join(c.value for c in cls)
        raise ValueError(f"Unknown category: '{label}'. Valid categories: {valid}")


ALL_CATEGORIES = 'All'


# ============================================================================
# TIMESTAMPS
# ============================================================================

def parse_datetime(value: Union[str, datetime, date_type]) -> datetime:
    """Parse an ISO-8601 timestamp (or date) into a naive datetime.

    Aware timestamps are converted to UTC before the zone is dropped, so
    values written by other tools ("2025-01-15T10:00:00Z") compare cleanly
    against locally entered dates.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date_type):
        return datetime(value.year, value.month, value.day)
    else:
        text = value.strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        parsed = datetime.fromisoformat(text)

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def format_timestamp(value: datetime) -> str:
    """Render a datetime in the persisted ISO-8601 form."""
    return value.isoformat()


# ============================================================================
# EXPENSE RECORD
# ============================================================================

@dataclass(frozen=True)
class Expense:
    """A single recorded expense."""

    id: str
    date: datetime  # When the expense occurred (not when it was entered)
    amount: float
    category: Category
    description: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, object]:
        """Convert to the persisted JSON shape."""
        return {
            'id': self.id,
            'date': format_timestamp(self.date),
            'amount': self.amount,
            'category': self.category.value,
            'description': self.description,
            'createdAt': format_timestamp(self.created_at) if self.created_at else None,
            'updatedAt': format_timestamp(self.updated_at) if self.updated_at else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> 'Expense':
        """Build an Expense from its persisted JSON shape."""
        created = data.get('createdAt')
        updated = data.get('updatedAt')
        return cls(
            id=str(data['id']),
            date=parse_datetime(data['date']),
            amount=float(data['amount']),
            category=Category.parse(str(data['category'])),
            description=str(data['description']),
            created_at=parse_datetime(created) if created else None,
            updated_at=parse_datetime(updated) if updated else None,
        )

    def with_changes(self, **changes) -> 'Expense':
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)


# ============================================================================
# FILTER CRITERIA
# ============================================================================

@dataclass
class DateRange:
    start: Optional[datetime] = None
    end: Optional[datetime] = None


@dataclass
class FilterSpec:
    """Criteria for narrowing an expense list. The default matches everything."""

    category: Union[Category, str] = ALL_CATEGORIES
    date_range: DateRange = field(default_factory=DateRange)
    search_query: str = ''

    @property
    def is_active(self) -> bool:
        """True if any criterion narrows the result."""
        return (
            self.category != ALL_CATEGORIES
            or self.date_range.start is not None
            or self.date_range.end is not None
            or bool(self.search_query)
        )


# ============================================================================
# DERIVED STRUCTURES
# ============================================================================

@dataclass
class CategoryBreakdownEntry:
    category: Category
    amount: float
    percentage: float


@dataclass
class TopCategory:
    category: Category
    amount: float


@dataclass
class ExpenseSummary:
    """Dashboard totals computed from an expense list."""

    total_spending: float = 0.0
    monthly_spending: float = 0.0  # Current calendar month only
    category_breakdown: List[CategoryBreakdownEntry] = field(default_factory=list)
    recent_expenses: List[Expense] = field(default_factory=list)
    top_category: Optional[TopCategory] = None


@dataclass
class VendorSummary:
    """Spending statistics for one detected vendor."""

    vendor: str
    total_amount: float
    transaction_count: int
    average_transaction: float
    percentage: float  # Share of the grand total across all vendors
    top_category: Category


# ============================================================================
# FORM VALIDATION
# ============================================================================

def validate_expense_form(data: Dict[str, str]) -> Tuple[bool, Dict[str, str]]:
    """Validate raw expense form input.

    Args:
        data: Dict with 'date', 'amount', 'category' and 'description' strings

    Returns:
        Tuple of (is_valid, errors) where errors maps field name to message.
    """
    errors = {}

    raw_date = (data.get('date') or '').strip()
    if not raw_date:
        errors['date'] = 'Date is required'
    else:
        try:
            parse_datetime(raw_date)
        except ValueError:
            errors['date'] = 'Please enter a valid date'

    raw_amount = (data.get('amount') or '').strip()
    try:
        amount = float(raw_amount)
    except ValueError:
        amount = None
    # NaN fails the > 0 comparison as well
    if amount is None or not amount > 0:
        errors['amount'] = 'Please enter a valid amount greater than 0'

    raw_category = (data.get('category') or '').strip()
    if not raw_category:
        errors['category'] = 'Category is required'
    else:
        try:
            Category.parse(raw_category)
        except ValueError:
            errors['category'] = 'Please choose a valid category'

    if not (data.get('description') or '').strip():
        errors['description'] = 'Description is required'

    return (len(errors) == 0, errors)
