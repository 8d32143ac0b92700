"""Tests for expense filtering."""

import pytest
from datetime import date, datetime, timedelta, timezone

from outlay.filters import amount_text, filter_expenses, matches_search
from outlay.models import Category, DateRange, Expense, FilterSpec


def make_expense(id, day, amount, category, description):
    return Expense(
        id=id,
        date=datetime(2025, 1, day),
        amount=amount,
        category=category,
        description=description,
    )


@pytest.fixture
def expenses():
    return [
        make_expense('1', 5, 4.75, Category.FOOD, 'Starbucks latte'),
        make_expense('2', 10, 50.0, Category.TRANSPORTATION, 'Shell gas'),
        make_expense('3', 15, 120.0, Category.BILLS, 'Electric bill'),
        make_expense('4', 20, 15.99, Category.ENTERTAINMENT, 'Netflix'),
        make_expense('5', 25, 33.0, Category.FOOD, 'Whole Foods groceries'),
    ]


def ids(expenses):
    return [e.id for e in expenses]


class TestIdentityFilter:
    """The default filter returns every expense unchanged."""

    def test_identity(self, expenses):
        result = filter_expenses(expenses, FilterSpec())
        assert result == expenses

    def test_spec_optional(self, expenses):
        assert filter_expenses(expenses) == expenses

    def test_returns_new_list(self, expenses):
        result = filter_expenses(expenses, FilterSpec())
        assert result is not expenses

    def test_empty_input(self):
        assert filter_expenses([], FilterSpec(search_query='x')) == []


class TestCategoryFilter:
    """Tests for filtering by category."""

    def test_single_category(self, expenses):
        result = filter_expenses(expenses, FilterSpec(category=Category.FOOD))
        assert ids(result) == ['1', '5']

    def test_category_by_label(self, expenses):
        result = filter_expenses(expenses, FilterSpec(category='Bills'))
        assert ids(result) == ['3']

    def test_unused_category(self, expenses):
        assert filter_expenses(expenses, FilterSpec(category=Category.SHOPPING)) == []


class TestDateRangeFilter:
    """Tests for filtering by date range (both ends inclusive)."""

    def test_start_only(self, expenses):
        spec = FilterSpec(date_range=DateRange(start=datetime(2025, 1, 15)))
        assert ids(filter_expenses(expenses, spec)) == ['3', '4', '5']

    def test_end_only(self, expenses):
        spec = FilterSpec(date_range=DateRange(end=datetime(2025, 1, 10)))
        assert ids(filter_expenses(expenses, spec)) == ['1', '2']

    def test_both_ends_inclusive(self, expenses):
        spec = FilterSpec(date_range=DateRange(datetime(2025, 1, 10), datetime(2025, 1, 20)))
        assert ids(filter_expenses(expenses, spec)) == ['2', '3', '4']

    def test_plain_date_bounds(self, expenses):
        """A date bound is treated as midnight of that day."""
        spec = FilterSpec(date_range=DateRange(date(2025, 1, 20), date(2025, 1, 25)))
        assert ids(filter_expenses(expenses, spec)) == ['4', '5']

    def test_end_at_midnight_excludes_later_same_day(self):
        late = Expense('x', datetime(2025, 1, 10, 18, 30), 5.0, Category.OTHER, 'Late snack')
        spec = FilterSpec(date_range=DateRange(end=datetime(2025, 1, 10)))
        assert filter_expenses([late], spec) == []

    def test_aware_bounds_compare_as_utc(self, expenses):
        """Timezone-aware bounds are converted to UTC before comparing."""
        spec = FilterSpec(date_range=DateRange(
            start=datetime(2025, 1, 1, tzinfo=timezone.utc),
            end=datetime(2025, 1, 10, 5, 0, tzinfo=timezone(timedelta(hours=5))),
        ))
        assert ids(filter_expenses(expenses, spec)) == ['1', '2']


class TestSearchFilter:
    """Tests for free-text search."""

    def test_matches_description_case_insensitive(self, expenses):
        result = filter_expenses(expenses, FilterSpec(search_query='STARBUCKS'))
        assert ids(result) == ['1']

    def test_matches_category_name(self, expenses):
        result = filter_expenses(expenses, FilterSpec(search_query='transport'))
        assert ids(result) == ['2']

    def test_matches_amount_text(self, expenses):
        result = filter_expenses(expenses, FilterSpec(search_query='15.99'))
        assert ids(result) == ['4']

    def test_whole_amount_has_no_decimal(self, expenses):
        """50.0 is searchable as '50' but not as '50.0'."""
        assert ids(filter_expenses(expenses, FilterSpec(search_query='50'))) == ['2']
        assert filter_expenses(expenses, FilterSpec(search_query='50.0')) == []

    def test_substring_of_description(self, expenses):
        result = filter_expenses(expenses, FilterSpec(search_query='food'))
        # 'Food' category on 1 and 5, 'Whole Foods' description on 5
        assert ids(result) == ['1', '5']

    def test_no_match(self, expenses):
        assert filter_expenses(expenses, FilterSpec(search_query='zzz')) == []

    def test_matches_search_empty_query(self, expenses):
        assert matches_search(expenses[0], '')


class TestCombinedFilters:
    """All criteria must match."""

    def test_category_and_search(self, expenses):
        spec = FilterSpec(category=Category.FOOD, search_query='whole')
        assert ids(filter_expenses(expenses, spec)) == ['5']

    def test_category_and_range(self, expenses):
        spec = FilterSpec(
            category=Category.FOOD,
            date_range=DateRange(end=datetime(2025, 1, 20)),
        )
        assert ids(filter_expenses(expenses, spec)) == ['1']

    def test_preserves_input_order(self, expenses):
        reversed_input = list(reversed(expenses))
        result = filter_expenses(reversed_input, FilterSpec(category=Category.FOOD))
        assert ids(result) == ['5', '1']


class TestAmountText:
    """Tests for the searchable amount text."""

    def test_whole(self):
        assert amount_text(50.0) == '50'
        assert amount_text(100) == '100'

    def test_fractional(self):
        assert amount_text(12.5) == '12.5'
        assert amount_text(4.75) == '4.75'
