"""Tests for the expense summary - totals, category breakdown, recent expenses."""

import pytest
from datetime import datetime

from outlay.models import Category, Expense, TopCategory
from outlay.summary import (
    build_category_breakdown,
    calculate_summary,
    category_totals,
    monthly_total,
    percentage_of,
    recent_expenses,
)

NOW = datetime(2025, 3, 18, 12, 0)


def make_expense(id, when, amount, category, description='Test'):
    return Expense(id=id, date=when, amount=amount, category=category, description=description)


@pytest.fixture
def mixed_expenses():
    return [
        make_expense('a', datetime(2025, 3, 1), 40.0, Category.FOOD, 'Groceries'),
        make_expense('b', datetime(2025, 3, 15), 60.0, Category.SHOPPING, 'Shoes'),
        make_expense('c', datetime(2025, 2, 20), 100.0, Category.BILLS, 'Rent share'),
        make_expense('d', datetime(2024, 3, 10), 25.0, Category.FOOD, 'Pizza'),
        make_expense('e', datetime(2025, 3, 17), 15.0, Category.ENTERTAINMENT, 'Movie'),
        make_expense('f', datetime(2025, 1, 5), 10.0, Category.OTHER, 'Gift wrap'),
        make_expense('g', datetime(2025, 3, 18, 8, 0), 50.0, Category.TRANSPORTATION, 'Train'),
    ]


class TestEmptyInput:
    """Empty input produces the zero summary."""

    def test_empty_summary(self):
        summary = calculate_summary([], now=NOW)
        assert summary.total_spending == 0
        assert summary.monthly_spending == 0
        assert summary.category_breakdown == []
        assert summary.recent_expenses == []
        assert summary.top_category is None


class TestTwoExpenseScenario:
    """Coffee plus an Amazon order."""

    def test_breakdown(self):
        expenses = [
            make_expense('1', datetime(2025, 3, 2), 50.0, Category.FOOD, 'Starbucks coffee'),
            make_expense('2', datetime(2025, 3, 3), 100.0, Category.SHOPPING, 'Amazon order'),
        ]
        summary = calculate_summary(expenses, now=NOW)

        assert summary.total_spending == 150.0
        assert [e.category for e in summary.category_breakdown] == [Category.SHOPPING, Category.FOOD]
        assert summary.category_breakdown[0].amount == 100.0
        assert summary.category_breakdown[0].percentage == pytest.approx(66.67, abs=0.01)
        assert summary.category_breakdown[1].amount == 50.0
        assert summary.category_breakdown[1].percentage == pytest.approx(33.33, abs=0.01)
        assert summary.top_category == TopCategory(Category.SHOPPING, 100.0)


class TestTotals:
    """Tests for all-time and current-month totals."""

    def test_total_spending(self, mixed_expenses):
        summary = calculate_summary(mixed_expenses, now=NOW)
        assert summary.total_spending == pytest.approx(300.0)

    def test_monthly_spending_current_month_only(self, mixed_expenses):
        """March 2024 does not count toward March 2025."""
        summary = calculate_summary(mixed_expenses, now=NOW)
        assert summary.monthly_spending == pytest.approx(40.0 + 60.0 + 15.0 + 50.0)

    def test_monthly_spending_depends_on_now(self, mixed_expenses):
        summary = calculate_summary(mixed_expenses, now=datetime(2025, 2, 1))
        assert summary.monthly_spending == pytest.approx(100.0)

    def test_no_expenses_this_month(self, mixed_expenses):
        assert monthly_total(mixed_expenses, datetime(2023, 6, 1)) == 0

    def test_input_not_modified(self, mixed_expenses):
        original = list(mixed_expenses)
        calculate_summary(mixed_expenses, now=NOW)
        assert mixed_expenses == original


class TestCategoryBreakdown:
    """Tests for the per-category breakdown."""

    def test_totals_seeded_for_every_category(self):
        totals = category_totals([])
        assert set(totals) == set(Category)
        assert all(v == 0 for v in totals.values())

    def test_amounts_sum_to_total(self, mixed_expenses):
        summary = calculate_summary(mixed_expenses, now=NOW)
        assert sum(e.amount for e in summary.category_breakdown) == pytest.approx(summary.total_spending)

    def test_percentages_sum_to_100(self, mixed_expenses):
        summary = calculate_summary(mixed_expenses, now=NOW)
        assert sum(e.percentage for e in summary.category_breakdown) == pytest.approx(100.0)

    def test_sorted_descending_without_zero_entries(self, mixed_expenses):
        summary = calculate_summary(mixed_expenses, now=NOW)
        amounts = [e.amount for e in summary.category_breakdown]
        assert amounts == sorted(amounts, reverse=True)
        assert all(a > 0 for a in amounts)

    def test_category_amounts(self, mixed_expenses):
        summary = calculate_summary(mixed_expenses, now=NOW)
        by_cat = {e.category: e.amount for e in summary.category_breakdown}
        assert by_cat == {
            Category.BILLS: 100.0,
            Category.FOOD: 65.0,
            Category.SHOPPING: 60.0,
            Category.TRANSPORTATION: 50.0,
            Category.ENTERTAINMENT: 15.0,
            Category.OTHER: 10.0,
        }

    def test_percentage_uses_all_time_total(self, mixed_expenses):
        summary = calculate_summary(mixed_expenses, now=NOW)
        bills = summary.category_breakdown[0]
        assert bills.category == Category.BILLS
        assert bills.percentage == pytest.approx(100.0 / 300.0 * 100)

    def test_ties_keep_category_order(self):
        """Equal amounts are listed in the enum's declared order."""
        expenses = [
            make_expense('1', NOW, 20.0, Category.OTHER),
            make_expense('2', NOW, 20.0, Category.FOOD),
            make_expense('3', NOW, 20.0, Category.BILLS),
        ]
        summary = calculate_summary(expenses, now=NOW)
        assert [e.category for e in summary.category_breakdown] == [
            Category.FOOD, Category.BILLS, Category.OTHER
        ]
        assert summary.top_category.category == Category.FOOD

    def test_zero_total_gives_zero_percentages(self):
        totals = {c: 0.0 for c in Category}
        assert build_category_breakdown(totals, 0.0) == []
        assert percentage_of(5.0, 0.0) == 0.0

    def test_top_category_is_largest(self, mixed_expenses):
        summary = calculate_summary(mixed_expenses, now=NOW)
        assert summary.top_category == TopCategory(Category.BILLS, 100.0)


class TestRecentExpenses:
    """Tests for the recent expenses list."""

    def test_five_most_recent_newest_first(self, mixed_expenses):
        summary = calculate_summary(mixed_expenses, now=NOW)
        assert [e.id for e in summary.recent_expenses] == ['g', 'e', 'b', 'a', 'c']

    def test_length_is_min_of_five_and_count(self, mixed_expenses):
        for n in range(len(mixed_expenses) + 1):
            summary = calculate_summary(mixed_expenses[:n], now=NOW)
            assert len(summary.recent_expenses) == min(5, n)

    def test_sorted_by_date_descending(self, mixed_expenses):
        result = recent_expenses(mixed_expenses, limit=10)
        dates = [e.date for e in result]
        assert dates == sorted(dates, reverse=True)

    def test_equal_dates_keep_input_order(self):
        same_day = datetime(2025, 3, 1)
        expenses = [
            make_expense('first', same_day, 1.0, Category.FOOD),
            make_expense('second', same_day, 2.0, Category.FOOD),
            make_expense('third', same_day, 3.0, Category.FOOD),
        ]
        assert [e.id for e in recent_expenses(expenses)] == ['first', 'second', 'third']

    def test_custom_limit(self, mixed_expenses):
        summary = calculate_summary(mixed_expenses, now=NOW, recent_limit=2)
        assert [e.id for e in summary.recent_expenses] == ['g', 'e']
