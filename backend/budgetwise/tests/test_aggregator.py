"""
Tests for dashboard aggregation.
"""
import asyncio
import itertools
from decimal import Decimal
import pytest
from budgetwise.core.exceptions import NotFoundError
from budgetwise.services.aggregator import (
    DEFAULT_COLOR,
    AggregateFeed,
    aggregate,
    budget_detail,
    chart_color,
    utilization,
)
from budgetwise.services.store import BudgetStore, ExpenseStore
from budgetwise.tests.fakes import FakeBackend, make_budget, make_expense


def test_spent_is_sum_of_matching_expenses_in_any_order():
    """Test spent totals do not depend on expense ordering."""
    food = make_budget(limit=500, name="Food")
    rent = make_budget(limit=900, name="Rent", minutes=1)
    expenses = [
        make_expense(food, "12.50"),
        make_expense(rent, 800),
        make_expense(food, "7.25"),
        make_expense(food, 30),
    ]
    for ordering in itertools.permutations(expenses):
        result = aggregate([food, rent], ordering)
        spent = {b.id: b.spent for b in result.enriched_budgets}
        assert spent[food.id] == Decimal("49.75")
        assert spent[rent.id] == Decimal(800)


def test_budget_without_expenses_has_zero_spent():
    """Test a fresh budget is enriched with zero spending."""
    budget = make_budget(limit=250)
    result = aggregate([budget], [])
    enriched = result.enriched_budgets[0]
    assert enriched.spent == 0
    assert enriched.remaining == 250
    assert enriched.utilization_pct == 0


def test_full_budget_reports_hundred_percent():
    """Test 40 + 60 against a limit of 100."""
    budget = make_budget(limit=100)
    result = aggregate([budget], [make_expense(budget, 40), make_expense(budget, 60)])
    enriched = result.enriched_budgets[0]
    assert enriched.spent == 100
    assert enriched.utilization_pct == 100
    assert enriched.remaining == 0


def test_overall_utilization_two_decimals():
    """Test overall utilization across two budgets."""
    small = make_budget(limit=200, name="Small")
    large = make_budget(limit=300, name="Large", minutes=1)
    result = aggregate(
        [small, large],
        [make_expense(small, 50), make_expense(large, 100), make_expense(large, 50)],
    )
    chart = result.chart
    assert chart.total_budgeted == 500
    assert chart.total_spent == 200
    assert chart.overall_utilization_pct == Decimal("40.00")
    assert str(chart.overall_utilization_pct) == "40.00"


def test_overall_utilization_rounds_half_up():
    """Test 1/3 of the total rounds to 33.33 and 2/3 to 66.67."""
    budget = make_budget(limit=3)
    result = aggregate([budget], [make_expense(budget, 2)])
    assert result.chart.overall_utilization_pct == Decimal("66.67")
    assert result.enriched_budgets[0].utilization_pct == 67


def test_utilization_zero_limit():
    """Test a zero limit yields zero utilization instead of dividing by zero."""
    assert utilization(Decimal(10), Decimal(0)) == 0
    budget = make_budget(limit=0)
    result = aggregate([budget], [])
    assert result.chart.overall_utilization_pct == 0


def test_utilization_is_not_capped_but_display_is():
    """Test overspent budgets keep their raw percentage for reports."""
    budget = make_budget(limit=100)
    result = aggregate([budget], [make_expense(budget, 150)])
    bar = result.chart.bars[0]
    assert result.enriched_budgets[0].utilization_pct == 150
    assert bar.utilization_pct == 150
    assert bar.display_pct == 100


def test_aggregate_is_idempotent():
    """Test identical inputs give identical outputs."""
    budget = make_budget(limit=80)
    expenses = [make_expense(budget, 10), make_expense(budget, 20, minutes=5)]
    assert aggregate([budget], expenses) == aggregate([budget], expenses)


def test_table_rows_snapshot_budget_name_and_color():
    """Test rows keep the budget name they were built with."""
    budget = make_budget(name="Groceries", color="red")
    expense = make_expense(budget, 5, name="Milk")
    rows = aggregate([budget], [expense]).table_rows

    renamed = budget.model_copy(update={"name": "Food"})
    assert rows[0].budget_name == "Groceries"
    assert rows[0].color == "red"
    assert aggregate([renamed], [expense]).table_rows[0].budget_name == "Food"


def test_table_row_for_unknown_budget_falls_back():
    """Test rows whose budget is missing show the id and gray."""
    budget = make_budget()
    expense = make_expense(budget, 5)
    row = aggregate([], [expense]).table_rows[0]
    assert row.budget_name == budget.id
    assert row.color == DEFAULT_COLOR
    assert row.date == expense.created_at


def test_chart_colors():
    """Test named colors resolve to hex and unknown ones to gray."""
    assert chart_color("red") == "#dc2626"
    assert chart_color("amber") == "#d97706"
    assert chart_color("#123456") == "#123456"
    assert chart_color("teal") == DEFAULT_COLOR
    assert chart_color(None) == DEFAULT_COLOR


def test_budget_detail_filters_expenses():
    """Test detail view only carries the selected budget's expenses."""
    food = make_budget(limit=100, name="Food")
    fun = make_budget(limit=100, name="Fun", minutes=1)
    expenses = [make_expense(food, 30), make_expense(fun, 45), make_expense(food, 5)]
    detail = budget_detail([food, fun], expenses, food.id)
    assert detail.budget.spent == 35
    assert len(detail.table_rows) == 2
    assert {r.budget_id for r in detail.table_rows} == {food.id}

    with pytest.raises(NotFoundError):
        budget_detail([food, fun], expenses, "missing")


def test_feed_recomputes_from_latest_pair():
    """Test the feed folds queued changes into one recompute of both stores."""
    backend = FakeBackend()
    budgets = BudgetStore(backend)
    expenses = ExpenseStore(backend)
    feed = AggregateFeed(budgets, expenses)
    budget = make_budget(limit=100)

    async def scenario():
        stream = feed.stream()
        first = await stream.__anext__()
        assert first.enriched_budgets == []

        budgets.replace([budget])
        expenses.replace([make_expense(budget, 25)])
        second = await stream.__anext__()
        assert second.chart.total_spent == 25
        assert second.enriched_budgets[0].spent == 25

        budgets.close()
        with pytest.raises(StopAsyncIteration):
            await stream.__anext__()

    asyncio.run(scenario())
