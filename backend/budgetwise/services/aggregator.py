"""
Dashboard aggregation: enriched budgets, expense table and chart payload.

``aggregate`` is a pure function of a budget list and an expense list.
``AggregateFeed`` keeps its result current as the session stores change.
"""
import asyncio
import logging
from collections import defaultdict
from decimal import Decimal
from typing import AsyncIterator, Dict, Iterable, List, Optional
from budgetwise.core.exceptions import NotFoundError
from budgetwise.core.utils import round_half_up
from budgetwise.schemas.budget import Budget, EnrichedBudget
from budgetwise.schemas.expense import Expense, ExpenseTableRow
from budgetwise.schemas.summary import AggregateResult, BudgetDetail, ChartBar, ChartPayload
from budgetwise.services.store import BudgetStore, ExpenseStore

logger = logging.getLogger(__name__)

DEFAULT_COLOR = "#6b7280"

# Named colors the UI hands out, resolved to hex for the chart
COLOR_HEX = {
    "red": "#dc2626",
    "amber": "#d97706",
    "blue": "#3b82f6",
}

HUNDRED = Decimal(100)


def spent_by_budget(expenses: Iterable[Expense]) -> Dict[str, Decimal]:
    """Total expense amount per budget id."""
    totals: Dict[str, Decimal] = defaultdict(lambda: Decimal(0))
    for expense in expenses:
        totals[expense.budget_id] += expense.amount
    return totals


def utilization(spent: Decimal, limit_amount: Decimal) -> Decimal:
    """Whole-number percentage of the limit used; 0 when there is no limit."""
    if limit_amount > 0:
        return round_half_up(spent / limit_amount * HUNDRED)
    return Decimal(0)


def chart_color(color: Optional[str]) -> str:
    if not color:
        return DEFAULT_COLOR
    if color in COLOR_HEX:
        return COLOR_HEX[color]
    if color.startswith("#"):
        return color
    return DEFAULT_COLOR


def enrich(budget: Budget, spent: Decimal) -> EnrichedBudget:
    return EnrichedBudget(
        **budget.model_dump(),
        spent=spent,
        remaining=budget.limit_amount - spent,
        utilization_pct=utilization(spent, budget.limit_amount),
    )


def build_table(budgets: Iterable[Budget], expenses: Iterable[Expense]) -> List[ExpenseTableRow]:
    """
    Expense table rows, in the order the expenses were given.

    Each row copies its budget's name and color at call time; rows whose
    budget is unknown show the budget id and the neutral gray.
    """
    by_id = {b.id: b for b in budgets}
    rows = []
    for expense in expenses:
        budget = by_id.get(expense.budget_id)
        rows.append(ExpenseTableRow(
            id=expense.id,
            name=expense.name,
            amount=expense.amount,
            date=expense.created_at,
            budget_id=expense.budget_id,
            budget_name=budget.name if budget else expense.budget_id,
            color=budget.color if budget else DEFAULT_COLOR,
        ))
    return rows


def build_chart(enriched: Iterable[EnrichedBudget]) -> ChartPayload:
    bars = []
    total_budgeted = Decimal(0)
    total_spent = Decimal(0)
    for budget in enriched:
        bars.append(ChartBar(
            budget_id=budget.id,
            label=budget.name,
            utilization_pct=budget.utilization_pct,
            display_pct=min(budget.utilization_pct, HUNDRED),
            color=chart_color(budget.color),
        ))
        total_budgeted += budget.limit_amount
        total_spent += budget.spent

    overall = Decimal(0)
    if total_budgeted > 0:
        overall = round_half_up(total_spent / total_budgeted * HUNDRED, 2)

    return ChartPayload(
        bars=bars,
        total_budgeted=total_budgeted,
        total_spent=total_spent,
        overall_utilization_pct=overall,
    )


def aggregate(budgets: Iterable[Budget], expenses: Iterable[Expense]) -> AggregateResult:
    """Compute every derived dashboard value from one budget list and one expense list."""
    budgets = list(budgets)
    expenses = list(expenses)
    totals = spent_by_budget(expenses)
    enriched = [enrich(b, totals.get(b.id, Decimal(0))) for b in budgets]
    return AggregateResult(
        enriched_budgets=enriched,
        table_rows=build_table(budgets, expenses),
        chart=build_chart(enriched),
    )


def budget_detail(budgets: Iterable[Budget], expenses: Iterable[Expense], budget_id: str) -> BudgetDetail:
    """One budget with its spending and only its own expense rows."""
    budgets = list(budgets)
    budget = next((b for b in budgets if b.id == budget_id), None)
    if budget is None:
        raise NotFoundError(f"Budget {budget_id} not found")
    own = [e for e in expenses if e.budget_id == budget_id]
    spent = sum((e.amount for e in own), Decimal(0))
    return BudgetDetail(
        budget=enrich(budget, spent),
        table_rows=build_table([budget], own),
    )


class AggregateFeed:
    """
    Recomputes the dashboard whenever either store changes.

    Both snapshots are read in the same synchronous step, so a result never
    pairs an old budget list with a newer expense list. Changes that land
    before a consumer asks again are folded into a single recompute.
    """

    def __init__(self, budgets: BudgetStore, expenses: ExpenseStore):
        self._budgets = budgets
        self._expenses = expenses

    def latest(self) -> AggregateResult:
        return aggregate(self._budgets.current(), self._expenses.current())

    async def stream(self) -> AsyncIterator[AggregateResult]:
        """Yield the current aggregate, then a fresh one after each batch of changes."""
        changed = asyncio.Event()
        changed.set()

        def on_change():
            changed.set()

        remove_budget_listener = self._budgets.add_listener(on_change)
        remove_expense_listener = self._expenses.add_listener(on_change)
        try:
            while True:
                await changed.wait()
                changed.clear()
                if self._budgets.closed or self._expenses.closed:
                    return
                yield self.latest()
        finally:
            remove_budget_listener()
            remove_expense_listener()
