"""
Pydantic schemas for derived dashboard data.
"""
from pydantic import BaseModel
from typing import List
from decimal import Decimal
from budgetwise.schemas.budget import EnrichedBudget
from budgetwise.schemas.expense import ExpenseTableRow


class ChartBar(BaseModel):
    """One bar of the utilization chart."""
    budget_id: str
    label: str
    utilization_pct: Decimal  # Raw percentage, as used in reports
    display_pct: Decimal  # Capped at 100 for bounded bar widgets
    color: str
    
    model_config = {"frozen": True}


class ChartPayload(BaseModel):
    """Per-budget bars plus overall totals."""
    bars: List[ChartBar] = []
    total_budgeted: Decimal = Decimal(0)
    total_spent: Decimal = Decimal(0)
    overall_utilization_pct: Decimal = Decimal(0)  # Two decimal places
    
    model_config = {"frozen": True}


class AggregateResult(BaseModel):
    """Everything the dashboard renders, computed from one budget/expense pair."""
    enriched_budgets: List[EnrichedBudget] = []
    table_rows: List[ExpenseTableRow] = []
    chart: ChartPayload = ChartPayload()
    
    model_config = {"frozen": True}


class BudgetDetail(BaseModel):
    """A single budget with its own expenses."""
    budget: EnrichedBudget
    table_rows: List[ExpenseTableRow] = []
