"""
Budget management routes.
"""
from typing import List
from fastapi import APIRouter, Depends, Response, status
from budgetwise.schemas.budget import Budget, BudgetCreate, EnrichedBudget
from budgetwise.schemas.summary import BudgetDetail
from budgetwise.services.session_service import BudgetSession
from budgetwise.api.dependencies import get_session

router = APIRouter(prefix="/budgets", tags=["budgets"])


@router.get("", response_model=List[EnrichedBudget])
async def list_budgets(session: BudgetSession = Depends(get_session)):
    """Budgets of the current user with their spent totals, newest first."""
    return session.dashboard().enriched_budgets


@router.post("", response_model=Budget, status_code=status.HTTP_201_CREATED)
async def create_budget(
    budget_data: BudgetCreate,
    session: BudgetSession = Depends(get_session),
):
    """Create a budget category."""
    return await session.gate.create_budget(budget_data)


@router.get("/{budget_id}", response_model=BudgetDetail)
async def get_budget(
    budget_id: str,
    session: BudgetSession = Depends(get_session),
):
    """Get a budget with its own expenses."""
    return session.budget_detail(budget_id)


@router.delete("/{budget_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_budget(
    budget_id: str,
    session: BudgetSession = Depends(get_session),
):
    """Delete a budget together with its expenses."""
    await session.gate.delete_budget(budget_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
