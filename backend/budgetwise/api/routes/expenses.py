"""
Expense management routes.
"""
import logging
from typing import List
from fastapi import APIRouter, Depends, Response, status
from budgetwise.schemas.expense import Expense, ExpenseCreate, ExpenseTableRow
from budgetwise.services.session_service import BudgetSession
from budgetwise.api.dependencies import get_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/expenses", tags=["expenses"])


@router.get("", response_model=List[ExpenseTableRow])
async def list_expenses(session: BudgetSession = Depends(get_session)):
    """Expense table of the current user, newest first."""
    return session.dashboard().table_rows


@router.post("", response_model=Expense, status_code=status.HTTP_201_CREATED)
async def create_expense(
    expense_data: ExpenseCreate,
    session: BudgetSession = Depends(get_session),
):
    """Log an expense against one of the user's budgets."""
    expense = await session.gate.create_expense(expense_data)
    logger.debug(f"Expense {expense.id} added to budget {expense.budget_id}")
    return expense


@router.delete("/{expense_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_expense(
    expense_id: str,
    session: BudgetSession = Depends(get_session),
):
    """Delete an expense."""
    await session.gate.delete_expense(expense_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
