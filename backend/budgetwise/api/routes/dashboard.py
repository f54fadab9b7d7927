"""
Dashboard routes: everything the home page renders in one payload.
"""
from fastapi import APIRouter, Depends
from budgetwise.schemas.summary import AggregateResult
from budgetwise.services.session_service import BudgetSession
from budgetwise.api.dependencies import get_session

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("", response_model=AggregateResult)
async def get_dashboard(session: BudgetSession = Depends(get_session)):
    """Enriched budgets, expense table and chart payload."""
    return session.dashboard()


@router.post("/reload", response_model=AggregateResult)
async def reload_dashboard(session: BudgetSession = Depends(get_session)):
    """Re-fetch budgets and expenses from the backend before aggregating."""
    await session.reload()
    return session.dashboard()
