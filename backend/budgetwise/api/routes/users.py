"""
User account routes.
"""
from fastapi import APIRouter, Depends, Request, Response, status
from budgetwise.schemas.user import UserIdentity
from budgetwise.services.session_service import BudgetSession
from budgetwise.api.dependencies import get_current_user, get_session

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserIdentity)
async def get_current_user_info(
    current_user: UserIdentity = Depends(get_current_user),
):
    """Get current user information."""
    return current_user


@router.delete("/me", status_code=status.HTTP_204_NO_CONTENT)
async def delete_account(
    request: Request,
    session: BudgetSession = Depends(get_session),
):
    """Delete the account with all of its budgets and expenses. Irreversible."""
    user_id = session.require_user().id
    await session.delete_account()
    request.app.state.sessions.close(user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
