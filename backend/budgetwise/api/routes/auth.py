"""
Authentication routes.

Sign-up and sign-in happen against the auth provider directly; the API
only needs to know when a session ends.
"""
from fastapi import APIRouter, Depends, Request
from budgetwise.schemas.user import UserIdentity
from budgetwise.api.dependencies import get_current_user

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/logout")
async def logout(
    request: Request,
    current_user: UserIdentity = Depends(get_current_user),
):
    """Drop the cached session of the current user."""
    request.app.state.sessions.close(current_user.id)
    return {"message": "Logged out successfully"}
