"""
Shared FastAPI dependencies: backend client, current user, user session.
"""
from typing import Optional
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from budgetwise.core.config import settings
from budgetwise.core.exceptions import AuthError
from budgetwise.schemas.user import UserIdentity
from budgetwise.services.backend import BackendClient
from budgetwise.services.session_service import BudgetSession, authenticate

bearer_scheme = HTTPBearer(auto_error=False)


def create_backend() -> BackendClient:
    """Build the backend client selected by BACKEND_PROVIDER."""
    provider = settings.BACKEND_PROVIDER.lower()
    if provider == "supabase":
        from budgetwise.services.supabase_backend import SupabaseBackend
        return SupabaseBackend()
    if provider == "sql":
        from budgetwise.db.session import SessionLocal, init_db
        from budgetwise.services.sql_backend import SqlBackend
        init_db()
        return SqlBackend(SessionLocal)
    raise ValueError(f"Unknown BACKEND_PROVIDER: {settings.BACKEND_PROVIDER}")


def get_backend(request: Request) -> BackendClient:
    return request.app.state.backend


def get_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    """Bearer token from the Authorization header."""
    if credentials is None or not credentials.credentials:
        raise AuthError("Missing access token.")
    return credentials.credentials


async def get_current_user(
    token: str = Depends(get_token),
    backend: BackendClient = Depends(get_backend),
) -> UserIdentity:
    """Dependency for getting the authenticated user."""
    return await authenticate(backend, token)


async def get_session(
    request: Request,
    token: str = Depends(get_token),
    current_user: UserIdentity = Depends(get_current_user),
    backend: BackendClient = Depends(get_backend),
) -> BudgetSession:
    """Dependency for getting the signed-in user's session, loading it on first use."""
    return await request.app.state.sessions.open(backend.with_token(token), current_user)
