"""
Backend realised on a hosted Supabase project.

Tables are reached through PostgREST (``/rest/v1``), the signed-in user
through GoTrue (``/auth/v1/user``) and account deletion through an edge
function (``/functions/v1/delete-account``) that cascades server-side.
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
import httpx
from budgetwise.core.config import settings
from budgetwise.schemas.budget import Budget
from budgetwise.schemas.expense import Expense
from budgetwise.schemas.user import UserIdentity
from budgetwise.services.backend import (
    BackendClient,
    BackendError,
    budget_from_row,
    budget_to_row,
    expense_from_row,
    expense_to_row,
)

logger = logging.getLogger(__name__)


def _to_json(row: Dict[str, Any]) -> Dict[str, Any]:
    """Make a row JSON-safe: numeric columns as numbers, timestamps as ISO strings."""
    out = {}
    for key, value in row.items():
        if isinstance(value, Decimal):
            out[key] = float(value)
        elif isinstance(value, datetime):
            out[key] = value.isoformat()
        else:
            out[key] = value
    return out


class SupabaseBackend(BackendClient):
    """Backend contract over the Supabase REST APIs."""

    def __init__(
        self,
        base_url: str = None,
        anon_key: str = None,
        access_token: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = None,
    ):
        self._base_url = (base_url or settings.SUPABASE_URL).rstrip("/")
        self._anon_key = anon_key or settings.SUPABASE_ANON_KEY
        self._access_token = access_token
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout if timeout is not None else settings.BACKEND_TIMEOUT
        )

    def with_token(self, access_token: str) -> "SupabaseBackend":
        """Same project and connection pool, acting as the user behind ``access_token``."""
        return SupabaseBackend(
            base_url=self._base_url,
            anon_key=self._anon_key,
            access_token=access_token,
            client=self._client,
        )

    def _headers(self, token: Optional[str] = None, prefer: Optional[str] = None) -> Dict[str, str]:
        headers = {
            "apikey": self._anon_key,
            "Authorization": f"Bearer {token or self._access_token or self._anon_key}",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    async def _request(
        self,
        action: str,
        method: str,
        path: str,
        params: Dict[str, str] = None,
        json: Any = None,
        headers: Dict[str, str] = None,
    ) -> httpx.Response:
        url = f"{self._base_url}{path}"
        try:
            response = await self._client.request(
                method, url, params=params, json=json, headers=headers or self._headers()
            )
            response.raise_for_status()
            return response
        except httpx.HTTPStatusError as e:
            error_text = e.response.text
            logger.error(f"Supabase error while trying to {action}: {e.response.status_code} - {error_text}")
            raise BackendError(
                f"Failed to {action}", status_code=e.response.status_code, details=error_text
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"HTTP error while trying to {action}: {e}")
            raise BackendError(f"Failed to {action}", details=str(e)) from e

    async def fetch_budgets(self, user_id: str) -> List[Budget]:
        response = await self._request(
            "fetch budgets", "GET", "/rest/v1/budgets",
            params={"select": "*", "user_id": f"eq.{user_id}", "order": "created_at.desc"},
        )
        return [budget_from_row(row) for row in response.json() or []]

    async def insert_budget(self, budget: Budget) -> None:
        await self._request(
            "insert budget", "POST", "/rest/v1/budgets",
            json=[_to_json(budget_to_row(budget))],
            headers=self._headers(prefer="return=minimal"),
        )

    async def delete_budget(self, budget_id: str) -> None:
        await self._request(
            "delete budget", "DELETE", "/rest/v1/budgets",
            params={"id": f"eq.{budget_id}"},
        )

    async def update_budget_spent(self, budget_id: str, spent: Decimal) -> None:
        await self._request(
            "update budget spent", "PATCH", "/rest/v1/budgets",
            params={"id": f"eq.{budget_id}"},
            json={"spent": float(spent)},
        )

    async def fetch_expenses(self, user_id: str) -> List[Expense]:
        response = await self._request(
            "fetch expenses", "GET", "/rest/v1/expenses",
            params={"select": "*", "user_id": f"eq.{user_id}", "order": "created_at.desc"},
        )
        return [expense_from_row(row) for row in response.json() or []]

    async def insert_expense(self, expense: Expense) -> None:
        await self._request(
            "insert expense", "POST", "/rest/v1/expenses",
            json=[_to_json(expense_to_row(expense))],
            headers=self._headers(prefer="return=minimal"),
        )

    async def delete_expense(self, expense_id: str) -> None:
        await self._request(
            "delete expense", "DELETE", "/rest/v1/expenses",
            params={"id": f"eq.{expense_id}"},
        )

    async def current_user(self, token: str) -> Optional[UserIdentity]:
        try:
            response = await self._request(
                "look up user", "GET", "/auth/v1/user", headers=self._headers(token=token)
            )
        except BackendError as e:
            if e.status_code in (401, 403):
                return None
            raise
        data = response.json() or {}
        if not data.get("id"):
            return None
        metadata = data.get("user_metadata") or {}
        return UserIdentity(
            id=data["id"],
            email=data.get("email") or None,
            name=metadata.get("displayName") or None,
        )

    async def delete_account(self, user_id: str) -> None:
        await self._request(
            "delete account", "POST", "/functions/v1/delete-account",
            json={"user_id": user_id},
        )

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()
