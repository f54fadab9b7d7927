"""
Per-user session: the stores, the mutation gate and the dashboard feed.

A session is populated on sign-in, reloaded on demand and cleared on
sign-out. Nothing is shared between sessions.
"""
import asyncio
import logging
import time
from typing import Callable, Dict, Optional
from budgetwise.core.config import settings
from budgetwise.core.exceptions import AuthError, PersistenceError
from budgetwise.schemas.summary import AggregateResult, BudgetDetail
from budgetwise.schemas.user import UserIdentity
from budgetwise.services.aggregator import AggregateFeed, budget_detail
from budgetwise.services.backend import BackendClient, BackendError
from budgetwise.services.mutation_gate import MutationGate
from budgetwise.services.store import BudgetStore, ExpenseStore

logger = logging.getLogger(__name__)


class BudgetSession:
    """Everything one signed-in user works with."""

    def __init__(self, backend: BackendClient, max_budgets: int = None):
        self.backend = backend
        self.user: Optional[UserIdentity] = None
        self.budgets = BudgetStore(backend)
        self.expenses = ExpenseStore(backend)
        self.gate = MutationGate(
            self.budgets, self.expenses, backend, lambda: self.user, max_budgets=max_budgets
        )
        self.feed = AggregateFeed(self.budgets, self.expenses)

    def bind(self, backend: BackendClient) -> None:
        """Swap the backend client, e.g. one carrying a refreshed access token."""
        self.backend = backend
        self.budgets.bind(backend)
        self.expenses.bind(backend)
        self.gate.bind(backend)

    def require_user(self) -> UserIdentity:
        if self.user is None:
            raise AuthError("Not signed in.")
        return self.user

    async def sign_in(self, user: UserIdentity) -> None:
        self.user = user
        await self.reload()
        logger.info(f"Session started for user {user.id}")

    async def reload(self) -> None:
        """Refresh both caches from the backend."""
        user = self.require_user()
        await asyncio.gather(
            self.budgets.load(user.id),
            self.expenses.load(user.id),
        )

    def sign_out(self) -> None:
        """Drop every cached record and end all open streams."""
        if self.user is not None:
            logger.info(f"Session ended for user {self.user.id}")
        self.user = None
        self.budgets.clear()
        self.expenses.clear()
        self.budgets.close()
        self.expenses.close()

    async def delete_account(self) -> None:
        """Delete the account at the backend, then tear the session down."""
        user = self.require_user()
        try:
            await self.backend.delete_account(user.id)
        except BackendError as e:
            logger.error(f"Could not delete account {user.id}: {e}")
            raise PersistenceError("Could not delete account", cause=e) from e
        self.sign_out()

    def dashboard(self) -> AggregateResult:
        self.require_user()
        return self.feed.latest()

    def budget_detail(self, budget_id: str) -> BudgetDetail:
        self.require_user()
        return budget_detail(self.budgets.current(), self.expenses.current(), budget_id)


async def authenticate(backend: BackendClient, token: Optional[str]) -> UserIdentity:
    """Resolve a bearer token to the user it belongs to."""
    if not token:
        raise AuthError("Missing access token.")
    try:
        user = await backend.current_user(token)
    except BackendError as e:
        raise PersistenceError("Could not verify access token", cause=e) from e
    if user is None:
        raise AuthError("Invalid or expired access token.")
    return user


class SessionRegistry:
    """
    Live sessions of this process, one per user.

    A session left unused for ``idle_seconds`` is signed out the next time
    the registry is opened; its user gets a freshly loaded one on return.
    """

    def __init__(self, idle_seconds: float = None, clock: Callable[[], float] = time.monotonic):
        self.idle_seconds = idle_seconds if idle_seconds is not None else settings.SESSION_IDLE_SECONDS
        self._clock = clock
        self._sessions: Dict[str, BudgetSession] = {}
        self._last_used: Dict[str, float] = {}
        self._lock = asyncio.Lock()

    def _evict_idle(self, now: float) -> None:
        for user_id, last_used in list(self._last_used.items()):
            if now - last_used > self.idle_seconds:
                logger.info(f"Evicting idle session for user {user_id}")
                self.close(user_id)

    async def open(self, backend: BackendClient, user: UserIdentity) -> BudgetSession:
        """Return the user's session, signing in a new one on first use."""
        async with self._lock:
            now = self._clock()
            self._evict_idle(now)
            session = self._sessions.get(user.id)
            if session is None:
                session = BudgetSession(backend)
                await session.sign_in(user)
                self._sessions[user.id] = session
            else:
                session.bind(backend)
            self._last_used[user.id] = now
            return session

    def close(self, user_id: str) -> None:
        self._last_used.pop(user_id, None)
        session = self._sessions.pop(user_id, None)
        if session is not None:
            session.sign_out()

    def close_all(self) -> None:
        for user_id in list(self._sessions):
            self.close(user_id)

    def __contains__(self, user_id: str) -> bool:
        return user_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
