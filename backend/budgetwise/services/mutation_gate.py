"""
Validated create/delete operations on budgets and expenses.

Every mutation walks IDLE -> VALIDATING -> SUBMITTING and ends COMMITTED or
REJECTED. Validation runs against the session caches before any backend
call; a rejected mutation leaves both caches exactly as they were.
Mutations of one gate run one at a time, so a check never reads a cache
that another in-flight mutation is about to change.
"""
import asyncio
import enum
import logging
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Optional
from budgetwise.core.config import settings
from budgetwise.core.exceptions import (
    AuthError,
    BudgetwiseError,
    LimitExceededError,
    NotFoundError,
    PersistenceError,
    QuotaExceededError,
)
from budgetwise.core.utils import utcnow
from budgetwise.schemas.budget import Budget, BudgetCreate
from budgetwise.schemas.expense import Expense, ExpenseCreate
from budgetwise.schemas.user import UserIdentity
from budgetwise.services.backend import BackendClient, BackendError
from budgetwise.services.store import BudgetStore, ExpenseStore

logger = logging.getLogger(__name__)

# Colors handed to new budgets by position, one per allowed budget
BUDGET_PALETTE = [
    "blue",
    "amber",
    "red",
    "#10b981",
    "#8b5cf6",
    "#ec4899",
    "#14b8a6",
    "#f97316",
    "#6366f1",
    "#84cc16",
]

MUTATIONS = ("create_budget", "create_expense", "delete_budget", "delete_expense")


class MutationState(str, enum.Enum):
    """Lifecycle of a single mutation."""
    IDLE = "idle"
    VALIDATING = "validating"
    SUBMITTING = "submitting"
    COMMITTED = "committed"
    REJECTED = "rejected"


@dataclass(frozen=True)
class MutationOutcome:
    """Typed result of a mutation, for callers that prefer values to exceptions."""
    operation: str
    state: MutationState
    value: Any = None
    error: Optional[BudgetwiseError] = None

    @property
    def ok(self) -> bool:
        return self.state == MutationState.COMMITTED


class MutationAttempt:
    """Tracks the state of one in-flight mutation."""

    def __init__(self, operation: str):
        self.operation = operation
        self.state = MutationState.IDLE
        self.value = None
        self.error: Optional[BudgetwiseError] = None

    def advance(self, state: MutationState) -> None:
        logger.debug(f"{self.operation}: {self.state.value} -> {state.value}")
        self.state = state

    def outcome(self) -> MutationOutcome:
        return MutationOutcome(self.operation, self.state, self.value, self.error)


class MutationGate:
    """Applies budget and expense mutations for the signed-in user."""

    def __init__(
        self,
        budgets: BudgetStore,
        expenses: ExpenseStore,
        backend: BackendClient,
        current_user: Callable[[], Optional[UserIdentity]],
        max_budgets: int = None,
    ):
        self._budgets = budgets
        self._expenses = expenses
        self._backend = backend
        self._current_user = current_user
        self.max_budgets = max_budgets if max_budgets is not None else settings.MAX_BUDGETS_PER_USER
        self.last_outcome: Optional[MutationOutcome] = None
        # Held from validation through the cache commit of each mutation
        self._lock = asyncio.Lock()

    def bind(self, backend: BackendClient) -> None:
        self._backend = backend

    @contextmanager
    def _attempt(self, operation: str):
        attempt = MutationAttempt(operation)
        attempt.advance(MutationState.VALIDATING)
        try:
            yield attempt
        except BudgetwiseError as e:
            attempt.error = e
            attempt.advance(MutationState.REJECTED)
            logger.info(f"{operation} rejected: {e}")
            raise
        else:
            attempt.advance(MutationState.COMMITTED)
        finally:
            self.last_outcome = attempt.outcome()

    def _require_user(self) -> UserIdentity:
        user = self._current_user()
        if user is None:
            raise AuthError("You must be signed in to change budgets or expenses.")
        return user

    async def _sync_spent(self, budget_id: str, spent: Decimal) -> None:
        """
        Write the denormalized spent total for a budget.

        Best effort: the mutation it follows is already committed, so a
        failure here only leaves the stored total stale until the next
        successful write.
        """
        try:
            await self._backend.update_budget_spent(budget_id, spent)
        except BackendError as e:
            logger.warning(f"Could not update spent for budget {budget_id}: {e}")

    async def create_budget(self, data: BudgetCreate) -> Budget:
        async with self._lock:
            with self._attempt("create_budget") as attempt:
                user = self._require_user()
                owned = [b for b in self._budgets.current() if b.owner_id == user.id]
                if len(owned) >= self.max_budgets:
                    raise QuotaExceededError(
                        f"You can create up to {self.max_budgets} budgets only.", self.max_budgets
                    )

                budget = Budget(
                    id=str(uuid.uuid4()),
                    owner_id=user.id,
                    name=data.name,
                    limit_amount=data.limit_amount,
                    color=data.color or BUDGET_PALETTE[len(owned) % len(BUDGET_PALETTE)],
                    created_at=utcnow(),
                )
                attempt.advance(MutationState.SUBMITTING)
                attempt.value = await self._budgets.create(budget)
        return budget

    async def create_expense(self, data: ExpenseCreate) -> Expense:
        async with self._lock:
            with self._attempt("create_expense") as attempt:
                user = self._require_user()
                budget = self._budgets.get(data.budget_id)
                if budget is None or budget.owner_id != user.id:
                    raise NotFoundError("Selected budget not found.")

                current_spent = self._expenses.spent_for(budget.id)
                if current_spent + data.amount > budget.limit_amount:
                    remaining = budget.limit_amount - current_spent
                    raise LimitExceededError(
                        f'Expense exceeds the budget limit for "{budget.name}". Remaining: {remaining}',
                        remaining,
                    )

                expense = Expense(
                    id=str(uuid.uuid4()),
                    owner_id=user.id,
                    budget_id=budget.id,
                    name=data.name,
                    amount=data.amount,
                    created_at=utcnow(),
                )
                attempt.advance(MutationState.SUBMITTING)
                attempt.value = await self._expenses.create(expense)

            await self._sync_spent(budget.id, self._expenses.spent_for(budget.id))
        return expense

    async def delete_budget(self, budget_id: str) -> None:
        async with self._lock:
            with self._attempt("delete_budget") as attempt:
                user = self._require_user()
                budget = self._budgets.get(budget_id)
                if budget is None:
                    raise NotFoundError(f"Budget {budget_id} not found.")
                attempt.advance(MutationState.SUBMITTING)
                await self._budgets.delete(budget_id, confirm_for=user.id)

            # The backend cascaded the delete to the budget's expenses
            try:
                await self._expenses.load(user.id)
            except PersistenceError:
                logger.warning(
                    f"Could not reload expenses after deleting budget {budget_id}; dropping them locally"
                )
                self._expenses.drop_budget(budget_id)

    async def delete_expense(self, expense_id: str) -> None:
        async with self._lock:
            with self._attempt("delete_expense") as attempt:
                user = self._require_user()
                target = self._expenses.get(expense_id)
                if target is None:
                    raise NotFoundError(f"Expense {expense_id} not found.")
                attempt.advance(MutationState.SUBMITTING)
                await self._expenses.delete(expense_id, confirm_for=user.id)

            if self._budgets.get(target.budget_id) is not None:
                await self._sync_spent(target.budget_id, self._expenses.spent_for(target.budget_id))

    async def submit(self, operation: str, *args) -> MutationOutcome:
        """Run a mutation by name and return its outcome instead of raising."""
        if operation not in MUTATIONS:
            raise ValueError(f"Unknown mutation {operation!r}")
        method = getattr(self, operation)
        try:
            value = await method(*args)
        except BudgetwiseError as e:
            return MutationOutcome(operation, MutationState.REJECTED, error=e)
        return MutationOutcome(operation, MutationState.COMMITTED, value=value)
