"""
Contract for the external backend that owns budgets, expenses and accounts.

Column names follow the hosted tables (``user_id``, ``budget``); the
helpers below translate rows to and from the domain schemas.
"""
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, Dict, List, Optional
from budgetwise.schemas.budget import Budget
from budgetwise.schemas.expense import Expense
from budgetwise.schemas.user import UserIdentity


class BackendError(Exception):
    """Raised by a backend client when the remote call fails."""

    def __init__(self, message: str, status_code: Optional[int] = None, details: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details


class BackendClient(ABC):
    """Operations the core consumes from the hosted backend."""

    @abstractmethod
    async def fetch_budgets(self, user_id: str) -> List[Budget]:
        """Budgets owned by ``user_id``, newest first."""

    @abstractmethod
    async def insert_budget(self, budget: Budget) -> None:
        ...

    @abstractmethod
    async def delete_budget(self, budget_id: str) -> None:
        """Delete a budget; the backend removes its expenses too."""

    @abstractmethod
    async def update_budget_spent(self, budget_id: str, spent: Decimal) -> None:
        ...

    @abstractmethod
    async def fetch_expenses(self, user_id: str) -> List[Expense]:
        """Expenses owned by ``user_id``, newest first."""

    @abstractmethod
    async def insert_expense(self, expense: Expense) -> None:
        ...

    @abstractmethod
    async def delete_expense(self, expense_id: str) -> None:
        ...

    @abstractmethod
    async def current_user(self, token: str) -> Optional[UserIdentity]:
        """Resolve an access token to a user, or None when it is not valid."""

    @abstractmethod
    async def delete_account(self, user_id: str) -> None:
        """Irreversibly delete the account with all its budgets and expenses."""

    def with_token(self, access_token: str) -> "BackendClient":
        """Client acting on behalf of the user behind ``access_token``."""
        return self

    async def close(self) -> None:
        """Release transport resources."""


def budget_from_row(row: Dict[str, Any]) -> Budget:
    return Budget(
        id=str(row["id"]),
        owner_id=str(row["user_id"]),
        name=row["name"],
        limit_amount=Decimal(str(row["budget"])),
        color=row["color"],
        created_at=row["created_at"],
    )


def budget_to_row(budget: Budget) -> Dict[str, Any]:
    return {
        "id": budget.id,
        "user_id": budget.owner_id,
        "name": budget.name,
        "budget": budget.limit_amount,
        "spent": Decimal(0),
        "color": budget.color,
        "created_at": budget.created_at,
    }


def expense_from_row(row: Dict[str, Any]) -> Expense:
    return Expense(
        id=str(row["id"]),
        owner_id=str(row["user_id"]),
        budget_id=str(row["budget_id"]),
        name=row["name"],
        amount=Decimal(str(row["amount"])),
        created_at=row["created_at"],
    )


def expense_to_row(expense: Expense) -> Dict[str, Any]:
    return {
        "id": expense.id,
        "user_id": expense.owner_id,
        "budget_id": expense.budget_id,
        "name": expense.name,
        "amount": expense.amount,
        "created_at": expense.created_at,
    }
