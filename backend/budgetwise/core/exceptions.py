"""
Typed errors raised by the stores and the mutation gate.
"""
from decimal import Decimal
from typing import Any, Optional


class BudgetwiseError(Exception):
    """Base class for all budgeting errors surfaced to callers."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(BudgetwiseError):
    """Referenced budget or expense does not exist."""


class LimitExceededError(BudgetwiseError):
    """Expense would push a budget past its limit."""

    def __init__(self, message: str, remaining: Decimal):
        super().__init__(message)
        self.remaining = remaining


class QuotaExceededError(BudgetwiseError):
    """User already owns the maximum number of budgets."""

    def __init__(self, message: str, limit: int):
        super().__init__(message)
        self.limit = limit


class PersistenceError(BudgetwiseError):
    """A call to the external backend failed."""

    def __init__(self, message: str, cause: Optional[Any] = None):
        super().__init__(message)
        self.cause = cause


class AuthError(BudgetwiseError):
    """No authenticated user for an operation that needs one."""
