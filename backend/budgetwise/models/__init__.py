"""Models package - Import all models for SQLAlchemy registration."""
from budgetwise.models.user import User
from budgetwise.models.budget import Budget
from budgetwise.models.expense import Expense

__all__ = [
    "User",
    "Budget",
    "Expense",
]
