"""
Backend realised on a local SQLAlchemy database.

Used for development and tests in place of the hosted service. Queries run
on a regular synchronous session; the coroutine methods hand them to the
threadpool so they never block the event loop.
"""
import functools
import logging
from contextlib import contextmanager
from decimal import Decimal
from typing import List, Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from starlette.concurrency import run_in_threadpool
from budgetwise.core.security import create_access_token, decode_access_token
from budgetwise.models.budget import Budget as BudgetRow
from budgetwise.models.expense import Expense as ExpenseRow
from budgetwise.models.user import User as UserRow
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


def _columns(row) -> dict:
    return {c.name: getattr(row, c.name) for c in row.__table__.columns}


def _threaded(func):
    """Expose a blocking method as a coroutine that runs in the threadpool."""
    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        return await run_in_threadpool(func, *args, **kwargs)
    return wrapper


class SqlBackend(BackendClient):
    """Backend contract over SQLAlchemy sessions."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    @contextmanager
    def _session(self, action: str):
        db: Session = self._session_factory()
        try:
            yield db
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Database error while trying to {action}: {e}")
            raise BackendError(f"Failed to {action}", details=str(e)) from e
        finally:
            db.close()

    @_threaded
    def fetch_budgets(self, user_id: str) -> List[Budget]:
        with self._session("fetch budgets") as db:
            rows = db.query(BudgetRow).filter(
                BudgetRow.user_id == user_id
            ).order_by(BudgetRow.created_at.desc()).all()
            return [budget_from_row(_columns(r)) for r in rows]

    @_threaded
    def insert_budget(self, budget: Budget) -> None:
        with self._session("insert budget") as db:
            db.add(BudgetRow(**budget_to_row(budget)))

    @_threaded
    def delete_budget(self, budget_id: str) -> None:
        with self._session("delete budget") as db:
            row = db.query(BudgetRow).filter(BudgetRow.id == budget_id).first()
            if row:
                # ORM cascade removes the budget's expenses as well
                db.delete(row)

    @_threaded
    def update_budget_spent(self, budget_id: str, spent: Decimal) -> None:
        with self._session("update budget spent") as db:
            updated = db.query(BudgetRow).filter(
                BudgetRow.id == budget_id
            ).update({BudgetRow.spent: spent})
            if not updated:
                raise BackendError(f"Budget {budget_id} does not exist", status_code=404)

    @_threaded
    def fetch_expenses(self, user_id: str) -> List[Expense]:
        with self._session("fetch expenses") as db:
            rows = db.query(ExpenseRow).filter(
                ExpenseRow.user_id == user_id
            ).order_by(ExpenseRow.created_at.desc()).all()
            return [expense_from_row(_columns(r)) for r in rows]

    @_threaded
    def insert_expense(self, expense: Expense) -> None:
        with self._session("insert expense") as db:
            db.add(ExpenseRow(**expense_to_row(expense)))

    @_threaded
    def delete_expense(self, expense_id: str) -> None:
        with self._session("delete expense") as db:
            db.query(ExpenseRow).filter(ExpenseRow.id == expense_id).delete()

    @_threaded
    def current_user(self, token: str) -> Optional[UserIdentity]:
        payload = decode_access_token(token)
        if not payload or not payload.get("sub"):
            return None
        with self._session("look up user") as db:
            user = db.query(UserRow).filter(UserRow.id == payload["sub"]).first()
            if not user:
                return None
            return UserIdentity(id=user.id, email=user.email, name=user.name)

    @_threaded
    def delete_account(self, user_id: str) -> None:
        with self._session("delete account") as db:
            user = db.query(UserRow).filter(UserRow.id == user_id).first()
            if not user:
                raise BackendError(f"User {user_id} does not exist", status_code=404)
            db.delete(user)

    def register_user(self, identity: UserIdentity) -> str:
        """Mirror an auth-provider user locally and return an access token for it."""
        with self._session("register user") as db:
            if not db.query(UserRow).filter(UserRow.id == identity.id).first():
                db.add(UserRow(id=identity.id, email=identity.email, name=identity.name))
        return create_access_token(data={"sub": identity.id})
