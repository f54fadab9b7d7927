"""
Tests for the SQLAlchemy backend.
"""
import asyncio
import threading
from decimal import Decimal
import pytest
from budgetwise.core.security import create_access_token
from budgetwise.db import create_user
from budgetwise.db.session import SessionLocal
from budgetwise.schemas.budget import BudgetCreate
from budgetwise.schemas.expense import ExpenseCreate
from budgetwise.schemas.user import UserIdentity
from budgetwise.services.backend import BackendError
from budgetwise.services.session_service import BudgetSession
from budgetwise.services.sql_backend import SqlBackend
from budgetwise.tests.fakes import OTHER_USER, USER, make_budget, make_expense


def test_round_trip_and_ordering(sql_backend):
    """Test stored budgets come back newest first with their amounts intact."""
    sql_backend.register_user(USER)
    older = make_budget(name="Older", limit="120.50", minutes=0)
    newer = make_budget(name="Newer", limit=80, minutes=30)

    async def scenario():
        await sql_backend.insert_budget(older)
        await sql_backend.insert_budget(newer)
        return await sql_backend.fetch_budgets(USER.id)

    budgets = asyncio.run(scenario())
    assert [b.name for b in budgets] == ["Newer", "Older"]
    assert budgets[1].limit_amount == Decimal("120.50")
    assert budgets[1].created_at == older.created_at


def test_delete_budget_cascades(sql_backend):
    """Test deleting a budget removes its expenses from later fetches."""
    sql_backend.register_user(USER)
    food = make_budget(name="Food")
    fun = make_budget(name="Fun", minutes=1)

    async def scenario():
        await sql_backend.insert_budget(food)
        await sql_backend.insert_budget(fun)
        await sql_backend.insert_expense(make_expense(food, 10))
        await sql_backend.insert_expense(make_expense(fun, 20))
        await sql_backend.delete_budget(food.id)
        return await sql_backend.fetch_budgets(USER.id), await sql_backend.fetch_expenses(USER.id)

    budgets, expenses = asyncio.run(scenario())
    assert [b.id for b in budgets] == [fun.id]
    assert [e.budget_id for e in expenses] == [fun.id]


def test_delete_account_cascades(sql_backend):
    """Test account deletion removes the user's budgets and expenses only."""
    sql_backend.register_user(USER)
    sql_backend.register_user(OTHER_USER)
    mine = make_budget(owner_id=USER.id)
    theirs = make_budget(owner_id=OTHER_USER.id)

    async def scenario():
        await sql_backend.insert_budget(mine)
        await sql_backend.insert_budget(theirs)
        await sql_backend.insert_expense(make_expense(mine, 1))
        await sql_backend.delete_account(USER.id)
        return (
            await sql_backend.fetch_budgets(USER.id),
            await sql_backend.fetch_expenses(USER.id),
            await sql_backend.fetch_budgets(OTHER_USER.id),
        )

    mine_after, my_expenses, theirs_after = asyncio.run(scenario())
    assert mine_after == []
    assert my_expenses == []
    assert [b.id for b in theirs_after] == [theirs.id]

    with pytest.raises(BackendError):
        asyncio.run(sql_backend.delete_account(USER.id))


def test_insert_for_unknown_user_fails(sql_backend):
    """Test foreign keys are enforced."""
    with pytest.raises(BackendError):
        asyncio.run(sql_backend.insert_budget(make_budget(owner_id="nobody")))


def test_update_spent_of_missing_budget(sql_backend):
    """Test spent updates need an existing budget."""
    with pytest.raises(BackendError) as exc_info:
        asyncio.run(sql_backend.update_budget_spent("missing", Decimal(1)))
    assert exc_info.value.status_code == 404


def test_current_user(sql_backend):
    """Test tokens resolve to registered users only."""
    token = sql_backend.register_user(USER)

    assert asyncio.run(sql_backend.current_user(token)) == USER
    assert asyncio.run(sql_backend.current_user("not-a-jwt")) is None
    stranger = create_access_token(data={"sub": "stranger"})
    assert asyncio.run(sql_backend.current_user(stranger)) is None


def test_session_on_sql_backend(sql_backend):
    """Test the whole flow against a real database."""
    sql_backend.register_user(USER)
    session = BudgetSession(sql_backend)

    async def scenario():
        await session.sign_in(USER)
        small = await session.gate.create_budget(BudgetCreate(name="Small", limit_amount=200))
        large = await session.gate.create_budget(BudgetCreate(name="Large", limit_amount=300))
        await session.gate.create_expense(ExpenseCreate(budget_id=small.id, name="A", amount=50))
        await session.gate.create_expense(ExpenseCreate(budget_id=large.id, name="B", amount=150))
        await session.reload()

    asyncio.run(scenario())
    chart = session.dashboard().chart
    assert chart.overall_utilization_pct == Decimal("40.00")
    assert [b.label for b in chart.bars] == ["Large", "Small"]


def test_queries_run_off_the_event_loop(sql_backend):
    """Test database work happens in a worker thread, not on the loop thread."""
    session_threads = []
    factory = sql_backend._session_factory

    def recording_factory():
        session_threads.append(threading.get_ident())
        return factory()

    backend = SqlBackend(recording_factory)

    async def scenario():
        await backend.fetch_budgets(USER.id)
        return threading.get_ident()

    loop_thread = asyncio.run(scenario())
    assert len(session_threads) == 1
    assert session_threads[0] != loop_thread


def test_create_user_command(capsys):
    """Test the create-user command registers the user and prints a usable token."""
    token = create_user.main(["--email", "carol@example.com", "--name", "Carol", "--id", "user-3"])

    assert capsys.readouterr().out.strip() == token
    user = asyncio.run(SqlBackend(SessionLocal).current_user(token))
    assert user == UserIdentity(id="user-3", email="carol@example.com", name="Carol")
