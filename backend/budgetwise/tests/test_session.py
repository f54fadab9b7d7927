"""
Tests for session lifecycle and authentication.
"""
import asyncio
import pytest
from budgetwise.core.exceptions import AuthError, PersistenceError
from budgetwise.services.session_service import BudgetSession, SessionRegistry, authenticate
from budgetwise.tests.fakes import OTHER_USER, USER, FakeBackend, make_budget, make_expense


def test_sign_in_loads_only_own_records(backend, session):
    """Test sign-in fills both stores with the user's records."""
    mine = make_budget(owner_id=USER.id)
    theirs = make_budget(owner_id=OTHER_USER.id)
    backend.seed(mine, theirs, make_expense(mine, 5), make_expense(theirs, 7))

    asyncio.run(session.sign_in(USER))

    assert session.budgets.current() == (mine,)
    assert [e.budget_id for e in session.expenses.current()] == [mine.id]
    assert session.dashboard().chart.total_spent == 5


def test_sign_out_clears_and_closes(backend, session):
    """Test sign-out empties caches and ends open streams."""
    budget = make_budget()
    backend.seed(budget, make_expense(budget, 5))

    async def scenario():
        await session.sign_in(USER)
        stream = session.budgets.subscribe()
        assert await stream.__anext__() == (budget,)
        session.sign_out()
        assert await stream.__anext__() == ()
        with pytest.raises(StopAsyncIteration):
            await stream.__anext__()

    asyncio.run(scenario())
    assert session.user is None
    assert session.budgets.current() == ()
    assert session.expenses.current() == ()
    with pytest.raises(AuthError):
        session.dashboard()


def test_delete_account(backend, session):
    """Test account deletion cascades at the backend and tears the session down."""
    budget = make_budget()
    backend.seed(budget, make_expense(budget, 5))
    asyncio.run(session.sign_in(USER))

    asyncio.run(session.delete_account())

    assert backend.budgets == {}
    assert backend.expenses == {}
    assert session.user is None
    assert session.budgets.closed


def test_delete_account_failure(backend, session):
    """Test a failed account deletion keeps the session alive."""
    asyncio.run(session.sign_in(USER))
    backend.fail.add("delete_account")

    with pytest.raises(PersistenceError):
        asyncio.run(session.delete_account())
    assert session.user == USER


def test_authenticate(backend):
    """Test tokens resolve through the backend."""
    assert asyncio.run(authenticate(backend, "token-1")) == USER
    with pytest.raises(AuthError):
        asyncio.run(authenticate(backend, "bogus"))
    with pytest.raises(AuthError):
        asyncio.run(authenticate(backend, None))

    backend.fail.add("current_user")
    with pytest.raises(PersistenceError):
        asyncio.run(authenticate(backend, "token-1"))


def test_registry_reuses_sessions(backend):
    """Test one session per user, rebound to the newest backend client."""
    registry = SessionRegistry()
    other_client = FakeBackend()

    async def scenario():
        first = await registry.open(backend, USER)
        second = await registry.open(other_client, USER)
        return first, second

    first, second = asyncio.run(scenario())
    assert first is second
    assert first.backend is other_client
    assert USER.id in registry and len(registry) == 1

    registry.close(USER.id)
    assert USER.id not in registry
    assert first.user is None


def test_registry_does_not_keep_failed_sign_in(backend):
    """Test a session whose first load fails is not registered."""
    registry = SessionRegistry()
    backend.fail.add("fetch_budgets")

    with pytest.raises(PersistenceError):
        asyncio.run(registry.open(backend, USER))
    assert len(registry) == 0


def test_registry_evicts_idle_sessions(backend):
    """Test a session unused past the idle limit is signed out and reloaded on return."""
    now = [0.0]
    registry = SessionRegistry(idle_seconds=60, clock=lambda: now[0])
    budget = make_budget(owner_id=USER.id)

    async def scenario():
        first = await registry.open(backend, USER)
        await registry.open(backend, OTHER_USER)
        now[0] = 30.0
        assert await registry.open(backend, USER) is first

        backend.seed(budget)
        now[0] = 100.0
        await registry.open(backend, OTHER_USER)
        assert USER.id not in registry
        second = await registry.open(backend, USER)
        return first, second

    first, second = asyncio.run(scenario())
    assert first.user is None
    assert second is not first
    assert second.budgets.current() == (budget,)
    assert len(registry) == 2


def test_sessions_are_isolated(backend):
    """Test two users never see each other's caches."""
    mine = make_budget(owner_id=USER.id)
    theirs = make_budget(owner_id=OTHER_USER.id)
    backend.seed(mine, theirs)
    alice = BudgetSession(backend)
    bob = BudgetSession(backend)

    async def scenario():
        await alice.sign_in(USER)
        await bob.sign_in(OTHER_USER)

    asyncio.run(scenario())
    assert alice.budgets.current() == (mine,)
    assert bob.budgets.current() == (theirs,)
