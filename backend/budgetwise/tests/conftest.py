"""
Shared fixtures for the test suite.
"""
import os

# Settings are read at import time; keep the app on a throwaway database
os.environ.setdefault("BACKEND_PROVIDER", "sql")
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from sqlalchemy.orm import sessionmaker
from budgetwise.db.session import init_db, make_engine
from budgetwise.services.session_service import BudgetSession
from budgetwise.services.sql_backend import SqlBackend
from budgetwise.tests.fakes import OTHER_USER, USER, FakeBackend


@pytest.fixture
def backend():
    fake = FakeBackend()
    fake.tokens["token-1"] = USER
    fake.tokens["token-2"] = OTHER_USER
    return fake


@pytest.fixture
def session(backend):
    return BudgetSession(backend)


@pytest.fixture
def sql_backend():
    engine = make_engine("sqlite://")
    init_db(bind=engine)
    yield SqlBackend(sessionmaker(autocommit=False, autoflush=False, bind=engine))
    engine.dispose()
