"""
Database session management.
"""
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from budgetwise.core.config import settings
from budgetwise.db.base import Base

IN_MEMORY_URLS = ("sqlite://", "sqlite:///:memory:")


def make_engine(url: str = None, echo: bool = None):
    """Create an engine; SQLite connections get foreign keys switched on so cascades fire."""
    url = url or settings.DATABASE_URL
    kwargs = {"echo": settings.DB_ECHO if echo is None else echo, "pool_pre_ping": True}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if url in IN_MEMORY_URLS:
            # One shared connection, otherwise every checkout sees an empty database
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_recycle"] = 3600
    engine = create_engine(url, **kwargs)
    
    if url.startswith("sqlite"):
        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()
    
    return engine


engine = make_engine()

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind=None):
    """Initialize database tables."""
    # Import models so they register on Base.metadata
    import budgetwise.models  # noqa: F401
    Base.metadata.create_all(bind=bind or engine)
