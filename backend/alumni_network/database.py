"""Database engine and helpers.

This module builds the SQLModel/SQLAlchemy engine from the configured
`DATABASE_URL` and provides the per-request session dependency. The
engine itself lives on `app.state` so the application and its tests can
each bring their own store.
"""

from fastapi import Request
from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine, Session

from .config import Settings


def build_engine(settings: Settings) -> Engine:
    """Create an engine for `settings.DATABASE_URL`.

    SQLite connections get `check_same_thread` disabled (FastAPI runs
    sync handlers in a thread pool) and foreign keys switched on, since
    SQLite leaves them off per connection by default.
    """
    url = settings.DATABASE_URL
    if not url.startswith("sqlite"):
        return create_engine(url, echo=False)
    engine = create_engine(url, echo=False, connect_args={"check_same_thread": False})

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_conn, _record):
        cur = dbapi_conn.cursor()
        cur.execute("PRAGMA foreign_keys=ON")
        cur.close()

    return engine


def create_db_and_tables(engine: Engine):
    """Create any missing tables for the alumni network models.

    Runs on every application start and from `run_migrations.py`.
    Existing tables are left as they are; column changes to an existing
    database are not applied.
    """
    # models must be imported so their tables are registered on the metadata
    from . import models  # noqa: F401

    SQLModel.metadata.create_all(engine)


def get_session(request: Request):
    """Yield a database `Session` for FastAPI dependency injection.

    The generator yields a session bound to the application's engine and
    ensures it is closed when the request scope finishes.
    """
    with Session(request.app.state.engine) as session:
        yield session
