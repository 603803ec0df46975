"""Database setup: SQLite with WAL mode via SQLModel/SQLAlchemy.

What goes where:
- user: accounts (MANAGER / ENGINEER, plus seeded ADMIN accounts)
- task: project tasks; time slots and assigned engineer ids are embedded
        JSON columns rather than child tables
"""

from __future__ import annotations

import os

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from app.config import settings


def get_database_url() -> str:
    """Get database URL, ensuring the data directory exists."""
    url = settings.database_url
    if url.startswith("sqlite:///"):
        db_path = url.replace("sqlite:///", "")
        db_dir = os.path.dirname(db_path)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)
    return url


@event.listens_for(Engine, "connect")
def set_sqlite_wal(dbapi_connection, connection_record):
    """Enable WAL mode so the status sweep can read while requests write."""
    if type(dbapi_connection).__module__.split(".")[0] != "sqlite3":
        return
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA synchronous=NORMAL")  # Safe with WAL
    cursor.execute("PRAGMA busy_timeout=5000")    # 5s wait on lock
    cursor.close()


_url = get_database_url()
engine = create_engine(
    _url,
    echo=False,
    # Required for SQLite + async
    connect_args={"check_same_thread": False} if _url.startswith("sqlite") else {},
)


def create_db_and_tables(bind: Engine | None = None) -> None:
    """Create all tables defined by SQLModel metadata."""
    # Import table models so SQLModel metadata registers them
    from app.models.task import Task  # noqa: F401
    from app.models.user import User  # noqa: F401

    SQLModel.metadata.create_all(bind or engine)


def get_session():
    """Dependency for FastAPI endpoints."""
    with Session(engine) as session:
        yield session
