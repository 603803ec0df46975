"""Alembic environment for the scheduler schema (user and task tables).

The database URL comes from app settings, so ``alembic upgrade head``
migrates the same database the API server opens.
"""

from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlmodel import SQLModel, create_engine

from app.db.database import get_database_url
from app.models.task import Task  # noqa: F401
from app.models.user import User  # noqa: F401

if context.config.config_file_name is not None:
    fileConfig(context.config.config_file_name)

# render_as_batch lets SQLite emulate ALTER TABLE by copy-and-move
MIGRATION_OPTIONS = {"target_metadata": SQLModel.metadata, "render_as_batch": True}


def _run(**configure_kwargs) -> None:
    context.configure(**MIGRATION_OPTIONS, **configure_kwargs)
    with context.begin_transaction():
        context.run_migrations()


if context.is_offline_mode():
    _run(url=get_database_url(), literal_binds=True, dialect_opts={"paramstyle": "named"})
else:
    with create_engine(get_database_url(), poolclass=pool.NullPool).connect() as connection:
        _run(connection=connection)
