"""
roomsync/migrations/env.py — Alembic environment.

The database URL comes from the same config classes the app factory uses:
TestingConfig when TEST_RUN is set, otherwise the class FLASK_ENV selects.
roomsync.config loads the .env files on import.

SQLite cannot ALTER most constraints in place, so migrations against it run
in batch mode (copy-and-move tables).
"""

from __future__ import annotations

import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from roomsync.app.extensions import db
from roomsync.app.models import group, membership, rating, task, user  # noqa: F401
from roomsync.config import ActiveConfig, TestingConfig

target_metadata = db.metadata

config_class = TestingConfig if os.getenv("TEST_RUN") else ActiveConfig
db_url = config_class.SQLALCHEMY_DATABASE_URI
if not db_url:
    raise RuntimeError(f"{config_class.__name__} has no database URL; set DATABASE_URL.")

config = context.config
config.set_main_option("sqlalchemy.url", db_url)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

_batch = db_url.startswith("sqlite")


def run_migrations_offline() -> None:
    context.configure(
        url=db_url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
        render_as_batch=_batch,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            render_as_batch=_batch,
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
