"""Alembic environment for the planning tables.

Target URL, first match wins:
    alembic -x db_url=sqlite:////tmp/other.db upgrade head
    DATABASE_URL / PLANNING__DATABASE_URL / config/planning.yml
"""
import os
import sys
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

# Project root, so `modules.planning` imports when alembic runs from anywhere
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "..", ".."))

from modules.planning.config import get_config
from modules.planning.models import Base

alembic_cfg = context.config

if alembic_cfg.config_file_name is not None:
    fileConfig(alembic_cfg.config_file_name)

target_metadata = Base.metadata


def _database_url() -> str:
    return context.get_x_argument(as_dictionary=True).get("db_url") or get_config().database_url


def run_offline(url: str) -> None:
    """Emit the planning DDL as SQL without a connection."""
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_online(url: str) -> None:
    """Apply the revisions over a live connection.

    SQLite cannot ALTER most constraints, so it gets batch (copy-and-move) mode.
    """
    alembic_cfg.set_main_option("sqlalchemy.url", url)
    engine = engine_from_config(
        alembic_cfg.get_section(alembic_cfg.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with engine.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_as_batch=connection.dialect.name == "sqlite",
            compare_type=True,
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_offline(_database_url())
else:
    run_online(_database_url())
