"""Alembic entry point for the finance schema."""

from __future__ import annotations

import sys
from logging.config import fileConfig
from pathlib import Path

from alembic import context
from sqlalchemy import create_engine, pool
from sqlalchemy.engine import make_url

# alembic may be invoked from backend/, which hides the ``backend`` package
_REPO_ROOT = str(Path(__file__).resolve().parents[2])
if _REPO_ROOT not in sys.path:
    sys.path.insert(0, _REPO_ROOT)

from backend.resource_api import models  # noqa: E402,F401
from backend.resource_api.database import (  # noqa: E402
    SQLALCHEMY_DATABASE_URL,
    Base,
    build_engine_kwargs,
)

alembic_config = context.config
if alembic_config.config_file_name:
    fileConfig(alembic_config.config_file_name, disable_existing_loggers=False)

url = alembic_config.get_main_option("sqlalchemy.url") or SQLALCHEMY_DATABASE_URL
# SQLite cannot ALTER most constraints in place.
batch_mode = make_url(url).get_backend_name() == "sqlite"


def _configure_and_run(**options) -> None:
    context.configure(target_metadata=Base.metadata, render_as_batch=batch_mode, **options)
    with context.begin_transaction():
        context.run_migrations()


if context.is_offline_mode():
    _configure_and_run(url=url, literal_binds=True, dialect_opts={"paramstyle": "named"})
else:
    connect_args = build_engine_kwargs(url).get("connect_args", {})
    migration_engine = create_engine(url, poolclass=pool.NullPool, connect_args=connect_args)
    try:
        with migration_engine.connect() as connection:
            _configure_and_run(connection=connection)
    finally:
        migration_engine.dispose()
