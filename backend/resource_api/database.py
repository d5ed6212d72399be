"""Engine, session factory and environment driven settings for the finance API."""

from __future__ import annotations

import os
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.orm import Session, declarative_base, sessionmaker

BACKEND_DIR = Path(__file__).resolve().parent.parent
DEFAULT_SQLITE_PATH = BACKEND_DIR / "resource_mgmt.db"

REQUIRE_POSTGRES_ENV = "REQUIRE_POSTGRES"

# (create_engine keyword, environment variable, default)
POOL_OPTIONS = (
    ("pool_size", "DATABASE_POOL_SIZE", 5),
    ("max_overflow", "DATABASE_MAX_OVERFLOW", 10),
    ("pool_timeout", "DATABASE_POOL_TIMEOUT", 30),
    ("pool_recycle", "DATABASE_POOL_RECYCLE", 1800),
)
CONNECT_TIMEOUT_ENV = "DATABASE_CONNECT_TIMEOUT"
DEFAULT_CONNECT_TIMEOUT = 10


def read_int_env(name: str, default: int) -> int:
    """Read a non-negative integer setting, failing fast on garbage."""

    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc
    if value < 0:
        raise ValueError(f"{name} must be non-negative, got {value}")
    return value


def read_bool_env(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _is_sqlite(url: URL) -> bool:
    return url.get_backend_name() == "sqlite"


def _resolve_database_url(raw_url: str | None) -> str:
    postgres_only = read_bool_env(REQUIRE_POSTGRES_ENV, False)
    if not raw_url:
        if postgres_only:
            raise RuntimeError(f"DATABASE_URL is required when {REQUIRE_POSTGRES_ENV} is set")
        raw_url = f"sqlite:///{DEFAULT_SQLITE_PATH.as_posix()}"

    url = make_url(raw_url)
    if _is_sqlite(url):
        if postgres_only:
            raise RuntimeError(f"{REQUIRE_POSTGRES_ENV} is set but DATABASE_URL points at SQLite")
        if url.database and url.database != ":memory:":
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    return url.render_as_string(hide_password=False)


def build_engine_kwargs(database_url: str) -> Dict[str, Any]:
    """Keyword arguments for ``create_engine``; pool tuning only applies off SQLite."""

    if _is_sqlite(make_url(database_url)):
        return {"connect_args": {"check_same_thread": False}}

    kwargs: Dict[str, Any] = {"pool_pre_ping": True}
    for keyword, env_name, default in POOL_OPTIONS:
        kwargs[keyword] = read_int_env(env_name, default)
    kwargs["connect_args"] = {
        "connect_timeout": read_int_env(CONNECT_TIMEOUT_ENV, DEFAULT_CONNECT_TIMEOUT)
    }
    return kwargs


def _set_sqlite_pragma(dbapi_connection, _connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def enable_sqlite_foreign_keys(target: Engine) -> None:
    """SQLite ignores ON DELETE rules unless the pragma is set per connection."""

    if target.dialect.name == "sqlite":
        event.listen(target, "connect", _set_sqlite_pragma)


SQLALCHEMY_DATABASE_URL = _resolve_database_url(os.getenv("DATABASE_URL"))

engine = create_engine(SQLALCHEMY_DATABASE_URL, **build_engine_kwargs(SQLALCHEMY_DATABASE_URL))
enable_sqlite_foreign_keys(engine)
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)

Base = declarative_base()


def get_db() -> Iterator[Session]:
    """Request scoped session for FastAPI dependencies."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope() -> Iterator[Session]:
    """Commit on success and roll back on error; used by the CLI scripts."""
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
