"""Schema management: Alembic upgrades at startup and a readiness check."""

from __future__ import annotations

import errno
import logging
import os
import time
from pathlib import Path
from typing import IO, Callable, Mapping, Optional, Sequence

from alembic import command
from alembic.config import Config
from alembic.script import ScriptDirectory
from sqlalchemy import create_engine, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.engine.reflection import Inspector

from . import models  # noqa: F401  (registers tables on Base.metadata)
from .database import BACKEND_DIR, SQLALCHEMY_DATABASE_URL, Base, build_engine_kwargs

LOGGER = logging.getLogger(__name__)

LOCK_PATH = BACKEND_DIR / ".alembic-migration.lock"
LOCK_POLL_INTERVAL = 0.25
LOCK_TIMEOUT_ENV = "ALEMBIC_MIGRATION_LOCK_TIMEOUT"
DEFAULT_LOCK_TIMEOUT = 30.0

if os.name == "posix":  # pragma: no cover - platform specific
    import fcntl

    def _try_lock(handle: IO[str]) -> None:
        fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)

    def _unlock(handle: IO[str]) -> None:
        fcntl.flock(handle.fileno(), fcntl.LOCK_UN)

else:  # pragma: no cover - platform specific
    import msvcrt

    def _try_lock(handle: IO[str]) -> None:
        msvcrt.locking(handle.fileno(), msvcrt.LK_NBLCK, 1)

    def _unlock(handle: IO[str]) -> None:
        msvcrt.locking(handle.fileno(), msvcrt.LK_UNLCK, 1)


# Windows lock and sharing violations.
_WINDOWS_LOCK_ERRORS = {32, 33}


class SchemaNotReadyError(RuntimeError):
    """Raised when tables or columns required by the API are missing."""

    def __init__(self, missing: Mapping[str, Sequence[str]]) -> None:
        self.missing = {table: list(columns) for table, columns in missing.items()}
        described = ", ".join(
            f"{table}({', '.join(columns)})" if columns else table
            for table, columns in sorted(self.missing.items())
        )
        super().__init__(f"Database schema is not ready; missing: {described}")


def lock_timeout_seconds() -> float:
    raw = os.getenv(LOCK_TIMEOUT_ENV, "").strip()
    if not raw:
        return DEFAULT_LOCK_TIMEOUT
    try:
        value = float(raw)
    except ValueError:
        value = 0.0
    if value <= 0:
        LOGGER.warning(
            "Ignoring %s=%r; waiting %.1f seconds for the migration lock",
            LOCK_TIMEOUT_ENV,
            raw,
            DEFAULT_LOCK_TIMEOUT,
        )
        return DEFAULT_LOCK_TIMEOUT
    return value


class MigrationLock:
    """Inter-process file lock so only one worker runs Alembic at a time."""

    def __init__(self, path: Path = LOCK_PATH, timeout: Optional[float] = None) -> None:
        self.path = path
        self.timeout = lock_timeout_seconds() if timeout is None else timeout
        self._handle: Optional[IO[str]] = None

    @staticmethod
    def _is_contention(error: OSError) -> bool:
        if isinstance(error, BlockingIOError):
            return True
        if error.errno in {errno.EACCES, errno.EAGAIN, errno.EBUSY}:
            return True
        return getattr(error, "winerror", None) in _WINDOWS_LOCK_ERRORS

    def __enter__(self) -> "MigrationLock":
        self.path.parent.mkdir(parents=True, exist_ok=True)
        handle = self.path.open("a+")
        deadline = time.monotonic() + self.timeout
        while True:
            try:
                _try_lock(handle)
                break
            except OSError as error:
                if not self._is_contention(error) or time.monotonic() >= deadline:
                    handle.close()
                    if self._is_contention(error):
                        raise TimeoutError(
                            f"Timed out after {self.timeout:.1f}s waiting for {self.path}"
                        ) from error
                    raise
                time.sleep(LOCK_POLL_INTERVAL)
        self._handle = handle
        LOGGER.debug("Holding migration lock %s", self.path)
        return self

    def __exit__(self, *_exc_info) -> None:
        handle, self._handle = self._handle, None
        if handle is None:
            return
        try:
            _unlock(handle)
        except OSError:  # pragma: no cover - released anyway when the file closes
            LOGGER.debug("Migration lock %s was not released cleanly", self.path, exc_info=True)
        finally:
            handle.close()


def _has_column(inspector: Inspector, table_name: str, column_name: str) -> bool:
    if not inspector.has_table(table_name):
        return False
    return any(column["name"] == column_name for column in inspector.get_columns(table_name))


# Newest first: the first matching probe names the revision an unversioned
# database already satisfies.
REVISION_PROBES: Sequence[tuple[str, Callable[[Inspector], bool]]] = (
    (
        "20251201_0003",
        lambda inspector: _has_column(inspector, "expense_allocations", "allocated_percentage"),
    ),
    ("20251115_0002", lambda inspector: inspector.has_table("payments")),
    ("20251101_0001", lambda inspector: inspector.has_table("expenses")),
)


def detect_revision(inspector: Inspector) -> Optional[str]:
    return next((revision for revision, probe in REVISION_PROBES if probe(inspector)), None)


def build_alembic_config(database_url: Optional[str] = None) -> Config:
    config = Config(str(BACKEND_DIR / "alembic.ini"))
    config.set_main_option("script_location", str(BACKEND_DIR / "alembic"))
    config.set_main_option(
        "sqlalchemy.url", database_url or os.getenv("DATABASE_URL") or SQLALCHEMY_DATABASE_URL
    )
    return config


def _upgrade_to_head(config: Config, url: str) -> None:
    engine = create_engine(url, **build_engine_kwargs(url))
    try:
        inspector = inspect(engine)
        versioned = inspector.has_table("alembic_version")
        unversioned_tables = [
            name for name in inspector.get_table_names() if name != "alembic_version"
        ]
        detected = None if versioned else detect_revision(inspector)
    finally:
        engine.dispose()

    if versioned or not unversioned_tables:
        command.upgrade(config, "head")
        return

    if detected is None:
        LOGGER.info(
            "Found %d unversioned table(s) unrelated to the finance schema; upgrading from base",
            len(unversioned_tables),
        )
        command.upgrade(config, "head")
        return

    LOGGER.info("Unversioned database matches revision %s; stamping it", detected)
    command.stamp(config, detected)
    if detected != ScriptDirectory.from_config(config).get_current_head():
        command.upgrade(config, "head")


def run_database_migrations(database_url: Optional[str] = None) -> None:
    """Bring the database to the latest Alembic revision under the migration lock."""

    config = build_alembic_config(database_url)
    url = config.get_main_option("sqlalchemy.url")
    LOGGER.info("Running database migrations")
    with MigrationLock():
        _upgrade_to_head(config, url)


def required_schema() -> dict[str, set[str]]:
    """Tables and columns the mapped models expect to find."""

    return {
        table.name: {column.name for column in table.columns}
        for table in Base.metadata.sorted_tables
    }


def verify_schema_ready(engine: Engine) -> None:
    """Fail fast when any mapped table or column is absent from the database."""

    inspector = inspect(engine)
    expected = required_schema()
    missing: dict[str, list[str]] = {}
    for table_name, columns in expected.items():
        if not inspector.has_table(table_name):
            missing[table_name] = []
            continue
        present = {column["name"] for column in inspector.get_columns(table_name)}
        absent = sorted(columns - present)
        if absent:
            missing[table_name] = absent

    if missing:
        error = SchemaNotReadyError(missing)
        LOGGER.error("%s", error)
        raise error
    LOGGER.info("Database schema verified for %d tables", len(expected))
