"""Custom SQLAlchemy column types for multi-database compatibility."""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy.dialects import postgresql
from sqlalchemy.types import CHAR, TypeDecorator


class GUID(TypeDecorator):
    """Platform-independent GUID/UUID type.

    Stores UUID values as ``UUID`` in PostgreSQL and as 36-character strings
    elsewhere. Values are normalised to strings when read so identifiers can
    be compared with path parameters and token claims directly.
    """

    impl = CHAR
    cache_ok = True

    def load_dialect_impl(self, dialect):  # type: ignore[override]
        if dialect.name == "postgresql":
            return dialect.type_descriptor(postgresql.UUID(as_uuid=True))
        return dialect.type_descriptor(CHAR(36))

    def process_bind_param(self, value: Any, dialect):  # type: ignore[override]
        if value is None:
            return value
        if dialect.name == "postgresql":
            if isinstance(value, uuid.UUID):
                return value
            return uuid.UUID(str(value))
        return str(value)

    def process_result_value(self, value: Any, dialect):  # type: ignore[override]
        if value is None:
            return value
        return str(value)


def new_id() -> str:
    """Return a fresh identifier in the textual form the API exposes."""

    return str(uuid.uuid4())


def is_valid_id(value: Any) -> bool:
    """Whether ``value`` parses as a UUID; malformed ids can never match a row."""

    try:
        uuid.UUID(str(value))
    except (TypeError, ValueError):
        return False
    return True


def canonical_id(value: Any) -> Any:
    """Lower-case hyphenated form of a UUID; values that do not parse are returned as is."""

    try:
        return str(uuid.UUID(str(value).strip()))
    except (TypeError, ValueError):
        return value
