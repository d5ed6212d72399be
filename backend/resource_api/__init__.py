"""FastAPI application package for the financial allocation and reconciliation API."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from fastapi import FastAPI


def get_app() -> "FastAPI":
    """Return the FastAPI application without importing it eagerly.

    Alembic and the CLI scripts import this package without needing the
    routers or the HTTP stack.
    """

    from .main import app as fastapi_app

    return fastapi_app


__all__ = ["get_app"]
