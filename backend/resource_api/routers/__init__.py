"""Routers package."""

from .finance import router as finance_router
from .payments import router as payments_router
from .procurements import router as procurements_router
from .sales import router as sales_router

__all__ = [
    "finance_router",
    "payments_router",
    "procurements_router",
    "sales_router",
]
