"""Expose SQLAlchemy models for convenient imports."""

from .expense import Expense, ExpenseAllocation
from .payment import Payment, PaymentMethod, PaymentStatus
from .sale import Sale
from .tenant import Company, Project, Tenant

__all__ = [
    "Tenant",
    "Company",
    "Project",
    "Expense",
    "ExpenseAllocation",
    "Payment",
    "PaymentMethod",
    "PaymentStatus",
    "Sale",
]
