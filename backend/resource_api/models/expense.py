"""SQLAlchemy model definitions for procurement expenses and their project allocations."""

from __future__ import annotations

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import relationship

from ..database import Base
from ..db_types import GUID, new_id
from .payment import PAYMENT_METHOD_ENUM, PAYMENT_STATUS_ENUM, PaymentStatus


class Expense(Base):
    """Procurement invoice received from a vendor company."""

    __tablename__ = "expenses"
    __table_args__ = (
        CheckConstraint("total_amount > 0", name="ck_expenses_total_amount_positive"),
    )

    id = Column("expense_id", GUID(), primary_key=True, default=new_id)
    tenant_id = Column(
        GUID(),
        ForeignKey("tenants.tenant_id", ondelete="CASCADE"),
        nullable=False,
    )
    company_id = Column(
        GUID(),
        ForeignKey("companies.company_id", ondelete="RESTRICT"),
        nullable=False,
    )
    invoice_number = Column(String(100), nullable=False)
    invoice_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=True)
    ref_start_date = Column(Date, nullable=True)
    ref_end_date = Column(Date, nullable=True)
    invoice_currency_code = Column(String(3), nullable=True)
    total_amount = Column(Numeric(12, 2), nullable=False)
    payment_method = Column(PAYMENT_METHOD_ENUM, nullable=False)
    status = Column(
        PAYMENT_STATUS_ENUM,
        nullable=False,
        default=PaymentStatus.PENDING,
    )
    notes = Column(Text, nullable=True)
    document_url = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    company = relationship("Company")
    allocations = relationship(
        "ExpenseAllocation",
        back_populates="expense",
        cascade="all, delete-orphan",
        order_by="ExpenseAllocation.id",
    )
    # Payments block deletion; the ORM must never null out or cascade them.
    payments = relationship("Payment", back_populates="expense", passive_deletes="all")


Index("expenses_tenant_idx", Expense.tenant_id)
Index("expenses_tenant_date_idx", Expense.tenant_id, Expense.invoice_date)
Index("expenses_company_idx", Expense.company_id)


class ExpenseAllocation(Base):
    """Share of an expense attributed to one project.

    ``allocated_amount`` is always populated when written by the service;
    ``allocated_percentage`` keeps the original percentage when the share
    was requested that way.
    """

    __tablename__ = "expense_allocations"
    __table_args__ = (
        UniqueConstraint("expense_id", "project_id", name="uq_expense_allocations_project"),
        CheckConstraint(
            "allocated_amount IS NULL OR allocated_amount >= 0",
            name="ck_expense_allocations_amount_non_negative",
        ),
        CheckConstraint(
            "allocated_percentage IS NULL OR "
            "(allocated_percentage >= 0 AND allocated_percentage <= 100)",
            name="ck_expense_allocations_percentage_range",
        ),
    )

    id = Column("allocation_id", Integer, primary_key=True, autoincrement=True)
    expense_id = Column(
        GUID(),
        ForeignKey("expenses.expense_id", ondelete="CASCADE"),
        nullable=False,
    )
    project_id = Column(
        GUID(),
        ForeignKey("projects.project_id", ondelete="RESTRICT"),
        nullable=False,
    )
    allocated_amount = Column(Numeric(12, 2), nullable=True)
    allocated_percentage = Column(Numeric(7, 4), nullable=True)

    expense = relationship("Expense", back_populates="allocations")
    project = relationship("Project")


Index("expense_allocations_expense_idx", ExpenseAllocation.expense_id)
Index("expense_allocations_project_idx", ExpenseAllocation.project_id)
