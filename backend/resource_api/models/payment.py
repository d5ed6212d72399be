"""SQLAlchemy model definitions for expense payments and shared money enums."""

from __future__ import annotations

import enum

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import relationship

from ..database import Base
from ..db_types import GUID, new_id


class PaymentMethod(str, enum.Enum):
    """Supported payment methods."""

    CORPORATE_CREDIT_CARD = "CORPORATE_CREDIT_CARD"
    BANK_TRANSFER = "BANK_TRANSFER"
    PAYPAL = "PAYPAL"
    OTHER = "OTHER"


class PaymentStatus(str, enum.Enum):
    """Settlement status recorded on expenses and sales.

    The value is set by the user; it is not derived from recorded payments.
    """

    PENDING = "PENDING"
    PARTIALLY_PAID = "PARTIALLY_PAID"
    PAID = "PAID"


PAYMENT_METHOD_ENUM = Enum(
    PaymentMethod,
    name="payment_method_enum",
    values_callable=lambda enum_cls: [member.value for member in enum_cls],
    native_enum=True,
    validate_strings=True,
)

PAYMENT_STATUS_ENUM = Enum(
    PaymentStatus,
    name="payment_status_enum",
    values_callable=lambda enum_cls: [member.value for member in enum_cls],
    native_enum=True,
    validate_strings=True,
)


class Payment(Base):
    """A settlement recorded against one expense."""

    __tablename__ = "payments"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_payments_amount_positive"),
    )

    id = Column("payment_id", GUID(), primary_key=True, default=new_id)
    tenant_id = Column(
        GUID(),
        ForeignKey("tenants.tenant_id", ondelete="CASCADE"),
        nullable=False,
    )
    expense_id = Column(
        GUID(),
        ForeignKey("expenses.expense_id", ondelete="RESTRICT"),
        nullable=False,
    )
    amount = Column(Numeric(12, 2), nullable=False)
    payment_currency_code = Column(String(3), nullable=True)
    amount_lcy = Column(Numeric(12, 2), nullable=True)
    payment_date = Column(Date, nullable=False)
    payment_method = Column(PAYMENT_METHOD_ENUM, nullable=False)
    reference_number = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    expense = relationship("Expense", back_populates="payments")


Index("payments_tenant_idx", Payment.tenant_id)
Index("payments_expense_idx", Payment.expense_id)
Index("payments_tenant_date_idx", Payment.tenant_id, Payment.payment_date)
