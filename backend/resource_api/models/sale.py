"""SQLAlchemy model definitions for sales invoices."""

from __future__ import annotations

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import relationship

from ..database import Base
from ..db_types import GUID, new_id
from .payment import PAYMENT_STATUS_ENUM, PaymentStatus


class Sale(Base):
    """Revenue invoice issued to a customer company.

    Sales are tracked tenant-wide and are not allocated to projects.
    """

    __tablename__ = "sales"
    __table_args__ = (
        CheckConstraint("total_amount > 0", name="ck_sales_total_amount_positive"),
        UniqueConstraint(
            "tenant_id",
            "company_id",
            "invoice_number",
            name="uq_sales_tenant_company_invoice",
        ),
    )

    id = Column("sale_id", GUID(), primary_key=True, default=new_id)
    tenant_id = Column(
        GUID(),
        ForeignKey("tenants.tenant_id", ondelete="CASCADE"),
        nullable=False,
    )
    company_id = Column(
        GUID(),
        ForeignKey("companies.company_id", ondelete="CASCADE"),
        nullable=False,
    )
    invoice_number = Column(String(100), nullable=False)
    invoice_date = Column(Date, nullable=False)
    total_amount = Column(Numeric(12, 2), nullable=False)
    status = Column(PAYMENT_STATUS_ENUM, nullable=False, default=PaymentStatus.PENDING)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    company = relationship("Company")


Index("sales_tenant_idx", Sale.tenant_id)
Index("sales_tenant_invoice_idx", Sale.tenant_id, Sale.invoice_number)
