"""Payments against expenses and tenant sales.

Revision ID: 20251115_0002
Revises: 20251101_0001
Create Date: 2025-11-15 00:00:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "20251115_0002"
down_revision = "20251101_0001"
branch_labels = None
depends_on = None

PAYMENT_METHODS = ("CORPORATE_CREDIT_CARD", "BANK_TRANSFER", "PAYPAL", "OTHER")
PAYMENT_STATUSES = ("PENDING", "PARTIALLY_PAID", "PAID")


def upgrade() -> None:
    if op.get_bind().dialect.name == "postgresql":
        uuid_type = postgresql.UUID(as_uuid=True)
        method_enum = postgresql.ENUM(
            *PAYMENT_METHODS, name="payment_method_enum", create_type=False
        )
        status_enum = postgresql.ENUM(
            *PAYMENT_STATUSES, name="payment_status_enum", create_type=False
        )
    else:
        uuid_type = sa.CHAR(length=36)
        method_enum = sa.Enum(*PAYMENT_METHODS, name="payment_method_enum")
        status_enum = sa.Enum(*PAYMENT_STATUSES, name="payment_status_enum")

    op.create_table(
        "payments",
        sa.Column("payment_id", uuid_type, primary_key=True),
        sa.Column(
            "tenant_id",
            uuid_type,
            sa.ForeignKey("tenants.tenant_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "expense_id",
            uuid_type,
            sa.ForeignKey("expenses.expense_id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("payment_date", sa.Date(), nullable=False),
        sa.Column("payment_method", method_enum, nullable=False),
        sa.Column("reference_number", sa.String(length=100), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.CheckConstraint("amount > 0", name="ck_payments_amount_positive"),
    )
    op.create_index("payments_tenant_idx", "payments", ["tenant_id"])
    op.create_index("payments_expense_idx", "payments", ["expense_id"])
    op.create_index("payments_tenant_date_idx", "payments", ["tenant_id", "payment_date"])

    op.create_table(
        "sales",
        sa.Column("sale_id", uuid_type, primary_key=True),
        sa.Column(
            "tenant_id",
            uuid_type,
            sa.ForeignKey("tenants.tenant_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "company_id",
            uuid_type,
            sa.ForeignKey("companies.company_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("invoice_number", sa.String(length=100), nullable=False),
        sa.Column("invoice_date", sa.Date(), nullable=False),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("status", status_enum, nullable=False, server_default="PENDING"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.CheckConstraint("total_amount > 0", name="ck_sales_total_amount_positive"),
        sa.UniqueConstraint(
            "tenant_id", "company_id", "invoice_number", name="uq_sales_tenant_company_invoice"
        ),
    )
    op.create_index("sales_tenant_idx", "sales", ["tenant_id"])
    op.create_index("sales_tenant_invoice_idx", "sales", ["tenant_id", "invoice_number"])


def downgrade() -> None:
    op.drop_index("sales_tenant_invoice_idx", table_name="sales")
    op.drop_index("sales_tenant_idx", table_name="sales")
    op.drop_table("sales")
    op.drop_index("payments_tenant_date_idx", table_name="payments")
    op.drop_index("payments_expense_idx", table_name="payments")
    op.drop_index("payments_tenant_idx", table_name="payments")
    op.drop_table("payments")
