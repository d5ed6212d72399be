"""Tenancy tables, expenses and expense allocations.

Revision ID: 20251101_0001
Revises:
Create Date: 2025-11-01 00:00:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "20251101_0001"
down_revision = None
branch_labels = None
depends_on = None

PAYMENT_METHODS = ("CORPORATE_CREDIT_CARD", "BANK_TRANSFER", "PAYPAL", "OTHER")
PAYMENT_STATUSES = ("PENDING", "PARTIALLY_PAID", "PAID")


def _column_types(dialect_name: str):
    if dialect_name == "postgresql":
        method_enum = postgresql.ENUM(
            *PAYMENT_METHODS, name="payment_method_enum", create_type=False
        )
        status_enum = postgresql.ENUM(
            *PAYMENT_STATUSES, name="payment_status_enum", create_type=False
        )
        return postgresql.UUID(as_uuid=True), method_enum, status_enum
    return (
        sa.CHAR(length=36),
        sa.Enum(*PAYMENT_METHODS, name="payment_method_enum"),
        sa.Enum(*PAYMENT_STATUSES, name="payment_status_enum"),
    )


def upgrade() -> None:
    bind = op.get_bind()
    dialect_name = bind.dialect.name
    uuid_type, method_enum, status_enum = _column_types(dialect_name)

    if dialect_name == "postgresql":
        postgresql.ENUM(*PAYMENT_METHODS, name="payment_method_enum").create(
            bind, checkfirst=True
        )
        postgresql.ENUM(*PAYMENT_STATUSES, name="payment_status_enum").create(
            bind, checkfirst=True
        )

    op.create_table(
        "tenants",
        sa.Column("tenant_id", uuid_type, primary_key=True),
        sa.Column("slug", sa.String(length=32), nullable=False, unique=True),
        sa.Column("name", sa.String(length=200), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
    )

    op.create_table(
        "companies",
        sa.Column("company_id", uuid_type, primary_key=True),
        sa.Column(
            "tenant_id",
            uuid_type,
            sa.ForeignKey("tenants.tenant_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
    )
    op.create_index("companies_tenant_idx", "companies", ["tenant_id"])

    op.create_table(
        "projects",
        sa.Column("project_id", uuid_type, primary_key=True),
        sa.Column(
            "tenant_id",
            uuid_type,
            sa.ForeignKey("tenants.tenant_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "company_id",
            uuid_type,
            sa.ForeignKey("companies.company_id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
    )
    op.create_index("projects_tenant_idx", "projects", ["tenant_id"])

    op.create_table(
        "expenses",
        sa.Column("expense_id", uuid_type, primary_key=True),
        sa.Column(
            "tenant_id",
            uuid_type,
            sa.ForeignKey("tenants.tenant_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "company_id",
            uuid_type,
            sa.ForeignKey("companies.company_id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("invoice_number", sa.String(length=100), nullable=False),
        sa.Column("invoice_date", sa.Date(), nullable=False),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("payment_method", method_enum, nullable=False),
        sa.Column("status", status_enum, nullable=False, server_default="PENDING"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.CheckConstraint("total_amount > 0", name="ck_expenses_total_amount_positive"),
    )
    op.create_index("expenses_tenant_idx", "expenses", ["tenant_id"])
    op.create_index("expenses_tenant_date_idx", "expenses", ["tenant_id", "invoice_date"])
    op.create_index("expenses_company_idx", "expenses", ["company_id"])

    op.create_table(
        "expense_allocations",
        sa.Column("allocation_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "expense_id",
            uuid_type,
            sa.ForeignKey("expenses.expense_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "project_id",
            uuid_type,
            sa.ForeignKey("projects.project_id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("allocated_amount", sa.Numeric(12, 2), nullable=True),
        sa.UniqueConstraint("expense_id", "project_id", name="uq_expense_allocations_project"),
        sa.CheckConstraint(
            "allocated_amount IS NULL OR allocated_amount >= 0",
            name="ck_expense_allocations_amount_non_negative",
        ),
    )
    op.create_index("expense_allocations_expense_idx", "expense_allocations", ["expense_id"])
    op.create_index("expense_allocations_project_idx", "expense_allocations", ["project_id"])


def downgrade() -> None:
    op.drop_index("expense_allocations_project_idx", table_name="expense_allocations")
    op.drop_index("expense_allocations_expense_idx", table_name="expense_allocations")
    op.drop_table("expense_allocations")
    op.drop_index("expenses_company_idx", table_name="expenses")
    op.drop_index("expenses_tenant_date_idx", table_name="expenses")
    op.drop_index("expenses_tenant_idx", table_name="expenses")
    op.drop_table("expenses")
    op.drop_index("projects_tenant_idx", table_name="projects")
    op.drop_table("projects")
    op.drop_index("companies_tenant_idx", table_name="companies")
    op.drop_table("companies")
    op.drop_table("tenants")

    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        postgresql.ENUM(name="payment_status_enum").drop(bind, checkfirst=True)
        postgresql.ENUM(name="payment_method_enum").drop(bind, checkfirst=True)
