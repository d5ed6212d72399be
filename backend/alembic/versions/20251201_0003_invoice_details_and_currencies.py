"""Invoice reference dates, currency codes, documents and percentage allocations.

Revision ID: 20251201_0003
Revises: 20251115_0002
Create Date: 2025-12-01 00:00:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "20251201_0003"
down_revision = "20251115_0002"
branch_labels = None
depends_on = None

EXPENSE_COLUMNS = (
    ("due_date", sa.Date),
    ("ref_start_date", sa.Date),
    ("ref_end_date", sa.Date),
    ("invoice_currency_code", lambda: sa.String(length=3)),
    ("document_url", lambda: sa.String(length=500)),
)


def _existing_columns(table_name: str) -> set[str]:
    inspector = sa.inspect(op.get_bind())
    return {column["name"] for column in inspector.get_columns(table_name)}


def upgrade() -> None:
    expense_columns = _existing_columns("expenses")
    for name, type_factory in EXPENSE_COLUMNS:
        if name not in expense_columns:
            op.add_column("expenses", sa.Column(name, type_factory(), nullable=True))

    if "allocated_percentage" not in _existing_columns("expense_allocations"):
        with op.batch_alter_table("expense_allocations") as batch_op:
            batch_op.add_column(
                sa.Column("allocated_percentage", sa.Numeric(7, 4), nullable=True)
            )
            batch_op.create_check_constraint(
                "ck_expense_allocations_percentage_range",
                "allocated_percentage IS NULL OR "
                "(allocated_percentage >= 0 AND allocated_percentage <= 100)",
            )

    payment_columns = _existing_columns("payments")
    if "payment_currency_code" not in payment_columns:
        op.add_column(
            "payments", sa.Column("payment_currency_code", sa.String(length=3), nullable=True)
        )
    if "amount_lcy" not in payment_columns:
        op.add_column("payments", sa.Column("amount_lcy", sa.Numeric(12, 2), nullable=True))


def downgrade() -> None:
    op.drop_column("payments", "amount_lcy")
    op.drop_column("payments", "payment_currency_code")
    with op.batch_alter_table("expense_allocations") as batch_op:
        batch_op.drop_constraint("ck_expense_allocations_percentage_range", type_="check")
        batch_op.drop_column("allocated_percentage")
    for name, _ in reversed(EXPENSE_COLUMNS):
        op.drop_column("expenses", name)
