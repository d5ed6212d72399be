"""Project level reconciliation of expenses, payments and sales.

Nothing here is persisted. Each call reads the current expenses (with their
allocations), payments and sales for a tenant and turns them into signed
entries: expenses negative, payments and sales positive. Payments are spread
over the allocations of their expense in proportion to each allocation's
share of the expense total. Entries are then folded into one summary per
project.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Callable, List, Optional, TypeVar

from sqlalchemy.exc import OperationalError, ProgrammingError
from sqlalchemy.orm import Session, selectinload

from .. import models
from ..db_types import canonical_id, is_valid_id
from .allocations import effective_allocation_amount, quantize_money

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

ENTRY_EXPENSE = "expense"
ENTRY_PAYMENT = "payment"
ENTRY_SALE = "sale"
UNASSIGNED_PROJECT_NAME = "N/A"

_SCHEMA_ERROR_MARKERS = (
    "no such table",
    "no such column",
    "does not exist",
    "undefined table",
    "undefined column",
)


@dataclass
class FinancialEntry:
    id: str
    type: str
    entry_date: date
    amount: Decimal
    description: str
    project_id: Optional[str]
    project_name: str
    company_name: str
    invoice_number: Optional[str] = None
    reference_number: Optional[str] = None


@dataclass
class ProjectFinancialSummary:
    project_id: str
    project_name: str
    total_expenses: Decimal = Decimal("0.00")
    total_payments: Decimal = Decimal("0.00")
    total_sales: Decimal = Decimal("0.00")
    net_amount: Decimal = Decimal("0.00")


@dataclass
class ProjectFinancialReport:
    entries: List[FinancialEntry] = field(default_factory=list)
    summary: List[ProjectFinancialSummary] = field(default_factory=list)


def _is_schema_error(exc: Exception) -> bool:
    message = str(getattr(exc, "orig", None) or exc).lower()
    return any(marker in message for marker in _SCHEMA_ERROR_MARKERS)


class FinancialReconciliationService:
    """Builds the per-project financial view on demand."""

    @staticmethod
    def _degrading_fetch(db: Session, source: str, fetch: Callable[[], List[T]]) -> List[T]:
        """Run ``fetch``; a missing table or column yields an empty list instead of an error."""

        try:
            return fetch()
        except (OperationalError, ProgrammingError) as exc:
            if not _is_schema_error(exc):
                raise
            db.rollback()
            LOGGER.warning(
                "Financial %s unavailable, schema mismatch: %s",
                source,
                exc.orig if exc.orig is not None else exc,
            )
            return []

    @staticmethod
    def _allocation_filter(project_id: Optional[str]):
        if project_id is None:
            return models.Expense.allocations.any()
        return models.Expense.allocations.any(models.ExpenseAllocation.project_id == project_id)

    @classmethod
    def _fetch_expenses(
        cls, db: Session, tenant_id: str, project_id: Optional[str]
    ) -> List[models.Expense]:
        return (
            db.query(models.Expense)
            .options(selectinload(models.Expense.company))
            .options(
                selectinload(models.Expense.allocations).selectinload(
                    models.ExpenseAllocation.project
                )
            )
            .filter(models.Expense.tenant_id == tenant_id)
            .filter(cls._allocation_filter(project_id))
            .all()
        )

    @classmethod
    def _fetch_payments(
        cls, db: Session, tenant_id: str, project_id: Optional[str]
    ) -> List[models.Payment]:
        return (
            db.query(models.Payment)
            .options(
                selectinload(models.Payment.expense).selectinload(models.Expense.company),
                selectinload(models.Payment.expense)
                .selectinload(models.Expense.allocations)
                .selectinload(models.ExpenseAllocation.project),
            )
            .filter(models.Payment.tenant_id == tenant_id)
            .filter(models.Payment.expense.has(cls._allocation_filter(project_id)))
            .all()
        )

    @staticmethod
    def _fetch_sales(db: Session, tenant_id: str) -> List[models.Sale]:
        return (
            db.query(models.Sale)
            .options(selectinload(models.Sale.company))
            .filter(models.Sale.tenant_id == tenant_id)
            .all()
        )

    @staticmethod
    def _expense_entries(
        expenses: List[models.Expense], project_id: Optional[str]
    ) -> List[FinancialEntry]:
        entries: List[FinancialEntry] = []
        for expense in expenses:
            for allocation in expense.allocations:
                if project_id is not None and allocation.project_id != project_id:
                    continue
                amount = effective_allocation_amount(
                    expense.total_amount,
                    allocation.allocated_amount,
                    allocation.allocated_percentage,
                )
                if amount <= 0:
                    continue
                entries.append(
                    FinancialEntry(
                        id=f"{expense.id}-{allocation.id}",
                        type=ENTRY_EXPENSE,
                        entry_date=expense.invoice_date,
                        amount=-quantize_money(amount),
                        description=f"Expense: {expense.invoice_number}",
                        project_id=allocation.project_id,
                        project_name=allocation.project.name,
                        company_name=expense.company.name,
                        invoice_number=expense.invoice_number,
                    )
                )
        return entries

    @staticmethod
    def _payment_entries(
        payments: List[models.Payment], project_id: Optional[str]
    ) -> List[FinancialEntry]:
        entries: List[FinancialEntry] = []
        for payment in payments:
            expense = payment.expense
            expense_total = Decimal(expense.total_amount or 0)
            if expense_total <= 0:
                continue
            for allocation in expense.allocations:
                if project_id is not None and allocation.project_id != project_id:
                    continue
                allocation_amount = effective_allocation_amount(
                    expense_total,
                    allocation.allocated_amount,
                    allocation.allocated_percentage,
                )
                share = quantize_money(Decimal(payment.amount) * allocation_amount / expense_total)
                if share <= 0:
                    continue
                entries.append(
                    FinancialEntry(
                        id=f"{payment.id}-{allocation.id}",
                        type=ENTRY_PAYMENT,
                        entry_date=payment.payment_date,
                        amount=share,
                        description=(
                            f"Payment: {payment.reference_number or expense.invoice_number}"
                        ),
                        project_id=allocation.project_id,
                        project_name=allocation.project.name,
                        company_name=expense.company.name,
                        invoice_number=expense.invoice_number,
                        reference_number=payment.reference_number,
                    )
                )
        return entries

    @staticmethod
    def _sale_entries(sales: List[models.Sale]) -> List[FinancialEntry]:
        return [
            FinancialEntry(
                id=sale.id,
                type=ENTRY_SALE,
                entry_date=sale.invoice_date,
                amount=quantize_money(Decimal(sale.total_amount)),
                description=f"Sale: {sale.invoice_number}",
                project_id=None,
                project_name=UNASSIGNED_PROJECT_NAME,
                company_name=sale.company.name,
                invoice_number=sale.invoice_number,
            )
            for sale in sales
        ]

    @staticmethod
    def summarize(entries: List[FinancialEntry]) -> List[ProjectFinancialSummary]:
        """Fold entries into one summary per project, in order of first appearance."""

        summaries: dict[str, ProjectFinancialSummary] = {}
        for entry in entries:
            if not entry.project_id:
                continue
            summary = summaries.get(entry.project_id)
            if summary is None:
                summary = ProjectFinancialSummary(
                    project_id=entry.project_id, project_name=entry.project_name
                )
                summaries[entry.project_id] = summary
            if entry.type == ENTRY_EXPENSE:
                summary.total_expenses += abs(entry.amount)
            elif entry.type == ENTRY_PAYMENT:
                summary.total_payments += entry.amount
            elif entry.type == ENTRY_SALE:
                summary.total_sales += entry.amount
            summary.net_amount = summary.total_sales - summary.total_expenses
        return list(summaries.values())

    @classmethod
    def project_entries(
        cls, db: Session, tenant_id: str, project_id: Optional[str] = None
    ) -> ProjectFinancialReport:
        """Signed entries and per-project summaries, optionally limited to one project."""

        if project_id is not None:
            project_id = canonical_id(project_id)
            if not is_valid_id(project_id):
                return ProjectFinancialReport()

        expenses = cls._degrading_fetch(
            db, "expenses", lambda: cls._fetch_expenses(db, tenant_id, project_id)
        )
        payments = cls._degrading_fetch(
            db, "payments", lambda: cls._fetch_payments(db, tenant_id, project_id)
        )
        sales = cls._degrading_fetch(db, "sales", lambda: cls._fetch_sales(db, tenant_id))

        entries = cls._expense_entries(expenses, project_id)
        entries.extend(cls._payment_entries(payments, project_id))
        if project_id is None:
            entries.extend(cls._sale_entries(sales))

        entries.sort(key=lambda entry: entry.entry_date, reverse=True)
        return ProjectFinancialReport(entries=entries, summary=cls.summarize(entries))
