"""Business logic for procurement expenses and their project allocations."""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Sequence, Tuple

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Query, Session, selectinload

from .. import models, schemas
from ..db_types import canonical_id, is_valid_id
from ..errors import ConflictError, InternalError, NotFoundError, ValidationError
from .allocations import NormalizedAllocation, requests_from_payload, validate_allocation_set
from .tenancy import ensure_company, ensure_project, ensure_projects

LOGGER = logging.getLogger(__name__)

_NON_NULLABLE_FIELDS = (
    "company_id",
    "invoice_number",
    "invoice_date",
    "total_amount",
    "payment_method",
    "status",
)


def delete_conflict_message(invoice_number: str, payment_count: int) -> str:
    return (
        f"Cannot delete expense {invoice_number}: {payment_count} payment(s) "
        "reference it. Delete the payments first."
    )


class ProcurementService:
    """CRUD operations for expenses, keeping allocation sets consistent with totals."""

    @staticmethod
    def _base_query(db: Session, tenant_id: str) -> Query:
        return (
            db.query(models.Expense)
            .options(selectinload(models.Expense.company))
            .options(
                selectinload(models.Expense.allocations).selectinload(
                    models.ExpenseAllocation.project
                )
            )
            .filter(models.Expense.tenant_id == tenant_id)
        )

    @staticmethod
    def list_procurements(
        db: Session,
        tenant_id: str,
        *,
        skip: int = 0,
        limit: int = 20,
        search: Optional[str] = None,
        project_id: Optional[str] = None,
    ) -> Tuple[Iterable[models.Expense], int]:
        query = ProcurementService._base_query(db, tenant_id)

        if project_id is not None:
            project_id = canonical_id(project_id)
            if not is_valid_id(project_id):
                return [], 0
            query = query.filter(
                models.Expense.allocations.any(
                    models.ExpenseAllocation.project_id == project_id
                )
            )
        if search:
            pattern = f"%{search.strip().lower()}%"
            query = query.filter(
                or_(
                    func.lower(models.Expense.invoice_number).like(pattern),
                    models.Expense.company.has(func.lower(models.Company.name).like(pattern)),
                )
            )

        total = query.count()
        items = (
            query.order_by(models.Expense.invoice_date.desc(), models.Expense.created_at.desc())
            .offset(max(skip, 0))
            .limit(max(limit, 1))
            .all()
        )
        return items, total

    @staticmethod
    def get_procurement(db: Session, tenant_id: str, expense_id: str) -> models.Expense:
        expense = None
        expense_id = canonical_id(expense_id)
        if is_valid_id(expense_id):
            expense = (
                ProcurementService._base_query(db, tenant_id)
                .filter(models.Expense.id == expense_id)
                .first()
            )
        if expense is None:
            raise NotFoundError("Expense", expense_id)
        return expense

    @staticmethod
    def _lock_expense(db: Session, tenant_id: str, expense_id: str) -> models.Expense:
        expense = None
        expense_id = canonical_id(expense_id)
        if is_valid_id(expense_id):
            expense = (
                db.query(models.Expense)
                .filter(models.Expense.id == expense_id, models.Expense.tenant_id == tenant_id)
                .with_for_update()
                .first()
            )
        if expense is None:
            raise NotFoundError("Expense", expense_id)
        return expense

    @staticmethod
    def _resolve_allocations(
        db: Session,
        tenant_id: str,
        total_amount,
        allocations: Sequence[schemas.AllocationInput],
    ) -> list[NormalizedAllocation]:
        ensure_projects(db, tenant_id, (item.project_id for item in allocations))
        return validate_allocation_set(total_amount, requests_from_payload(allocations))

    @staticmethod
    def _build_rows(normalized: Sequence[NormalizedAllocation]) -> list[models.ExpenseAllocation]:
        return [
            models.ExpenseAllocation(
                project_id=item.project_id,
                allocated_amount=item.allocated_amount,
                allocated_percentage=item.allocated_percentage,
            )
            for item in normalized
        ]

    @classmethod
    def create_procurement(
        cls, db: Session, tenant_id: str, data: schemas.ExpenseCreate
    ) -> models.Expense:
        """Insert an expense and its allocations in a single transaction."""

        ensure_company(db, tenant_id, data.company_id)
        normalized = cls._resolve_allocations(db, tenant_id, data.total_amount, data.allocations)

        expense = models.Expense(
            tenant_id=tenant_id,
            **data.model_dump(exclude={"allocations"}),
        )
        expense.allocations = cls._build_rows(normalized)

        try:
            db.add(expense)
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            LOGGER.exception("Failed to create expense %s", data.invoice_number)
            raise InternalError("Unable to create expense at this time.") from exc

        LOGGER.info(
            "Expense created",
            extra={
                "expense_id": expense.id,
                "tenant_id": tenant_id,
                "allocations": len(normalized),
            },
        )
        return cls.get_procurement(db, tenant_id, expense.id)

    @classmethod
    def update_procurement(
        cls,
        db: Session,
        tenant_id: str,
        expense_id: str,
        data: schemas.ExpenseUpdate,
    ) -> models.Expense:
        """Apply a partial update.

        When ``allocations`` is part of the payload the stored set is replaced
        wholesale and checked against the (possibly new) total. When it is
        omitted the stored allocations are left as they are, even if the
        total changes.
        """

        changes = data.model_dump(exclude_unset=True, exclude={"allocations"})
        for field in _NON_NULLABLE_FIELDS:
            if field in changes and changes[field] is None:
                raise ValidationError(
                    f"{field} cannot be null", details=[{"path": field, "message": "Required"}]
                )

        expense = cls._lock_expense(db, tenant_id, expense_id)

        if "company_id" in changes and changes["company_id"] != expense.company_id:
            ensure_company(db, tenant_id, changes["company_id"])

        normalized: Optional[list[NormalizedAllocation]] = None
        if data.allocations is not None:
            total_amount = changes.get("total_amount", expense.total_amount)
            normalized = cls._resolve_allocations(db, tenant_id, total_amount, data.allocations)

        for field, value in changes.items():
            setattr(expense, field, value)

        try:
            if normalized is not None:
                # Old rows must be gone before the new ones hit the unique index.
                expense.allocations.clear()
                db.flush()
                expense.allocations.extend(cls._build_rows(normalized))
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            LOGGER.exception("Failed to update expense %s", expense_id)
            raise InternalError("Unable to update expense at this time.") from exc

        LOGGER.info(
            "Expense updated",
            extra={
                "expense_id": expense_id,
                "tenant_id": tenant_id,
                "allocations_replaced": normalized is not None,
            },
        )
        return cls.get_procurement(db, tenant_id, expense_id)

    @staticmethod
    def count_payments(db: Session, tenant_id: str, expense_id: str) -> int:
        expense_id = canonical_id(expense_id)
        if not is_valid_id(expense_id):
            return 0
        return (
            db.query(func.count(models.Payment.id))
            .filter(
                models.Payment.expense_id == expense_id,
                models.Payment.tenant_id == tenant_id,
            )
            .scalar()
            or 0
        )

    @classmethod
    def delete_procurement(cls, db: Session, tenant_id: str, expense_id: str) -> None:
        """Delete an expense and its allocations unless payments reference it."""

        expense = cls._lock_expense(db, tenant_id, expense_id)
        invoice_number = expense.invoice_number

        payment_count = cls.count_payments(db, tenant_id, expense_id)
        if payment_count:
            db.rollback()
            LOGGER.warning(
                "Rejected delete of expense %s with %s payment(s)", expense_id, payment_count
            )
            raise ConflictError(
                delete_conflict_message(invoice_number, payment_count),
                details={"paymentCount": payment_count},
            )

        try:
            db.delete(expense)
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            payment_count = cls.count_payments(db, tenant_id, expense_id)
            LOGGER.warning("Expense %s gained payments while being deleted", expense_id)
            raise ConflictError(
                delete_conflict_message(invoice_number, payment_count),
                details={"paymentCount": payment_count},
            ) from exc
        except SQLAlchemyError as exc:
            db.rollback()
            LOGGER.exception("Failed to delete expense %s", expense_id)
            raise InternalError("Unable to delete expense at this time.") from exc

        LOGGER.info("Expense deleted", extra={"expense_id": expense_id, "tenant_id": tenant_id})

    @classmethod
    def find_by_project(
        cls, db: Session, tenant_id: str, project_id: str
    ) -> list[schemas.ExpenseRead]:
        """Expenses touching ``project_id``, each showing only that project's allocations."""

        project_id = canonical_id(project_id)
        ensure_project(db, tenant_id, project_id)
        expenses = (
            cls._base_query(db, tenant_id)
            .filter(
                models.Expense.allocations.any(
                    models.ExpenseAllocation.project_id == project_id
                )
            )
            .order_by(models.Expense.invoice_date.desc(), models.Expense.created_at.desc())
            .all()
        )

        results = []
        for expense in expenses:
            view = schemas.ExpenseRead.model_validate(expense)
            results.append(
                view.model_copy(
                    update={
                        "allocations": [
                            allocation
                            for allocation in view.allocations
                            if allocation.project_id == project_id
                        ]
                    }
                )
            )
        return results
