"""Business logic for payments recorded against expenses."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Iterable, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session, selectinload

from .. import models, schemas
from ..db_types import canonical_id, is_valid_id
from ..errors import InternalError, NotFoundError, ValidationError
from .allocations import quantize_money, to_decimal

LOGGER = logging.getLogger(__name__)

_NON_NULLABLE_FIELDS = ("expense_id", "amount", "payment_date", "payment_method")


class PaymentService:
    """Operations for reading and recording expense payments.

    A payment is a flat settlement against one expense. Its attribution to
    projects happens only when financial entries are computed.
    """

    @staticmethod
    def _base_query(db: Session, tenant_id: str) -> Query:
        return (
            db.query(models.Payment)
            .options(
                selectinload(models.Payment.expense).selectinload(models.Expense.company)
            )
            .filter(models.Payment.tenant_id == tenant_id)
        )

    @staticmethod
    def list_payments(
        db: Session,
        tenant_id: str,
        *,
        skip: int = 0,
        limit: int = 20,
        expense_id: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Tuple[Iterable[models.Payment], int]:
        query = PaymentService._base_query(db, tenant_id)

        if expense_id is not None:
            expense_id = canonical_id(expense_id)
            if not is_valid_id(expense_id):
                return [], 0
            query = query.filter(models.Payment.expense_id == expense_id)
        if search:
            pattern = f"%{search.strip().lower()}%"
            query = query.filter(
                or_(
                    func.lower(models.Payment.reference_number).like(pattern),
                    models.Payment.expense.has(
                        func.lower(models.Expense.invoice_number).like(pattern)
                    ),
                )
            )

        total = query.count()
        items = (
            query.order_by(models.Payment.payment_date.desc(), models.Payment.created_at.desc())
            .offset(max(skip, 0))
            .limit(max(limit, 1))
            .all()
        )
        return items, total

    @staticmethod
    def get_payment(db: Session, tenant_id: str, payment_id: str) -> models.Payment:
        payment = None
        payment_id = canonical_id(payment_id)
        if is_valid_id(payment_id):
            payment = (
                PaymentService._base_query(db, tenant_id)
                .filter(models.Payment.id == payment_id)
                .first()
            )
        if payment is None:
            raise NotFoundError("Payment", payment_id)
        return payment

    @staticmethod
    def _normalize_amount(value: Decimal | float | str) -> Decimal:
        amount = to_decimal(value)
        if amount <= 0:
            raise ValidationError(
                "Payment amount must be greater than zero",
                details=[{"path": "amount", "message": "Must be greater than zero"}],
            )
        return quantize_money(amount)

    @staticmethod
    def _resolve_expense(db: Session, tenant_id: str, expense_id: str) -> models.Expense:
        expense = None
        expense_id = canonical_id(expense_id)
        if is_valid_id(expense_id):
            expense = (
                db.query(models.Expense)
                .filter(models.Expense.id == expense_id, models.Expense.tenant_id == tenant_id)
                .first()
            )
        if expense is None:
            raise NotFoundError("Expense", expense_id)
        return expense

    @classmethod
    def create_payment(
        cls, db: Session, tenant_id: str, data: schemas.PaymentCreate
    ) -> models.Payment:
        cls._resolve_expense(db, tenant_id, data.expense_id)
        values = data.model_dump()
        values["amount"] = cls._normalize_amount(data.amount)

        payment = models.Payment(tenant_id=tenant_id, **values)
        try:
            db.add(payment)
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            LOGGER.exception("Failed to record payment for expense %s", data.expense_id)
            raise InternalError("Unable to record payment at this time.") from exc

        LOGGER.info(
            "Payment recorded",
            extra={
                "payment_id": payment.id,
                "expense_id": data.expense_id,
                "tenant_id": tenant_id,
                "amount": str(values["amount"]),
            },
        )
        return cls.get_payment(db, tenant_id, payment.id)

    @classmethod
    def update_payment(
        cls,
        db: Session,
        tenant_id: str,
        payment_id: str,
        data: schemas.PaymentUpdate,
    ) -> models.Payment:
        """Apply a partial update; a new ``expense_id`` is checked like on create."""

        changes = data.model_dump(exclude_unset=True)
        for field in _NON_NULLABLE_FIELDS:
            if field in changes and changes[field] is None:
                raise ValidationError(
                    f"{field} cannot be null", details=[{"path": field, "message": "Required"}]
                )
        if "amount" in changes:
            changes["amount"] = cls._normalize_amount(changes["amount"])

        payment = cls.get_payment(db, tenant_id, payment_id)
        if "expense_id" in changes and changes["expense_id"] != payment.expense_id:
            cls._resolve_expense(db, tenant_id, changes["expense_id"])

        for field, value in changes.items():
            setattr(payment, field, value)

        try:
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            LOGGER.exception("Failed to update payment %s", payment_id)
            raise InternalError("Unable to update payment at this time.") from exc

        LOGGER.info("Payment updated", extra={"payment_id": payment_id, "tenant_id": tenant_id})
        return cls.get_payment(db, tenant_id, payment_id)

    @classmethod
    def delete_payment(cls, db: Session, tenant_id: str, payment_id: str) -> None:
        payment = cls.get_payment(db, tenant_id, payment_id)
        try:
            db.delete(payment)
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            LOGGER.exception("Failed to delete payment %s", payment_id)
            raise InternalError("Unable to delete payment at this time.") from exc

        LOGGER.info("Payment deleted", extra={"payment_id": payment_id, "tenant_id": tenant_id})
