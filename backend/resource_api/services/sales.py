"""Business logic for sales invoices."""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Query, Session, selectinload

from .. import models, schemas
from ..db_types import canonical_id, is_valid_id
from ..errors import ConflictError, InternalError, NotFoundError, ValidationError
from .tenancy import ensure_company

LOGGER = logging.getLogger(__name__)

_NON_NULLABLE_FIELDS = ("company_id", "invoice_number", "invoice_date", "total_amount", "status")


def _duplicate_invoice(invoice_number: str) -> ConflictError:
    return ConflictError(
        f"Sale invoice {invoice_number} already exists for this company",
        details={"invoiceNumber": invoice_number},
    )


class SaleService:
    """CRUD operations for sales. Sales are tenant-wide and carry no allocations."""

    @staticmethod
    def _base_query(db: Session, tenant_id: str) -> Query:
        return (
            db.query(models.Sale)
            .options(selectinload(models.Sale.company))
            .filter(models.Sale.tenant_id == tenant_id)
        )

    @staticmethod
    def list_sales(
        db: Session,
        tenant_id: str,
        *,
        skip: int = 0,
        limit: int = 20,
        search: Optional[str] = None,
    ) -> Tuple[Iterable[models.Sale], int]:
        query = SaleService._base_query(db, tenant_id)
        if search:
            pattern = f"%{search.strip().lower()}%"
            query = query.filter(
                or_(
                    func.lower(models.Sale.invoice_number).like(pattern),
                    models.Sale.company.has(func.lower(models.Company.name).like(pattern)),
                )
            )

        total = query.count()
        items = (
            query.order_by(models.Sale.invoice_date.desc(), models.Sale.created_at.desc())
            .offset(max(skip, 0))
            .limit(max(limit, 1))
            .all()
        )
        return items, total

    @staticmethod
    def get_sale(db: Session, tenant_id: str, sale_id: str) -> models.Sale:
        sale = None
        sale_id = canonical_id(sale_id)
        if is_valid_id(sale_id):
            sale = SaleService._base_query(db, tenant_id).filter(models.Sale.id == sale_id).first()
        if sale is None:
            raise NotFoundError("Sale", sale_id)
        return sale

    @classmethod
    def create_sale(cls, db: Session, tenant_id: str, data: schemas.SaleCreate) -> models.Sale:
        ensure_company(db, tenant_id, data.company_id)
        sale = models.Sale(tenant_id=tenant_id, **data.model_dump())
        try:
            db.add(sale)
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            raise _duplicate_invoice(data.invoice_number) from exc
        except SQLAlchemyError as exc:
            db.rollback()
            LOGGER.exception("Failed to create sale %s", data.invoice_number)
            raise InternalError("Unable to create sale at this time.") from exc

        LOGGER.info("Sale created", extra={"sale_id": sale.id, "tenant_id": tenant_id})
        return cls.get_sale(db, tenant_id, sale.id)

    @classmethod
    def update_sale(
        cls, db: Session, tenant_id: str, sale_id: str, data: schemas.SaleUpdate
    ) -> models.Sale:
        changes = data.model_dump(exclude_unset=True)
        for field in _NON_NULLABLE_FIELDS:
            if field in changes and changes[field] is None:
                raise ValidationError(
                    f"{field} cannot be null", details=[{"path": field, "message": "Required"}]
                )

        sale = cls.get_sale(db, tenant_id, sale_id)
        if "company_id" in changes and changes["company_id"] != sale.company_id:
            ensure_company(db, tenant_id, changes["company_id"])

        for field, value in changes.items():
            setattr(sale, field, value)

        try:
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            raise _duplicate_invoice(changes.get("invoice_number", sale.invoice_number)) from exc
        except SQLAlchemyError as exc:
            db.rollback()
            LOGGER.exception("Failed to update sale %s", sale_id)
            raise InternalError("Unable to update sale at this time.") from exc

        LOGGER.info("Sale updated", extra={"sale_id": sale_id, "tenant_id": tenant_id})
        return cls.get_sale(db, tenant_id, sale_id)

    @classmethod
    def delete_sale(cls, db: Session, tenant_id: str, sale_id: str) -> None:
        sale = cls.get_sale(db, tenant_id, sale_id)
        try:
            db.delete(sale)
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            LOGGER.exception("Failed to delete sale %s", sale_id)
            raise InternalError("Unable to delete sale at this time.") from exc

        LOGGER.info("Sale deleted", extra={"sale_id": sale_id, "tenant_id": tenant_id})
