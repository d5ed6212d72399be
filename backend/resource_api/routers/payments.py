"""Router exposing payments recorded against expenses."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from .. import schemas
from ..database import get_db
from ..security import TenantIdentity, require_editor, require_tenant
from ..services import PaymentService

router = APIRouter(dependencies=[Depends(require_tenant)])


@router.get("", response_model=schemas.PaymentListResponse)
def list_payments(
    db: Session = Depends(get_db),
    identity: TenantIdentity = Depends(require_tenant),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100, alias="pageSize"),
    expense_id: Optional[str] = Query(None, alias="expenseId", description="Filter by expense"),
    search: Optional[str] = Query(
        None, description="Match reference number or expense invoice number"
    ),
) -> schemas.PaymentListResponse:
    """Return payments ordered by most recent payment date."""

    items, total = PaymentService.list_payments(
        db,
        identity.tenant_id,
        skip=(page - 1) * page_size,
        limit=page_size,
        expense_id=expense_id,
        search=search,
    )
    return schemas.PaymentListResponse.build(
        [schemas.PaymentRead.model_validate(item) for item in items], total, page, page_size
    )


@router.get("/{payment_id}", response_model=schemas.PaymentRead)
def get_payment(
    payment_id: str,
    db: Session = Depends(get_db),
    identity: TenantIdentity = Depends(require_tenant),
) -> schemas.PaymentRead:
    return schemas.PaymentRead.model_validate(
        PaymentService.get_payment(db, identity.tenant_id, payment_id)
    )


@router.post("", response_model=schemas.PaymentRead, status_code=status.HTTP_201_CREATED)
def create_payment(
    payment_in: schemas.PaymentCreate,
    db: Session = Depends(get_db),
    identity: TenantIdentity = Depends(require_editor),
) -> schemas.PaymentRead:
    payment = PaymentService.create_payment(db, identity.tenant_id, payment_in)
    return schemas.PaymentRead.model_validate(payment)


@router.put("/{payment_id}", response_model=schemas.PaymentRead)
def update_payment(
    payment_id: str,
    payment_in: schemas.PaymentUpdate,
    db: Session = Depends(get_db),
    identity: TenantIdentity = Depends(require_editor),
) -> schemas.PaymentRead:
    payment = PaymentService.update_payment(db, identity.tenant_id, payment_id, payment_in)
    return schemas.PaymentRead.model_validate(payment)


@router.delete("/{payment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_payment(
    payment_id: str,
    db: Session = Depends(get_db),
    identity: TenantIdentity = Depends(require_editor),
) -> None:
    PaymentService.delete_payment(db, identity.tenant_id, payment_id)
