"""Router exposing sales invoices."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from .. import schemas
from ..database import get_db
from ..security import TenantIdentity, require_editor, require_tenant
from ..services import SaleService

router = APIRouter(dependencies=[Depends(require_tenant)])


@router.get("", response_model=schemas.SaleListResponse)
def list_sales(
    db: Session = Depends(get_db),
    identity: TenantIdentity = Depends(require_tenant),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100, alias="pageSize"),
    search: Optional[str] = Query(None, description="Match invoice number or company name"),
) -> schemas.SaleListResponse:
    items, total = SaleService.list_sales(
        db,
        identity.tenant_id,
        skip=(page - 1) * page_size,
        limit=page_size,
        search=search,
    )
    return schemas.SaleListResponse.build(
        [schemas.SaleRead.model_validate(item) for item in items], total, page, page_size
    )


@router.get("/{sale_id}", response_model=schemas.SaleRead)
def get_sale(
    sale_id: str,
    db: Session = Depends(get_db),
    identity: TenantIdentity = Depends(require_tenant),
) -> schemas.SaleRead:
    return schemas.SaleRead.model_validate(SaleService.get_sale(db, identity.tenant_id, sale_id))


@router.post("", response_model=schemas.SaleRead, status_code=status.HTTP_201_CREATED)
def create_sale(
    sale_in: schemas.SaleCreate,
    db: Session = Depends(get_db),
    identity: TenantIdentity = Depends(require_editor),
) -> schemas.SaleRead:
    return schemas.SaleRead.model_validate(
        SaleService.create_sale(db, identity.tenant_id, sale_in)
    )


@router.put("/{sale_id}", response_model=schemas.SaleRead)
def update_sale(
    sale_id: str,
    sale_in: schemas.SaleUpdate,
    db: Session = Depends(get_db),
    identity: TenantIdentity = Depends(require_editor),
) -> schemas.SaleRead:
    return schemas.SaleRead.model_validate(
        SaleService.update_sale(db, identity.tenant_id, sale_id, sale_in)
    )


@router.delete("/{sale_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_sale(
    sale_id: str,
    db: Session = Depends(get_db),
    identity: TenantIdentity = Depends(require_editor),
) -> None:
    SaleService.delete_sale(db, identity.tenant_id, sale_id)
