"""Router exposing procurement expenses and their allocations."""

from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from .. import schemas
from ..database import get_db
from ..errors import ConflictError
from ..security import TenantIdentity, require_editor, require_tenant
from ..services import ProcurementService
from ..services.procurements import delete_conflict_message

LOGGER = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_tenant)])


@router.get("", response_model=schemas.ExpenseListResponse)
def list_procurements(
    db: Session = Depends(get_db),
    identity: TenantIdentity = Depends(require_tenant),
    page: int = Query(1, ge=1, description="Page number, starting at 1"),
    page_size: int = Query(20, ge=1, le=100, alias="pageSize", description="Items per page"),
    search: Optional[str] = Query(None, description="Match invoice number or company name"),
    project_id: Optional[str] = Query(
        None, alias="projectId", description="Only expenses allocated to this project"
    ),
) -> schemas.ExpenseListResponse:
    """Return expenses newest first with pagination and filtering."""

    items, total = ProcurementService.list_procurements(
        db,
        identity.tenant_id,
        skip=(page - 1) * page_size,
        limit=page_size,
        search=search,
        project_id=project_id,
    )
    return schemas.ExpenseListResponse.build(
        [schemas.ExpenseRead.model_validate(item) for item in items], total, page, page_size
    )


@router.get("/projects/{project_id}", response_model=List[schemas.ExpenseRead])
def list_project_procurements(
    project_id: str,
    db: Session = Depends(get_db),
    identity: TenantIdentity = Depends(require_tenant),
) -> List[schemas.ExpenseRead]:
    """Expenses allocated to one project, showing only that project's allocations."""

    return ProcurementService.find_by_project(db, identity.tenant_id, project_id)


@router.get("/{expense_id}", response_model=schemas.ExpenseRead)
def get_procurement(
    expense_id: str,
    db: Session = Depends(get_db),
    identity: TenantIdentity = Depends(require_tenant),
) -> schemas.ExpenseRead:
    expense = ProcurementService.get_procurement(db, identity.tenant_id, expense_id)
    return schemas.ExpenseRead.model_validate(expense)


@router.post("", response_model=schemas.ExpenseRead, status_code=status.HTTP_201_CREATED)
def create_procurement(
    expense_in: schemas.ExpenseCreate,
    db: Session = Depends(get_db),
    identity: TenantIdentity = Depends(require_editor),
) -> schemas.ExpenseRead:
    expense = ProcurementService.create_procurement(db, identity.tenant_id, expense_in)
    return schemas.ExpenseRead.model_validate(expense)


@router.put("/{expense_id}", response_model=schemas.ExpenseRead)
def update_procurement(
    expense_id: str,
    expense_in: schemas.ExpenseUpdate,
    db: Session = Depends(get_db),
    identity: TenantIdentity = Depends(require_editor),
) -> schemas.ExpenseRead:
    expense = ProcurementService.update_procurement(db, identity.tenant_id, expense_id, expense_in)
    return schemas.ExpenseRead.model_validate(expense)


@router.delete("/{expense_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_procurement(
    expense_id: str,
    db: Session = Depends(get_db),
    identity: TenantIdentity = Depends(require_editor),
) -> None:
    expense = ProcurementService.get_procurement(db, identity.tenant_id, expense_id)
    payment_count = ProcurementService.count_payments(db, identity.tenant_id, expense_id)
    if payment_count:
        LOGGER.warning(
            "Delete of expense %s blocked by %s payment(s)", expense_id, payment_count
        )
        raise ConflictError(
            delete_conflict_message(expense.invoice_number, payment_count),
            details={"paymentCount": payment_count},
        )
    ProcurementService.delete_procurement(db, identity.tenant_id, expense_id)
