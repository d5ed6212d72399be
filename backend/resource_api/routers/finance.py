"""Router exposing the per-project financial view."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from .. import schemas
from ..database import get_db
from ..security import TenantIdentity, require_tenant
from ..services import FinancialReconciliationService

router = APIRouter(dependencies=[Depends(require_tenant)])


@router.get("/project-entries", response_model=schemas.ProjectEntriesResponse)
def project_entries(
    db: Session = Depends(get_db),
    identity: TenantIdentity = Depends(require_tenant),
    project_id: Optional[str] = Query(
        None, alias="projectId", description="Limit entries to one project"
    ),
) -> schemas.ProjectEntriesResponse:
    """Signed expense, payment and sale entries plus per-project totals."""

    report = FinancialReconciliationService.project_entries(db, identity.tenant_id, project_id)
    return schemas.ProjectEntriesResponse(
        entries=[schemas.FinancialEntryRead.model_validate(entry) for entry in report.entries],
        summary=[
            schemas.ProjectFinancialSummaryRead.model_validate(item) for item in report.summary
        ],
    )
