"""Tenant ownership checks for companies and projects."""

from __future__ import annotations

from typing import Iterable

from sqlalchemy.orm import Session

from .. import models
from ..db_types import canonical_id, is_valid_id
from ..errors import NotFoundError


def ensure_company(db: Session, tenant_id: str, company_id: str) -> models.Company:
    """Return the company if it belongs to ``tenant_id``, otherwise raise ``NotFoundError``."""

    company_id = canonical_id(company_id)
    if not is_valid_id(company_id):
        raise NotFoundError("Company", company_id)
    company = (
        db.query(models.Company)
        .filter(models.Company.id == company_id, models.Company.tenant_id == tenant_id)
        .first()
    )
    if company is None:
        raise NotFoundError("Company", company_id)
    return company


def ensure_project(db: Session, tenant_id: str, project_id: str) -> models.Project:
    project_id = canonical_id(project_id)
    if not is_valid_id(project_id):
        raise NotFoundError("Project", project_id)
    project = (
        db.query(models.Project)
        .filter(models.Project.id == project_id, models.Project.tenant_id == tenant_id)
        .first()
    )
    if project is None:
        raise NotFoundError("Project", project_id)
    return project


def ensure_projects(db: Session, tenant_id: str, project_ids: Iterable[str]) -> None:
    """Raise ``NotFoundError`` for the first project id the tenant does not own."""

    for project_id in dict.fromkeys(project_ids):
        ensure_project(db, tenant_id, project_id)
