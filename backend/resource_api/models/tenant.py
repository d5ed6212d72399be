"""Tenancy collaborators: tenants and the companies/projects they own.

Company and project CRUD lives outside the financial core; these models only
carry what is needed to enforce tenant ownership and to label financial
records with human readable names.
"""

from __future__ import annotations

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, Text, func
from sqlalchemy.orm import relationship

from ..database import Base
from ..db_types import GUID, new_id


class Tenant(Base):
    """An isolated customer account."""

    __tablename__ = "tenants"

    id = Column("tenant_id", GUID(), primary_key=True, default=new_id)
    slug = Column(String(32), nullable=False, unique=True)
    name = Column(String(200), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    companies = relationship("Company", back_populates="tenant")
    projects = relationship("Project", back_populates="tenant")


class Company(Base):
    """A vendor or customer of the tenant."""

    __tablename__ = "companies"

    id = Column("company_id", GUID(), primary_key=True, default=new_id)
    tenant_id = Column(
        GUID(),
        ForeignKey("tenants.tenant_id", ondelete="CASCADE"),
        nullable=False,
    )
    name = Column(String(200), nullable=False)
    email = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    tenant = relationship("Tenant", back_populates="companies")
    projects = relationship("Project", back_populates="company")


Index("companies_tenant_idx", Company.tenant_id)


class Project(Base):
    """A tenant project that expenses can be allocated to."""

    __tablename__ = "projects"

    id = Column("project_id", GUID(), primary_key=True, default=new_id)
    tenant_id = Column(
        GUID(),
        ForeignKey("tenants.tenant_id", ondelete="CASCADE"),
        nullable=False,
    )
    company_id = Column(
        GUID(),
        ForeignKey("companies.company_id", ondelete="SET NULL"),
        nullable=True,
    )
    name = Column(String(200), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    tenant = relationship("Tenant", back_populates="projects")
    company = relationship("Company", back_populates="projects")


Index("projects_tenant_idx", Project.tenant_id)
