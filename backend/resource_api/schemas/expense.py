from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import Field, field_validator

from ..models.payment import PaymentMethod, PaymentStatus
from .common import (
    ApiModel,
    ApiReadModel,
    CompanySummary,
    PaginatedResponse,
    ProjectSummary,
    normalize_currency_code,
    normalize_reference_id,
    strip_optional,
)


class AllocationInput(ApiModel):
    """One requested project share; exactly one of amount or percentage is expected."""

    project_id: str = Field(..., min_length=1, description="Project receiving the share")
    allocated_amount: Optional[Decimal] = Field(
        default=None, description="Fixed share of the total"
    )
    allocated_percentage: Optional[Decimal] = Field(
        default=None, description="Share of the total as a percentage between 0 and 100"
    )

    @field_validator("project_id")
    @classmethod
    def _project(cls, value: str) -> str:
        return normalize_reference_id(value)


def _validate_document_url(value: Optional[str]) -> Optional[str]:
    value = strip_optional(value)
    if value is None:
        return None
    if not value.lower().startswith(("http://", "https://", "/")):
        raise ValueError("Invalid URL format")
    return value


class ExpenseBase(ApiModel):
    company_id: str = Field(..., min_length=1, description="Vendor company")
    invoice_number: str = Field(..., min_length=1, max_length=100)
    invoice_date: date = Field(..., alias="date", description="Invoice date")
    due_date: Optional[date] = None
    ref_start_date: Optional[date] = None
    ref_end_date: Optional[date] = None
    invoice_currency_code: Optional[str] = None
    total_amount: Decimal = Field(
        ..., gt=0, max_digits=12, decimal_places=2, description="Invoice total"
    )
    payment_method: PaymentMethod
    status: PaymentStatus = PaymentStatus.PENDING
    notes: Optional[str] = None
    document_url: Optional[str] = Field(default=None, max_length=500)

    @field_validator("company_id")
    @classmethod
    def _company(cls, value: str) -> str:
        return normalize_reference_id(value)

    @field_validator("invoice_number")
    @classmethod
    def _strip_invoice(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("Invoice number is required")
        return stripped

    @field_validator("invoice_currency_code")
    @classmethod
    def _currency(cls, value: Optional[str]) -> Optional[str]:
        return normalize_currency_code(value)

    @field_validator("notes")
    @classmethod
    def _strip_notes(cls, value: Optional[str]) -> Optional[str]:
        return strip_optional(value)

    @field_validator("document_url")
    @classmethod
    def _document_url(cls, value: Optional[str]) -> Optional[str]:
        return _validate_document_url(value)


class ExpenseCreate(ExpenseBase):
    """Schema used to create an expense together with its allocations."""

    allocations: list[AllocationInput] = Field(default_factory=list)


class ExpenseUpdate(ApiModel):
    """Partial update; ``allocations`` replaces the whole set when present."""

    company_id: Optional[str] = None
    invoice_number: Optional[str] = Field(default=None, max_length=100)
    invoice_date: Optional[date] = Field(default=None, alias="date")
    due_date: Optional[date] = None
    ref_start_date: Optional[date] = None
    ref_end_date: Optional[date] = None
    invoice_currency_code: Optional[str] = None
    total_amount: Optional[Decimal] = Field(default=None, gt=0, max_digits=12, decimal_places=2)
    payment_method: Optional[PaymentMethod] = None
    status: Optional[PaymentStatus] = None
    notes: Optional[str] = None
    document_url: Optional[str] = Field(default=None, max_length=500)
    allocations: Optional[list[AllocationInput]] = None

    @field_validator("invoice_number")
    @classmethod
    def _strip_required(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        stripped = value.strip()
        if not stripped:
            raise ValueError("Value must not be blank")
        return stripped

    @field_validator("company_id")
    @classmethod
    def _company(cls, value: Optional[str]) -> Optional[str]:
        return normalize_reference_id(value)

    @field_validator("invoice_currency_code")
    @classmethod
    def _currency(cls, value: Optional[str]) -> Optional[str]:
        return normalize_currency_code(value)

    @field_validator("notes")
    @classmethod
    def _strip_notes(cls, value: Optional[str]) -> Optional[str]:
        return strip_optional(value)

    @field_validator("document_url")
    @classmethod
    def _document_url(cls, value: Optional[str]) -> Optional[str]:
        return _validate_document_url(value)


class AllocationRead(ApiReadModel):
    id: int
    project_id: str
    allocated_amount: Optional[Decimal] = None
    allocated_percentage: Optional[Decimal] = None
    project: ProjectSummary


class ExpenseRead(ApiReadModel):
    """Expense with its company and allocations populated."""

    id: str
    company_id: str
    company: CompanySummary
    invoice_number: str
    invoice_date: date = Field(..., alias="date")
    due_date: Optional[date] = None
    ref_start_date: Optional[date] = None
    ref_end_date: Optional[date] = None
    invoice_currency_code: Optional[str] = None
    total_amount: Decimal
    payment_method: PaymentMethod
    status: PaymentStatus
    notes: Optional[str] = None
    document_url: Optional[str] = None
    allocations: list[AllocationRead]
    created_at: datetime
    updated_at: datetime


class ExpenseListResponse(PaginatedResponse[ExpenseRead]):
    pass
