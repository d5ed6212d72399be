from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import Field, field_validator

from ..models.payment import PaymentStatus
from .common import (
    ApiModel,
    ApiReadModel,
    CompanySummary,
    PaginatedResponse,
    normalize_reference_id,
    strip_optional,
)


class SaleBase(ApiModel):
    company_id: str = Field(..., min_length=1, description="Customer company")
    invoice_number: str = Field(..., min_length=1, max_length=100)
    invoice_date: date = Field(..., alias="date")
    total_amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    status: PaymentStatus = PaymentStatus.PENDING
    notes: Optional[str] = None

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

    @field_validator("notes")
    @classmethod
    def _strip_notes(cls, value: Optional[str]) -> Optional[str]:
        return strip_optional(value)


class SaleCreate(SaleBase):
    pass


class SaleUpdate(ApiModel):
    company_id: Optional[str] = None
    invoice_number: Optional[str] = Field(default=None, max_length=100)
    invoice_date: Optional[date] = Field(default=None, alias="date")
    total_amount: Optional[Decimal] = Field(default=None, gt=0, max_digits=12, decimal_places=2)
    status: Optional[PaymentStatus] = None
    notes: Optional[str] = None

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

    @field_validator("notes")
    @classmethod
    def _strip_notes(cls, value: Optional[str]) -> Optional[str]:
        return strip_optional(value)


class SaleRead(ApiReadModel):
    """Stored sale with its customer company."""

    id: str
    company_id: str
    company: CompanySummary
    invoice_number: str
    invoice_date: date = Field(..., alias="date")
    total_amount: Decimal
    status: PaymentStatus
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class SaleListResponse(PaginatedResponse[SaleRead]):
    pass
