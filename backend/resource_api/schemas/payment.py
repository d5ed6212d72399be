from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import Field, field_validator

from ..models.payment import PaymentMethod
from .common import (
    ApiModel,
    ApiReadModel,
    CompanySummary,
    PaginatedResponse,
    normalize_currency_code,
    normalize_reference_id,
    strip_optional,
)


class PaymentBase(ApiModel):
    expense_id: str = Field(..., min_length=1, description="Expense being settled")
    amount: Decimal = Field(
        ..., max_digits=12, decimal_places=2, description="Amount paid, must be positive"
    )
    payment_currency_code: Optional[str] = None
    amount_lcy: Optional[Decimal] = Field(
        default=None, ge=0, alias="amountLCY", description="Local currency equivalent"
    )
    payment_date: date
    payment_method: PaymentMethod
    reference_number: Optional[str] = Field(default=None, max_length=100)
    notes: Optional[str] = None

    @field_validator("expense_id")
    @classmethod
    def _expense(cls, value: Optional[str]) -> Optional[str]:
        return normalize_reference_id(value)

    @field_validator("payment_currency_code")
    @classmethod
    def _currency(cls, value: Optional[str]) -> Optional[str]:
        return normalize_currency_code(value)

    @field_validator("reference_number", "notes")
    @classmethod
    def _strip(cls, value: Optional[str]) -> Optional[str]:
        return strip_optional(value)


class PaymentCreate(PaymentBase):
    """Schema used to record a payment against an expense."""

    pass


class PaymentUpdate(ApiModel):
    """Partial update; providing ``expenseId`` moves the payment to that expense."""

    expense_id: Optional[str] = None
    amount: Optional[Decimal] = Field(default=None, max_digits=12, decimal_places=2)
    payment_currency_code: Optional[str] = None
    amount_lcy: Optional[Decimal] = Field(default=None, ge=0, alias="amountLCY")
    payment_date: Optional[date] = None
    payment_method: Optional[PaymentMethod] = None
    reference_number: Optional[str] = Field(default=None, max_length=100)
    notes: Optional[str] = None

    @field_validator("expense_id")
    @classmethod
    def _expense(cls, value: Optional[str]) -> Optional[str]:
        return normalize_reference_id(value)

    @field_validator("payment_currency_code")
    @classmethod
    def _currency(cls, value: Optional[str]) -> Optional[str]:
        return normalize_currency_code(value)

    @field_validator("reference_number", "notes")
    @classmethod
    def _strip(cls, value: Optional[str]) -> Optional[str]:
        return strip_optional(value)


class PaymentExpenseSummary(ApiReadModel):
    id: str
    invoice_number: str
    total_amount: Decimal
    company: CompanySummary


class PaymentRead(ApiReadModel):
    id: str
    expense_id: str
    expense: PaymentExpenseSummary
    amount: Decimal
    payment_currency_code: Optional[str] = None
    amount_lcy: Optional[Decimal] = Field(default=None, alias="amountLCY")
    payment_date: date
    payment_method: PaymentMethod
    reference_number: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class PaymentListResponse(PaginatedResponse[PaymentRead]):
    pass
