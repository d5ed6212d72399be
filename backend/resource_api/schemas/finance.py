from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Literal, Optional

from pydantic import Field

from .common import ApiModel, ApiReadModel


class FinancialEntryRead(ApiReadModel):
    """Signed money movement; expenses are negative, payments and sales positive."""

    id: str
    type: Literal["expense", "payment", "sale"]
    entry_date: date = Field(..., alias="date")
    amount: Decimal
    description: str
    project_id: Optional[str] = None
    project_name: str
    company_name: str
    invoice_number: Optional[str] = None
    reference_number: Optional[str] = None


class ProjectFinancialSummaryRead(ApiReadModel):
    project_id: str
    project_name: str
    total_expenses: Decimal
    total_payments: Decimal
    total_sales: Decimal
    net_amount: Decimal


class ProjectEntriesResponse(ApiModel):
    entries: list[FinancialEntryRead]
    summary: list[ProjectFinancialSummaryRead]
