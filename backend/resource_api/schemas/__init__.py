from .common import CompanySummary, PaginatedResponse, PaginationMeta, ProjectSummary
from .expense import (
    AllocationInput,
    AllocationRead,
    ExpenseCreate,
    ExpenseListResponse,
    ExpenseRead,
    ExpenseUpdate,
)
from .finance import FinancialEntryRead, ProjectEntriesResponse, ProjectFinancialSummaryRead
from .payment import PaymentCreate, PaymentListResponse, PaymentRead, PaymentUpdate
from .sale import SaleCreate, SaleListResponse, SaleRead, SaleUpdate

__all__ = [
    "AllocationInput",
    "AllocationRead",
    "CompanySummary",
    "ExpenseCreate",
    "ExpenseListResponse",
    "ExpenseRead",
    "ExpenseUpdate",
    "FinancialEntryRead",
    "PaginatedResponse",
    "PaginationMeta",
    "PaymentCreate",
    "PaymentListResponse",
    "PaymentRead",
    "PaymentUpdate",
    "ProjectEntriesResponse",
    "ProjectFinancialSummaryRead",
    "ProjectSummary",
    "SaleCreate",
    "SaleListResponse",
    "SaleRead",
    "SaleUpdate",
]
