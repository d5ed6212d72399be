"""Service layer for the resource management API."""

from .finance import (
    FinancialEntry,
    FinancialReconciliationService,
    ProjectFinancialReport,
    ProjectFinancialSummary,
)
from .payments import PaymentService
from .procurements import ProcurementService
from .sales import SaleService
from .tenancy import ensure_company, ensure_project

__all__ = [
    "FinancialEntry",
    "FinancialReconciliationService",
    "PaymentService",
    "ProcurementService",
    "ProjectFinancialReport",
    "ProjectFinancialSummary",
    "SaleService",
    "ensure_company",
    "ensure_project",
]
