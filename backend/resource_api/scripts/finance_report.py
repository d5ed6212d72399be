"""CLI utility that prints the per-project financial summary of a tenant."""

from __future__ import annotations

import argparse
import logging
from typing import Optional

from .. import models
from ..database import session_scope
from ..services.finance import FinancialReconciliationService, ProjectFinancialReport

LOGGER = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Summarise expenses, payments and sales per project for one tenant."
    )
    parser.add_argument("--tenant", required=True, help="Tenant slug")
    parser.add_argument("--project", default=None, help="Restrict the report to one project id")
    parser.add_argument(
        "--verbose", action="store_true", help="Also log every financial entry"
    )
    return parser.parse_args(argv)


def format_report(report: ProjectFinancialReport) -> list[str]:
    lines = [
        f"{'Project':<30} {'Expenses':>14} {'Payments':>14} {'Sales':>14} {'Net':>14}"
    ]
    for item in report.summary:
        lines.append(
            f"{item.project_name[:30]:<30} {item.total_expenses:>14} "
            f"{item.total_payments:>14} {item.total_sales:>14} {item.net_amount:>14}"
        )
    return lines


def main(argv: Optional[list[str]] = None) -> int:
    args = _parse_args(argv)
    _configure_logging(args.verbose)

    with session_scope() as db:
        tenant = db.query(models.Tenant).filter(models.Tenant.slug == args.tenant).first()
        if tenant is None:
            LOGGER.error("Tenant %s not found", args.tenant)
            return 1
        report = FinancialReconciliationService.project_entries(db, tenant.id, args.project)

    for entry in report.entries:
        LOGGER.debug(
            "%s %s %s %s", entry.entry_date, entry.type, entry.amount, entry.description
        )
    if not report.summary:
        LOGGER.info("No project activity found")
    for line in format_report(report):
        print(line)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
