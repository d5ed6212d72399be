from contextlib import contextmanager
from decimal import Decimal

from backend.resource_api import models
from backend.resource_api.scripts import issue_token
from backend.resource_api.scripts.finance_report import format_report
from backend.resource_api.scripts.issue_token import provision_tenant
from backend.resource_api.security import decode_access_token
from backend.resource_api.services.finance import (
    ProjectFinancialReport,
    ProjectFinancialSummary,
)


def test_provision_tenant_is_idempotent(db_session):
    created = provision_tenant(db_session, "umbrella", "Umbrella Corp")
    again = provision_tenant(db_session, "umbrella", "Ignored")

    assert created.id == again.id
    assert again.name == "Umbrella Corp"
    assert db_session.query(models.Tenant).filter_by(slug="umbrella").count() == 1


def test_format_report_lists_each_project():
    report = ProjectFinancialReport(
        summary=[
            ProjectFinancialSummary(
                project_id="p-1",
                project_name="Apollo",
                total_expenses=Decimal("600.00"),
                total_payments=Decimal("600.00"),
                net_amount=Decimal("-600.00"),
            )
        ]
    )

    header, row = format_report(report)

    assert header.split() == ["Project", "Expenses", "Payments", "Sales", "Net"]
    assert row.split() == ["Apollo", "600.00", "600.00", "0.00", "-600.00"]


def test_issue_token_cli_prints_tenant_scoped_token(monkeypatch, capsys, db_session):
    @contextmanager
    def _scope():
        yield db_session

    monkeypatch.setattr(issue_token, "session_scope", _scope)

    assert issue_token.main(["--tenant", "hooli", "--role", "Manager"]) == 0

    token = capsys.readouterr().out.strip()
    identity = decode_access_token(token)
    tenant = db_session.query(models.Tenant).filter_by(slug="hooli").one()
    assert identity.tenant_id == tenant.id
    assert identity.role.value == "Manager"
