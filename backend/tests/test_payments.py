from __future__ import annotations

from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from backend.resource_api import models
from backend.resource_api.db_types import new_id
from backend.resource_api.main import LOCAL_DEVELOPMENT_ORIGINS
from backend.resource_api.security import Role
from backend.resource_api.services import PaymentService


def test_record_payment_against_expense(client, create_expense):
    expense = create_expense()

    response = client.post(
        "/payments",
        json={
            "expenseId": expense["id"],
            "amount": "250.00",
            "paymentCurrencyCode": "usd",
            "amountLCY": "4500.00",
            "paymentDate": "2025-04-01",
            "paymentMethod": models.PaymentMethod.CORPORATE_CREDIT_CARD.value,
            "referenceNumber": "  TRX-77 ",
        },
    )

    assert response.status_code == 201, response.text
    payload = response.json()
    assert Decimal(str(payload["amount"])) == Decimal("250.00")
    assert payload["paymentCurrencyCode"] == "USD"
    assert Decimal(str(payload["amountLCY"])) == Decimal("4500.00")
    assert payload["referenceNumber"] == "TRX-77"
    assert payload["expense"]["invoiceNumber"] == "INV-1001"
    assert payload["expense"]["company"]["name"] == "Acme Supplies"


@pytest.mark.parametrize("amount", ["0", "-10.00"])
def test_payment_amount_must_be_positive(client, create_expense, db_session, amount):
    expense = create_expense()

    response = client.post(
        "/payments",
        json={
            "expenseId": expense["id"],
            "amount": amount,
            "paymentDate": "2025-04-01",
            "paymentMethod": models.PaymentMethod.PAYPAL.value,
        },
    )

    assert response.status_code == 400
    assert response.json()["error"]["message"] == "Payment amount must be greater than zero"
    assert db_session.query(models.Payment).count() == 0


def test_payment_amount_is_limited_to_cents(client, create_expense, db_session):
    expense = create_expense()

    response = client.post(
        "/payments",
        json={
            "expenseId": expense["id"],
            "amount": "10.005",
            "paymentDate": "2025-04-01",
            "paymentMethod": models.PaymentMethod.PAYPAL.value,
        },
    )

    assert response.status_code == 400
    assert response.json()["error"]["details"][0]["path"] == "amount"
    assert db_session.query(models.Payment).count() == 0


def test_payment_and_filter_accept_upper_case_expense_id(client, create_expense, create_payment):
    expense = create_expense()

    payment = create_payment(expense["id"].upper())

    assert payment["expenseId"] == expense["id"]
    listing = client.get("/payments", params={"expenseId": expense["id"].upper()}).json()
    assert [item["id"] for item in listing["data"]] == [payment["id"]]


def test_payment_rejects_malformed_currency(client, create_expense):
    expense = create_expense()

    response = client.post(
        "/payments",
        json={
            "expenseId": expense["id"],
            "amount": "10.00",
            "paymentCurrencyCode": "US",
            "paymentDate": "2025-04-01",
            "paymentMethod": models.PaymentMethod.PAYPAL.value,
        },
    )

    assert response.status_code == 400
    assert response.json()["error"]["details"][0]["path"] == "paymentCurrencyCode"


def test_payment_for_unknown_expense_returns_not_found(client):
    response = client.post(
        "/payments",
        json={
            "expenseId": new_id(),
            "amount": "10.00",
            "paymentDate": "2025-04-01",
            "paymentMethod": models.PaymentMethod.PAYPAL.value,
        },
    )

    assert response.status_code == 404
    assert response.json()["error"]["message"].startswith("Expense with id")


def test_payment_cannot_target_another_tenants_expense(
    client, create_expense, auth_headers, other_tenant
):
    expense = create_expense()

    response = client.post(
        "/payments",
        headers=auth_headers(tenant_id=other_tenant.tenant_id),
        json={
            "expenseId": expense["id"],
            "amount": "10.00",
            "paymentDate": "2025-04-01",
            "paymentMethod": models.PaymentMethod.PAYPAL.value,
        },
    )

    assert response.status_code == 404


def test_list_payments_filters_by_expense(client, create_expense, create_payment):
    first = create_expense(invoiceNumber="INV-A")
    second = create_expense(invoiceNumber="INV-B")
    create_payment(first["id"], paymentDate="2025-04-01")
    create_payment(first["id"], paymentDate="2025-05-01", referenceNumber="TRX-2")
    create_payment(second["id"])

    filtered = client.get("/payments", params={"expenseId": first["id"]}).json()
    searched = client.get("/payments", params={"search": "trx-2"}).json()

    assert filtered["pagination"]["total"] == 2
    assert [item["paymentDate"] for item in filtered["data"]] == ["2025-05-01", "2025-04-01"]
    assert [item["referenceNumber"] for item in searched["data"]] == ["TRX-2"]


def test_update_payment_moves_it_to_another_expense(client, create_expense, create_payment):
    first = create_expense(invoiceNumber="INV-A")
    second = create_expense(invoiceNumber="INV-B")
    payment = create_payment(first["id"])

    response = client.put(
        f"/payments/{payment['id']}", json={"expenseId": second["id"], "amount": "75.50"}
    )

    assert response.status_code == 200, response.text
    payload = response.json()
    assert payload["expenseId"] == second["id"]
    assert payload["expense"]["invoiceNumber"] == "INV-B"
    assert Decimal(str(payload["amount"])) == Decimal("75.50")


def test_update_payment_to_unknown_expense_returns_not_found(client, create_expense, create_payment):
    payment = create_payment(create_expense()["id"])

    response = client.put(f"/payments/{payment['id']}", json={"expenseId": new_id()})

    assert response.status_code == 404
    stored = client.get(f"/payments/{payment['id']}").json()
    assert stored["expenseId"] == payment["expenseId"]


def test_update_payment_rejects_null_amount(client, create_expense, create_payment):
    payment = create_payment(create_expense()["id"])

    response = client.put(f"/payments/{payment['id']}", json={"amount": None})

    assert response.status_code == 400


def test_delete_payment_unblocks_expense_delete(client, create_expense, create_payment):
    expense = create_expense()
    payment = create_payment(expense["id"])

    assert client.delete(f"/procurements/{expense['id']}").status_code == 409
    assert client.delete(f"/payments/{payment['id']}").status_code == 204
    assert client.get(f"/payments/{payment['id']}").status_code == 404
    assert client.delete(f"/procurements/{expense['id']}").status_code == 204


def test_contributor_cannot_record_payments(client, create_expense, auth_headers):
    expense = create_expense()

    response = client.post(
        "/payments",
        headers=auth_headers(Role.CONTRIBUTOR),
        json={
            "expenseId": expense["id"],
            "amount": "10.00",
            "paymentDate": "2025-04-01",
            "paymentMethod": models.PaymentMethod.PAYPAL.value,
        },
    )

    assert response.status_code == 403


def test_storage_failure_returns_internal_error_with_cors_headers(client, monkeypatch):
    def _broken(*_args, **_kwargs):
        raise OperationalError("SELECT", {}, Exception("database is locked"))

    monkeypatch.setattr(PaymentService, "list_payments", staticmethod(_broken))
    origin = sorted(LOCAL_DEVELOPMENT_ORIGINS)[0]

    response = client.get("/payments", headers={"Origin": origin})

    assert response.status_code == 500
    assert response.json()["error"]["code"] == "INTERNAL_ERROR"
    assert response.headers.get("access-control-allow-origin") == origin
