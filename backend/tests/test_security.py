from datetime import timedelta

import pytest

from backend.resource_api.errors import AuthenticationError
from backend.resource_api.security import (
    Identity,
    Role,
    create_access_token,
    decode_access_token,
)


def _bearer(identity: Identity, **kwargs) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(identity, **kwargs)}"}


def test_access_token_round_trip():
    identity = Identity(subject="alice", role=Role.MANAGER, tenant_id="tenant-1")

    decoded = decode_access_token(create_access_token(identity))

    assert decoded == identity


def test_expired_token_is_rejected():
    token = create_access_token(
        Identity(subject="alice", role=Role.ADMIN, tenant_id="tenant-1"),
        expires_in=timedelta(seconds=-30),
    )

    with pytest.raises(AuthenticationError, match="Token expired"):
        decode_access_token(token)


def test_tampered_token_is_rejected():
    token = create_access_token(Identity(subject="alice", role=Role.CONTRIBUTOR, tenant_id="t"))
    header, payload, signature = token.split(".")
    forged = ".".join([header, payload, signature[::-1]])

    with pytest.raises(AuthenticationError):
        decode_access_token(forged)


def test_expired_token_returns_unauthorized(client, tenant):
    headers = _bearer(
        Identity(subject="alice", role=Role.ADMIN, tenant_id=tenant.tenant_id),
        expires_in=timedelta(seconds=-30),
    )

    response = client.get("/procurements", headers=headers)

    assert response.status_code == 401
    assert response.json()["error"]["message"] == "Token expired"


def test_token_without_tenant_is_forbidden(client):
    response = client.get(
        "/finance/project-entries", headers=_bearer(Identity(subject="ops", role=Role.ADMIN))
    )

    assert response.status_code == 403
    assert response.json()["error"]["message"] == "Tenant-scoped token required"


def test_super_admin_cannot_use_tenant_endpoints(client, tenant):
    headers = _bearer(Identity(subject="root", role=Role.SUPER_ADMIN, tenant_id=tenant.tenant_id))

    response = client.get("/sales", headers=headers)

    assert response.status_code == 403


def test_contributor_update_is_forbidden(client, create_expense, auth_headers):
    expense = create_expense()

    response = client.put(
        f"/procurements/{expense['id']}",
        json={"notes": "changed"},
        headers=auth_headers(Role.CONTRIBUTOR),
    )

    assert response.status_code == 403
    assert response.json()["error"]["message"] == "Admin or Manager access required"
