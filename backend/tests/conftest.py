from __future__ import annotations

import os
import sys
from datetime import date
from pathlib import Path
from types import SimpleNamespace
from typing import Callable, Generator

os.environ.setdefault("JWT_SECRET", "test-signing-secret-for-financial-api")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ["RUN_MIGRATIONS_ON_STARTUP"] = "0"
os.environ["VERIFY_SCHEMA_ON_STARTUP"] = "0"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Ensure the project root (which exposes the ``backend`` package) is on ``sys.path``
PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from backend.resource_api import models
from backend.resource_api.database import Base, enable_sqlite_foreign_keys, get_db
from backend.resource_api.main import app
from backend.resource_api.security import Identity, Role, create_access_token

SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


# pysqlite needs explicit BEGIN handling for SAVEPOINT based test isolation.
@event.listens_for(engine, "connect")
def _disable_pysqlite_transactions(dbapi_connection, _record) -> None:
    dbapi_connection.isolation_level = None


@event.listens_for(engine, "begin")
def _emit_begin(connection) -> None:
    connection.exec_driver_sql("BEGIN")


enable_sqlite_foreign_keys(engine)

TestingSessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
    join_transaction_mode="create_savepoint",
)


@pytest.fixture(scope="session", autouse=True)
def setup_database() -> Generator[None, None, None]:
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session() -> Generator[Session, None, None]:
    connection = engine.connect()
    transaction = connection.begin()
    session = TestingSessionLocal(bind=connection)
    try:
        yield session
    finally:
        session.close()
        transaction.rollback()
        connection.close()


def _seed_tenant(db_session: Session, slug: str) -> SimpleNamespace:
    tenant = models.Tenant(slug=slug, name=f"Tenant {slug}")
    db_session.add(tenant)
    db_session.flush()

    vendor = models.Company(tenant_id=tenant.id, name="Acme Supplies", email="ap@acme.test")
    customer = models.Company(tenant_id=tenant.id, name="Globex Retail")
    db_session.add_all([vendor, customer])
    db_session.flush()

    project_a = models.Project(tenant_id=tenant.id, company_id=customer.id, name="Apollo")
    project_b = models.Project(tenant_id=tenant.id, company_id=customer.id, name="Borealis")
    db_session.add_all([project_a, project_b])
    db_session.commit()

    return SimpleNamespace(
        tenant_id=tenant.id,
        vendor_id=vendor.id,
        customer_id=customer.id,
        project_a_id=project_a.id,
        project_b_id=project_b.id,
    )


@pytest.fixture
def tenant(db_session: Session) -> SimpleNamespace:
    return _seed_tenant(db_session, "acme")


@pytest.fixture
def other_tenant(db_session: Session) -> SimpleNamespace:
    return _seed_tenant(db_session, "initech")


@pytest.fixture
def auth_headers(tenant: SimpleNamespace) -> Callable[..., dict[str, str]]:
    def _build(role: Role = Role.ADMIN, tenant_id: str | None = None) -> dict[str, str]:
        token = create_access_token(
            Identity(subject="user-1", role=role, tenant_id=tenant_id or tenant.tenant_id)
        )
        return {"Authorization": f"Bearer {token}"}

    return _build


@pytest.fixture
def client(
    db_session: Session, auth_headers: Callable[..., dict[str, str]]
) -> Generator[TestClient, None, None]:
    def override_get_db() -> Generator[Session, None, None]:
        try:
            yield db_session
        finally:
            db_session.expire_all()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        test_client.headers.update(auth_headers(Role.ADMIN))
        yield test_client
    app.dependency_overrides.pop(get_db, None)


@pytest.fixture
def expense_payload(tenant: SimpleNamespace) -> Callable[..., dict]:
    def _build(**overrides) -> dict:
        payload = {
            "companyId": tenant.vendor_id,
            "invoiceNumber": "INV-1001",
            "date": date(2025, 3, 10).isoformat(),
            "totalAmount": "1000.00",
            "paymentMethod": models.PaymentMethod.BANK_TRANSFER.value,
            "allocations": [
                {"projectId": tenant.project_a_id, "allocatedPercentage": "60"},
                {"projectId": tenant.project_b_id, "allocatedPercentage": "40"},
            ],
        }
        payload.update(overrides)
        return payload

    return _build


@pytest.fixture
def create_expense(client: TestClient, expense_payload) -> Callable[..., dict]:
    def _create(**overrides) -> dict:
        response = client.post("/procurements", json=expense_payload(**overrides))
        assert response.status_code == 201, response.text
        return response.json()

    return _create


@pytest.fixture
def create_payment(client: TestClient) -> Callable[..., dict]:
    def _create(expense_id: str, amount: str = "500.00", **overrides) -> dict:
        payload = {
            "expenseId": expense_id,
            "amount": amount,
            "paymentDate": date(2025, 3, 20).isoformat(),
            "paymentMethod": models.PaymentMethod.BANK_TRANSFER.value,
        }
        payload.update(overrides)
        response = client.post("/payments", json=payload)
        assert response.status_code == 201, response.text
        return response.json()

    return _create