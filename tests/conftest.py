"""Pytest configuration and shared fixtures."""

import os

# Must be set before clinic_registry is imported: loggers read the config at import time
os.environ.setdefault("CLINIC_REGISTRY_LOG_TO_FILE", "0")
os.environ.setdefault(
    "CLINIC_REGISTRY_JWT_SECRET", "t3st-9Kq2vX8mZr4LwP7nY1bH6cJ0dF5gT2sE8uA3"
)

from datetime import datetime, timezone
from itertools import count
from typing import Generator

import pytest
from fastapi.testclient import TestClient

from clinic_registry.auth.jwt_auth import JWTTokenManager
from clinic_registry.config import (
    AppConfig,
    AuthConfig,
    ClinicRegistryConfig,
    DatabaseConfig,
    ServerConfig,
)
from clinic_registry.core.ids import FixedClock
from clinic_registry.db.database import (
    create_database_engine,
    create_session_factory,
    init_schema,
)
from clinic_registry.main import create_app
from clinic_registry.services.clinics import ClinicService
from clinic_registry.services.context import ServiceContext
from clinic_registry.services.dentists import DentistService
from clinic_registry.services.types import BankAccountInput, ClinicCreate, DentistInput
from clinic_registry.services.users import UserService
from clinic_registry.store.gateway import StoreGateway
from tests.helpers.documents import cnpj_for, cpf_for

TEST_JWT_SECRET = os.environ["CLINIC_REGISTRY_JWT_SECRET"]
TEST_ISSUER = "clinic-registry-test"
TEST_HASH_ITERATIONS = 1_000
ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "correct-horse-battery"


@pytest.fixture
def database_url(tmp_path) -> str:
    """A fresh SQLite file per test (WAL and savepoints need a real file)."""
    return f"sqlite:///{tmp_path / 'clinic_registry_test.db'}"


@pytest.fixture
def engine(database_url):
    engine = create_database_engine(database_url)
    init_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def fixed_clock() -> FixedClock:
    return FixedClock(datetime(2026, 3, 2, 9, 30, tzinfo=timezone.utc))


@pytest.fixture
def token_manager() -> JWTTokenManager:
    # Real clock: PyJWT checks exp/nbf against the wall clock
    return JWTTokenManager(
        secret_key=TEST_JWT_SECRET,
        issuer=TEST_ISSUER,
        access_token_expires_minutes=15,
    )


@pytest.fixture
def ctx(session_factory, token_manager) -> ServiceContext:
    """Service context over the per-test database."""
    return ServiceContext(
        gateway=StoreGateway(session_factory),
        tokens=token_manager,
        password_hash_iterations=TEST_HASH_ITERATIONS,
    )


@pytest.fixture
def clinic_service(ctx) -> ClinicService:
    return ClinicService(ctx)


@pytest.fixture
def dentist_service(ctx) -> DentistService:
    return DentistService(ctx)


@pytest.fixture
def user_service(ctx) -> UserService:
    return UserService(ctx)


@pytest.fixture
def seeds():
    """Unique seeds for generated tax ids within one test."""
    return count(1)


def bank_account(suffix: str = "1") -> BankAccountInput:
    return BankAccountInput(
        bank_code="341", branch_number="0001", account_number=f"12345-{suffix}"
    )


@pytest.fixture
def make_clinic(clinic_service, seeds):
    """Factory creating a clinic with one bank account."""

    def _make(**overrides):
        seed = next(seeds)
        data = ClinicCreate(
            tax_id_number=overrides.pop("tax_id_number", cnpj_for(seed)),
            legal_name=overrides.pop("legal_name", f"Clinic {seed} Ltda"),
            bank_accounts=overrides.pop("bank_accounts", [bank_account(str(seed))]),
            **overrides,
        )
        return clinic_service.create_clinic(data)

    return _make


@pytest.fixture
def make_dentist_input(seeds):
    """Factory for DentistInput with a fresh CPF."""

    def _make(**overrides):
        seed = next(seeds)
        return DentistInput(
            tax_id_number=overrides.pop("tax_id_number", cpf_for(seed)),
            legal_name=overrides.pop("legal_name", f"Dentist {seed}"),
            **overrides,
        )

    return _make


@pytest.fixture
def test_config(database_url) -> ClinicRegistryConfig:
    return ClinicRegistryConfig(
        app=AppConfig(log_to_file=False),
        server=ServerConfig(),
        database=DatabaseConfig(url=database_url),
        auth=AuthConfig(
            jwt_secret_key=TEST_JWT_SECRET,
            jwt_issuer=TEST_ISSUER,
            password_hash_iterations=TEST_HASH_ITERATIONS,
            bootstrap_email=ADMIN_EMAIL,
            bootstrap_password=ADMIN_PASSWORD,
        ),
    )


@pytest.fixture
def app(test_config, ctx):
    return create_app(config=test_config, service_context=ctx)


@pytest.fixture
def client(app) -> Generator[TestClient, None, None]:
    """Test client; entering it runs startup, which creates the bootstrap user."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers(client):
    """Bearer headers for the bootstrap user."""
    response = client.post(
        "/api/v1/auth/login",
        json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD},
    )
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}
