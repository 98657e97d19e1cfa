"""Alembic migrations produce the schema the services expect."""

from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from sqlalchemy import text

from clinic_registry.db.database import create_database_engine, create_session_factory
from clinic_registry.services.clinics import ClinicService
from clinic_registry.services.context import ServiceContext
from clinic_registry.services.types import BankAccountInput, ClinicCreate
from clinic_registry.store.gateway import StoreGateway

PROJECT_ROOT = Path(__file__).resolve().parents[2]


@pytest.fixture
def migration_url(tmp_path, monkeypatch):
    monkeypatch.delenv("CLINIC_REGISTRY_DATABASE_URL", raising=False)
    monkeypatch.delenv("DATABASE_URL", raising=False)
    return f"sqlite:///{tmp_path / 'migrated.db'}"


@pytest.fixture
def alembic_config(migration_url):
    # No ini file: loading one would reconfigure logging for the whole test run
    config = Config()
    config.set_main_option("script_location", str(PROJECT_ROOT / "alembic"))
    config.set_main_option("sqlalchemy.url", migration_url)
    return config


def sqlite_objects(url, kind):
    engine = create_database_engine(url)
    try:
        with engine.connect() as conn:
            rows = conn.execute(
                text("SELECT name FROM sqlite_master WHERE type = :kind"), {"kind": kind}
            )
            return {row[0] for row in rows}
    finally:
        engine.dispose()


@pytest.mark.integration
class TestInitialMigration:
    def test_upgrade_creates_tables_and_indexes(self, alembic_config, migration_url):
        command.upgrade(alembic_config, "head")

        tables = sqlite_objects(migration_url, "table")
        assert {
            "people",
            "clinics",
            "dentists",
            "clinic_dentists",
            "bank_accounts",
            "users",
        } <= tables

        indexes = sqlite_objects(migration_url, "index")
        assert {
            "ux_people_tax_id_number_active",
            "ux_clinics_person_id_active",
            "ux_dentists_person_id_active",
            "ux_clinic_dentists_active_pair",
            "ux_users_email_active",
        } <= indexes

    def test_migrated_schema_serves_use_cases(
        self, alembic_config, migration_url, token_manager
    ):
        command.upgrade(alembic_config, "head")
        engine = create_database_engine(migration_url)
        try:
            ctx = ServiceContext(
                gateway=StoreGateway(create_session_factory(engine)),
                tokens=token_manager,
                password_hash_iterations=1_000,
            )
            details = ClinicService(ctx).create_clinic(
                ClinicCreate(
                    tax_id_number="11.222.333/0001-81",
                    legal_name="Migrated Ltda",
                    bank_accounts=[BankAccountInput("237", "0001", "777-1")],
                )
            )
            assert details.tax_id_number == "11222333000181"
        finally:
            engine.dispose()

    def test_downgrade_removes_everything(self, alembic_config, migration_url):
        command.upgrade(alembic_config, "head")
        command.downgrade(alembic_config, "base")
        assert sqlite_objects(migration_url, "table") <= {"alembic_version"}
