"""initial_schema

Revision ID: 3f1c9a7e2b10
Revises:
Create Date: 2026-10-18 09:12:40.211734

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

from clinic_registry.db.models import GUID


# revision identifiers, used by Alembic.
revision: str = '3f1c9a7e2b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ACTIVE_ROW = sa.text("deleted_at IS NULL")
OPEN_AFFILIATION = sa.text("ended_at IS NULL")


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    """Create people, clinics, dentists, affiliations, bank accounts and users."""
    op.create_table(
        "people",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("person_type", sa.String(20), nullable=False),
        sa.Column("tax_id_type", sa.String(10), nullable=False),
        sa.Column("tax_id_number", sa.String(14), nullable=False),
        sa.Column("legal_name", sa.String(255), nullable=False),
        sa.Column("trade_name", sa.String(255), nullable=True),
        sa.Column("email", sa.String(320), nullable=True),
        sa.Column("phone", sa.String(32), nullable=True),
        *_timestamps(),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "(person_type = 'INDIVIDUAL' AND tax_id_type = 'CPF') OR "
            "(person_type = 'COMPANY' AND tax_id_type = 'CNPJ')",
            name="ck_people_tax_id_type_matches_person_type",
        ),
    )
    op.create_index(
        "ux_people_tax_id_number_active",
        "people",
        ["tax_id_number"],
        unique=True,
        sqlite_where=ACTIVE_ROW,
        postgresql_where=ACTIVE_ROW,
    )

    for table in ("clinics", "dentists"):
        op.create_table(
            table,
            sa.Column("id", GUID(), primary_key=True),
            sa.Column(
                "person_id",
                GUID(),
                sa.ForeignKey("people.id", ondelete="RESTRICT"),
                nullable=False,
            ),
            *_timestamps(),
            sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        )
        op.create_index(
            f"ux_{table}_person_id_active",
            table,
            ["person_id"],
            unique=True,
            sqlite_where=ACTIVE_ROW,
            postgresql_where=ACTIVE_ROW,
        )

    op.create_table(
        "clinic_dentists",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column(
            "clinic_id",
            GUID(),
            sa.ForeignKey("clinics.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "dentist_id",
            GUID(),
            sa.ForeignKey("dentists.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "is_legal_representative",
            sa.Boolean(),
            nullable=False,
            server_default=sa.false(),
        ),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ended_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index(
        "ux_clinic_dentists_active_pair",
        "clinic_dentists",
        ["clinic_id", "dentist_id"],
        unique=True,
        sqlite_where=OPEN_AFFILIATION,
        postgresql_where=OPEN_AFFILIATION,
    )
    op.create_index("ix_clinic_dentists_dentist_id", "clinic_dentists", ["dentist_id"])

    op.create_table(
        "bank_accounts",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column(
            "clinic_id",
            GUID(),
            sa.ForeignKey("clinics.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("bank_code", sa.String(10), nullable=False),
        sa.Column("branch_number", sa.String(20), nullable=False),
        sa.Column("account_number", sa.String(30), nullable=False),
        *_timestamps(),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_bank_accounts_clinic_id", "bank_accounts", ["clinic_id"])

    op.create_table(
        "users",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("password_salt", sa.String(64), nullable=False),
        *_timestamps(),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index(
        "ux_users_email_active",
        "users",
        [sa.text("lower(email)")],
        unique=True,
        sqlite_where=ACTIVE_ROW,
        postgresql_where=ACTIVE_ROW,
    )


def downgrade() -> None:
    """Drop every table in reverse dependency order."""
    op.drop_index("ux_users_email_active", table_name="users")
    op.drop_table("users")
    op.drop_index("ix_bank_accounts_clinic_id", table_name="bank_accounts")
    op.drop_table("bank_accounts")
    op.drop_index("ix_clinic_dentists_dentist_id", table_name="clinic_dentists")
    op.drop_index("ux_clinic_dentists_active_pair", table_name="clinic_dentists")
    op.drop_table("clinic_dentists")
    for table in ("dentists", "clinics"):
        op.drop_index(f"ux_{table}_person_id_active", table_name=table)
        op.drop_table(table)
    op.drop_index("ux_people_tax_id_number_active", table_name="people")
    op.drop_table("people")
