"""SQLAlchemy models for the Clinic Registry."""

from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    String,
    func,
    text,
)
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import relationship
from sqlalchemy.types import CHAR, TypeDecorator

from ..core.enums import RecordStatus
from ..core.ids import new_uuid7
from .database import Base

ACTIVE_ROW = text("deleted_at IS NULL")
OPEN_AFFILIATION = text("ended_at IS NULL")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GUID(TypeDecorator):
    """Platform-independent GUID type.

    SQLite stores the lowercase canonical string, so ``ORDER BY id`` follows
    the UUIDv7 timestamp.
    """

    impl = CHAR
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(PG_UUID())
        return dialect.type_descriptor(CHAR(36))

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        if not isinstance(value, UUID):
            value = UUID(str(value))
        return str(value)

    def process_result_value(self, value, dialect):
        if value is None or isinstance(value, UUID):
            return value
        return UUID(str(value))


class TimestampMixin:
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


class SoftDeleteMixin:
    """Soft delete through a ``deleted_at`` marker.

    Queries must filter with ``Model.active()`` rather than testing the
    column directly.
    """

    deleted_at = Column(DateTime(timezone=True), nullable=True)

    @classmethod
    def active(cls):
        return cls.deleted_at.is_(None)

    @property
    def status(self) -> RecordStatus:
        return RecordStatus.ACTIVE if self.deleted_at is None else RecordStatus.DELETED

    def mark_deleted(self, at: datetime) -> None:
        self.deleted_at = at
        self.updated_at = at


class Person(TimestampMixin, SoftDeleteMixin, Base):
    """Identity record deduplicated by normalized tax id."""

    __tablename__ = "people"

    id = Column(GUID(), primary_key=True, default=new_uuid7)
    person_type = Column(String(20), nullable=False)  # PersonType enum
    tax_id_type = Column(String(10), nullable=False)  # TaxIdType enum
    tax_id_number = Column(String(14), nullable=False)
    legal_name = Column(String(255), nullable=False)
    trade_name = Column(String(255), nullable=True)
    email = Column(String(320), nullable=True)
    phone = Column(String(32), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "(person_type = 'INDIVIDUAL' AND tax_id_type = 'CPF') OR "
            "(person_type = 'COMPANY' AND tax_id_type = 'CNPJ')",
            name="ck_people_tax_id_type_matches_person_type",
        ),
        Index(
            "ux_people_tax_id_number_active",
            "tax_id_number",
            unique=True,
            sqlite_where=ACTIVE_ROW,
            postgresql_where=ACTIVE_ROW,
        ),
    )

    def __repr__(self) -> str:
        return f"<Person(id={self.id}, type={self.person_type}, tax_id={self.tax_id_number})>"


class Clinic(TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "clinics"

    id = Column(GUID(), primary_key=True, default=new_uuid7)
    person_id = Column(
        GUID(), ForeignKey("people.id", ondelete="RESTRICT"), nullable=False
    )

    person = relationship("Person", lazy="joined")

    __table_args__ = (
        Index(
            "ux_clinics_person_id_active",
            "person_id",
            unique=True,
            sqlite_where=ACTIVE_ROW,
            postgresql_where=ACTIVE_ROW,
        ),
    )

    def __repr__(self) -> str:
        return f"<Clinic(id={self.id}, person_id={self.person_id})>"


class Dentist(TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "dentists"

    id = Column(GUID(), primary_key=True, default=new_uuid7)
    person_id = Column(
        GUID(), ForeignKey("people.id", ondelete="RESTRICT"), nullable=False
    )

    person = relationship("Person", lazy="joined")

    __table_args__ = (
        Index(
            "ux_dentists_person_id_active",
            "person_id",
            unique=True,
            sqlite_where=ACTIVE_ROW,
            postgresql_where=ACTIVE_ROW,
        ),
    )

    def __repr__(self) -> str:
        return f"<Dentist(id={self.id}, person_id={self.person_id})>"


class Affiliation(TimestampMixin, Base):
    """Time-bounded link between a clinic and a dentist.

    Rows are never deleted. Ending a link sets ``ended_at``; attaching the
    same pair again inserts a new row.
    """

    __tablename__ = "clinic_dentists"

    id = Column(GUID(), primary_key=True, default=new_uuid7)
    clinic_id = Column(
        GUID(), ForeignKey("clinics.id", ondelete="RESTRICT"), nullable=False
    )
    dentist_id = Column(
        GUID(), ForeignKey("dentists.id", ondelete="RESTRICT"), nullable=False
    )
    is_admin = Column(Boolean, nullable=False, default=False)
    is_legal_representative = Column(Boolean, nullable=False, default=False)
    started_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    ended_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index(
            "ux_clinic_dentists_active_pair",
            "clinic_id",
            "dentist_id",
            unique=True,
            sqlite_where=OPEN_AFFILIATION,
            postgresql_where=OPEN_AFFILIATION,
        ),
        Index("ix_clinic_dentists_dentist_id", "dentist_id"),
    )

    @classmethod
    def active(cls):
        return cls.ended_at.is_(None)

    @property
    def is_active(self) -> bool:
        return self.ended_at is None

    def __repr__(self) -> str:
        return (
            f"<Affiliation(clinic_id={self.clinic_id}, dentist_id={self.dentist_id}, "
            f"active={self.is_active})>"
        )


class BankAccount(TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "bank_accounts"

    id = Column(GUID(), primary_key=True, default=new_uuid7)
    clinic_id = Column(
        GUID(), ForeignKey("clinics.id", ondelete="RESTRICT"), nullable=False
    )
    bank_code = Column(String(10), nullable=False)
    branch_number = Column(String(20), nullable=False)
    account_number = Column(String(30), nullable=False)

    __table_args__ = (Index("ix_bank_accounts_clinic_id", "clinic_id"),)

    def __repr__(self) -> str:
        return f"<BankAccount(id={self.id}, clinic_id={self.clinic_id})>"


class User(TimestampMixin, SoftDeleteMixin, Base):
    """API user authenticated by email and password."""

    __tablename__ = "users"

    id = Column(GUID(), primary_key=True, default=new_uuid7)
    email = Column(String(320), nullable=False)
    password_hash = Column(String(255), nullable=False)
    password_salt = Column(String(64), nullable=False)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}')>"


# Functional index: declared after the class so the column is bound
Index(
    "ux_users_email_active",
    func.lower(User.email),
    unique=True,
    sqlite_where=ACTIVE_ROW,
    postgresql_where=ACTIVE_ROW,
)
