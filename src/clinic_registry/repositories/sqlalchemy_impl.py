"""SQLAlchemy concrete implementations of repository interfaces."""

from datetime import datetime
from typing import Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Query, Session

from .interfaces import (
    AffiliationRepository,
    BankAccountRepository,
    ClinicRepository,
    DentistRepository,
    PersonRepository,
    RepositoryContainer,
    UserRepository,
)
from ..db.models import Affiliation, BankAccount, Clinic, Dentist, Person, User


class BaseSQLAlchemyRepository:
    """Base SQLAlchemy repository implementation."""

    def __init__(self, session: Session):
        self._session = session

    def add(self, entity) -> None:
        """Stage an entity and flush it so constraint violations surface now."""
        self._session.add(entity)
        self._session.flush()


class SQLAlchemyPersonRepository(BaseSQLAlchemyRepository, PersonRepository):
    """SQLAlchemy implementation of PersonRepository."""

    def get_active_by_tax_id(self, tax_id_number: str) -> Optional[Person]:
        return (
            self._session.query(Person)
            .filter(Person.tax_id_number == tax_id_number, Person.active())
            .first()
        )


class SQLAlchemyClinicRepository(BaseSQLAlchemyRepository, ClinicRepository):
    """SQLAlchemy implementation of ClinicRepository."""

    def get_active(self, clinic_id: UUID) -> Optional[Clinic]:
        return (
            self._session.query(Clinic)
            .filter(Clinic.id == clinic_id, Clinic.active())
            .first()
        )

    def get_active_by_person(self, person_id: UUID) -> Optional[Clinic]:
        return (
            self._session.query(Clinic)
            .filter(Clinic.person_id == person_id, Clinic.active())
            .first()
        )

    def lock_active(self, clinic_id: UUID) -> bool:
        # Selecting only the id keeps the joined person load out of FOR UPDATE
        row = (
            self._session.query(Clinic.id)
            .filter(Clinic.id == clinic_id, Clinic.active())
            .with_for_update()
            .first()
        )
        return row is not None

    def active_query(self) -> Query:
        return self._session.query(Clinic).filter(Clinic.active())


class SQLAlchemyDentistRepository(BaseSQLAlchemyRepository, DentistRepository):
    """SQLAlchemy implementation of DentistRepository."""

    def get_active(self, dentist_id: UUID) -> Optional[Dentist]:
        return (
            self._session.query(Dentist)
            .filter(Dentist.id == dentist_id, Dentist.active())
            .first()
        )

    def get_active_by_person(self, person_id: UUID) -> Optional[Dentist]:
        return (
            self._session.query(Dentist)
            .filter(Dentist.person_id == person_id, Dentist.active())
            .first()
        )

    def lock_active(self, dentist_id: UUID) -> bool:
        row = (
            self._session.query(Dentist.id)
            .filter(Dentist.id == dentist_id, Dentist.active())
            .with_for_update()
            .first()
        )
        return row is not None

    def active_query_for_clinic(self, clinic_id: UUID) -> Query:
        return (
            self._session.query(Dentist, Affiliation)
            .join(Affiliation, Affiliation.dentist_id == Dentist.id)
            .filter(
                Affiliation.clinic_id == clinic_id,
                Affiliation.active(),
                Dentist.active(),
            )
        )


class SQLAlchemyAffiliationRepository(BaseSQLAlchemyRepository, AffiliationRepository):
    """SQLAlchemy implementation of AffiliationRepository."""

    def get_active(self, clinic_id: UUID, dentist_id: UUID) -> Optional[Affiliation]:
        return (
            self._session.query(Affiliation)
            .filter(
                Affiliation.clinic_id == clinic_id,
                Affiliation.dentist_id == dentist_id,
                Affiliation.active(),
            )
            .first()
        )

    def count_active_for_dentist(self, dentist_id: UUID) -> int:
        return (
            self._session.query(func.count(Affiliation.id))
            .filter(Affiliation.dentist_id == dentist_id, Affiliation.active())
            .scalar()
        )

    def end_active(self, clinic_id: UUID, dentist_id: UUID, ended_at: datetime) -> int:
        return (
            self._session.query(Affiliation)
            .filter(
                Affiliation.clinic_id == clinic_id,
                Affiliation.dentist_id == dentist_id,
                Affiliation.active(),
            )
            .update(
                {Affiliation.ended_at: ended_at, Affiliation.updated_at: ended_at},
                synchronize_session=False,
            )
        )

    def end_all_for_clinic(self, clinic_id: UUID, ended_at: datetime) -> int:
        return (
            self._session.query(Affiliation)
            .filter(Affiliation.clinic_id == clinic_id, Affiliation.active())
            .update(
                {Affiliation.ended_at: ended_at, Affiliation.updated_at: ended_at},
                synchronize_session=False,
            )
        )

    def end_all_for_dentist(self, dentist_id: UUID, ended_at: datetime) -> int:
        return (
            self._session.query(Affiliation)
            .filter(Affiliation.dentist_id == dentist_id, Affiliation.active())
            .update(
                {Affiliation.ended_at: ended_at, Affiliation.updated_at: ended_at},
                synchronize_session=False,
            )
        )

    def active_dentist_ids(self, clinic_ids: Sequence[UUID]) -> Dict[UUID, List[UUID]]:
        result: Dict[UUID, List[UUID]] = {clinic_id: [] for clinic_id in clinic_ids}
        if not clinic_ids:
            return result
        rows = (
            self._session.query(Affiliation.clinic_id, Affiliation.dentist_id)
            .join(Dentist, Dentist.id == Affiliation.dentist_id)
            .filter(
                Affiliation.clinic_id.in_(list(clinic_ids)),
                Affiliation.active(),
                Dentist.active(),
            )
            .order_by(Affiliation.dentist_id)
            .all()
        )
        for row in rows:
            result[row.clinic_id].append(row.dentist_id)
        return result


class SQLAlchemyBankAccountRepository(BaseSQLAlchemyRepository, BankAccountRepository):
    """SQLAlchemy implementation of BankAccountRepository."""

    def soft_delete(self, account_id: UUID, clinic_id: UUID, deleted_at: datetime) -> int:
        return (
            self._session.query(BankAccount)
            .filter(
                BankAccount.id == account_id,
                BankAccount.clinic_id == clinic_id,
                BankAccount.active(),
            )
            .update(
                {BankAccount.deleted_at: deleted_at, BankAccount.updated_at: deleted_at},
                synchronize_session=False,
            )
        )

    def count_active(self, clinic_id: UUID) -> int:
        return (
            self._session.query(func.count(BankAccount.id))
            .filter(BankAccount.clinic_id == clinic_id, BankAccount.active())
            .scalar()
        )

    def list_active(self, clinic_id: UUID) -> List[BankAccount]:
        return (
            self._session.query(BankAccount)
            .filter(BankAccount.clinic_id == clinic_id, BankAccount.active())
            .order_by(BankAccount.id)
            .all()
        )


class SQLAlchemyUserRepository(BaseSQLAlchemyRepository, UserRepository):
    """SQLAlchemy implementation of UserRepository."""

    def get_active_by_email(self, email: str) -> Optional[User]:
        return (
            self._session.query(User)
            .filter(func.lower(User.email) == email.lower(), User.active())
            .first()
        )


def build_repository_container(session: Session) -> RepositoryContainer:
    """Create a repository container with SQLAlchemy implementations."""
    return RepositoryContainer(
        session=session,
        people=SQLAlchemyPersonRepository(session),
        clinics=SQLAlchemyClinicRepository(session),
        dentists=SQLAlchemyDentistRepository(session),
        affiliations=SQLAlchemyAffiliationRepository(session),
        bank_accounts=SQLAlchemyBankAccountRepository(session),
        users=SQLAlchemyUserRepository(session),
    )
