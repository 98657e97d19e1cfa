"""Abstract repository interfaces for data access layer."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy.orm import Query, Session

from ..db.models import Affiliation, BankAccount, Clinic, Dentist, Person, User


class BaseRepository(ABC):
    """Base repository interface with common operations."""

    @abstractmethod
    def add(self, entity) -> None:
        """Stage an entity and flush it so constraint violations surface now."""
        pass


class PersonRepository(BaseRepository):
    """Repository interface for Person entities."""

    @abstractmethod
    def get_active_by_tax_id(self, tax_id_number: str) -> Optional[Person]:
        """Get the non-deleted person holding a normalized tax id."""
        pass


class ClinicRepository(BaseRepository):
    """Repository interface for Clinic entities."""

    @abstractmethod
    def get_active(self, clinic_id: UUID) -> Optional[Clinic]:
        pass

    @abstractmethod
    def get_active_by_person(self, person_id: UUID) -> Optional[Clinic]:
        pass

    @abstractmethod
    def lock_active(self, clinic_id: UUID) -> bool:
        """Take an exclusive row lock on an active clinic; False when absent."""
        pass

    @abstractmethod
    def active_query(self) -> Query:
        pass


class DentistRepository(BaseRepository):
    """Repository interface for Dentist entities."""

    @abstractmethod
    def get_active(self, dentist_id: UUID) -> Optional[Dentist]:
        pass

    @abstractmethod
    def get_active_by_person(self, person_id: UUID) -> Optional[Dentist]:
        pass

    @abstractmethod
    def lock_active(self, dentist_id: UUID) -> bool:
        """Take an exclusive row lock on an active dentist; False when absent."""
        pass

    @abstractmethod
    def active_query_for_clinic(self, clinic_id: UUID) -> Query:
        """(Dentist, Affiliation) rows for active dentists linked to the clinic."""
        pass


class AffiliationRepository(BaseRepository):
    """Repository interface for clinic/dentist affiliations."""

    @abstractmethod
    def get_active(self, clinic_id: UUID, dentist_id: UUID) -> Optional[Affiliation]:
        pass

    @abstractmethod
    def count_active_for_dentist(self, dentist_id: UUID) -> int:
        pass

    @abstractmethod
    def end_active(self, clinic_id: UUID, dentist_id: UUID, ended_at: datetime) -> int:
        """End the open link for the pair; returns affected rows."""
        pass

    @abstractmethod
    def end_all_for_clinic(self, clinic_id: UUID, ended_at: datetime) -> int:
        pass

    @abstractmethod
    def end_all_for_dentist(self, dentist_id: UUID, ended_at: datetime) -> int:
        pass

    @abstractmethod
    def active_dentist_ids(self, clinic_ids: Sequence[UUID]) -> Dict[UUID, List[UUID]]:
        """Ids of actively linked, non-deleted dentists per clinic, in id order."""
        pass


class BankAccountRepository(BaseRepository):
    """Repository interface for clinic bank accounts."""

    @abstractmethod
    def soft_delete(self, account_id: UUID, clinic_id: UUID, deleted_at: datetime) -> int:
        """Soft-delete an active account owned by the clinic; returns affected rows."""
        pass

    @abstractmethod
    def count_active(self, clinic_id: UUID) -> int:
        pass

    @abstractmethod
    def list_active(self, clinic_id: UUID) -> List[BankAccount]:
        pass


class UserRepository(BaseRepository):
    """Repository interface for API users."""

    @abstractmethod
    def get_active_by_email(self, email: str) -> Optional[User]:
        """Case-insensitive lookup among non-deleted users."""
        pass


@dataclass
class RepositoryContainer:
    """Repositories sharing one session, and therefore one transaction."""

    session: Session
    people: PersonRepository
    clinics: ClinicRepository
    dentists: DentistRepository
    affiliations: AffiliationRepository
    bank_accounts: BankAccountRepository
    users: UserRepository
