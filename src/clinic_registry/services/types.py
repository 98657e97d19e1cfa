"""Plain input and result records exchanged with the use cases."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from ..db.models import Affiliation, BankAccount, Dentist, Person
from .bank_accounts import BankAccountInput

__all__ = [
    "BankAccountInput",
    "BankAccountView",
    "ClinicCreate",
    "ClinicDentistView",
    "ClinicDetails",
    "ClinicSummary",
    "ClinicUpdate",
    "DentistInput",
    "DentistSummary",
    "DentistUpdate",
    "LoginResult",
]


@dataclass
class ClinicCreate:
    tax_id_number: str
    legal_name: str
    bank_accounts: List[BankAccountInput]
    trade_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


@dataclass
class ClinicUpdate:
    """None means "not supplied"."""

    legal_name: Optional[str] = None
    trade_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    bank_accounts: Optional[List[BankAccountInput]] = None
    bank_account_ids_to_remove: Optional[List[str]] = None

    def is_empty(self) -> bool:
        return all(
            value is None
            for value in (
                self.legal_name,
                self.trade_name,
                self.email,
                self.phone,
                self.bank_accounts,
                self.bank_account_ids_to_remove,
            )
        )

    def touches_person(self) -> bool:
        return any(
            value is not None
            for value in (self.legal_name, self.trade_name, self.email, self.phone)
        )


@dataclass
class DentistInput:
    tax_id_number: str
    legal_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    is_admin: Optional[bool] = None
    is_legal_representative: Optional[bool] = None


@dataclass
class DentistUpdate:
    legal_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None

    def is_empty(self) -> bool:
        return self.legal_name is None and self.email is None and self.phone is None


@dataclass
class BankAccountView:
    id: UUID
    bank_code: str
    branch_number: str
    account_number: str

    @classmethod
    def from_row(cls, row: BankAccount) -> "BankAccountView":
        return cls(
            id=row.id,
            bank_code=row.bank_code,
            branch_number=row.branch_number,
            account_number=row.account_number,
        )


@dataclass
class ClinicSummary:
    id: UUID
    person_id: UUID
    legal_name: str
    tax_id_number: str
    trade_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    dentist_ids: List[UUID] = field(default_factory=list)


@dataclass
class ClinicDetails(ClinicSummary):
    bank_accounts: List[BankAccountView] = field(default_factory=list)


@dataclass
class DentistSummary:
    id: UUID
    person_id: UUID
    legal_name: str
    tax_id_number: str
    email: Optional[str] = None
    phone: Optional[str] = None

    @classmethod
    def from_rows(cls, dentist: Dentist, person: Person) -> "DentistSummary":
        return cls(
            id=dentist.id,
            person_id=person.id,
            legal_name=person.legal_name,
            tax_id_number=person.tax_id_number,
            email=person.email,
            phone=person.phone,
        )


@dataclass
class ClinicDentistView(DentistSummary):
    is_admin: bool = False
    is_legal_representative: bool = False
    started_at: Optional[datetime] = None

    @classmethod
    def from_link(
        cls, dentist: Dentist, person: Person, affiliation: Affiliation
    ) -> "ClinicDentistView":
        return cls(
            id=dentist.id,
            person_id=person.id,
            legal_name=person.legal_name,
            tax_id_number=person.tax_id_number,
            email=person.email,
            phone=person.phone,
            is_admin=affiliation.is_admin,
            is_legal_representative=affiliation.is_legal_representative,
            started_at=affiliation.started_at,
        )


@dataclass
class LoginResult:
    access_token: str
    token_type: str
    expires_in: int
    user_id: UUID
    email: str
