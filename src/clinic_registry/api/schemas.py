"""Pydantic models for API request/response validation."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ..services.types import (
    BankAccountInput,
    ClinicCreate,
    ClinicUpdate,
    DentistInput,
    DentistUpdate,
)


# Base response models
class BaseResponse(BaseModel):
    """Base response model with common fields."""

    model_config = ConfigDict(from_attributes=True)


class ProblemDetails(BaseModel):
    """RFC 9457 Problem Details for HTTP APIs."""

    type: str = Field(description="A URI reference that identifies the problem type")
    title: str = Field(
        description="A short, human-readable summary of the problem type"
    )
    status: int = Field(description="The HTTP status code")
    detail: Optional[str] = Field(
        None, description="A human-readable explanation specific to this occurrence"
    )
    instance: Optional[str] = Field(
        None, description="A URI reference that identifies the specific occurrence"
    )


class HealthResponse(BaseModel):
    status: str = "ok"


# Authentication schemas
class LoginRequest(BaseModel):
    """Schema for login request."""

    email: str = Field(description="User email")
    password: str = Field(description="User password")


class LoginResponse(BaseResponse):
    """Schema for login response."""

    access_token: str = Field(description="JWT bearer token")
    token_type: str = Field(description="Always 'Bearer'")
    expires_in: int = Field(description="Seconds until the token expires")
    user_id: UUID
    email: str


# Bank accounts
class BankAccountRequest(BaseModel):
    bank_code: str
    branch_number: str
    account_number: str

    def to_input(self) -> BankAccountInput:
        return BankAccountInput(
            bank_code=self.bank_code,
            branch_number=self.branch_number,
            account_number=self.account_number,
        )


class BankAccountResponse(BaseResponse):
    id: UUID
    bank_code: str
    branch_number: str
    account_number: str


# Clinic schemas
class ClinicCreateRequest(BaseModel):
    """Schema for creating a clinic."""

    tax_id_number: str = Field(description="CNPJ, formatted or digits only")
    legal_name: str
    trade_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    bank_accounts: List[BankAccountRequest] = Field(default_factory=list)

    def to_input(self) -> ClinicCreate:
        return ClinicCreate(
            tax_id_number=self.tax_id_number,
            legal_name=self.legal_name,
            trade_name=self.trade_name,
            email=self.email,
            phone=self.phone,
            bank_accounts=[account.to_input() for account in self.bank_accounts],
        )


class ClinicUpdateRequest(BaseModel):
    """Schema for a partial clinic update. Omitted fields are left unchanged."""

    legal_name: Optional[str] = None
    trade_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    bank_accounts: Optional[List[BankAccountRequest]] = None
    bank_account_ids_to_remove: Optional[List[str]] = None

    def to_input(self) -> ClinicUpdate:
        return ClinicUpdate(
            legal_name=self.legal_name,
            trade_name=self.trade_name,
            email=self.email,
            phone=self.phone,
            bank_accounts=(
                None
                if self.bank_accounts is None
                else [account.to_input() for account in self.bank_accounts]
            ),
            bank_account_ids_to_remove=self.bank_account_ids_to_remove,
        )


class ClinicResponse(BaseResponse):
    id: UUID
    person_id: UUID
    legal_name: str
    tax_id_number: str
    trade_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    dentist_ids: List[UUID] = Field(default_factory=list)


class ClinicDetailsResponse(ClinicResponse):
    bank_accounts: List[BankAccountResponse] = Field(default_factory=list)


# Dentist schemas
class DentistCreateRequest(BaseModel):
    """Schema for attaching a dentist (new or existing, matched by CPF) to a clinic."""

    tax_id_number: str = Field(description="CPF, formatted or digits only")
    legal_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    is_admin: Optional[bool] = None
    is_legal_representative: Optional[bool] = None

    def to_input(self) -> DentistInput:
        return DentistInput(
            tax_id_number=self.tax_id_number,
            legal_name=self.legal_name,
            email=self.email,
            phone=self.phone,
            is_admin=self.is_admin,
            is_legal_representative=self.is_legal_representative,
        )


class DentistUpdateRequest(BaseModel):
    legal_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None

    def to_input(self) -> DentistUpdate:
        return DentistUpdate(
            legal_name=self.legal_name, email=self.email, phone=self.phone
        )


class DentistRolesRequest(BaseModel):
    is_admin: Optional[bool] = None
    is_legal_representative: Optional[bool] = None


class DentistResponse(BaseResponse):
    id: UUID
    person_id: UUID
    legal_name: str
    tax_id_number: str
    email: Optional[str] = None
    phone: Optional[str] = None


class ClinicDentistResponse(DentistResponse):
    is_admin: bool
    is_legal_representative: bool
    started_at: Optional[datetime] = None
