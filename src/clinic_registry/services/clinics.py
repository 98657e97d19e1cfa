"""Clinic use cases."""

from typing import List, Optional, Union
from uuid import UUID

from ..core.enums import PersonType
from ..core.errors import ConflictError, NotFoundError, ValidationError
from ..core.validation import (
    ensure_valid_email,
    normalize_and_validate_tax_id,
    require_text,
    require_uuid7,
)
from ..db.models import Clinic
from ..repositories.interfaces import RepositoryContainer
from ..store.integrity_policy import ExpectedIntegrityTag
from ..store.savepoints import expected_conflict_savepoint
from ..utils.logging_config import get_logger
from .affiliations import AffiliationManager
from .bank_accounts import BankAccountGuard, validate_bank_accounts
from .context import ServiceContext
from .identity import IdentityResolver, apply_person_updates
from .pagination import Page, PageRequest, paginate
from .types import (
    BankAccountView,
    ClinicCreate,
    ClinicDetails,
    ClinicSummary,
    ClinicUpdate,
)

logger = get_logger(__name__)

IdLike = Union[str, UUID]


class ClinicService:
    """Create, read, update, list and delete clinics."""

    def __init__(self, ctx: ServiceContext):
        self.ctx = ctx

    def create_clinic(self, data: ClinicCreate) -> ClinicDetails:
        # Everything checkable without the store fails before a statement runs
        normalize_and_validate_tax_id(PersonType.COMPANY, data.tax_id_number)
        require_text(data.legal_name, "legal_name")
        ensure_valid_email(data.email)
        if not data.bank_accounts:
            raise ValidationError("bank_accounts must contain at least one account")
        accounts = validate_bank_accounts(data.bank_accounts)

        with self.ctx.gateway.transaction() as repos:
            person = IdentityResolver(repos, self.ctx).resolve_or_create(
                PersonType.COMPANY,
                data.tax_id_number,
                data.legal_name,
                email=data.email,
                phone=data.phone,
                trade_name=data.trade_name,
            )

            now = self.ctx.clock()
            clinic = Clinic(
                id=self.ctx.new_id(),
                person_id=person.id,
                person=person,
                created_at=now,
                updated_at=now,
            )
            context = {
                "operation": "create_clinic",
                "entity_type": "clinic",
                "entity_id": str(person.id),
            }
            with expected_conflict_savepoint(
                repos.session, {ExpectedIntegrityTag.CLINIC_PERSON_TAKEN}, context
            ):
                repos.clinics.add(clinic)
            if context.get("integrity_tag") is ExpectedIntegrityTag.CLINIC_PERSON_TAKEN:
                raise ConflictError("a clinic already exists for this tax_id")

            BankAccountGuard(repos, self.ctx).add(clinic.id, accounts)
            details = self._details(repos, clinic)

        logger.info(f"Created clinic {clinic.id} for person {person.id}")
        return details

    def update_clinic(self, clinic_id: IdLike, data: ClinicUpdate) -> ClinicSummary:
        clinic_id = require_uuid7(clinic_id, "clinic_id")
        if data.is_empty():
            raise ValidationError("at least one field must be provided")
        if data.legal_name is not None and not data.legal_name.strip():
            raise ValidationError("legal_name cannot be empty")
        email = ensure_valid_email(data.email)

        to_add = None
        if data.bank_accounts is not None:
            if not data.bank_accounts:
                raise ValidationError(
                    "bank_accounts must contain at least one account when provided"
                )
            to_add = validate_bank_accounts(data.bank_accounts)

        to_remove: Optional[List[UUID]] = None
        if data.bank_account_ids_to_remove is not None:
            if not data.bank_account_ids_to_remove:
                raise ValidationError(
                    "bank_account_ids_to_remove must contain at least one id when provided"
                )
            to_remove = [
                require_uuid7(raw, f"bank_account_ids_to_remove[{idx}]")
                for idx, raw in enumerate(data.bank_account_ids_to_remove)
            ]

        with self.ctx.gateway.transaction() as repos:
            clinic = repos.clinics.get_active(clinic_id)
            if clinic is None:
                raise NotFoundError("clinic not found")
            # Removals lock the clinic before any row is touched
            if to_remove and not repos.clinics.lock_active(clinic_id):
                raise NotFoundError("clinic not found")

            if data.touches_person() and apply_person_updates(
                clinic.person,
                self.ctx.clock,
                legal_name=data.legal_name,
                trade_name=data.trade_name,
                email=email,
                phone=data.phone,
            ):
                repos.session.flush()

            guard = BankAccountGuard(repos, self.ctx)
            guard.apply_changes(clinic.id, to_add=to_add, to_remove_ids=to_remove)
            guard.ensure_minimum(clinic.id)

            summary = self._summary(repos, clinic)

        logger.info(f"Updated clinic {clinic_id}")
        return summary

    def get_clinic(self, clinic_id: IdLike) -> ClinicDetails:
        clinic_id = require_uuid7(clinic_id, "clinic_id")
        with self.ctx.gateway.read() as repos:
            clinic = repos.clinics.get_active(clinic_id)
            if clinic is None:
                raise NotFoundError("clinic not found")
            return self._details(repos, clinic)

    def list_clinics(
        self, limit: Union[int, str, None] = None, cursor: Optional[str] = None
    ) -> Page[ClinicSummary]:
        request = PageRequest.from_raw(
            limit,
            cursor,
            default_limit=self.ctx.default_page_limit,
            max_limit=self.ctx.max_page_limit,
        )
        with self.ctx.gateway.read() as repos:
            page = paginate(repos.clinics.active_query(), Clinic.id, request)
            dentist_ids = repos.affiliations.active_dentist_ids([c.id for c in page.items])
            items = [
                self._summary(repos, clinic, dentist_ids[clinic.id])
                for clinic in page.items
            ]
        return Page(items=items, next_cursor=page.next_cursor, limit=page.limit)

    def delete_clinic(self, clinic_id: IdLike) -> None:
        """End every active affiliation, then soft-delete the clinic and its person."""
        clinic_id = require_uuid7(clinic_id, "clinic_id")
        with self.ctx.gateway.transaction() as repos:
            clinic = repos.clinics.get_active(clinic_id)
            if clinic is None:
                raise NotFoundError("clinic not found")

            ended = AffiliationManager(repos, self.ctx).end_all_for_clinic(clinic.id)
            now = self.ctx.clock()
            clinic.mark_deleted(now)
            clinic.person.mark_deleted(now)
            repos.session.flush()

        logger.info(f"Deleted clinic {clinic_id} ({ended} affiliations ended)")

    def _summary(
        self,
        repos: RepositoryContainer,
        clinic: Clinic,
        dentist_ids: Optional[List[UUID]] = None,
    ) -> ClinicSummary:
        if dentist_ids is None:
            dentist_ids = repos.affiliations.active_dentist_ids([clinic.id])[clinic.id]
        person = clinic.person
        return ClinicSummary(
            id=clinic.id,
            person_id=person.id,
            legal_name=person.legal_name,
            tax_id_number=person.tax_id_number,
            trade_name=person.trade_name,
            email=person.email,
            phone=person.phone,
            dentist_ids=list(dentist_ids),
        )

    def _details(self, repos: RepositoryContainer, clinic: Clinic) -> ClinicDetails:
        summary = self._summary(repos, clinic)
        return ClinicDetails(
            **vars(summary),
            bank_accounts=[
                BankAccountView.from_row(row)
                for row in repos.bank_accounts.list_active(clinic.id)
            ],
        )
