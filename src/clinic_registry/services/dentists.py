"""Dentist use cases: attach to clinics, roles, unlink, update, delete."""

from typing import Optional, Tuple, Union
from uuid import UUID

from ..core.enums import PersonType
from ..core.errors import NotFoundError, ValidationError
from ..core.validation import (
    ensure_valid_email,
    normalize_and_validate_tax_id,
    require_text,
    require_uuid7,
)
from ..db.models import Dentist
from ..utils.logging_config import get_logger
from .affiliations import AffiliationManager
from .context import ServiceContext
from .identity import IdentityResolver, apply_person_updates
from .pagination import Page, PageRequest, paginate
from .types import ClinicDentistView, DentistInput, DentistSummary, DentistUpdate

logger = get_logger(__name__)

IdLike = Union[str, UUID]


class DentistService:
    def __init__(self, ctx: ServiceContext):
        self.ctx = ctx

    def create_or_attach(
        self, clinic_id: IdLike, data: DentistInput
    ) -> Tuple[ClinicDentistView, bool]:
        """Resolve the dentist by CPF and open (or edit) its link to the clinic.

        Returns:
            (view, created) where created is True only when a new active link
            was inserted by this call.
        """
        clinic_id = require_uuid7(clinic_id, "clinic_id")
        normalize_and_validate_tax_id(PersonType.INDIVIDUAL, data.tax_id_number)
        require_text(data.legal_name, "legal_name")
        ensure_valid_email(data.email)

        with self.ctx.gateway.transaction() as repos:
            if repos.clinics.get_active(clinic_id) is None:
                raise NotFoundError("clinic not found")

            person = IdentityResolver(repos, self.ctx).resolve_or_create(
                PersonType.INDIVIDUAL,
                data.tax_id_number,
                data.legal_name,
                email=data.email,
                phone=data.phone,
            )
            manager = AffiliationManager(repos, self.ctx)
            dentist = manager.resolve_dentist(person)
            affiliation, created = manager.attach_or_update(
                clinic_id,
                dentist.id,
                is_admin=data.is_admin,
                is_legal_representative=data.is_legal_representative,
            )
            view = ClinicDentistView.from_link(dentist, person, affiliation)

        if created:
            logger.info(f"Attached dentist {dentist.id} to clinic {clinic_id}")
        return view, created

    def list_for_clinic(
        self,
        clinic_id: IdLike,
        limit: Union[int, str, None] = None,
        cursor: Optional[str] = None,
    ) -> Page[ClinicDentistView]:
        clinic_id = require_uuid7(clinic_id, "clinic_id")
        request = PageRequest.from_raw(
            limit,
            cursor,
            default_limit=self.ctx.default_page_limit,
            max_limit=self.ctx.max_page_limit,
        )
        with self.ctx.gateway.read() as repos:
            if repos.clinics.get_active(clinic_id) is None:
                raise NotFoundError("clinic not found")
            page = paginate(
                repos.dentists.active_query_for_clinic(clinic_id),
                Dentist.id,
                request,
                cursor_of=lambda row: row[0].id,
            )
            items = [
                ClinicDentistView.from_link(dentist, dentist.person, affiliation)
                for dentist, affiliation in page.items
            ]
        return Page(items=items, next_cursor=page.next_cursor, limit=page.limit)

    def update_roles(
        self,
        clinic_id: IdLike,
        dentist_id: IdLike,
        is_admin: Optional[bool] = None,
        is_legal_representative: Optional[bool] = None,
    ) -> ClinicDentistView:
        clinic_id = require_uuid7(clinic_id, "clinic_id")
        dentist_id = require_uuid7(dentist_id, "dentist_id")
        if is_admin is None and is_legal_representative is None:
            raise ValidationError("at least one role field must be provided")

        with self.ctx.gateway.transaction() as repos:
            dentist = repos.dentists.get_active(dentist_id)
            if dentist is None:
                raise NotFoundError("dentist not found")
            affiliation = AffiliationManager(repos, self.ctx).update_roles(
                clinic_id,
                dentist_id,
                is_admin=is_admin,
                is_legal_representative=is_legal_representative,
            )
            return ClinicDentistView.from_link(dentist, dentist.person, affiliation)

    def unlink(self, clinic_id: IdLike, dentist_id: IdLike) -> None:
        clinic_id = require_uuid7(clinic_id, "clinic_id")
        dentist_id = require_uuid7(dentist_id, "dentist_id")
        with self.ctx.gateway.transaction() as repos:
            AffiliationManager(repos, self.ctx).end(clinic_id, dentist_id)
        logger.info(f"Unlinked dentist {dentist_id} from clinic {clinic_id}")

    def update_dentist(self, dentist_id: IdLike, data: DentistUpdate) -> DentistSummary:
        dentist_id = require_uuid7(dentist_id, "dentist_id")
        if data.is_empty():
            raise ValidationError("at least one field must be provided")
        if data.legal_name is not None and not data.legal_name.strip():
            raise ValidationError("legal_name cannot be empty")
        email = ensure_valid_email(data.email)

        with self.ctx.gateway.transaction() as repos:
            dentist = repos.dentists.get_active(dentist_id)
            if dentist is None:
                raise NotFoundError("dentist not found")
            if apply_person_updates(
                dentist.person,
                self.ctx.clock,
                legal_name=data.legal_name,
                email=email,
                phone=data.phone,
            ):
                repos.session.flush()
            return DentistSummary.from_rows(dentist, dentist.person)

    def delete_dentist(self, dentist_id: IdLike) -> None:
        """End every active affiliation, then soft-delete the dentist and its person."""
        dentist_id = require_uuid7(dentist_id, "dentist_id")
        with self.ctx.gateway.transaction() as repos:
            dentist = repos.dentists.get_active(dentist_id)
            if dentist is None:
                raise NotFoundError("dentist not found")

            ended = AffiliationManager(repos, self.ctx).end_all_for_dentist(dentist.id)
            now = self.ctx.clock()
            dentist.mark_deleted(now)
            dentist.person.mark_deleted(now)
            repos.session.flush()

        logger.info(f"Deleted dentist {dentist_id} ({ended} affiliations ended)")
