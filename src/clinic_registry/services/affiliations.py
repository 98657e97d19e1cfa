"""The single active Clinic/Dentist link: attach, edit roles, end."""

from typing import Optional, Tuple
from uuid import UUID

from ..core.errors import ConflictError, NotFoundError, ValidationError
from ..db.models import Affiliation, Dentist, Person
from ..repositories.interfaces import RepositoryContainer
from ..store.integrity_policy import ExpectedIntegrityTag
from ..store.savepoints import expected_conflict_savepoint
from .context import ServiceContext


class AffiliationManager:
    """Operates inside an open write transaction."""

    def __init__(self, repos: RepositoryContainer, ctx: ServiceContext):
        self.repos = repos
        self.ctx = ctx

    def resolve_dentist(self, person: Person) -> Dentist:
        """Find or create the active dentist bound to a person.

        A lost INSERT race is resolved by re-reading the winner's row once.
        """
        dentist = self.repos.dentists.get_active_by_person(person.id)
        if dentist is not None:
            return dentist

        now = self.ctx.clock()
        dentist = Dentist(
            id=self.ctx.new_id(), person_id=person.id, created_at=now, updated_at=now
        )
        context = {
            "operation": "create_dentist",
            "entity_type": "dentist",
            "entity_id": str(person.id),
        }
        with expected_conflict_savepoint(
            self.repos.session, {ExpectedIntegrityTag.DENTIST_PERSON_TAKEN}, context
        ):
            self.repos.dentists.add(dentist)

        if context.get("integrity_tag") is ExpectedIntegrityTag.DENTIST_PERSON_TAKEN:
            dentist = self.repos.dentists.get_active_by_person(person.id)
            if dentist is None:
                raise ConflictError("dentist for this person was removed concurrently")
        return dentist

    def attach_or_update(
        self,
        clinic_id: UUID,
        dentist_id: UUID,
        is_admin: Optional[bool] = None,
        is_legal_representative: Optional[bool] = None,
    ) -> Tuple[Affiliation, bool]:
        """Open the link or edit the roles of the existing one.

        Returns:
            (affiliation, created) where created is True only when this call
            inserted the row without losing a race.
        """
        affiliation = self.repos.affiliations.get_active(clinic_id, dentist_id)
        if affiliation is not None:
            self._apply_roles(affiliation, is_admin, is_legal_representative)
            return affiliation, False

        now = self.ctx.clock()
        affiliation = Affiliation(
            id=self.ctx.new_id(),
            clinic_id=clinic_id,
            dentist_id=dentist_id,
            is_admin=bool(is_admin),
            is_legal_representative=bool(is_legal_representative),
            started_at=now,
            created_at=now,
            updated_at=now,
        )
        context = {
            "operation": "attach_dentist",
            "entity_type": "affiliation",
            "entity_id": f"{clinic_id}:{dentist_id}",
        }
        with expected_conflict_savepoint(
            self.repos.session, {ExpectedIntegrityTag.ACTIVE_AFFILIATION_EXISTS}, context
        ):
            self.repos.affiliations.add(affiliation)

        if context.get("integrity_tag") is not ExpectedIntegrityTag.ACTIVE_AFFILIATION_EXISTS:
            return affiliation, True

        # A concurrent attach won; our flags become an update of its row
        affiliation = self.repos.affiliations.get_active(clinic_id, dentist_id)
        if affiliation is None:
            raise NotFoundError("active link ended concurrently")
        self._apply_roles(affiliation, is_admin, is_legal_representative)
        return affiliation, False

    def update_roles(
        self,
        clinic_id: UUID,
        dentist_id: UUID,
        is_admin: Optional[bool] = None,
        is_legal_representative: Optional[bool] = None,
    ) -> Affiliation:
        if is_admin is None and is_legal_representative is None:
            raise ValidationError("at least one field must be provided")
        affiliation = self.repos.affiliations.get_active(clinic_id, dentist_id)
        if affiliation is None:
            raise NotFoundError("dentist is not linked to this clinic")
        self._apply_roles(affiliation, is_admin, is_legal_representative)
        return affiliation

    def end(self, clinic_id: UUID, dentist_id: UUID) -> None:
        """End the active link, refusing to leave a dentist without any clinic."""
        if self.repos.affiliations.get_active(clinic_id, dentist_id) is None:
            raise NotFoundError("dentist is not linked to this clinic")

        # Serializes concurrent unlinks of the same dentist from different clinics
        if not self.repos.dentists.lock_active(dentist_id):
            raise NotFoundError("dentist not found")

        if self.repos.affiliations.count_active_for_dentist(dentist_id) <= 1:
            raise ConflictError("cannot unlink dentist from the last active clinic")

        affected = self.repos.affiliations.end_active(clinic_id, dentist_id, self.ctx.clock())
        if affected == 0:
            raise NotFoundError("dentist is not linked to this clinic")

    def end_all_for_clinic(self, clinic_id: UUID) -> int:
        return self.repos.affiliations.end_all_for_clinic(clinic_id, self.ctx.clock())

    def end_all_for_dentist(self, dentist_id: UUID) -> int:
        return self.repos.affiliations.end_all_for_dentist(dentist_id, self.ctx.clock())

    def _apply_roles(
        self,
        affiliation: Affiliation,
        is_admin: Optional[bool],
        is_legal_representative: Optional[bool],
    ) -> None:
        changed = False
        if is_admin is not None and affiliation.is_admin != is_admin:
            affiliation.is_admin = is_admin
            changed = True
        if (
            is_legal_representative is not None
            and affiliation.is_legal_representative != is_legal_representative
        ):
            affiliation.is_legal_representative = is_legal_representative
            changed = True
        if changed:
            affiliation.updated_at = self.ctx.clock()
            self.repos.session.flush()
