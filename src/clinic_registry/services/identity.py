"""Find-or-create of Person records keyed by normalized tax id."""

from datetime import datetime
from typing import Callable, Optional

from ..core.enums import PersonType, TaxIdType
from ..core.errors import ConflictError
from ..core.validation import (
    clean_optional,
    ensure_valid_email,
    normalize_and_validate_tax_id,
    require_text,
)
from ..db.models import Person
from ..repositories.interfaces import RepositoryContainer
from ..store.integrity_policy import ExpectedIntegrityTag
from ..store.savepoints import expected_conflict_savepoint
from .context import ServiceContext


class IdentityResolver:
    """Resolves a Person inside an open write transaction.

    Concurrent callers with the same tax id converge on one row: the loser
    of the INSERT race rolls back its savepoint, re-reads the winner's row
    and continues as if it had been found. That retry happens once.
    """

    def __init__(self, repos: RepositoryContainer, ctx: ServiceContext):
        self.repos = repos
        self.ctx = ctx

    def resolve_or_create(
        self,
        kind: PersonType,
        tax_id: str,
        legal_name: Optional[str],
        email: Optional[str] = None,
        phone: Optional[str] = None,
        trade_name: Optional[str] = None,
    ) -> Person:
        kind = PersonType(kind)
        tax_id_number = normalize_and_validate_tax_id(kind, tax_id)
        legal_name = require_text(legal_name, "legal_name")
        email = ensure_valid_email(email)

        person = self.repos.people.get_active_by_tax_id(tax_id_number)
        if person is None:
            person = self._insert(kind, tax_id_number, legal_name, email, phone, trade_name)
            if person is not None:
                return person
            # Lost the race: the winner's row is visible now
            person = self.repos.people.get_active_by_tax_id(tax_id_number)
            if person is None:
                raise ConflictError("person with this tax_id was removed concurrently")

        self._ensure_kind(person, kind)
        if apply_person_updates(
            person,
            self.ctx.clock,
            legal_name=legal_name,
            trade_name=trade_name,
            email=email,
            phone=phone,
        ):
            self.repos.session.flush()
        return person

    def _insert(self, kind, tax_id_number, legal_name, email, phone, trade_name) -> Optional[Person]:
        now = self.ctx.clock()
        person = Person(
            id=self.ctx.new_id(),
            person_type=kind.value,
            tax_id_type=TaxIdType.for_person_type(kind).value,
            tax_id_number=tax_id_number,
            legal_name=legal_name,
            trade_name=clean_optional(trade_name),
            email=email,
            phone=clean_optional(phone),
            created_at=now,
            updated_at=now,
        )
        context = {
            "operation": "create_person",
            "entity_type": "person",
            "entity_id": tax_id_number,
        }
        with expected_conflict_savepoint(
            self.repos.session, {ExpectedIntegrityTag.PERSON_TAX_ID_TAKEN}, context
        ):
            self.repos.people.add(person)

        if context.get("integrity_tag") is ExpectedIntegrityTag.PERSON_TAX_ID_TAKEN:
            return None
        return person

    @staticmethod
    def _ensure_kind(person: Person, kind: PersonType) -> None:
        if person.person_type != kind.value:
            existing = PersonType(person.person_type)
            raise ConflictError(f"tax_id is linked to a {existing.value.lower()} person")


def apply_person_updates(
    person: Person,
    clock: Callable[[], datetime],
    legal_name: Optional[str] = None,
    trade_name: Optional[str] = None,
    email: Optional[str] = None,
    phone: Optional[str] = None,
) -> bool:
    """Overwrite the supplied fields; None or blank keeps the stored value.

    Email must already be validated. Returns True when anything changed.
    """
    changed = False
    for attr, value in (
        ("legal_name", clean_optional(legal_name)),
        ("trade_name", clean_optional(trade_name)),
        ("email", clean_optional(email)),
        ("phone", clean_optional(phone)),
    ):
        if value is not None and getattr(person, attr) != value:
            setattr(person, attr, value)
            changed = True
    if changed:
        person.updated_at = clock()
    return changed
