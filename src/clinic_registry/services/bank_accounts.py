"""Keeps every clinic at one or more active bank accounts."""

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence
from uuid import UUID

from ..core.errors import NotFoundError, ValidationError
from ..core.validation import require_text
from ..db.models import BankAccount
from ..repositories.interfaces import RepositoryContainer
from .context import ServiceContext

LAST_ACCOUNT_MESSAGE = "clinic must retain at least one active bank account"


@dataclass
class BankAccountInput:
    bank_code: str
    branch_number: str
    account_number: str


def validate_bank_accounts(accounts: Sequence[BankAccountInput]) -> List[BankAccountInput]:
    """Trim and require every field of every account."""
    cleaned = []
    for account in accounts:
        cleaned.append(
            BankAccountInput(
                bank_code=require_text(account.bank_code, "bank_code"),
                branch_number=require_text(account.branch_number, "branch_number"),
                account_number=require_text(account.account_number, "account_number"),
            )
        )
    return cleaned


class BankAccountGuard:
    """Applies account additions and removals for one clinic.

    Must run inside a write transaction. Removal takes an exclusive lock on
    the clinic row first, so two requests removing a clinic's last accounts
    cannot both pass the final count. The count is taken after every
    change in the request, so adding one account while removing the only
    existing one is accepted.
    """

    def __init__(self, repos: RepositoryContainer, ctx: ServiceContext):
        self.repos = repos
        self.ctx = ctx

    def add(self, clinic_id: UUID, accounts: Iterable[BankAccountInput]) -> List[BankAccount]:
        now = self.ctx.clock()
        created = []
        for account in validate_bank_accounts(list(accounts)):
            row = BankAccount(
                id=self.ctx.new_id(),
                clinic_id=clinic_id,
                bank_code=account.bank_code,
                branch_number=account.branch_number,
                account_number=account.account_number,
                created_at=now,
                updated_at=now,
            )
            self.repos.bank_accounts.add(row)
            created.append(row)
        return created

    def apply_changes(
        self,
        clinic_id: UUID,
        to_add: Optional[Sequence[BankAccountInput]] = None,
        to_remove_ids: Optional[Sequence[UUID]] = None,
    ) -> List[BankAccount]:
        """Add then remove accounts; raise if none would remain."""
        if to_remove_ids and not self.repos.clinics.lock_active(clinic_id):
            raise NotFoundError("clinic not found")

        created = self.add(clinic_id, to_add or [])
        if to_remove_ids:
            self._remove_locked(clinic_id, to_remove_ids)
            self.ensure_minimum(clinic_id)
        return created

    def remove(self, clinic_id: UUID, account_ids: Sequence[UUID]) -> None:
        self.apply_changes(clinic_id, to_remove_ids=account_ids)

    def ensure_minimum(self, clinic_id: UUID) -> None:
        if self.repos.bank_accounts.count_active(clinic_id) < 1:
            raise ValidationError(LAST_ACCOUNT_MESSAGE)

    def _remove_locked(self, clinic_id: UUID, account_ids: Sequence[UUID]) -> None:
        now = self.ctx.clock()
        for account_id in account_ids:
            if self.repos.bank_accounts.soft_delete(account_id, clinic_id, now) == 0:
                raise NotFoundError("bank account not found")
