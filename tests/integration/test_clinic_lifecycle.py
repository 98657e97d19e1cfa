"""Integration tests for clinic use cases and the bank account invariant."""

import pytest

from clinic_registry.core.errors import ConflictError, NotFoundError, ValidationError
from clinic_registry.core.ids import new_uuid7
from clinic_registry.db.models import BankAccount, Clinic, Person
from clinic_registry.repositories.sqlalchemy_impl import SQLAlchemyClinicRepository
from clinic_registry.services import clinics as clinics_module
from clinic_registry.services.bank_accounts import BankAccountGuard
from clinic_registry.services.identity import apply_person_updates
from clinic_registry.services.types import ClinicCreate, ClinicUpdate
from tests.conftest import bank_account
from tests.helpers.documents import cnpj_for, format_cnpj


def active_account_ids(ctx, clinic_id):
    with ctx.gateway.read() as repos:
        return [row.id for row in repos.bank_accounts.list_active(clinic_id)]


@pytest.mark.integration
class TestCreateClinic:
    def test_formatted_cnpj_example(self, clinic_service):
        details = clinic_service.create_clinic(
            ClinicCreate(
                tax_id_number="04.252.011/0001-10",
                legal_name="Sorriso Odontologia Ltda",
                trade_name="Sorriso",
                email="contato@sorriso.example.com",
                bank_accounts=[bank_account()],
            )
        )
        assert details.tax_id_number == "04252011000110"
        assert details.legal_name == "Sorriso Odontologia Ltda"
        assert details.trade_name == "Sorriso"
        assert details.dentist_ids == []
        assert len(details.bank_accounts) == 1
        assert details.bank_accounts[0].bank_code == "341"
        assert details.id.version == 7

    def test_person_is_a_company(self, ctx, make_clinic):
        details = make_clinic()
        with ctx.gateway.read() as repos:
            person = repos.session.query(Person).filter(Person.id == details.person_id).one()
            assert person.person_type == "COMPANY"
            assert person.tax_id_type == "CNPJ"

    def test_requires_bank_account(self, clinic_service):
        with pytest.raises(ValidationError) as exc_info:
            clinic_service.create_clinic(
                ClinicCreate(tax_id_number=cnpj_for(1), legal_name="X", bank_accounts=[])
            )
        assert exc_info.value.message == "bank_accounts must contain at least one account"

    def test_invalid_cnpj(self, clinic_service):
        with pytest.raises(ValidationError) as exc_info:
            clinic_service.create_clinic(
                ClinicCreate(
                    tax_id_number="04.252.011/0001-11",
                    legal_name="X",
                    bank_accounts=[bank_account()],
                )
            )
        assert exc_info.value.message == "invalid CNPJ"

    def test_blank_account_field(self, clinic_service):
        account = bank_account()
        account.bank_code = " "
        with pytest.raises(ValidationError) as exc_info:
            clinic_service.create_clinic(
                ClinicCreate(tax_id_number=cnpj_for(1), legal_name="X", bank_accounts=[account])
            )
        assert exc_info.value.message == "bank_code is required"

    def test_second_clinic_for_same_cnpj_conflicts(self, ctx, make_clinic):
        make_clinic(tax_id_number=format_cnpj(cnpj_for(90)))
        with pytest.raises(ConflictError) as exc_info:
            make_clinic(tax_id_number=cnpj_for(90))
        assert exc_info.value.message == "a clinic already exists for this tax_id"
        with ctx.gateway.read() as repos:
            assert repos.session.query(Clinic).count() == 1
            # The failed request's account rolled back with it
            assert repos.session.query(BankAccount).count() == 1


@pytest.mark.integration
class TestUpdateClinic:
    def test_requires_a_field(self, clinic_service):
        with pytest.raises(ValidationError) as exc_info:
            clinic_service.update_clinic(new_uuid7(), ClinicUpdate())
        assert exc_info.value.message == "at least one field must be provided"

    def test_updates_person_fields(self, clinic_service, make_clinic):
        clinic = make_clinic()
        summary = clinic_service.update_clinic(
            clinic.id, ClinicUpdate(trade_name="Novo Nome", phone="+55 11 3000-0000")
        )
        assert summary.trade_name == "Novo Nome"
        assert summary.phone == "+55 11 3000-0000"
        assert summary.legal_name == clinic.legal_name

    def test_empty_account_lists_rejected(self, clinic_service, make_clinic):
        clinic = make_clinic()
        with pytest.raises(ValidationError) as exc_info:
            clinic_service.update_clinic(clinic.id, ClinicUpdate(bank_accounts=[]))
        assert exc_info.value.message == (
            "bank_accounts must contain at least one account when provided"
        )
        with pytest.raises(ValidationError) as exc_info:
            clinic_service.update_clinic(clinic.id, ClinicUpdate(bank_account_ids_to_remove=[]))
        assert exc_info.value.message == (
            "bank_account_ids_to_remove must contain at least one id when provided"
        )

    def test_remove_ids_must_be_uuid7(self, clinic_service, make_clinic):
        clinic = make_clinic()
        with pytest.raises(ValidationError) as exc_info:
            clinic_service.update_clinic(
                clinic.id,
                ClinicUpdate(bank_account_ids_to_remove=[str(new_uuid7()), "bogus"]),
            )
        assert exc_info.value.message == "bank_account_ids_to_remove[1] must be a UUIDv7"

    def test_removing_last_account_rolls_back(self, ctx, clinic_service, make_clinic):
        clinic = make_clinic()
        only = clinic.bank_accounts[0].id
        with pytest.raises(ValidationError) as exc_info:
            clinic_service.update_clinic(
                clinic.id,
                ClinicUpdate(trade_name="Changed", bank_account_ids_to_remove=[str(only)]),
            )
        assert exc_info.value.message == "clinic must retain at least one active bank account"
        assert active_account_ids(ctx, clinic.id) == [only]
        # The rest of the update rolled back too
        assert clinic_service.get_clinic(clinic.id).trade_name is None

    def test_replace_only_account_in_one_request(self, ctx, clinic_service, make_clinic):
        clinic = make_clinic()
        only = clinic.bank_accounts[0].id
        clinic_service.update_clinic(
            clinic.id,
            ClinicUpdate(
                bank_accounts=[bank_account("new")],
                bank_account_ids_to_remove=[str(only)],
            ),
        )
        remaining = clinic_service.get_clinic(clinic.id).bank_accounts
        assert len(remaining) == 1
        assert remaining[0].id != only
        assert remaining[0].account_number == "12345-new"

    def test_removing_unknown_account(self, clinic_service, make_clinic):
        clinic = make_clinic()
        with pytest.raises(NotFoundError) as exc_info:
            clinic_service.update_clinic(
                clinic.id, ClinicUpdate(bank_account_ids_to_remove=[str(new_uuid7())])
            )
        assert exc_info.value.message == "bank account not found"

    def test_cannot_remove_another_clinics_account(self, ctx, clinic_service, make_clinic):
        mine, theirs = make_clinic(), make_clinic()
        clinic_service.update_clinic(mine.id, ClinicUpdate(bank_accounts=[bank_account("2")]))
        with pytest.raises(NotFoundError):
            clinic_service.update_clinic(
                mine.id,
                ClinicUpdate(bank_account_ids_to_remove=[str(theirs.bank_accounts[0].id)]),
            )
        assert len(active_account_ids(ctx, theirs.id)) == 1

    def test_unknown_clinic(self, clinic_service):
        with pytest.raises(NotFoundError) as exc_info:
            clinic_service.update_clinic(new_uuid7(), ClinicUpdate(trade_name="X"))
        assert exc_info.value.message == "clinic not found"


@pytest.mark.integration
class TestListClinics:
    def test_twenty_five_clinics_in_two_pages(self, clinic_service, make_clinic):
        created = [make_clinic().id for _ in range(25)]

        first = clinic_service.list_clinics(limit=20)
        assert [c.id for c in first.items] == created[:20]
        assert first.next_cursor == str(created[19])
        assert first.limit == 20

        second = clinic_service.list_clinics(limit=20, cursor=first.next_cursor)
        assert [c.id for c in second.items] == created[20:]
        assert second.next_cursor is None

    def test_exact_page_has_no_next_cursor(self, clinic_service, make_clinic):
        for _ in range(3):
            make_clinic()
        page = clinic_service.list_clinics(limit=3)
        assert len(page.items) == 3
        assert page.next_cursor is None

    def test_lists_dentist_ids(
        self, clinic_service, dentist_service, make_clinic, make_dentist_input
    ):
        clinic = make_clinic()
        view, _ = dentist_service.create_or_attach(clinic.id, make_dentist_input())
        page = clinic_service.list_clinics()
        assert page.items[0].dentist_ids == [view.id]

    def test_deleted_clinics_hidden(self, clinic_service, make_clinic):
        keep, gone = make_clinic(), make_clinic()
        clinic_service.delete_clinic(gone.id)
        assert [c.id for c in clinic_service.list_clinics().items] == [keep.id]


@pytest.mark.integration
class TestGetAndDeleteClinic:
    def test_get_details(self, clinic_service, make_clinic):
        clinic = make_clinic(email="clinic@example.com")
        details = clinic_service.get_clinic(str(clinic.id))
        assert details.id == clinic.id
        assert details.email == "clinic@example.com"
        assert [a.id for a in details.bank_accounts] == [a.id for a in clinic.bank_accounts]

    def test_get_rejects_non_uuid7(self, clinic_service):
        with pytest.raises(ValidationError):
            clinic_service.get_clinic("not-an-id")

    def test_delete_ends_links_and_frees_cnpj(
        self, ctx, clinic_service, dentist_service, make_clinic, make_dentist_input
    ):
        clinic = make_clinic(tax_id_number=cnpj_for(77))
        view, _ = dentist_service.create_or_attach(clinic.id, make_dentist_input())

        clinic_service.delete_clinic(clinic.id)

        with pytest.raises(NotFoundError):
            clinic_service.get_clinic(clinic.id)
        with ctx.gateway.read() as repos:
            assert repos.affiliations.count_active_for_dentist(view.id) == 0
        # Person and clinic are soft-deleted, so the CNPJ can be registered again
        again = make_clinic(tax_id_number=cnpj_for(77))
        assert again.id != clinic.id
        assert again.person_id != clinic.person_id

    def test_delete_unknown(self, clinic_service):
        with pytest.raises(NotFoundError):
            clinic_service.delete_clinic(new_uuid7())


@pytest.mark.integration
class TestBankAccountGuardRollback:
    def test_failed_removal_discards_accounts_added_with_it(
        self, ctx, clinic_service, make_clinic
    ):
        clinic = make_clinic()
        only = clinic.bank_accounts[0].id
        with pytest.raises(NotFoundError) as exc_info:
            clinic_service.update_clinic(
                clinic.id,
                ClinicUpdate(
                    bank_accounts=[bank_account("added")],
                    bank_account_ids_to_remove=[str(new_uuid7())],
                ),
            )
        assert exc_info.value.message == "bank account not found"
        assert active_account_ids(ctx, clinic.id) == [only]
        with ctx.gateway.read() as repos:
            assert repos.session.query(BankAccount).filter(
                BankAccount.clinic_id == clinic.id
            ).count() == 1

    def test_remove_entry_point(self, ctx, clinic_service, make_clinic):
        clinic = make_clinic()
        clinic_service.update_clinic(clinic.id, ClinicUpdate(bank_accounts=[bank_account("2")]))
        first, second = [a.id for a in clinic_service.get_clinic(clinic.id).bank_accounts]

        with ctx.gateway.transaction() as repos:
            BankAccountGuard(repos, ctx).remove(clinic.id, [first])
        assert active_account_ids(ctx, clinic.id) == [second]

        with pytest.raises(ValidationError) as exc_info:
            with ctx.gateway.transaction() as repos:
                BankAccountGuard(repos, ctx).remove(clinic.id, [second])
        assert exc_info.value.message == "clinic must retain at least one active bank account"
        assert active_account_ids(ctx, clinic.id) == [second]

    def test_remove_from_unknown_clinic(self, ctx):
        with pytest.raises(NotFoundError) as exc_info:
            with ctx.gateway.transaction() as repos:
                BankAccountGuard(repos, ctx).remove(new_uuid7(), [new_uuid7()])
        assert exc_info.value.message == "clinic not found"

    def test_clinic_locked_before_person_update(self, clinic_service, make_clinic, monkeypatch):
        clinic = make_clinic()
        clinic_service.update_clinic(clinic.id, ClinicUpdate(bank_accounts=[bank_account("2")]))
        events = []

        original_lock = SQLAlchemyClinicRepository.lock_active

        def record_lock(self, clinic_id):
            events.append("lock")
            return original_lock(self, clinic_id)

        def record_person_update(*args, **kwargs):
            events.append("person")
            return apply_person_updates(*args, **kwargs)

        monkeypatch.setattr(SQLAlchemyClinicRepository, "lock_active", record_lock)
        monkeypatch.setattr(clinics_module, "apply_person_updates", record_person_update)

        clinic_service.update_clinic(
            clinic.id,
            ClinicUpdate(
                trade_name="Locked First",
                bank_account_ids_to_remove=[str(clinic.bank_accounts[0].id)],
            ),
        )
        assert events[0] == "lock"
        assert "person" in events
        assert clinic_service.get_clinic(clinic.id).trade_name == "Locked First"
