# ==============================================
# Tests for the Record Store batch rules
# ==============================================
#
# Exercised through InMemoryRecordStore, which carries the shared
# RecordStore logic plus its own staged-commit atomicity.
# ==============================================

from datetime import date

import pytest

from crm_dml.errors import (
    DuplicateRecord,
    PersistenceRejection,
    RecordNotFound,
    ValidationFailure,
)
from crm_dml.records import Account, Contact, Lead, Opportunity
from crm_dml.storage import InMemoryRecordStore


class TestInsert:
    def test_assigns_ids_in_order(self, store):
        accounts = [Account(name="Acme"), Account(name="Globex")]
        ids = store.insert(accounts)
        assert ids == ["001000000000000001", "001000000000000002"]
        assert [a.id for a in accounts] == ids
        assert store.count(Account) == 2

    def test_rejects_record_with_id(self, store):
        account = Account(name="Acme")
        store.insert([account])
        with pytest.raises(PersistenceRejection):
            store.insert([account])
        assert store.count(Account) == 1

    def test_mixed_record_types_in_one_batch(self, store):
        store.insert([Account(name="Acme"), Lead(last_name="Doe", company="Acme")])
        assert store.count(Account) == 1
        assert store.count(Lead) == 1

    def test_empty_batch(self, store):
        assert store.insert([]) == []


class TestAtomicity:
    def test_invalid_record_fails_whole_batch(self, store):
        bad = Account(name="Initech")
        bad.name = ""
        batch = [Account(name="Acme"), bad, Account(name="Globex")]
        with pytest.raises(ValidationFailure):
            store.insert(batch)
        assert store.count(Account) == 0
        assert all(account.id is None for account in batch)

    def test_failed_batch_does_not_consume_ids(self, store):
        bad = Account(name="Initech")
        bad.name = None
        with pytest.raises(ValidationFailure):
            store.insert([Account(name="Acme"), bad])
        account = Account(name="Acme")
        store.insert([account])
        assert account.id == "001000000000000001"

    def test_batch_size_limit(self):
        store = InMemoryRecordStore(max_batch_size=2)
        with pytest.raises(PersistenceRejection) as excinfo:
            store.insert([Account(name=f"A{n}") for n in range(3)])
        assert excinfo.value.operation == "insert"
        assert store.count(Account) == 0

    def test_same_record_twice(self, store):
        account = Account(name="Acme")
        with pytest.raises(PersistenceRejection):
            store.insert([account, account])
        assert account.id is None

    def test_missing_update_target_rolls_back_batch(self, store):
        acme = Account(name="Acme")
        store.insert([acme])
        acme.industry = "Manufacturing"
        ghost = Account(name="Ghost", id="001000000000000999")
        with pytest.raises(RecordNotFound):
            store.update([acme, ghost])
        assert store.get(Account, acme.id).industry is None


class TestDuplicateRules:
    def test_duplicate_inside_batch(self, unique_store):
        with pytest.raises(DuplicateRecord) as excinfo:
            unique_store.insert([Account(name="Acme"), Account(name="Acme")])
        assert excinfo.value.field == "name"
        assert unique_store.count(Account) == 0

    def test_duplicate_against_stored_record(self, unique_store):
        unique_store.insert([Account(name="Acme")])
        with pytest.raises(DuplicateRecord):
            unique_store.insert([Account(name="Globex"), Account(name="Acme")])
        assert unique_store.count(Account) == 1

    def test_updating_a_record_keeps_its_own_value(self, unique_store):
        account = Account(name="Acme")
        unique_store.insert([account])
        account.industry = "Energy"
        unique_store.update([account])
        assert unique_store.get(Account, account.id).industry == "Energy"

    def test_rules_apply_per_record_type(self, unique_store):
        unique_store.insert([Account(name="Acme"), Opportunity(name="Acme", stage_name="Prospecting", close_date=date(2026, 1, 1))])
        unique_store.insert([Opportunity(name="Acme", stage_name="Prospecting", close_date=date(2026, 1, 1))])
        assert unique_store.count(Opportunity) == 2


class TestUpdateUpsertDelete:
    def test_update_requires_id(self, store):
        with pytest.raises(PersistenceRejection):
            store.update([Account(name="Acme")])

    def test_upsert_creates_and_updates(self, store):
        existing = Contact(last_name="Doe")
        store.insert([existing])
        existing.email = "doe@example.com"
        fresh = Contact(last_name="Roe")
        store.upsert([existing, fresh])
        assert store.count(Contact) == 2
        assert store.get(Contact, existing.id).email == "doe@example.com"
        assert fresh.id == "003000000000000002"

    def test_upsert_is_idempotent(self, store):
        contacts = [Contact(last_name="Doe"), Contact(last_name="Roe")]
        first = store.upsert(contacts)
        second = store.upsert(contacts)
        assert first == second
        assert store.count(Contact) == 2

    def test_delete(self, store):
        leads = [Lead(last_name="Doe", company="Acme"), Lead(last_name="Roe", company="Acme")]
        store.insert(leads)
        assert store.delete(leads) == 2
        assert store.count(Lead) == 0

    def test_delete_missing_record_deletes_nothing(self, store):
        lead = Lead(last_name="Doe", company="Acme")
        store.insert([lead])
        ghost = Lead(last_name="Ghost", company="Acme", id="00Q000000000000999")
        with pytest.raises(RecordNotFound):
            store.delete([lead, ghost])
        assert store.count(Lead) == 1

    def test_delete_requires_id(self, store):
        with pytest.raises(PersistenceRejection):
            store.delete([Lead(last_name="Doe", company="Acme")])


class TestQuery:
    def test_query_by_field(self, store):
        store.insert([Contact(last_name="Doe", first_name="Jane"), Contact(last_name="Doe"), Contact(last_name="Roe")])
        assert [c.first_name for c in store.query(Contact, last_name="Doe")] == ["Jane", None]

    def test_query_none_matches_unset(self, store):
        store.insert([Contact(last_name="Doe", account_id="001000000000000001"), Contact(last_name="Roe")])
        assert [c.last_name for c in store.query(Contact, account_id=None)] == ["Roe"]

    def test_query_by_date(self, store):
        store.insert([Opportunity(name="Deal", stage_name="Prospecting", close_date=date(2026, 6, 30))])
        found = store.query(Opportunity, close_date=date(2026, 6, 30))
        assert found[0].close_date == date(2026, 6, 30)

    def test_query_returns_copies(self, store):
        account = Account(name="Acme")
        store.insert([account])
        fetched = store.get(Account, account.id)
        fetched.name = "Changed"
        assert store.get(Account, account.id).name == "Acme"

    def test_unknown_field(self, store):
        with pytest.raises(ValueError):
            store.query(Account, colour="red")

    def test_get_missing(self, store):
        with pytest.raises(RecordNotFound):
            store.get(Account, "001000000000000001")
