# ==============================================
# Tests for KeyMatchedLinker
# ==============================================

import pytest

from crm_dml.dml import KeyMatchedLinker, link_by_matching_key, match_key
from crm_dml.errors import DuplicateRecord, PersistenceRejection, ValidationFailure
from crm_dml.records import Account, Contact, Lead
from crm_dml.storage import InMemoryRecordStore


class TestMatchKey:
    def test_last_character(self):
        assert match_key("Alpha A") == "A"
        assert match_key("Smith") == "h"

    def test_single_character_is_its_own_key(self):
        assert match_key("Q") == "Q"

    def test_empty_string(self):
        assert match_key("") == ""

    def test_case_sensitive(self):
        assert match_key("Alpha a") != match_key("Alpha A")


class TestLinking:
    def test_contacts_linked_by_last_character(self, store):
        children = [Contact(last_name="Smith A"), Contact(last_name="Jones B"), Contact(last_name="Nobody Z")]
        result = link_by_matching_key(store, children, ["Alpha A", "Beta B"])

        alpha, beta = result.parents
        assert alpha.name == "Alpha A"
        assert beta.name == "Beta B"
        assert children[0].account_id == alpha.id
        assert children[1].account_id == beta.id
        assert children[2].account_id is None
        assert result.unlinked == [children[2]]

    def test_link_is_persisted(self, store):
        children = [Contact(last_name="Smith A")]
        result = link_by_matching_key(store, children, ["Alpha A"])
        stored = store.get(Contact, children[0].id)
        assert stored.account_id == result.parents[0].id

    def test_children_from_generator(self, store):
        result = link_by_matching_key(store, (Contact(last_name=name) for name in ["Smith A", "Jones A"]), ["Alpha A"])
        assert len(result.children) == 2
        assert store.count(Contact) == 2
        assert all(c.account_id == result.parents[0].id for c in store.query(Contact))

    def test_one_parent_per_name_in_order(self, store):
        names = ["Gamma G", "Alpha A", "Beta B"]
        result = link_by_matching_key(store, [], names)
        assert [p.name for p in result.parents] == names
        assert [a.name for a in store.query(Account)] == names
        assert store.count(Account) == 3

    def test_later_parent_wins_key_collision(self, store):
        children = [Contact(last_name="Smith X")]
        result = link_by_matching_key(store, children, ["First X", "Second X"])
        assert children[0].account_id == result.parents[1].id
        assert store.count(Account) == 2

    def test_no_parents(self, store):
        children = [Contact(last_name="Smith A")]
        result = link_by_matching_key(store, children, [])
        assert result.parents == []
        assert children[0].account_id is None
        assert children[0].id is not None
        assert store.count(Account) == 0

    def test_unmatched_child_keeps_existing_reference(self, store):
        child = Contact(last_name="Nobody Z", account_id="001000000000000999")
        link_by_matching_key(store, [child], ["Alpha A"])
        assert child.account_id == "001000000000000999"

    def test_single_character_names(self, store):
        children = [Contact(last_name="A")]
        result = link_by_matching_key(store, children, ["A"])
        assert children[0].account_id == result.parents[0].id


class TestUpsertSemantics:
    def test_persisted_children_updated_in_place(self, store):
        children = [Contact(last_name="Smith A"), Contact(last_name="Jones B")]
        store.insert(children)
        ids = [c.id for c in children]

        link_by_matching_key(store, children, ["Alpha A", "Beta B"])

        assert [c.id for c in children] == ids
        assert store.count(Contact) == 2

    def test_relinking_creates_no_duplicate_children(self, store):
        children = [Contact(last_name="Smith A")]
        first = link_by_matching_key(store, children, ["Alpha A"])
        second = link_by_matching_key(store, children, ["Again A"])
        assert store.count(Contact) == 1
        assert children[0].account_id == second.parents[0].id
        assert children[0].account_id != first.parents[0].id

    def test_mixed_new_and_persisted_children(self, store):
        existing = Contact(last_name="Smith A")
        store.insert([existing])
        fresh = Contact(last_name="Jones B")
        link_by_matching_key(store, [existing, fresh], ["Alpha A", "Beta B"])
        assert store.count(Contact) == 2
        assert fresh.id is not None


class TestFailures:
    def test_invalid_parent_name_persists_no_parents(self, store):
        children = [Contact(last_name="Smith A")]
        with pytest.raises(ValidationFailure):
            link_by_matching_key(store, children, ["Alpha A", "", "Beta B"])
        assert store.count(Account) == 0
        assert store.count(Contact) == 0

    def test_rejected_parent_batch_persists_no_parents(self, unique_store):
        with pytest.raises(DuplicateRecord):
            link_by_matching_key(unique_store, [Contact(last_name="Smith A")], ["Alpha A", "Alpha A"])
        assert unique_store.count(Account) == 0
        assert unique_store.count(Contact) == 0

    def test_parents_stay_committed_when_children_fail(self, store):
        bad = Contact(last_name="Smith A")
        bad.last_name = ""
        with pytest.raises(ValidationFailure):
            link_by_matching_key(store, [Contact(last_name="Jones B"), bad], ["Alpha A", "Beta B"])
        assert store.count(Account) == 2
        assert store.count(Contact) == 0

    def test_oversized_child_batch(self):
        store = InMemoryRecordStore(max_batch_size=2)
        children = [Contact(last_name=f"C{n}") for n in range(3)]
        with pytest.raises(PersistenceRejection):
            link_by_matching_key(store, children, ["Alpha A"])
        assert store.count(Account) == 1
        assert store.count(Contact) == 0


class TestCustomWiring:
    def test_leads_matched_on_company(self, store):
        linker = KeyMatchedLinker(store, child_key_field="company", child_reference_field="email")
        lead = Lead(last_name="Doe", company="Initech 7")
        result = linker.link([lead], ["Parent 7"])
        assert lead.email == result.parents[0].id
        assert result.linked == [lead]

    def test_build_key_map_last_write_wins(self, store):
        parents = [Account(name="One X", id="a"), Account(name="Two X", id="b"), Account(name="Three Y", id="c")]
        assert KeyMatchedLinker(store).build_key_map(parents) == {"X": "b", "Y": "c"}
