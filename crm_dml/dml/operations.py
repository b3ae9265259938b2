# ==============================================
# DmlExercises
# ==============================================
#
# PURPOSE:
#   The short DML exercises: create a record, change one field,
#   link related records through a foreign key, bulk insert a batch
#   and delete it again. Every method is a few straight-line calls
#   on the record store it was given.
#
# CLASS: DmlExercises
# -------------------
#   Constructor:
#   ------------
#   - __init__(store: RecordStore)
#
#   Methods:
#   --------
#   - insert_account(name, **fields) -> Account
#   - insert_accounts(names) -> list[Account]
#   - update_account_field(name, field, value) -> Account
#   - upsert_account(account) -> Account
#   - insert_contact_for_account(account_name, first_name, last_name, **fields) -> Contact
#   - insert_opportunity(account, name, stage_name, close_date, amount=None) -> Opportunity
#   - update_opportunity_stage(name, stage_name) -> list[Opportunity]
#   - close_opportunities_won(account) -> list[Opportunity]
#   - insert_and_delete_leads(specs) -> int
#   - insert_and_delete_cases(specs) -> int
#   - link_contacts_to_accounts(contacts, account_names) -> LinkResult
#
# ==============================================

from datetime import date
from typing import Any, Iterable, Optional, Sequence

from crm_dml.errors import RecordNotFound
from crm_dml.records import Account, Case, Contact, Lead, Opportunity, Record
from crm_dml.storage import RecordStore

from .linker import KeyMatchedLinker, LinkResult

CLOSED_WON = "Closed Won"


class DmlExercises:
    def __init__(self, store: RecordStore):
        self.store = store

    # ---------- accounts ----------

    def insert_account(self, name: str, **fields: Any) -> Account:
        account = Account(name=name, **fields)
        self.store.insert([account])
        return account

    def insert_accounts(self, names: Iterable[str]) -> list[Account]:
        """Create one Account per name in a single batch."""
        accounts = [Account(name=name) for name in names]
        if accounts:
            self.store.insert(accounts)
        return accounts

    def update_account_field(self, name: str, field: str, value: Any) -> Account:
        """
        Set one field on the first Account called name.

        Raises:
            RecordNotFound: no Account has that name
            ValueError: Account has no such field
        """
        if field not in Account.field_names() or field == "id":
            raise ValueError(f"Account has no updatable field {field!r}")
        matches = self.store.query(Account, name=name)
        if not matches:
            raise RecordNotFound(Account.RECORD_TYPE, name)
        account = matches[0]
        setattr(account, field, value)
        self.store.update([account])
        return account

    def upsert_account(self, account: Account) -> Account:
        self.store.upsert([account])
        return account

    # ---------- related records ----------

    def insert_contact_for_account(self, account_name: str, first_name: Optional[str], last_name: str, **fields: Any) -> Contact:
        account = self.insert_account(account_name)
        contact = Contact(last_name=last_name, first_name=first_name, account_id=account.id, **fields)
        self.store.insert([contact])
        return contact

    def insert_opportunity(
        self,
        account: Account,
        name: str,
        stage_name: str,
        close_date: date,
        amount: Optional[float] = None,
    ) -> Opportunity:
        opportunity = Opportunity(
            name=name,
            stage_name=stage_name,
            close_date=close_date,
            amount=amount,
            account_id=account.id,
        )
        self.store.insert([opportunity])
        return opportunity

    def update_opportunity_stage(self, name: str, stage_name: str) -> list[Opportunity]:
        """Move every Opportunity called name to stage_name in one batch."""
        opportunities = self.store.query(Opportunity, name=name)
        if not opportunities:
            raise RecordNotFound(Opportunity.RECORD_TYPE, name)
        for opportunity in opportunities:
            opportunity.stage_name = stage_name
        self.store.update(opportunities)
        return opportunities

    def close_opportunities_won(self, account: Account) -> list[Opportunity]:
        opportunities = self.store.query(Opportunity, account_id=account.id)
        for opportunity in opportunities:
            opportunity.stage_name = CLOSED_WON
            opportunity.probability = 100
        if opportunities:
            self.store.update(opportunities)
        return opportunities

    # ---------- bulk insert then delete ----------

    def insert_and_delete_leads(self, specs: Iterable[dict[str, Any]]) -> int:
        return self._insert_and_delete(Lead, specs)

    def insert_and_delete_cases(self, specs: Iterable[dict[str, Any]]) -> int:
        return self._insert_and_delete(Case, specs)

    def _insert_and_delete(self, record_type: type[Record], specs: Iterable[dict[str, Any]]) -> int:
        records = [record_type(**spec) for spec in specs]
        if not records:
            return 0
        self.store.insert(records)
        return self.store.delete(records)

    # ---------- linking ----------

    def link_contacts_to_accounts(self, contacts: Sequence[Contact], account_names: Sequence[str]) -> LinkResult:
        return KeyMatchedLinker(self.store).link(contacts, account_names)
