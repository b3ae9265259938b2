# ==============================================
# KeyMatchedLinker
# ==============================================
#
# PURPOSE:
#   Creates one parent per name, then points every child at the
#   parent whose name ends with the same character as the child's
#   key field. Parents go in with one insert batch, children with
#   one upsert batch.
#
#   Default wiring: Accounts are parents, Contacts are children,
#   Contact.last_name is matched and Contact.account_id is set.
#
# MATCH KEY:
#   The last character of a name ("Alpha A" → "A"). Names of length
#   0 or 1 are their own key. Two parents with the same key collide
#   and the later one wins the lookup slot.
#
# FAILURE:
#   Each batch is atomic. If the children batch fails after the
#   parents batch committed, the parents stay committed.
#
# ==============================================

from dataclasses import dataclass, field
from typing import Iterable, Sequence

from crm_dml.records import Account, Record
from crm_dml.storage import RecordStore


def match_key(name: str) -> str:
    """Last character of name, or the whole name when it's shorter than 2."""
    return name[-1:] if len(name) > 1 else name


@dataclass
class LinkResult:
    children: list[Record] = field(default_factory=list)
    parents: list[Record] = field(default_factory=list)
    reference_field: str = "account_id"

    def is_linked(self, child: Record) -> bool:
        """True when child references one of the parents created by this pass."""
        parent_ids = {parent.id for parent in self.parents}
        return getattr(child, self.reference_field, None) in parent_ids

    @property
    def linked(self) -> list[Record]:
        return [child for child in self.children if self.is_linked(child)]

    @property
    def unlinked(self) -> list[Record]:
        return [child for child in self.children if not self.is_linked(child)]


class KeyMatchedLinker:
    def __init__(
        self,
        store: RecordStore,
        parent_type: type[Record] = Account,
        parent_name_field: str = "name",
        child_key_field: str = "last_name",
        child_reference_field: str = "account_id",
    ):
        self.store = store
        self.parent_type = parent_type
        self.parent_name_field = parent_name_field
        self.child_key_field = child_key_field
        self.child_reference_field = child_reference_field

    def build_key_map(self, parents: Iterable[Record]) -> dict[str, str]:
        """Match key → parent id, in iteration order (last write wins)."""
        key_map: dict[str, str] = {}
        for parent in parents:
            key_map[match_key(getattr(parent, self.parent_name_field))] = parent.id
        return key_map

    def link(self, children: Iterable[Record], parent_names: Sequence[str]) -> LinkResult:
        """
        Create parents from names and link children to them by match key.

        Args:
            children: records carrying child_key_field; ids optional
            parent_names: one parent is created per name, in order

        Returns:
            LinkResult with the persisted children and parents

        Raises:
            ValidationFailure: a parent name or child is invalid
            PersistenceRejection: the store refused either batch
        """
        parents = [self.parent_type(**{self.parent_name_field: name}) for name in parent_names]
        if parents:
            self.store.insert(parents)

        children = list(children)
        key_map = self.build_key_map(parents)
        for child in children:
            parent_id = key_map.get(match_key(getattr(child, self.child_key_field) or ""))
            if parent_id is not None:
                setattr(child, self.child_reference_field, parent_id)

        if children:
            self.store.upsert(children)
        return LinkResult(children=children, parents=parents, reference_field=self.child_reference_field)


def link_by_matching_key(store: RecordStore, children: Sequence[Record], parent_names: Sequence[str]) -> LinkResult:
    """Link Contacts to new Accounts by the last character of their names."""
    return KeyMatchedLinker(store).link(children, parent_names)
