# ==============================================
# InMemoryRecordStore
# ==============================================
#
# PURPOSE:
#   Process-local record store. One dict of rows per record type,
#   keyed by id. Used by the tests and as the default CLI backend.
#
# ATOMICITY:
#   _apply() works on a staged copy of the tables and swaps it in
#   only after every write, delete and duplicate rule has passed.
#
# ==============================================

from typing import Any

from crm_dml.errors import DuplicateRecord, PersistenceRejection, RecordNotFound
from crm_dml.records import Record

from .base import Delete, RecordStore, Write


class InMemoryRecordStore(RecordStore):
    backend_name = "memory"

    def __init__(self, max_batch_size: int = 10000, unique_fields=None):
        super().__init__(max_batch_size=max_batch_size, unique_fields=unique_fields)
        self._tables: dict[str, dict[str, dict[str, Any]]] = {}

    def _apply(self, operation: str, writes: list[Write], deletes: list[Delete]) -> None:
        staged = {record_type: dict(rows) for record_type, rows in self._tables.items()}

        for write in writes:
            rows = staged.setdefault(write.record_type.RECORD_TYPE, {})
            if write.created and write.record_id in rows:
                raise PersistenceRejection(operation, f"duplicate id {write.record_id}")
            if not write.created and write.record_id not in rows:
                raise RecordNotFound(write.record_type.RECORD_TYPE, write.record_id)
            rows[write.record_id] = dict(write.values)

        for delete in deletes:
            rows = staged.get(delete.record_type.RECORD_TYPE, {})
            if delete.record_id not in rows:
                raise RecordNotFound(delete.record_type.RECORD_TYPE, delete.record_id)
            del rows[delete.record_id]

        self._check_stored_duplicates(operation, staged, writes)
        self._tables = staged

    def _check_stored_duplicates(self, operation: str, staged: dict, writes: list[Write]) -> None:
        for write in writes:
            record_type = write.record_type.RECORD_TYPE
            rows = staged.get(record_type, {})
            for field_name in self.unique_fields.get(record_type, []):
                value = write.values.get(field_name)
                if value is None:
                    continue
                for other_id, other in rows.items():
                    if other_id != write.record_id and other.get(field_name) == value:
                        raise DuplicateRecord(operation, record_type, field_name, value)

    def _find(self, record_type: type[Record], criteria: dict[str, Any]) -> list[dict[str, Any]]:
        rows = self._tables.get(record_type.RECORD_TYPE, {})
        return [
            dict(rows[record_id])
            for record_id in sorted(rows)
            if all(rows[record_id].get(name) == value for name, value in criteria.items())
        ]

    def _count(self, record_type: type[Record]) -> int:
        return len(self._tables.get(record_type.RECORD_TYPE, {}))
