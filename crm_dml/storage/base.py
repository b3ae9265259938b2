# ==============================================
# RecordStore (abstract base)
# ==============================================
#
# PURPOSE:
#   The persistence collaborator every DML operation talks to.
#   Implements the batch rules shared by all backends and leaves
#   the actual atomic write to the backend.
#
# BATCH RULES:
# ------------
#   - Every record is validated before anything is written.
#   - Batches larger than max_batch_size are rejected.
#   - The same record (or the same id) twice in one batch is rejected.
#   - Duplicate rules (unique_fields) are checked inside the batch here,
#     and against stored data by the backend.
#   - A batch is all-or-nothing: _apply() either commits every write
#     or raises and commits none.
#   - Ids are written back onto the records only after a commit.
#
# CLASS: RecordStore
# ------------------
#   Public:
#   -------
#   - insert(records) -> list[str]
#   - update(records) -> list[str]
#   - upsert(records) -> list[str]
#   - delete(records) -> int
#   - query(record_type, **criteria) -> list[Record]
#   - get(record_type, record_id) -> Record
#   - count(record_type) -> int
#
#   Backend hooks:
#   --------------
#   - _apply(operation, writes, deletes) -> None   (atomic)
#   - _find(record_type, criteria) -> list[dict]
#   - _count(record_type) -> int
#
#   Context Manager:
#   ----------------
#   - __enter__ / __exit__ call connect() / disconnect().
#
# ==============================================

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable, Optional

from crm_dml.errors import DuplicateRecord, PersistenceRejection, RecordNotFound
from crm_dml.records import IdGenerator, Record


@dataclass
class Write:
    """One row to create or replace inside a batch."""
    record_type: type[Record]
    record_id: str
    values: dict[str, Any]
    created: bool


@dataclass
class Delete:
    record_type: type[Record]
    record_id: str


class RecordStore(ABC):
    backend_name = "abstract"

    def __init__(self, max_batch_size: int = 10000, unique_fields: Optional[dict[str, list[str]]] = None):
        self.max_batch_size = max_batch_size
        self.unique_fields = {
            record_type: list(field_names)
            for record_type, field_names in (unique_fields or {}).items()
        }
        self._ids = IdGenerator()

    # ---------- connection lifecycle ----------

    def connect(self) -> None:
        pass

    def disconnect(self) -> None:
        pass

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.disconnect()

    # ---------- writes ----------

    def insert(self, records: Iterable[Record]) -> list[str]:
        """Create every record. Records must not carry an id yet."""
        return self._save("insert", records, allow_create=True, allow_update=False)

    def update(self, records: Iterable[Record]) -> list[str]:
        """Replace every record in place. Each record must have a stored id."""
        return self._save("update", records, allow_create=False, allow_update=True)

    def upsert(self, records: Iterable[Record]) -> list[str]:
        """Update records that have an id, create the ones that don't."""
        return self._save("upsert", records, allow_create=True, allow_update=True)

    def delete(self, records: Iterable[Record]) -> int:
        batch = self._check_batch("delete", records, validate=False)
        deletes = []
        for record in batch:
            if record.id is None:
                raise PersistenceRejection("delete", f"{record.RECORD_TYPE} without id cannot be deleted")
            deletes.append(Delete(type(record), record.id))
        if deletes:
            self._apply("delete", [], deletes)
        return len(deletes)

    def _save(self, operation: str, records: Iterable[Record], allow_create: bool, allow_update: bool) -> list[str]:
        batch = self._check_batch(operation, records)
        snapshot = self._ids.snapshot()
        try:
            writes = []
            for record in batch:
                record_type = type(record)
                if record.id is None:
                    if not allow_create:
                        raise PersistenceRejection(
                            operation, f"{record.RECORD_TYPE} without id cannot be updated"
                        )
                    writes.append(self._write(record, self._ids.next_id(record_type), created=True))
                else:
                    if not allow_update:
                        raise PersistenceRejection(
                            operation, f"{record.RECORD_TYPE} already has id {record.id}"
                        )
                    writes.append(self._write(record, record.id, created=False))
            self._check_batch_duplicates(operation, writes)
            if writes:
                self._apply(operation, writes, [])
        except Exception:
            self._ids.restore(snapshot)
            raise

        for record, write in zip(batch, writes):
            record.id = write.record_id
        return [write.record_id for write in writes]

    @staticmethod
    def _write(record: Record, record_id: str, created: bool) -> Write:
        values = record.to_fields()
        values["id"] = record_id
        return Write(type(record), record_id, values, created)

    def _check_batch(self, operation: str, records: Iterable[Record], validate: bool = True) -> list[Record]:
        batch = list(records)
        if len(batch) > self.max_batch_size:
            raise PersistenceRejection(
                operation, f"batch of {len(batch)} exceeds limit of {self.max_batch_size} records"
            )

        seen_objects = set()
        seen_ids = set()
        for record in batch:
            if not isinstance(record, Record):
                raise TypeError(f"Expected a Record, got {type(record).__name__}")
            if id(record) in seen_objects:
                raise PersistenceRejection(operation, f"{record.RECORD_TYPE} appears twice in the batch")
            seen_objects.add(id(record))
            if record.id is not None:
                if record.id in seen_ids:
                    raise PersistenceRejection(operation, f"id {record.id} appears twice in the batch")
                seen_ids.add(record.id)

        if validate:
            for record in batch:
                record.validate()
        return batch

    def _check_batch_duplicates(self, operation: str, writes: list[Write]) -> None:
        seen: dict[tuple[str, str, Any], str] = {}
        for write in writes:
            record_type = write.record_type.RECORD_TYPE
            for field_name in self.unique_fields.get(record_type, []):
                value = write.values.get(field_name)
                if value is None:
                    continue
                key = (record_type, field_name, value)
                if key in seen:
                    raise DuplicateRecord(operation, record_type, field_name, value)
                seen[key] = write.record_id

    # ---------- reads ----------

    def query(self, record_type: type[Record], **criteria: Any) -> list[Record]:
        """
        Fetch records of one type whose fields equal every criterion.

        Args:
            record_type: Record subclass to query
            **criteria: field=value pairs, None matches unset fields

        Returns:
            Fresh record objects in id order
        """
        known = set(record_type.field_names())
        unknown = [name for name in criteria if name not in known]
        if unknown:
            raise ValueError(f"{record_type.RECORD_TYPE} has no field(s): {', '.join(unknown)}")
        normalized = {
            name: value.isoformat() if isinstance(value, date) else value
            for name, value in criteria.items()
        }
        return [record_type.from_fields(row) for row in self._find(record_type, normalized)]

    def get(self, record_type: type[Record], record_id: str) -> Record:
        matches = self.query(record_type, id=record_id)
        if not matches:
            raise RecordNotFound(record_type.RECORD_TYPE, record_id)
        return matches[0]

    def count(self, record_type: type[Record]) -> int:
        return self._count(record_type)

    # ---------- backend hooks ----------

    @abstractmethod
    def _apply(self, operation: str, writes: list[Write], deletes: list[Delete]) -> None:
        """Commit every write and delete, or none of them."""

    @abstractmethod
    def _find(self, record_type: type[Record], criteria: dict[str, Any]) -> list[dict[str, Any]]:
        """Rows of record_type matching criteria, ordered by id."""

    def _count(self, record_type: type[Record]) -> int:
        return len(self._find(record_type, {}))
