# ==============================================
# MongoRecordStore
# ==============================================
#
# PURPOSE:
#   Record store backed by MongoDB. One collection per record type
#   ("Account", "Contact", ...), record id stored as _id.
#
# ATOMICITY:
#   Every batch runs inside a multi-document transaction
#   (ClientSession.with_transaction). MongoDB only supports these on
#   a replica set or sharded cluster; a standalone server rejects
#   the batch with PersistenceRejection.
#
# CLASS: MongoRecordStore
# -----------------------
#   Stateful: holds the pymongo client.
#
#   Methods:
#   --------
#   - connect() -> None
#       Connect, ping, create unique indexes for duplicate rules,
#       seed id counters from the highest stored _id per collection.
#
#   - disconnect() -> None
#
#   - ensure_indexes(record_type) -> None
#
# ==============================================

from typing import Any, Optional

from pymongo import ASCENDING, DESCENDING
from pymongo import MongoClient as PyMongoClient
from pymongo.errors import ConnectionFailure, DuplicateKeyError, OperationFailure, PyMongoError

from crm_dml.errors import DuplicateRecord, PersistenceRejection, RecordNotFound, StoreNotConnected
from crm_dml.records import RECORD_TYPES, Record

from .base import Delete, RecordStore, Write


def to_document(values: dict[str, Any]) -> dict[str, Any]:
    # unset fields are left out so sparse unique indexes skip them
    document = {key: value for key, value in values.items() if key != "id" and value is not None}
    document["_id"] = values["id"]
    return document


def from_document(record_type: type[Record], document: dict[str, Any]) -> dict[str, Any]:
    row = {name: document.get(name) for name in record_type.field_names()}
    row["id"] = document["_id"]
    return row


class MongoRecordStore(RecordStore):
    backend_name = "mongodb"

    def __init__(self, host, port, database, user=None, password=None, max_batch_size: int = 10000, unique_fields=None):
        super().__init__(max_batch_size=max_batch_size, unique_fields=unique_fields)
        self.host = host
        self.port = port
        self.database = database
        self.user = user
        self.password = password
        self.client = None

    def connect(self) -> None:
        if self.user and self.password:
            uri = f"mongodb://{self.user}:{self.password}@{self.host}:{self.port}/{self.database}"
        else:
            uri = f"mongodb://{self.host}:{self.port}/{self.database}"
        try:
            self.client = PyMongoClient(uri)
            self.client.admin.command("ping")
        except ConnectionFailure as e:
            print(f"✗ Could not connect to MongoDB: {e}")
            raise
        except OperationFailure as e:
            print(f"✗ MongoDB authentication failed: {e}")
            raise
        for record_type in RECORD_TYPES.values():
            self.ensure_indexes(record_type)
            self._ids.seed(record_type, self._max_id(record_type))
        print(f"✓ Connected to MongoDB database '{self.database}'")

    def disconnect(self) -> None:
        if self.client:
            self.client.close()
            self.client = None
            print("✓ Disconnected from MongoDB")

    def _collection(self, record_type: type[Record]):
        if self.client is None:
            raise StoreNotConnected(self.backend_name)
        return self.client[self.database][record_type.RECORD_TYPE]

    def ensure_indexes(self, record_type: type[Record]) -> None:
        collection = self._collection(record_type)
        for field_name in self.unique_fields.get(record_type.RECORD_TYPE, []):
            # sparse: records without the field don't collide on null
            collection.create_index([(field_name, ASCENDING)], name=field_name, unique=True, sparse=True)

    def _max_id(self, record_type: type[Record]) -> Optional[str]:
        latest = self._collection(record_type).find_one({}, sort=[("_id", DESCENDING)])
        return latest["_id"] if latest else None

    def _apply(self, operation: str, writes: list[Write], deletes: list[Delete]) -> None:
        if self.client is None:
            raise StoreNotConnected(self.backend_name)

        def callback(session):
            for write in writes:
                collection = self._collection(write.record_type)
                document = to_document(write.values)
                if write.created:
                    collection.insert_one(document, session=session)
                else:
                    result = collection.replace_one({"_id": write.record_id}, document, session=session)
                    if result.matched_count == 0:
                        raise RecordNotFound(write.record_type.RECORD_TYPE, write.record_id)
            for delete in deletes:
                result = self._collection(delete.record_type).delete_one({"_id": delete.record_id}, session=session)
                if result.deleted_count == 0:
                    raise RecordNotFound(delete.record_type.RECORD_TYPE, delete.record_id)

        try:
            with self.client.start_session() as session:
                session.with_transaction(callback)
        except DuplicateKeyError as e:
            raise self._translate_duplicate(operation, writes, e) from e
        except PyMongoError as e:
            raise PersistenceRejection(operation, str(e)) from e

    def _translate_duplicate(self, operation: str, writes: list[Write], error: DuplicateKeyError) -> PersistenceRejection:
        key_value = (error.details or {}).get("keyValue") or {}
        for field_name, value in key_value.items():
            if field_name == "_id":
                return PersistenceRejection(operation, f"duplicate id {value}")
            for write in writes:
                if field_name in self.unique_fields.get(write.record_type.RECORD_TYPE, []):
                    return DuplicateRecord(operation, write.record_type.RECORD_TYPE, field_name, value)
        return PersistenceRejection(operation, str(error))

    def _find(self, record_type: type[Record], criteria: dict[str, Any]) -> list[dict[str, Any]]:
        query = {("_id" if name == "id" else name): value for name, value in criteria.items()}
        cursor = self._collection(record_type).find(query).sort("_id", ASCENDING)
        return [from_document(record_type, document) for document in cursor]

    def _count(self, record_type: type[Record]) -> int:
        return self._collection(record_type).count_documents({})
