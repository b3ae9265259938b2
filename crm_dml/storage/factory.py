# ==============================================
# Store Factory
# ==============================================
#
# open_store(config) builds the record store named by
# config.store.backend. The store is returned unconnected:
#
#   with open_store(get_config()) as store:
#       store.insert([...])
#
# ==============================================

from typing import Optional

from crm_dml.config import AppConfig, get_config

from .base import RecordStore
from .memory_store import InMemoryRecordStore
from .mongo_store import MongoRecordStore
from .mysql_store import MySQLRecordStore


def open_store(config: Optional[AppConfig] = None, backend: Optional[str] = None) -> RecordStore:
    config = config or get_config()
    backend = (backend or config.store.backend).lower()
    batch_rules = {
        "max_batch_size": config.store.max_batch_size,
        "unique_fields": config.store.unique_fields,
    }

    if backend == "memory":
        return InMemoryRecordStore(**batch_rules)
    if backend == "mysql":
        return MySQLRecordStore(
            host=config.mysql.host,
            port=config.mysql.port,
            user=config.mysql.user,
            password=config.mysql.password,
            database=config.mysql.database,
            **batch_rules
        )
    if backend == "mongodb":
        return MongoRecordStore(
            host=config.mongo.host,
            port=config.mongo.port,
            database=config.mongo.database,
            user=config.mongo.user,
            password=config.mongo.password,
            **batch_rules
        )
    raise ValueError(f"Unknown record store backend: {backend!r}")
