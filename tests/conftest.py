# ==============================================
# Pytest Configuration and Fixtures
# ==============================================
#
# Shared fixtures for all tests.
#
# FIXTURES:
# ---------
# - store           → empty InMemoryRecordStore
# - unique_store    → InMemoryRecordStore with Account.name as a duplicate rule
# - exercises       → DmlExercises bound to `store`
# - clean_config    → forgets the config singleton and clears store env vars
#
# ==============================================

import pytest

from crm_dml.config import reset_config
from crm_dml.dml import DmlExercises
from crm_dml.storage import InMemoryRecordStore

CONFIG_ENV_VARS = [
    "RECORD_STORE_BACKEND",
    "STORE_MAX_BATCH_SIZE",
    "STORE_UNIQUE_FIELDS",
    "MYSQL_HOST",
    "MYSQL_PORT",
    "MYSQL_DATABASE",
    "MONGO_HOST",
    "MONGO_PORT",
    "MONGO_USER",
    "MONGO_PASSWORD",
    "RECORD_SOURCE_URL",
]


@pytest.fixture
def store():
    return InMemoryRecordStore()


@pytest.fixture
def unique_store():
    return InMemoryRecordStore(unique_fields={"Account": ["name"]})


@pytest.fixture
def exercises(store):
    return DmlExercises(store)


@pytest.fixture
def clean_config(monkeypatch):
    for name in CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    reset_config()
    yield
    reset_config()
