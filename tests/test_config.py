# ==============================================
# Tests for Configuration and the Store Factory
# ==============================================

import pytest

from crm_dml.config import AppConfig, StoreConfig, get_config, parse_unique_fields
from crm_dml.storage import InMemoryRecordStore, MongoRecordStore, MySQLRecordStore, open_store


class TestGetConfig:
    def test_defaults(self, clean_config):
        config = get_config()
        assert config.store.backend == "memory"
        assert config.store.max_batch_size == 10000
        assert config.store.unique_fields == {}
        assert config.mysql.port == 3306
        assert config.mongo.user is None

    def test_environment_overrides(self, clean_config, monkeypatch):
        monkeypatch.setenv("RECORD_STORE_BACKEND", "MySQL")
        monkeypatch.setenv("STORE_MAX_BATCH_SIZE", "200")
        monkeypatch.setenv("STORE_UNIQUE_FIELDS", "Account.name")
        monkeypatch.setenv("MYSQL_PORT", "3307")
        config = get_config()
        assert config.store.backend == "mysql"
        assert config.store.max_batch_size == 200
        assert config.store.unique_fields == {"Account": ["name"]}
        assert config.mysql.port == 3307

    def test_singleton(self, clean_config):
        assert get_config() is get_config()

    def test_unknown_backend(self, clean_config, monkeypatch):
        monkeypatch.setenv("RECORD_STORE_BACKEND", "oracle")
        with pytest.raises(ValueError):
            get_config()


class TestParseUniqueFields:
    def test_multiple_rules(self):
        assert parse_unique_fields("Account.name, Lead.email,Account.phone") == {
            "Account": ["name", "phone"],
            "Lead": ["email"],
        }

    def test_blank(self):
        assert parse_unique_fields("") == {}

    def test_malformed(self):
        with pytest.raises(ValueError):
            parse_unique_fields("Account")


class TestOpenStore:
    def test_memory_store_carries_batch_rules(self):
        config = AppConfig(store=StoreConfig(max_batch_size=5, unique_fields={"Account": ["name"]}))
        store = open_store(config)
        assert isinstance(store, InMemoryRecordStore)
        assert store.max_batch_size == 5
        assert store.unique_fields == {"Account": ["name"]}

    def test_backend_override(self):
        config = AppConfig()
        assert isinstance(open_store(config, backend="mysql"), MySQLRecordStore)
        assert isinstance(open_store(config, backend="mongodb"), MongoRecordStore)

    def test_stores_are_returned_unconnected(self):
        store = open_store(AppConfig(), backend="mysql")
        assert store.connection is None

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            open_store(AppConfig(), backend="oracle")
