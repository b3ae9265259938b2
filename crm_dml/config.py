# ==============================================
# Configuration Management
# ==============================================
#
# PURPOSE:
#   Load all configuration from environment variables / .env file.
#   Provides typed config objects to the stores, loader and CLI.
#
# CLASSES:
# --------
# - MySQLConfig (dataclass)
#     host: str          (default "localhost")
#     port: int          (default 3306)
#     user: str          (default "root")
#     password: str      (default "root")
#     database: str      (default "crm_dml")
#
# - MongoConfig (dataclass)
#     host: str          (default "localhost")
#     port: int          (default 27017)
#     user: str | None   (default None)
#     password: str | None (default None)
#     database: str      (default "crm_dml")
#
# - StoreConfig (dataclass)
#     backend: str                      (default "memory")
#     max_batch_size: int               (default 10000)
#     unique_fields: dict[str, list[str]] (default {})
#
# - AppConfig (dataclass)
#     mysql: MySQLConfig
#     mongo: MongoConfig
#     store: StoreConfig
#     record_source_url: str (default "http://127.0.0.1:8000/records")
#
# FUNCTIONS:
# ----------
# - get_config() -> AppConfig
#     Load .env using python-dotenv, construct AppConfig.
#     Returns the same singleton on repeated calls.
#
# - reset_config() -> None
#     Forget the singleton (tests, CLI overrides).
#
# USAGE:
# ------
#   from crm_dml.config import get_config
#   config = get_config()
#   print(config.store.backend)
#
# ==============================================

import os
from dataclasses import dataclass, field
from typing import Optional
from pathlib import Path

from dotenv import load_dotenv

BACKENDS = ("memory", "mysql", "mongodb")


@dataclass
class MySQLConfig:
    """MySQL database configuration."""
    host: str = "localhost"
    port: int = 3306
    user: str = "root"
    password: str = "root"
    database: str = "crm_dml"


@dataclass
class MongoConfig:
    """MongoDB database configuration."""
    host: str = "localhost"
    port: int = 27017
    user: Optional[str] = None
    password: Optional[str] = None
    database: str = "crm_dml"


@dataclass
class StoreConfig:
    """Record store selection and batch rules."""
    backend: str = "memory"
    max_batch_size: int = 10000
    unique_fields: dict[str, list[str]] = field(default_factory=dict)


@dataclass
class AppConfig:
    """Main application configuration."""
    mysql: MySQLConfig = field(default_factory=MySQLConfig)
    mongo: MongoConfig = field(default_factory=MongoConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    record_source_url: str = "http://127.0.0.1:8000/records"


# Singleton instance
_config_instance: Optional[AppConfig] = None


def parse_unique_fields(raw: str) -> dict[str, list[str]]:
    """
    Parse duplicate rules written as "Account.name,Lead.email".

    Raises:
        ValueError: for an entry that is not "Type.field"
    """
    rules: dict[str, list[str]] = {}
    for entry in raw.split(","):
        entry = entry.strip()
        if not entry:
            continue
        record_type, sep, field_name = entry.partition(".")
        if not sep or not record_type or not field_name:
            raise ValueError(f"Invalid duplicate rule {entry!r}, expected Type.field")
        rules.setdefault(record_type, []).append(field_name)
    return rules


def get_config() -> AppConfig:
    """
    Load configuration from environment variables / .env file.
    Returns the same singleton instance on repeated calls.

    Returns:
        AppConfig: Application configuration
    """
    global _config_instance

    if _config_instance is not None:
        return _config_instance

    # Load .env file from project root
    env_path = Path(__file__).parent.parent / ".env"
    load_dotenv(dotenv_path=env_path)

    mysql_config = MySQLConfig(
        host=os.getenv("MYSQL_HOST", "localhost"),
        port=int(os.getenv("MYSQL_PORT", "3306")),
        user=os.getenv("MYSQL_USER", "root"),
        password=os.getenv("MYSQL_PASSWORD", "root"),
        database=os.getenv("MYSQL_DATABASE", "crm_dml")
    )

    mongo_config = MongoConfig(
        host=os.getenv("MONGO_HOST", "localhost"),
        port=int(os.getenv("MONGO_PORT", "27017")),
        user=os.getenv("MONGO_USER") or None,
        password=os.getenv("MONGO_PASSWORD") or None,
        database=os.getenv("MONGO_DATABASE", "crm_dml")
    )

    backend = os.getenv("RECORD_STORE_BACKEND", "memory").lower()
    if backend not in BACKENDS:
        raise ValueError(f"RECORD_STORE_BACKEND must be one of {BACKENDS}, got {backend!r}")

    store_config = StoreConfig(
        backend=backend,
        max_batch_size=int(os.getenv("STORE_MAX_BATCH_SIZE", "10000")),
        unique_fields=parse_unique_fields(os.getenv("STORE_UNIQUE_FIELDS", ""))
    )

    _config_instance = AppConfig(
        mysql=mysql_config,
        mongo=mongo_config,
        store=store_config,
        record_source_url=os.getenv("RECORD_SOURCE_URL", "http://127.0.0.1:8000/records")
    )

    return _config_instance


def reset_config() -> None:
    global _config_instance
    _config_instance = None
