# ==============================================
# MySQLRecordStore
# ==============================================
#
# PURPOSE:
#   Record store backed by MySQL. One table per record type,
#   one SQL transaction per batch.
#
# SCHEMA:
#   Tables are created on connect() from the record dataclasses:
#     - id                → CHAR(18) PRIMARY KEY
#     - integer fields    → BIGINT
#     - other numerics    → DOUBLE
#     - date fields       → DATE
#     - description       → TEXT
#     - everything else   → VARCHAR(255)
#   Duplicate rules become UNIQUE KEYs named after their column, so a
#   1062 "Duplicate entry" error can be traced back to the field.
#   Rules added after a table exists are ALTERed onto it on connect().
#
# CLASS: MySQLRecordStore
# -----------------------
#   Stateful: holds the connection to MySQL.
#
#   Constructor:
#   ------------
#   - __init__(host, port, user, password, database, max_batch_size, unique_fields)
#       Store connection params. Don't connect yet.
#
#   Methods:
#   --------
#   - connect() -> None
#       Connect, create database and tables if missing, seed the id
#       counters from the highest stored id per table.
#
#   - disconnect() -> None
#
#   - ensure_table(record_type) -> None
#
# ==============================================

import re
from typing import Any, Optional

import pymysql
import pymysql.cursors
from pymysql.constants import CLIENT

from crm_dml.errors import DuplicateRecord, PersistenceRejection, RecordNotFound, StoreNotConnected
from crm_dml.records import RECORD_TYPES, Record

from .base import Delete, RecordStore, Write

ER_DUP_ENTRY = 1062
DUPLICATE_ENTRY_PATTERN = re.compile(r"Duplicate entry '(?P<value>.*)' for key '(?:[^']*\.)?(?P<key>[^'.]+)'")


def table_name(record_type: type[Record]) -> str:
    return f"`{record_type.RECORD_TYPE.lower()}`"


def column_type(record_type: type[Record], field_name: str) -> str:
    if field_name == "id":
        return "CHAR(18)"
    if field_name in record_type.INTEGER_FIELDS:
        return "BIGINT"
    if field_name in record_type.NUMERIC_FIELDS:
        return "DOUBLE"
    if field_name in record_type.DATE_FIELDS:
        return "DATE"
    if field_name == "description":
        return "TEXT"
    return "VARCHAR(255)"


class MySQLRecordStore(RecordStore):
    backend_name = "mysql"

    def __init__(self, host, port, user, password, database, max_batch_size: int = 10000, unique_fields=None):
        super().__init__(max_batch_size=max_batch_size, unique_fields=unique_fields)
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.database = database
        self.connection = None

    def connect(self) -> None:
        # FOUND_ROWS makes UPDATE report matched rows, not changed rows
        self.connection = pymysql.connect(
            host=self.host,
            port=self.port,
            user=self.user,
            password=self.password,
            autocommit=False,
            client_flag=CLIENT.FOUND_ROWS,
        )
        cursor = self.connection.cursor()
        cursor.execute(f"CREATE DATABASE IF NOT EXISTS `{self.database}`")
        cursor.execute(f"USE `{self.database}`")
        cursor.close()
        for record_type in RECORD_TYPES.values():
            self.ensure_table(record_type)
            self._ids.seed(record_type, self._max_id(record_type))
        print(f"✓ Connected to MySQL database '{self.database}'")

    def disconnect(self) -> None:
        if self.connection:
            self.connection.close()
            self.connection = None
            print("✓ Disconnected from MySQL")

    def ensure_table(self, record_type: type[Record]) -> None:
        self._require_connection()
        unique = self.unique_fields.get(record_type.RECORD_TYPE, [])
        columns = []
        for field_name in record_type.field_names():
            nullable = "NOT NULL" if field_name == "id" or field_name in record_type.REQUIRED_FIELDS else "NULL"
            columns.append(f"`{field_name}` {column_type(record_type, field_name)} {nullable}")
        columns.append("PRIMARY KEY (`id`)")
        for field_name in unique:
            columns.append(f"UNIQUE KEY `{field_name}` (`{field_name}`)")
        cursor = self.connection.cursor()
        cursor.execute(f"CREATE TABLE IF NOT EXISTS {table_name(record_type)} ({', '.join(columns)})")
        if unique:
            # Table may predate the rule; add any UNIQUE KEY it is missing
            cursor.execute(
                "SELECT DISTINCT INDEX_NAME FROM INFORMATION_SCHEMA.STATISTICS "
                "WHERE TABLE_SCHEMA = %s AND TABLE_NAME = %s",
                (self.database, record_type.RECORD_TYPE.lower())
            )
            existing_keys = set(row[0] for row in cursor.fetchall())
            for field_name in unique:
                if field_name not in existing_keys:
                    cursor.execute(
                        f"ALTER TABLE {table_name(record_type)} ADD UNIQUE KEY `{field_name}` (`{field_name}`)"
                    )
        self.connection.commit()
        cursor.close()

    def _max_id(self, record_type: type[Record]) -> Optional[str]:
        cursor = self.connection.cursor()
        cursor.execute(f"SELECT MAX(`id`) FROM {table_name(record_type)}")
        row = cursor.fetchone()
        cursor.close()
        return row[0] if row else None

    def _require_connection(self) -> None:
        if self.connection is None:
            raise StoreNotConnected(self.backend_name)

    def _apply(self, operation: str, writes: list[Write], deletes: list[Delete]) -> None:
        self._require_connection()
        cursor = self.connection.cursor()
        try:
            self.connection.begin()
            for write in writes:
                columns = list(write.values.keys())
                values = tuple(write.values[column] for column in columns)
                if write.created:
                    column_names = ", ".join(f"`{column}`" for column in columns)
                    placeholders = ", ".join(["%s"] * len(columns))
                    cursor.execute(
                        f"INSERT INTO {table_name(write.record_type)} ({column_names}) VALUES ({placeholders})",
                        values
                    )
                else:
                    set_clause = ", ".join(f"`{column}` = %s" for column in columns)
                    cursor.execute(
                        f"UPDATE {table_name(write.record_type)} SET {set_clause} WHERE `id` = %s",
                        values + (write.record_id,)
                    )
                    if cursor.rowcount == 0:
                        raise RecordNotFound(write.record_type.RECORD_TYPE, write.record_id)
            for delete in deletes:
                cursor.execute(
                    f"DELETE FROM {table_name(delete.record_type)} WHERE `id` = %s",
                    (delete.record_id,)
                )
                if cursor.rowcount == 0:
                    raise RecordNotFound(delete.record_type.RECORD_TYPE, delete.record_id)
            self.connection.commit()
        except pymysql.err.IntegrityError as e:
            self.connection.rollback()
            raise self._translate_integrity_error(operation, writes, e) from e
        except pymysql.err.MySQLError as e:
            self.connection.rollback()
            raise PersistenceRejection(operation, str(e)) from e
        except BaseException:
            self.connection.rollback()
            raise
        finally:
            cursor.close()

    def _translate_integrity_error(self, operation: str, writes: list[Write], error) -> PersistenceRejection:
        code = error.args[0] if error.args else None
        message = error.args[1] if len(error.args) > 1 else str(error)
        match = DUPLICATE_ENTRY_PATTERN.search(message) if code == ER_DUP_ENTRY else None
        if match is None:
            return PersistenceRejection(operation, message)
        key, value = match.group("key"), match.group("value")
        if key == "PRIMARY":
            return PersistenceRejection(operation, f"duplicate id {value}")
        for write in writes:
            if key in self.unique_fields.get(write.record_type.RECORD_TYPE, []):
                return DuplicateRecord(operation, write.record_type.RECORD_TYPE, key, value)
        return PersistenceRejection(operation, message)

    def _find(self, record_type: type[Record], criteria: dict[str, Any]) -> list[dict[str, Any]]:
        self._require_connection()
        conditions = []
        params = []
        for name, value in criteria.items():
            if value is None:
                conditions.append(f"`{name}` IS NULL")
            else:
                conditions.append(f"`{name}` = %s")
                params.append(value)
        query = f"SELECT * FROM {table_name(record_type)}"
        if conditions:
            query += " WHERE " + " AND ".join(conditions)
        query += " ORDER BY `id`"
        cursor = self.connection.cursor(pymysql.cursors.DictCursor)
        cursor.execute(query, tuple(params))
        rows = list(cursor.fetchall())
        cursor.close()
        # Plain SELECTs open a snapshot under REPEATABLE READ; end it
        self.connection.commit()
        return rows

    def _count(self, record_type: type[Record]) -> int:
        self._require_connection()
        cursor = self.connection.cursor()
        cursor.execute(f"SELECT COUNT(*) FROM {table_name(record_type)}")
        row = cursor.fetchone()
        cursor.close()
        self.connection.commit()
        return int(row[0]) if row else 0
