# ==============================================
# Errors
# ==============================================
#
# PURPOSE:
#   Exception hierarchy shared by the record models, the record
#   stores and the DML operations.
#
# HIERARCHY:
# ----------
#   DmlError
#   ├── ValidationFailure      → record fails a required-field / type check
#   ├── PersistenceRejection   → store refused the whole batch
#   │   ├── DuplicateRecord    → a duplicate rule was hit
#   │   └── StoreNotConnected  → backend used before connect()
#   └── RecordNotFound         → lookup / update / delete target missing
#
# ==============================================

from typing import Any, Optional


class DmlError(Exception):
    """Base exception for every DML failure."""
    pass


class ValidationFailure(DmlError):
    """A record failed validation before reaching storage."""

    def __init__(self, record_type: str, fields: list[str], message: Optional[str] = None):
        self.record_type = record_type
        self.fields = list(fields)
        if message is None:
            message = f"{record_type}: required fields missing: {', '.join(self.fields)}"
        super().__init__(message)


class PersistenceRejection(DmlError):
    """The record store refused a batch. Nothing from that batch was written."""

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__(f"{operation} rejected: {reason}")


class DuplicateRecord(PersistenceRejection):
    """A duplicate rule rejected the batch."""

    def __init__(self, operation: str, record_type: str, field: str, value: Any):
        self.record_type = record_type
        self.field = field
        self.value = value
        super().__init__(
            operation,
            f"duplicate {record_type}.{field} value {value!r}"
        )


class StoreNotConnected(PersistenceRejection):
    def __init__(self, backend: str):
        super().__init__("connect", f"{backend} store is not connected")


class RecordNotFound(DmlError):
    """record_id holds whatever the lookup used: an id, or a name for by-name queries."""

    def __init__(self, record_type: str, record_id: Optional[str]):
        self.record_type = record_type
        self.record_id = record_id
        super().__init__(f"{record_type} {record_id!r} not found")
