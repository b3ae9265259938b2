# ==============================================
# Record Models
# ==============================================
#
# PURPOSE:
#   Typed records for the CRM objects the DML operations work on.
#   Each record type declares its required fields, which are checked
#   when the record is built and again by every store write.
#
# CLASSES:
# --------
# - Record            → shared behaviour (validation, dict conversion)
# - Account           → parent of Contacts / Opportunities / Cases
# - Contact           → account_id links to an Account
# - Opportunity       → name, stage_name, close_date required
# - Lead              → last_name, company required
# - Case              → subject, status, origin required
#
# FUNCTIONS:
# ----------
# - record_type_for(name) -> type[Record]
#     Case-insensitive lookup by record type name ("Account", "lead", ...)
#
# ==============================================

import copy
from dataclasses import dataclass, fields
from datetime import date
from typing import Any, ClassVar, Optional

from crm_dml.errors import ValidationFailure


class Record:
    """
    Base class for every CRM record.

    Subclasses are dataclasses that end with an ``id`` field. The id stays
    None until a record store accepts the record.
    """
    RECORD_TYPE: ClassVar[str] = ""
    KEY_PREFIX: ClassVar[str] = ""
    REQUIRED_FIELDS: ClassVar[tuple[str, ...]] = ()
    NUMERIC_FIELDS: ClassVar[tuple[str, ...]] = ()
    INTEGER_FIELDS: ClassVar[tuple[str, ...]] = ()
    DATE_FIELDS: ClassVar[tuple[str, ...]] = ()

    id: Optional[str]

    def __post_init__(self):
        for name in self.DATE_FIELDS:
            value = getattr(self, name)
            if isinstance(value, str) and value:
                try:
                    setattr(self, name, date.fromisoformat(value))
                except ValueError:
                    raise ValidationFailure(
                        self.RECORD_TYPE, [name],
                        f"{self.RECORD_TYPE}.{name}: {value!r} is not an ISO date"
                    )
        self.validate()

    def validate(self) -> None:
        """
        Check required fields and field types.

        Raises:
            ValidationFailure: listing every offending field
        """
        missing = [name for name in self.REQUIRED_FIELDS if _is_blank(getattr(self, name))]
        if missing:
            raise ValidationFailure(self.RECORD_TYPE, missing)

        bad_types = []
        for name in self.NUMERIC_FIELDS:
            value = getattr(self, name)
            if value is not None and (isinstance(value, bool) or not isinstance(value, (int, float))):
                bad_types.append(name)
        for name in self.INTEGER_FIELDS:
            value = getattr(self, name)
            if isinstance(value, float) and name not in bad_types:
                bad_types.append(name)
        for name in self.DATE_FIELDS:
            value = getattr(self, name)
            if value is not None and not isinstance(value, date):
                bad_types.append(name)
        if bad_types:
            raise ValidationFailure(
                self.RECORD_TYPE, bad_types,
                f"{self.RECORD_TYPE}: invalid data type for: {', '.join(bad_types)}"
            )

    @classmethod
    def field_names(cls) -> list[str]:
        return [f.name for f in fields(cls)]

    def to_fields(self) -> dict[str, Any]:
        """Plain dict of every field. Dates become ISO strings."""
        result = {}
        for name in self.field_names():
            value = getattr(self, name)
            if isinstance(value, date):
                value = value.isoformat()
            result[name] = value
        return result

    @classmethod
    def from_fields(cls, data: dict[str, Any]) -> "Record":
        """Build a record from a dict, ignoring keys the type doesn't declare."""
        known = set(cls.field_names())
        return cls(**{key: value for key, value in data.items() if key in known})

    def clone(self) -> "Record":
        return copy.copy(self)


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return False


@dataclass
class Account(Record):
    RECORD_TYPE: ClassVar[str] = "Account"
    KEY_PREFIX: ClassVar[str] = "001"
    REQUIRED_FIELDS: ClassVar[tuple[str, ...]] = ("name",)
    NUMERIC_FIELDS: ClassVar[tuple[str, ...]] = ("annual_revenue", "number_of_employees")
    INTEGER_FIELDS: ClassVar[tuple[str, ...]] = ("number_of_employees",)

    name: str
    industry: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    annual_revenue: Optional[float] = None
    number_of_employees: Optional[int] = None
    description: Optional[str] = None
    id: Optional[str] = None


@dataclass
class Contact(Record):
    RECORD_TYPE: ClassVar[str] = "Contact"
    KEY_PREFIX: ClassVar[str] = "003"
    REQUIRED_FIELDS: ClassVar[tuple[str, ...]] = ("last_name",)

    last_name: str
    first_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    title: Optional[str] = None
    account_id: Optional[str] = None
    id: Optional[str] = None


@dataclass
class Opportunity(Record):
    RECORD_TYPE: ClassVar[str] = "Opportunity"
    KEY_PREFIX: ClassVar[str] = "006"
    REQUIRED_FIELDS: ClassVar[tuple[str, ...]] = ("name", "stage_name", "close_date")
    NUMERIC_FIELDS: ClassVar[tuple[str, ...]] = ("amount", "probability")
    DATE_FIELDS: ClassVar[tuple[str, ...]] = ("close_date",)

    name: str
    stage_name: str
    close_date: date
    amount: Optional[float] = None
    probability: Optional[float] = None
    account_id: Optional[str] = None
    id: Optional[str] = None


@dataclass
class Lead(Record):
    RECORD_TYPE: ClassVar[str] = "Lead"
    KEY_PREFIX: ClassVar[str] = "00Q"
    REQUIRED_FIELDS: ClassVar[tuple[str, ...]] = ("last_name", "company")

    last_name: str
    company: str
    first_name: Optional[str] = None
    email: Optional[str] = None
    status: str = "Open - Not Contacted"
    lead_source: Optional[str] = None
    id: Optional[str] = None


@dataclass
class Case(Record):
    RECORD_TYPE: ClassVar[str] = "Case"
    KEY_PREFIX: ClassVar[str] = "500"
    REQUIRED_FIELDS: ClassVar[tuple[str, ...]] = ("subject", "status", "origin")

    subject: str
    status: str = "New"
    origin: str = "Web"
    priority: str = "Medium"
    description: Optional[str] = None
    account_id: Optional[str] = None
    contact_id: Optional[str] = None
    id: Optional[str] = None


RECORD_TYPES: dict[str, type[Record]] = {
    cls.RECORD_TYPE: cls for cls in (Account, Contact, Opportunity, Lead, Case)
}


def record_type_for(name: str) -> type[Record]:
    for record_type, cls in RECORD_TYPES.items():
        if record_type.lower() == name.lower():
            return cls
    raise ValueError(f"Unknown record type: {name!r}")
