# ==============================================
# RECORDS
# ==============================================
#
# Typed CRM records and the id generator used by the stores.
#
# Modules:
# --------
# - models.py  → Account, Contact, Opportunity, Lead, Case
# - ids.py     → CRM-style record ids (key prefix + counter)
#
# ==============================================

from .models import (
    Record,
    Account,
    Contact,
    Opportunity,
    Lead,
    Case,
    RECORD_TYPES,
    record_type_for,
)
from .ids import IdGenerator

__all__ = [
    "Record",
    "Account",
    "Contact",
    "Opportunity",
    "Lead",
    "Case",
    "RECORD_TYPES",
    "record_type_for",
    "IdGenerator",
]
