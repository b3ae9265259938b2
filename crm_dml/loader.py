# ==============================================
# Record Loader
# ==============================================
#
# PURPOSE:
#   Fetch CRM records over HTTP and bulk-insert them.
#
#   The endpoint returns JSON, either a bare array of records or an
#   object with a "records" array. Field names may use CRM API
#   casing ("LastName", "AccountId"); they are converted to the
#   snake_case model fields before the records are built.
#   An "attributes" entry (CRM REST metadata) is dropped.
#
# FUNCTIONS:
# ----------
# - api_name_to_field(name: str) -> str
#       LastName → last_name, NumberOfEmployees → number_of_employees
#
# - fetch_records(url, record_type, timeout=10) -> list[Record]
#
# - load_records(store, url, record_type) -> list[Record]
#       fetch_records + one insert batch
#
# ==============================================

import re
from typing import Any

import requests

from crm_dml.records import Record
from crm_dml.storage import RecordStore

METADATA_KEYS = {"attributes"}


def api_name_to_field(name: str) -> str:
    """Convert a CRM API field name to the snake_case model field name."""
    if not name:
        return name
    name = re.sub(r'[^a-zA-Z0-9_]', '_', name)
    # Sequences of capitals: "HTMLBody" -> "HTML_Body"
    name = re.sub(r'([A-Z]+)([A-Z][a-z])', r'\1_\2', name)
    name = re.sub(r'([a-z\d])([A-Z])', r'\1_\2', name)
    name = re.sub(r'_+', '_', name.lower())
    return name.strip('_')


def parse_payload(payload: Any) -> list[dict[str, Any]]:
    if isinstance(payload, dict):
        payload = payload.get("records")
    if not isinstance(payload, list):
        raise ValueError("Expected a JSON array of records or an object with a 'records' array")
    rows = []
    for item in payload:
        if not isinstance(item, dict):
            raise ValueError(f"Record must be a JSON object, got {type(item).__name__}")
        rows.append({
            api_name_to_field(key): value
            for key, value in item.items()
            if key not in METADATA_KEYS
        })
    return rows


def fetch_records(url: str, record_type: type[Record], timeout: float = 10) -> list[Record]:
    """
    GET url and build one record_type instance per JSON record.

    Raises:
        requests.RequestException: HTTP or connection failure
        ValueError: payload is not a list of objects
        ValidationFailure: a record is missing required fields
    """
    response = requests.get(url, timeout=timeout)
    response.raise_for_status()
    return [record_type.from_fields(row) for row in parse_payload(response.json())]


def load_records(store: RecordStore, url: str, record_type: type[Record]) -> list[Record]:
    records = fetch_records(url, record_type)
    if records:
        # source-system ids are dropped, the store assigns new ones
        for record in records:
            record.id = None
        store.insert(records)
    return records
