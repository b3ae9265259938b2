# ==============================================
# IdGenerator
# ==============================================
#
# PURPOSE:
#   Hands out CRM-style record ids: the record type's 3-character
#   key prefix followed by a 15-digit zero-padded counter.
#
#     Account #1  → "001000000000000001"
#     Lead #42    → "00Q000000000000042"
#
#   One counter per record type. seed() lets a backend continue
#   numbering after ids it already holds.
#
# ==============================================

from typing import Optional

from .models import Record

ID_LENGTH = 18


class IdGenerator:
    def __init__(self):
        self._counters: dict[str, int] = {}

    def next_id(self, record_type: type[Record]) -> str:
        count = self._counters.get(record_type.RECORD_TYPE, 0) + 1
        self._counters[record_type.RECORD_TYPE] = count
        return record_type.KEY_PREFIX + str(count).zfill(ID_LENGTH - len(record_type.KEY_PREFIX))

    def seed(self, record_type: type[Record], last_id: Optional[str]) -> None:
        """Continue numbering after last_id (no-op for None or foreign ids)."""
        if not last_id or not last_id.startswith(record_type.KEY_PREFIX):
            return
        suffix = last_id[len(record_type.KEY_PREFIX):]
        if suffix.isdigit():
            current = self._counters.get(record_type.RECORD_TYPE, 0)
            self._counters[record_type.RECORD_TYPE] = max(current, int(suffix))

    def snapshot(self) -> dict[str, int]:
        return dict(self._counters)

    def restore(self, snapshot: dict[str, int]) -> None:
        self._counters = dict(snapshot)
