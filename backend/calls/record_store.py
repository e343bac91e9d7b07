"""
In-memory `calls` record set.

Records are plain dicts keyed by external_id (the provider's call id).
Returned records are copies; callers never hold references into the store.
"""

from __future__ import annotations

import uuid
from typing import Any


CALL_RECORD_FIELDS = (
    "id",
    "external_id",
    "organization_id",
    "direction",
    "status",
    "customer_phone",
    "agent_phone",
    "started_at",
    "ended_at",
    "duration_seconds",
    "metadata",
)


class InMemoryCallRecordStore:

    def __init__(self) -> None:
        self._records: dict[str, dict[str, Any]] = {}

    def select(self, **match: Any) -> list[dict[str, Any]]:
        return [
            dict(r) for r in self._records.values()
            if all(r.get(k) == v for k, v in match.items())
        ]

    def insert(self, record: dict[str, Any]) -> dict[str, Any]:
        external_id = str(record["external_id"])
        if external_id in self._records:
            raise ValueError(f"duplicate external_id: {external_id}")

        row = {field: None for field in CALL_RECORD_FIELDS}
        row.update(record)
        row["external_id"] = external_id
        row["id"] = row["id"] or uuid.uuid4().hex
        self._records[external_id] = row
        return dict(row)

    def update(self, external_id: str, changes: dict[str, Any]) -> dict[str, Any] | None:
        row = self._records.get(str(external_id))
        if row is None:
            return None
        row.update({k: v for k, v in changes.items() if k not in ("id", "external_id")})
        return dict(row)

    def upsert(self, record: dict[str, Any]) -> dict[str, Any]:
        external_id = str(record["external_id"])
        if external_id in self._records:
            updated = self.update(external_id, record)
            assert updated is not None
            return updated
        return self.insert(record)

    def __len__(self) -> int:
        return len(self._records)
