"""
In-Memory Storage Implementation

Reference backends for tests and offline sessions. They keep rows exactly
the way a remote backend would (flat dicts, household scoped, ids assigned
on insert) so the ledger cannot tell the difference.

Failures can be injected per operation to exercise rejected writes and
partial loads:

    storage.inject_failure("load", "permission denied", kind=EntityKind.RECURRING_RULE)
    storage.inject_failure("insert", "violates check constraint")
"""

import copy
from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from household_ledger.models.audit import AuditEvent
from household_ledger.models.ledger import EntityKind
from household_ledger.services.storage.interface import (
    AuditStorageInterface,
    HouseholdStorageInterface,
    NotFoundError,
    Row,
    StorageError,
)
from household_ledger.services.storage.payloads import IDENTITY_FIELDS


class InMemoryHouseholdStorage(HouseholdStorageInterface):
    """
    Household storage backed by plain dicts.

    Several instances may share one ``tables`` dict to model two households
    (or two sessions) on the same backend.
    """

    def __init__(
        self,
        household_id: str = "household-1",
        tables: Optional[dict[EntityKind, list[Row]]] = None,
    ):
        self._household_id = household_id
        self._tables = tables if tables is not None else {kind: [] for kind in EntityKind}
        self._failures: dict[tuple[str, Optional[EntityKind]], str] = {}
        self.calls: list[tuple[str, Optional[EntityKind]]] = []

    @property
    def household_id(self) -> str:
        return self._household_id

    # =========================================================================
    # FAILURE INJECTION
    # =========================================================================

    def inject_failure(
        self,
        operation: str,
        message: str,
        kind: Optional[EntityKind] = None,
    ) -> None:
        """Make ``operation`` (optionally only for ``kind``) raise StorageError."""
        self._failures[(operation, kind)] = message

    def clear_failures(self) -> None:
        self._failures.clear()

    def _check(self, operation: str, kind: Optional[EntityKind] = None) -> None:
        self.calls.append((operation, kind))
        message = self._failures.get((operation, kind)) or self._failures.get((operation, None))
        if message:
            raise StorageError(message)

    # =========================================================================
    # ROWS
    # =========================================================================

    def rows(self, kind: EntityKind) -> list[Row]:
        """This household's rows of one collection (copies)."""
        return [
            copy.deepcopy(row)
            for row in self._tables.setdefault(kind, [])
            if row.get("household_id") == self._household_id
        ]

    def _find(self, kind: EntityKind, entity_id: UUID) -> Optional[Row]:
        for row in self._tables.setdefault(kind, []):
            if row.get("id") == str(entity_id) and row.get("household_id") == self._household_id:
                return row
        return None

    def _new_row(self, payload: Row) -> Row:
        if payload.get("household_id") != self._household_id:
            raise StorageError("new row violates row-level security policy for household")
        row = copy.deepcopy(payload)
        row["id"] = str(uuid4())
        row["created_at"] = datetime.utcnow().isoformat()
        return row

    async def load(self, kind: EntityKind) -> list[Row]:
        self._check("load", kind)
        return self.rows(kind)

    async def insert(self, kind: EntityKind, payload: Row) -> Row:
        self._check("insert", kind)
        row = self._new_row(payload)
        self._tables.setdefault(kind, []).append(row)
        return copy.deepcopy(row)

    async def insert_many(self, kind: EntityKind, payloads: list[Row]) -> list[Row]:
        self._check("insert_many", kind)
        # Build every row first so a bad payload stores nothing
        new_rows = [self._new_row(payload) for payload in payloads]
        self._tables.setdefault(kind, []).extend(new_rows)
        return [copy.deepcopy(row) for row in new_rows]

    async def update(self, kind: EntityKind, entity_id: UUID, payload: Row) -> Row:
        self._check("update", kind)
        row = self._find(kind, entity_id)
        if row is None:
            raise NotFoundError(f"{kind.value} row not found: {entity_id}")
        for field, value in payload.items():
            if field not in IDENTITY_FIELDS:
                row[field] = copy.deepcopy(value)
        return copy.deepcopy(row)

    async def delete(self, kind: EntityKind, entity_id: UUID) -> bool:
        self._check("delete", kind)
        row = self._find(kind, entity_id)
        if row is None:
            return False
        self._tables[kind].remove(row)
        return True

    async def clear_all(self) -> None:
        self._check("clear_all")
        for kind in EntityKind:
            self._tables[kind] = [
                row for row in self._tables.setdefault(kind, [])
                if row.get("household_id") != self._household_id
            ]


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only audit log kept in a list."""

    def __init__(self):
        self.events: list[AuditEvent] = []
        self.fail_with: Optional[str] = None

    async def append_event(self, event: AuditEvent) -> bool:
        if self.fail_with:
            raise StorageError(self.fail_with)
        self.events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self.events if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = sorted(self.events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
