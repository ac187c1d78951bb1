"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a hosted database later
2. Use in-memory storage for testing and offline sessions
3. Keep the ledger engine decoupled from storage implementation

The interface is intentionally simple - we're not building a full ORM.
Backends exchange plain row dicts (see ``payloads``); turning rows into
models is the caller's job. Every backend instance is bound to exactly one
household and never returns or touches another household's rows.
"""

from abc import ABC, abstractmethod
from typing import Any
from uuid import UUID

from household_ledger.errors import LedgerError
from household_ledger.models.audit import AuditEvent
from household_ledger.models.ledger import EntityKind


Row = dict[str, Any]


class HouseholdStorageInterface(ABC):
    """
    Abstract interface for the five household collections.

    Any storage implementation (Google Sheets, PostgreSQL, etc.)
    must implement these methods.
    """

    @property
    @abstractmethod
    def household_id(self) -> str:
        """The household every call is scoped to."""
        pass

    @abstractmethod
    async def load(self, kind: EntityKind) -> list[Row]:
        """
        Load every row of one collection for this household.

        Raises:
            StorageError: If the collection cannot be read
        """
        pass

    async def load_transactions(self) -> list[Row]:
        return await self.load(EntityKind.TRANSACTION)

    async def load_budgets(self) -> list[Row]:
        return await self.load(EntityKind.BUDGET)

    async def load_assets(self) -> list[Row]:
        return await self.load(EntityKind.ASSET)

    async def load_liabilities(self) -> list[Row]:
        return await self.load(EntityKind.LIABILITY)

    async def load_recurring_rules(self) -> list[Row]:
        return await self.load(EntityKind.RECURRING_RULE)

    @abstractmethod
    async def insert(self, kind: EntityKind, payload: Row) -> Row:
        """
        Insert one row.

        Args:
            kind: Target collection
            payload: Insert payload, carrying household_id and created_by

        Returns:
            The stored row, including its assigned ``id``

        Raises:
            StorageError: If the backend refuses the write
        """
        pass

    @abstractmethod
    async def insert_many(self, kind: EntityKind, payloads: list[Row]) -> list[Row]:
        """
        Insert several rows in one call.

        Either every row is stored or none is.

        Returns:
            The stored rows, in payload order
        """
        pass

    @abstractmethod
    async def update(self, kind: EntityKind, entity_id: UUID, payload: Row) -> Row:
        """
        Replace the mutable fields of one row.

        Returns:
            The stored row after the update

        Raises:
            NotFoundError: If no row with this id exists in the household
            StorageError: If the backend refuses the write
        """
        pass

    @abstractmethod
    async def delete(self, kind: EntityKind, entity_id: UUID) -> bool:
        """
        Delete one row by id.

        Returns:
            True if a row was deleted, False if it did not exist
        """
        pass

    @abstractmethod
    async def clear_all(self) -> None:
        """Delete every row of every collection for this household."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Args:
            event: The audit event to log

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one CSV import).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(LedgerError):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
