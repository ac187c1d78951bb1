"""
Audit Logger

DESIGN DECISION: Every write that crosses the storage boundary is logged,
whether it was applied or rejected. This provides:
1. A shared history for everyone in the household
2. The verbatim storage error when a write is refused
3. A trail linking the rows produced by one import or recurring run

The audit logger:
- Is async so it can sit next to the storage calls it describes
- Gracefully handles failures (a lost audit row never undoes a write)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from household_ledger.models.audit import AuditEvent, AuditEventBuilder
from household_ledger.models.ledger import EntityKind
from household_ledger.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The audit storage backend (for persistence and household visibility)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger()

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        elif event.severity.value == "debug":
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_collection_loaded(self, kind: EntityKind, count: int) -> None:
        await self.log(AuditEventBuilder.collection_loaded(kind, count))

    async def log_collection_load_failed(self, kind: EntityKind, error_message: str) -> None:
        """Log a collection that could not be loaded at session start."""
        await self.log(AuditEventBuilder.collection_load_failed(kind, error_message))

    async def log_entity_created(
        self,
        kind: EntityKind,
        entity_id: UUID,
        correlation_id: UUID,
        details: Optional[dict] = None,
    ) -> None:
        event = AuditEventBuilder.entity_created(
            kind=kind,
            entity_id=entity_id,
            correlation_id=correlation_id,
            details=details,
        )
        await self.log(event)

    async def log_entity_updated(
        self,
        kind: EntityKind,
        entity_id: UUID,
        correlation_id: UUID,
        details: Optional[dict] = None,
    ) -> None:
        event = AuditEventBuilder.entity_updated(
            kind=kind,
            entity_id=entity_id,
            correlation_id=correlation_id,
            details=details,
        )
        await self.log(event)

    async def log_entity_deleted(
        self,
        kind: EntityKind,
        entity_id: UUID,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.entity_deleted(
            kind=kind,
            entity_id=entity_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_write_rejected(
        self,
        kind: Optional[EntityKind],
        operation: str,
        error_message: str,
        correlation_id: UUID,
        entity_id: Optional[UUID] = None,
    ) -> None:
        """Log a write the storage backend refused. Local state was not touched."""
        event = AuditEventBuilder.write_rejected(
            kind=kind,
            operation=operation,
            error_message=error_message,
            correlation_id=correlation_id,
            entity_id=entity_id,
        )
        await self.log(event)

    async def log_validation_failed(
        self,
        form: str,
        issues: list[dict],
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.validation_failed(
            form=form,
            issues=issues,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_data_cleared(self, correlation_id: UUID) -> None:
        await self.log(AuditEventBuilder.data_cleared(correlation_id))

    async def log_csv_imported(self, count: int, skipped: int, correlation_id: UUID) -> None:
        await self.log(AuditEventBuilder.csv_imported(count, skipped, correlation_id))

    async def log_csv_rejected(self, reason: str, message: str, correlation_id: UUID) -> None:
        await self.log(AuditEventBuilder.csv_rejected(reason, message, correlation_id))

    async def log_csv_exported(self, count: int, person: str, correlation_id: UUID) -> None:
        await self.log(AuditEventBuilder.csv_exported(count, person, correlation_id))

    async def log_recurring_applied(self, month: str, count: int, correlation_id: UUID) -> None:
        await self.log(AuditEventBuilder.recurring_applied(month, count, correlation_id))

    async def log_recurring_nothing_to_add(self, month: str, correlation_id: UUID) -> None:
        await self.log(AuditEventBuilder.recurring_nothing_to_add(month, correlation_id))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., a CSV import).
    Pass it through all subsequent operations.
    """
    return uuid4()
