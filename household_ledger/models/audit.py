"""
Audit Models for Household Ledger

Every write that crosses the storage boundary is logged for audit purposes.
This provides:
1. Traceability of who changed what in a shared household
2. Debugging information when a write is rejected
3. A record of bulk operations (CSV imports, recurring runs)

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from household_ledger.models.ledger import EntityKind


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Initial load
    COLLECTION_LOADED = "collection_loaded"
    COLLECTION_LOAD_FAILED = "collection_load_failed"

    # Entity writes
    ENTITY_CREATED = "entity_created"
    ENTITY_UPDATED = "entity_updated"
    ENTITY_DELETED = "entity_deleted"
    WRITE_REJECTED = "write_rejected"
    VALIDATION_FAILED = "validation_failed"
    DATA_CLEARED = "data_cleared"

    # CSV exchange
    CSV_IMPORTED = "csv_imported"
    CSV_REJECTED = "csv_rejected"
    CSV_EXPORTED = "csv_exported"

    # Recurring rules
    RECURRING_APPLIED = "recurring_applied"
    RECURRING_NOTHING_TO_ADD = "recurring_nothing_to_add"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Collection the entity belongs to (e.g., 'transactions')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., all events of one import)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            str(self.entity_id) if self.entity_id else "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.entity_created(EntityKind.BUDGET, budget.id, correlation_id)
        event = AuditEventBuilder.csv_imported(12, correlation_id)
    """

    @staticmethod
    def collection_loaded(kind: EntityKind, count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.COLLECTION_LOADED,
            severity=AuditSeverity.DEBUG,
            entity_type=kind.value,
            description=f"Loaded {count} {kind.value}",
            details={"count": count},
        )

    @staticmethod
    def collection_load_failed(kind: EntityKind, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.COLLECTION_LOAD_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type=kind.value,
            description=f"Failed to load {kind.value}",
            error_message=error_message,
        )

    @staticmethod
    def entity_created(
        kind: EntityKind,
        entity_id: UUID,
        correlation_id: UUID,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTITY_CREATED,
            entity_type=kind.value,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"Created {kind.value} entry",
            details=details or {},
            is_user_action=True,
        )

    @staticmethod
    def entity_updated(
        kind: EntityKind,
        entity_id: UUID,
        correlation_id: UUID,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTITY_UPDATED,
            entity_type=kind.value,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"Updated {kind.value} entry",
            details=details or {},
            is_user_action=True,
        )

    @staticmethod
    def entity_deleted(
        kind: EntityKind,
        entity_id: UUID,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTITY_DELETED,
            entity_type=kind.value,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"Deleted {kind.value} entry",
            is_user_action=True,
        )

    @staticmethod
    def write_rejected(
        kind: Optional[EntityKind],
        operation: str,
        error_message: str,
        correlation_id: UUID,
        entity_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.WRITE_REJECTED,
            severity=AuditSeverity.ERROR,
            entity_type=kind.value if kind else None,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"Storage rejected {operation}",
            details={"operation": operation},
            error_message=error_message,
        )

    @staticmethod
    def validation_failed(
        form: str,
        issues: list[dict],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description=f"{form} form failed validation with {len(issues)} issues",
            details={"form": form, "issues": issues},
            is_user_action=True,
        )

    @staticmethod
    def data_cleared(correlation_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DATA_CLEARED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description="All household data cleared",
            is_user_action=True,
        )

    @staticmethod
    def csv_imported(count: int, skipped: int, correlation_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CSV_IMPORTED,
            entity_type=EntityKind.TRANSACTION.value,
            correlation_id=correlation_id,
            description=f"Imported {count} transaction(s) from CSV",
            details={"count": count, "skipped_rows": skipped},
            is_user_action=True,
        )

    @staticmethod
    def csv_rejected(reason: str, message: str, correlation_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CSV_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type=EntityKind.TRANSACTION.value,
            correlation_id=correlation_id,
            description=f"CSV import rejected: {reason}",
            details={"reason": reason},
            error_message=message,
            is_user_action=True,
        )

    @staticmethod
    def csv_exported(count: int, person: str, correlation_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CSV_EXPORTED,
            entity_type=EntityKind.TRANSACTION.value,
            correlation_id=correlation_id,
            description=f"Exported {count} transaction(s) for {person}",
            details={"count": count, "person": person},
            is_user_action=True,
        )

    @staticmethod
    def recurring_applied(month: str, count: int, correlation_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECURRING_APPLIED,
            entity_type=EntityKind.TRANSACTION.value,
            correlation_id=correlation_id,
            description=f"Added {count} recurring transaction(s) for {month}",
            details={"month": month, "count": count},
            is_user_action=True,
        )

    @staticmethod
    def recurring_nothing_to_add(month: str, correlation_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECURRING_NOTHING_TO_ADD,
            entity_type=EntityKind.TRANSACTION.value,
            correlation_id=correlation_id,
            description=f"No new recurring transactions to add for {month}",
            details={"month": month},
            is_user_action=True,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
