"""
Data Models Package

This package contains all Pydantic models used in the Household Ledger.
All data flowing through the engine must conform to these schemas.
"""

from household_ledger.models.ledger import (
    ENTITY_MODELS,
    Asset,
    AssetDraft,
    Budget,
    BudgetDraft,
    EntityKind,
    Liability,
    LiabilityDraft,
    Person,
    RecurringRule,
    RecurringRuleDraft,
    Transaction,
    TransactionDraft,
    TransactionKind,
)
from household_ledger.models.results import (
    BudgetLine,
    BudgetProgress,
    BudgetStatus,
    BudgetSummary,
    Contributor,
    CsvExport,
    CsvImportResult,
    LoadReport,
    MonthGroup,
    MutationOutcome,
    MutationResult,
    NetWorth,
    RecurringExpansion,
    Totals,
    ValidationIssue,
    ValidationResult,
)
from household_ledger.models.view import (
    ALL,
    BudgetLineExpansion,
    DateInterval,
    DateRangePreset,
    ExpansionState,
    TransactionFilter,
    ViewContext,
)
from household_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Entities
    "ENTITY_MODELS",
    "Asset",
    "AssetDraft",
    "Budget",
    "BudgetDraft",
    "EntityKind",
    "Liability",
    "LiabilityDraft",
    "Person",
    "RecurringRule",
    "RecurringRuleDraft",
    "Transaction",
    "TransactionDraft",
    "TransactionKind",
    # Results
    "BudgetLine",
    "BudgetProgress",
    "BudgetStatus",
    "BudgetSummary",
    "Contributor",
    "CsvExport",
    "CsvImportResult",
    "LoadReport",
    "MonthGroup",
    "MutationOutcome",
    "MutationResult",
    "NetWorth",
    "RecurringExpansion",
    "Totals",
    "ValidationIssue",
    "ValidationResult",
    # View state
    "ALL",
    "BudgetLineExpansion",
    "DateInterval",
    "DateRangePreset",
    "ExpansionState",
    "TransactionFilter",
    "ViewContext",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
