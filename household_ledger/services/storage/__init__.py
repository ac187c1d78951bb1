"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Google Sheets is the shared backend; the in-memory backends serve tests and
offline sessions. Both are swappable behind the same interface.
"""

from household_ledger.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    HouseholdStorageInterface,
    NotFoundError,
    StorageError,
)
from household_ledger.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryHouseholdStorage,
)
from household_ledger.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsHouseholdStorage,
)
from household_ledger.services.storage.payloads import (
    from_row,
    from_rows,
    to_insert_payload,
    to_update_payload,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "HouseholdStorageInterface",
    # Exceptions
    "ConnectionError",
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryHouseholdStorage",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsHouseholdStorage",
    # Row translation
    "from_row",
    "from_rows",
    "to_insert_payload",
    "to_update_payload",
]
