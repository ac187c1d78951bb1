"""
Exceptions shared across the Household Ledger package.

Every exception the package raises on purpose derives from ``LedgerError``,
so a caller can tell an expected failure (bad CSV, refused write) apart
from a bug.
"""


class LedgerError(Exception):
    """Base exception for the household ledger."""
    pass
