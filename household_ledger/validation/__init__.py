"""Form validation package."""

from household_ledger.validation.validator import CLEAR_ALL_CONFIRMATION, FormValidator

__all__ = ["CLEAR_ALL_CONFIRMATION", "FormValidator"]
