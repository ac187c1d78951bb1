"""
Shared fixtures for Household Ledger tests.

No test reaches the network: storage is the in-memory backend, and the
Google Sheets backend is driven through a fake spreadsheet.
"""

from decimal import Decimal

import pytest

from household_ledger.audit import AuditLogger
from household_ledger.config import LedgerSettings
from household_ledger.models import (
    Asset,
    Budget,
    Liability,
    Person,
    RecurringRule,
    Transaction,
    TransactionKind,
)
from household_ledger.orchestrator import HouseholdLedger
from household_ledger.services.storage import InMemoryAuditStorage, InMemoryHouseholdStorage
from household_ledger.validation import FormValidator

CATEGORIES = ["Food", "Transportation", "Housing", "Entertainment", "Utilities", "Other"]


def make_tx(
    date: str,
    amount,
    kind: str = "expense",
    category: str = "Food",
    description: str = "",
    person: str = "joint",
) -> Transaction:
    return Transaction(
        date=date,
        description=description,
        category=category,
        amount=Decimal(str(amount)),
        kind=TransactionKind(kind),
        person=Person(person),
    )


def make_budget(category: str, amount, month: str, person: str = "joint") -> Budget:
    return Budget(category=category, amount=Decimal(str(amount)), month=month, person=Person(person))


def make_rule(
    description: str,
    amount,
    day_of_month: int = 1,
    kind: str = "expense",
    category: str = "Housing",
    person: str = "joint",
    active: bool = True,
) -> RecurringRule:
    return RecurringRule(
        description=description,
        category=category,
        amount=Decimal(str(amount)),
        kind=TransactionKind(kind),
        person=Person(person),
        day_of_month=day_of_month,
        active=active,
    )


def make_asset(name: str, value, person: str = "joint") -> Asset:
    return Asset(name=name, value=Decimal(str(value)), person=Person(person))


def make_liability(name: str, value, person: str = "joint") -> Liability:
    return Liability(name=name, value=Decimal(str(value)), person=Person(person))


@pytest.fixture
def settings() -> LedgerSettings:
    return LedgerSettings(categories=",".join(CATEGORIES))


@pytest.fixture
def validator() -> FormValidator:
    return FormValidator(CATEGORIES)


@pytest.fixture
def storage() -> InMemoryHouseholdStorage:
    return InMemoryHouseholdStorage(household_id="household-1")


@pytest.fixture
def audit_storage() -> InMemoryAuditStorage:
    return InMemoryAuditStorage()


@pytest.fixture
def ledger(storage, audit_storage, validator, settings) -> HouseholdLedger:
    return HouseholdLedger(
        storage=storage,
        audit_logger=AuditLogger(audit_storage),
        validator=validator,
        created_by="user-a",
        settings=settings,
    )


@pytest.fixture
def offline_ledger(validator, settings) -> HouseholdLedger:
    return HouseholdLedger(validator=validator, settings=settings)
