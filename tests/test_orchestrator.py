"""
Integration tests for the household session.

Storage is the in-memory backend with failure injection; every rejected
command is checked to leave the collections exactly as they were.
"""

from datetime import date
from decimal import Decimal

import pytest

from household_ledger.audit import AuditLogger
from household_ledger.config import LedgerSettings
from household_ledger.errors import LedgerError
from household_ledger.models import (
    AuditEventType,
    EntityKind,
    MutationOutcome,
    Person,
    TransactionFilter,
)
from household_ledger.orchestrator import HouseholdLedger, create_ledger
from household_ledger.services.storage import StorageError
from household_ledger.validation import CLEAR_ALL_CONFIRMATION

TODAY = date(2024, 12, 15)

CSV_TEXT = (
    "Date,Description,Amount,Type,Category,Person\n"
    "2024-12-01,Salary,5000,income,Income,you\n"
    "2024-12-03,Groceries,250,expense,Food,joint"
)


def tx_form(**overrides):
    form = {
        "date": "2024-12-03",
        "description": "Groceries",
        "amount": "250",
        "category": "Food",
        "kind": "expense",
        "person": "joint",
    }
    form.update(overrides)
    return form


def event_types(audit_storage):
    return [e.event_type for e in audit_storage.events]


class TestEntityCommands:
    """Tests for add, update and delete."""

    @pytest.mark.asyncio
    async def test_add_transaction(self, ledger, storage):
        """Test that an accepted insert is persisted and applied."""
        result = await ledger.add_transaction(tx_form())

        assert result.applied
        assert ledger.transactions == [result.entity]
        row = storage.rows(EntityKind.TRANSACTION)[0]
        assert row["id"] == str(result.entity.id)
        assert row["household_id"] == "household-1"
        assert row["created_by"] == "user-a"
        assert result.entity.created_by == "user-a"

    @pytest.mark.asyncio
    async def test_invalid_form_never_reaches_storage(self, ledger, storage, audit_storage):
        """Test that validation errors reject before any storage call."""
        result = await ledger.add_transaction(tx_form(amount="abc"))

        assert result.outcome == MutationOutcome.REJECTED
        assert result.issues[0].field == "amount"
        assert storage.calls == []
        assert ledger.transactions == []
        assert event_types(audit_storage) == [AuditEventType.VALIDATION_FAILED]

    @pytest.mark.asyncio
    async def test_refused_insert_leaves_state(self, ledger, storage, audit_storage):
        """Test that a storage refusal is surfaced verbatim and nothing is appended."""
        storage.inject_failure("insert", "new row violates check constraint \"amount_positive\"")

        result = await ledger.add_transaction(tx_form())

        assert result.outcome == MutationOutcome.REJECTED
        assert result.message == "new row violates check constraint \"amount_positive\""
        assert ledger.transactions == []
        assert event_types(audit_storage) == [AuditEventType.WRITE_REJECTED]

    @pytest.mark.asyncio
    async def test_update_preserves_id(self, ledger, storage):
        """Test that an edit replaces the fields and keeps the id."""
        created = (await ledger.add_transaction(tx_form())).entity

        result = await ledger.update_transaction(created.id, tx_form(amount="300", person="wife"))

        assert result.applied
        updated = ledger.transactions[0]
        assert updated.id == created.id
        assert updated.amount == Decimal("300")
        assert updated.person == Person.PARTNER_B
        assert updated.created_by == "user-a"
        assert storage.rows(EntityKind.TRANSACTION)[0]["amount"] == "300"

    @pytest.mark.asyncio
    async def test_refused_update_leaves_state(self, ledger, storage):
        """Test that a refused update keeps the old values."""
        created = (await ledger.add_transaction(tx_form())).entity
        storage.inject_failure("update", "permission denied for table transactions")

        result = await ledger.update_transaction(created.id, tx_form(amount="300"))

        assert result.message == "permission denied for table transactions"
        assert ledger.transactions == [created]

    @pytest.mark.asyncio
    async def test_update_unknown_id(self, ledger, validator, settings):
        """Test that updating something that is not loaded is rejected."""
        elsewhere = HouseholdLedger(validator=validator, settings=settings)
        other = (await elsewhere.add_transaction(tx_form())).entity

        result = await ledger.update_transaction(other.id, tx_form())
        assert result.outcome == MutationOutcome.REJECTED

    @pytest.mark.asyncio
    async def test_delete(self, ledger, storage):
        """Test delete removes the entity locally and in storage."""
        asset = (await ledger.add_asset({"name": "Car", "value": "9000"})).entity

        result = await ledger.delete(EntityKind.ASSET, asset.id)

        assert result.applied
        assert ledger.assets == []
        assert storage.rows(EntityKind.ASSET) == []

    @pytest.mark.asyncio
    async def test_refused_delete_leaves_state(self, ledger, storage):
        """Test that a refused delete keeps the entity."""
        liability = (await ledger.add_liability({"name": "Mortgage", "value": "200000"})).entity
        storage.inject_failure("delete", "permission denied")

        result = await ledger.delete(EntityKind.LIABILITY, liability.id)

        assert result.outcome == MutationOutcome.REJECTED
        assert ledger.liabilities == [liability]

    @pytest.mark.asyncio
    async def test_delete_of_row_gone_from_storage(self, ledger, storage, validator, settings, audit_storage):
        """Test that deleting a row another session already removed is rejected."""
        asset = (await ledger.add_asset({"name": "Car", "value": "9000"})).entity
        elsewhere = HouseholdLedger(storage=storage, validator=validator, settings=settings)
        await elsewhere.load()
        assert (await elsewhere.delete(EntityKind.ASSET, asset.id)).applied

        result = await ledger.delete(EntityKind.ASSET, asset.id)

        assert result.outcome == MutationOutcome.REJECTED
        assert "not found" in result.message
        assert ledger.assets == [asset]
        assert AuditEventType.WRITE_REJECTED in event_types(audit_storage)

    @pytest.mark.asyncio
    async def test_add_budget_switches_view_month(self, ledger, storage):
        """Test that a new budget is stored with a full date and shown."""
        result = await ledger.add_budget({"category": "Food", "amount": "300", "month": "2024-11"})

        assert result.entity.month == "2024-11"
        assert storage.rows(EntityKind.BUDGET)[0]["month"] == "2024-11-01"
        assert ledger.context.budget_view_month == "2024-11"

    @pytest.mark.asyncio
    async def test_toggle_recurring_active(self, ledger, storage):
        """Test pausing and resuming a recurring rule."""
        rule = (await ledger.add_recurring_rule({"description": "Rent", "amount": "900"})).entity

        result = await ledger.toggle_recurring_active(rule.id)

        assert result.applied
        assert ledger.recurring_rules[0].active is False
        assert ledger.recurring_rules[0].id == rule.id
        assert storage.rows(EntityKind.RECURRING_RULE)[0]["active"] is False

    @pytest.mark.asyncio
    async def test_clear_all(self, ledger, storage, audit_storage):
        """Test that clearing needs the phrase and then empties everything."""
        await ledger.add_transaction(tx_form())
        await ledger.add_asset({"name": "Car", "value": "9000"})

        rejected = await ledger.clear_all("yes")
        assert rejected.outcome == MutationOutcome.REJECTED
        assert len(ledger.transactions) == 1

        result = await ledger.clear_all(CLEAR_ALL_CONFIRMATION)
        assert result.applied
        assert ledger.transactions == [] and ledger.assets == []
        assert storage.rows(EntityKind.TRANSACTION) == []
        assert AuditEventType.DATA_CLEARED in event_types(audit_storage)


class TestLoad:
    """Tests for the initial bulk load."""

    @pytest.mark.asyncio
    async def test_partial_load(self, ledger, storage, audit_storage, validator, settings):
        """Test that one failing collection does not block the others."""
        await ledger.add_transaction(tx_form())
        await ledger.add_budget({"category": "Food", "amount": "300", "month": "2024-12"})
        await ledger.add_recurring_rule({"description": "Rent", "amount": "900"})
        storage.inject_failure("load", "permission denied for table recurring_rules", kind=EntityKind.RECURRING_RULE)

        session = HouseholdLedger(
            storage=storage,
            audit_logger=AuditLogger(audit_storage),
            validator=validator,
            settings=settings,
        )
        report = await session.load()

        assert not report.complete
        assert report.failures == {EntityKind.RECURRING_RULE: "permission denied for table recurring_rules"}
        assert report.loaded[EntityKind.TRANSACTION] == 1
        assert report.loaded[EntityKind.BUDGET] == 1
        assert session.recurring_rules == []
        assert session.budgets[0].month == "2024-12"
        assert AuditEventType.COLLECTION_LOAD_FAILED in event_types(audit_storage)

    @pytest.mark.asyncio
    async def test_unexpected_load_error_propagates(self, ledger, storage):
        """Test that only storage errors are turned into load failures."""
        async def broken(kind):
            raise RuntimeError("bug")

        storage.load = broken
        with pytest.raises(RuntimeError):
            await ledger.load()

    @pytest.mark.asyncio
    async def test_offline_load(self, offline_ledger):
        """Test that an offline session loads nothing and reports no failures."""
        report = await offline_ledger.load()
        assert report.complete
        assert report.loaded == {}


class TestCsvCommands:
    """Tests for CSV import and export."""

    @pytest.mark.asyncio
    async def test_import(self, ledger, storage, audit_storage):
        """Test that a good file is persisted in one call."""
        result = await ledger.import_csv(CSV_TEXT)

        assert result.applied
        assert result.message == "Imported 2 transaction(s)."
        assert len(ledger.transactions) == 2
        assert storage.calls == [("insert_many", EntityKind.TRANSACTION)]
        assert AuditEventType.CSV_IMPORTED in event_types(audit_storage)

    @pytest.mark.asyncio
    async def test_malformed_file_rejected(self, ledger, storage, audit_storage):
        """Test that a file missing Person imports nothing."""
        result = await ledger.import_csv("Date,Description,Amount,Type,Category\n2024-12-01,X,1,expense,Food\n")

        assert result.outcome == MutationOutcome.REJECTED
        assert "Missing columns: Person." in result.message
        assert "Date,Description,Amount,Type,Category,Person" in result.message
        assert storage.calls == []
        assert ledger.transactions == []
        assert event_types(audit_storage) == [AuditEventType.CSV_REJECTED]

    @pytest.mark.asyncio
    async def test_refused_import_appends_nothing(self, ledger, storage):
        """Test that a refused bulk insert leaves the collection untouched."""
        storage.inject_failure("insert_many", "permission denied")

        result = await ledger.import_csv(CSV_TEXT)

        assert result.outcome == MutationOutcome.REJECTED
        assert result.message == "permission denied"
        assert ledger.transactions == []

    @pytest.mark.asyncio
    async def test_file_too_large(self, storage, validator):
        """Test the upload size limit."""
        session = HouseholdLedger(storage=storage, validator=validator, settings=LedgerSettings(max_csv_size_kb=1))
        big = CSV_TEXT + "\n2024-12-03,Groceries,250,expense,Food,joint" * 40

        result = await session.import_csv(big)
        assert result.outcome == MutationOutcome.REJECTED
        assert result.issues[0].issue_type == "too_large"

    @pytest.mark.asyncio
    async def test_export(self, ledger):
        """Test export of the person-scoped transactions, whatever the date range."""
        await ledger.import_csv(CSV_TEXT)
        await ledger.add_transaction(tx_form(date="2023-01-05", description="Old", person="you"))
        await ledger.add_transaction(tx_form(description="Gift", person="wife"))
        ledger.context.person = Person.PARTNER_A

        export = await ledger.export_csv(today=TODAY)

        assert export.filename == "transactions-you-2024-12-15.csv"
        assert export.count == 3
        assert "Gift" not in export.content
        assert export.content.startswith("Date,Description,Amount,Type,Category,Person\r\n")

    @pytest.mark.asyncio
    async def test_export_nothing(self, ledger):
        """Test that an empty export is None."""
        assert await ledger.export_csv(today=TODAY) is None


class TestRecurringCommand:
    """Tests for apply_recurring."""

    @pytest.mark.asyncio
    async def test_no_rules(self, ledger):
        """Test the distinct no-rules result."""
        result = await ledger.apply_recurring("2024-12")
        assert result.outcome == MutationOutcome.UNCHANGED
        assert result.message == "No recurring transactions defined yet."

    @pytest.mark.asyncio
    async def test_apply_twice(self, ledger, storage, audit_storage):
        """Test that the second run for the same month adds nothing."""
        await ledger.add_recurring_rule({"description": "Rent", "amount": "900", "day_of_month": "31"})
        await ledger.add_recurring_rule({"description": "Gym", "amount": "30", "active": False})

        first = await ledger.apply_recurring("2025-02")
        assert first.applied
        assert [t.date for t in first.entities] == ["2025-02-28"]
        assert first.message == "Added 1 recurring transaction(s) for 2025-02."

        second = await ledger.apply_recurring("2025-02")
        assert second.outcome == MutationOutcome.UNCHANGED
        assert len(ledger.transactions) == 1
        assert len(storage.rows(EntityKind.TRANSACTION)) == 1
        assert AuditEventType.RECURRING_NOTHING_TO_ADD in event_types(audit_storage)

    @pytest.mark.asyncio
    async def test_defaults_to_current_month(self, ledger):
        """Test that the target month defaults to the month of today."""
        await ledger.add_recurring_rule({"description": "Rent", "amount": "900", "day_of_month": "5"})
        result = await ledger.apply_recurring(today=TODAY)
        assert result.entities[0].date == "2024-12-05"

    @pytest.mark.asyncio
    async def test_invalid_month(self, ledger):
        """Test that an invalid target month is rejected."""
        await ledger.add_recurring_rule({"description": "Rent", "amount": "900"})
        result = await ledger.apply_recurring("2024-13")
        assert result.outcome == MutationOutcome.REJECTED

    @pytest.mark.asyncio
    async def test_refused_apply(self, ledger, storage):
        """Test that a refused bulk insert adds nothing."""
        await ledger.add_recurring_rule({"description": "Rent", "amount": "900"})
        storage.inject_failure("insert_many", "permission denied")

        result = await ledger.apply_recurring("2024-12")
        assert result.outcome == MutationOutcome.REJECTED
        assert ledger.transactions == []


class TestDerivedViews:
    """Tests for views recomputed from the session state."""

    @pytest.mark.asyncio
    async def test_table_and_dashboard(self, ledger):
        """Test person scope, table filters and the dashboard date range."""
        await ledger.import_csv(CSV_TEXT)
        await ledger.add_transaction(tx_form(date="2024-10-02", description="Cinema", category="Entertainment"))
        await ledger.add_transaction(tx_form(description="Shoes", person="wife"))
        ledger.context.person = Person.PARTNER_A

        assert len(ledger.table_rows()) == 3
        assert [g.key for g in ledger.month_groups()] == ["2024-12", "2024-10"]

        ledger.context.table_filter = TransactionFilter(kind="expense")
        assert ledger.table_totals().expenses == Decimal("500")

        totals = ledger.dashboard_totals(today=TODAY)
        assert totals.income == Decimal("5000")
        assert totals.expenses == Decimal("250")
        assert ledger.category_totals(today=TODAY) == {"Food": Decimal("250")}
        assert ledger.monthly_totals(today=TODAY) == {"2024-12": Decimal("250")}

    @pytest.mark.asyncio
    async def test_net_worth(self, ledger):
        """Test net worth over the person-scoped balance sheet."""
        await ledger.add_asset({"name": "House", "value": "300000"})
        await ledger.add_asset({"name": "Car", "value": "9000", "person": "wife"})
        await ledger.add_liability({"name": "Mortgage", "value": "200000"})
        ledger.context.person = Person.PARTNER_A

        assert ledger.net_worth().net_worth == Decimal("100000")

    @pytest.mark.asyncio
    async def test_budget_tab(self, ledger):
        """Test budget lines with rollover, auto-expansion and search."""
        await ledger.add_budget({"category": "Food", "amount": "100", "month": "2024-11"})
        await ledger.add_budget({"category": "Food", "amount": "100", "month": "2024-12"})
        housing = (await ledger.add_budget({"category": "Housing", "amount": "900", "month": "2024-12"})).entity
        await ledger.add_transaction(tx_form(date="2024-11-10", amount="40"))
        await ledger.add_transaction(tx_form(date="2024-12-10", amount="150"))
        await ledger.add_transaction(tx_form(date="2024-12-01", amount="950", category="Housing", description="Rent"))

        lines = ledger.budget_lines(today=TODAY)
        assert ledger.budget_view_month(today=TODAY) == "2024-12"
        by_category = {line.budget.category: line for line in lines}
        assert by_category["Food"].effective_percentage == Decimal("93.75")
        assert by_category["Food"].expanded is False
        assert by_category["Housing"].expanded is True
        assert ledger.expanded_budget_ids() == {housing.id}

        ledger.toggle_budget_details(housing.id)
        lines = ledger.budget_lines(today=TODAY)
        assert {line.budget.category: line for line in lines}["Housing"].expanded is False

        ledger.context.budget_search = "rent"
        assert [line.budget.category for line in ledger.budget_lines(today=TODAY)] == ["Housing"]
        assert ledger.budget_summary(today=TODAY).total_budget == Decimal("1060")

        assert [t.description for t in ledger.budget_transactions(housing.id)] == ["Rent"]
        assert ledger.top_contributors(housing.id)[0].total == Decimal("950")

    @pytest.mark.asyncio
    async def test_rollover_flag(self, ledger):
        """Test that turning rollover off shows the raw figures."""
        await ledger.add_budget({"category": "Food", "amount": "100", "month": "2024-11"})
        await ledger.add_budget({"category": "Food", "amount": "100", "month": "2024-12"})
        ledger.context.rollover_enabled = False

        line = ledger.budget_lines(today=TODAY)[0]
        assert line.effective_budget == Decimal("100")

    @pytest.mark.asyncio
    async def test_view_month_snaps(self, ledger):
        """Test that a stale view month snaps to the newest option."""
        await ledger.add_budget({"category": "Food", "amount": "100", "month": "2024-10"})
        ledger.context.budget_view_month = "2023-01"
        assert ledger.budget_view_month(today=TODAY) == "2024-10"

    @pytest.mark.asyncio
    async def test_missing_budget_is_none(self, ledger):
        """Test that the session distinguishes no budget from a zero budget."""
        await ledger.add_budget({"category": "Food", "amount": "0", "month": "2024-12"})
        assert ledger.budget_for("Food", "2024-12").amount == 0
        assert ledger.budget_for("Housing", "2024-12") is None


class TestOfflineSession:
    """Tests for sessions without storage."""

    @pytest.mark.asyncio
    async def test_commands_apply_locally(self, offline_ledger):
        """Test that an offline session generates ids and applies locally."""
        result = await offline_ledger.import_csv(CSV_TEXT)
        assert result.applied
        assert len({t.id for t in offline_ledger.transactions}) == 2

        t = offline_ledger.transactions[0]
        await offline_ledger.update_transaction(t.id, tx_form(amount="1"))
        assert offline_ledger.transactions[0].amount == Decimal("1")

    def test_create_ledger_without_storage(self):
        """Test the factory with storage turned off."""
        session = create_ledger(use_storage=False)
        assert session.offline

    def test_create_ledger_falls_back_when_unconfigured(self, monkeypatch):
        """Test that missing Google Sheets settings give an offline session."""
        monkeypatch.delenv("GOOGLE_SHEETS_CREDENTIALS_PATH", raising=False)
        monkeypatch.delenv("GOOGLE_SHEETS_SPREADSHEET_ID", raising=False)

        session = create_ledger(household_id="household-1", created_by="user-a")
        assert session.offline
        assert session.created_by == "user-a"


class TestErrors:
    """Tests for the exception hierarchy."""

    def test_storage_error_is_ledger_error(self):
        """Test that storage refusals share the package base exception."""
        assert issubclass(StorageError, LedgerError)
