"""
Main Orchestrator for Household Ledger

This module ties together all the components and owns the session state:
the five household collections and the view context every derived view
reads from.

DESIGN DECISION: The orchestrator enforces the boundaries:
- Raw form input is validated before anything else happens
- Local state changes only after storage has accepted the write
- A refused write leaves every collection exactly as it was
- Every command is audited, applied or not

Derived views are recomputed from the current collections on every call.
Nothing is cached, so no view can go stale after a write.
"""

import asyncio
from datetime import date
from typing import Any, Mapping, Optional, Union
from uuid import UUID

import structlog
from pydantic import BaseModel, ValidationError

from household_ledger.audit import AuditLogger, create_correlation_id
from household_ledger.config import LedgerSettings, get_settings
from household_ledger.engine import (
    auto_expand,
    budget_month_options,
    budget_summary,
    budget_transactions,
    budgets_for_month,
    build_budget_lines,
    category_expense_totals,
    compute_totals,
    date_interval_filter,
    expand_recurring,
    expanded_ids,
    filter_by_person,
    find_budget,
    group_by_month,
    monthly_expense_totals,
    net_worth,
    resolve_interval,
    resolve_view_month,
    search_budgets,
    table_filter,
    toggle,
    toggle_show_all,
    top_contributors,
)
from household_ledger.errors import LedgerError
from household_ledger.exchange import (
    CsvFormatError,
    parse_transactions_csv,
    serialize_transactions_csv,
)
from household_ledger.models import (
    ENTITY_MODELS,
    Asset,
    Budget,
    BudgetLine,
    BudgetSummary,
    Contributor,
    CsvExport,
    DateInterval,
    DateRangePreset,
    EntityKind,
    Liability,
    LoadReport,
    MonthGroup,
    MutationResult,
    NetWorth,
    Person,
    RecurringRule,
    Totals,
    Transaction,
    ValidationResult,
    ViewContext,
)
from household_ledger.months import current_month, split_month_key
from household_ledger.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsHouseholdStorage,
    HouseholdStorageInterface,
    NotFoundError,
    StorageError,
    from_row,
    from_rows,
    to_insert_payload,
    to_update_payload,
)
from household_ledger.validation import FormValidator

logger = structlog.get_logger()

Form = Mapping[str, Any]


class HouseholdLedger:
    """
    One household session.

    Holds the five collections loaded from storage and the ``ViewContext``.
    It is the only component that talks to the storage collaborator.

    With no storage configured the session is offline: commands apply
    locally with generated ids, and nothing outlives the session.
    """

    def __init__(
        self,
        storage: Optional[HouseholdStorageInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[FormValidator] = None,
        created_by: Optional[str] = None,
        settings: Optional[LedgerSettings] = None,
        context: Optional[ViewContext] = None,
    ):
        """
        Initialize a session.

        Args:
            storage: Household storage backend. None for an offline session.
            audit_logger: Audit logger. Defaults to local-only logging.
            validator: Form validator. Defaults to the configured categories.
            created_by: Signed-in identity, stamped on every insert
            settings: Ledger settings. Defaults to the environment.
            context: Initial view state. Defaults to the configured defaults.
        """
        self._settings = settings or get_settings().ledger
        self._storage = storage
        self._audit_logger = audit_logger or AuditLogger()
        self._validator = validator or FormValidator(self._settings.categories_list)
        self.created_by = created_by
        self.context = context or ViewContext(
            person=Person(self._settings.default_person),
            date_range=DateRangePreset(self._settings.default_date_range),
            rollover_enabled=self._settings.rollover_enabled,
        )

        self._collections: dict[EntityKind, list] = {kind: [] for kind in EntityKind}

    # =========================================================================
    # COLLECTIONS
    # =========================================================================

    @property
    def offline(self) -> bool:
        return self._storage is None

    @property
    def transactions(self) -> list[Transaction]:
        return list(self._collections[EntityKind.TRANSACTION])

    @property
    def budgets(self) -> list[Budget]:
        return list(self._collections[EntityKind.BUDGET])

    @property
    def assets(self) -> list[Asset]:
        return list(self._collections[EntityKind.ASSET])

    @property
    def liabilities(self) -> list[Liability]:
        return list(self._collections[EntityKind.LIABILITY])

    @property
    def recurring_rules(self) -> list[RecurringRule]:
        return list(self._collections[EntityKind.RECURRING_RULE])

    def _index_of(self, kind: EntityKind, entity_id: UUID) -> Optional[int]:
        for idx, entity in enumerate(self._collections[kind]):
            if entity.id == entity_id:
                return idx
        return None

    def get(self, kind: EntityKind, entity_id: UUID) -> Optional[BaseModel]:
        idx = self._index_of(kind, entity_id)
        return None if idx is None else self._collections[kind][idx]

    async def load(self) -> LoadReport:
        """
        Load the five collections concurrently.

        A collection that fails to load is left empty and reported; the
        other collections are loaded and usable regardless.
        """
        report = LoadReport()
        if self._storage is None:
            return report

        kinds = list(EntityKind)
        results = await asyncio.gather(
            *(self._storage.load(kind) for kind in kinds),
            return_exceptions=True,
        )

        for kind, result in zip(kinds, results):
            if isinstance(result, StorageError):
                self._collections[kind] = []
                report.failures[kind] = str(result)
                await self._audit_logger.log_collection_load_failed(kind, str(result))
                continue
            if isinstance(result, BaseException):
                raise result

            entities = from_rows(kind, result)
            self._collections[kind] = entities
            report.loaded[kind] = len(entities)
            await self._audit_logger.log_collection_loaded(kind, len(entities))

        return report

    # =========================================================================
    # WRITE PRIMITIVES
    # =========================================================================

    async def _reject_invalid(
        self,
        kind: Optional[EntityKind],
        validation: ValidationResult,
        correlation_id: UUID,
    ) -> MutationResult:
        await self._audit_logger.log_validation_failed(
            form=validation.form,
            issues=[issue.model_dump() for issue in validation.issues],
            correlation_id=correlation_id,
        )
        return MutationResult.rejected(kind, validation.summary(), validation.issues)

    def _local_entity(self, kind: EntityKind, draft: BaseModel) -> BaseModel:
        return ENTITY_MODELS[kind](**draft.model_dump(), created_by=self.created_by)

    async def _insert(
        self,
        kind: EntityKind,
        validation: ValidationResult,
        draft: Optional[BaseModel],
    ) -> MutationResult:
        correlation_id = create_correlation_id()
        if draft is None:
            return await self._reject_invalid(kind, validation, correlation_id)

        if self._storage is None:
            entity = self._local_entity(kind, draft)
        else:
            payload = to_insert_payload(kind, draft, self._storage.household_id, self.created_by)
            try:
                row = await self._storage.insert(kind, payload)
            except StorageError as e:
                await self._audit_logger.log_write_rejected(kind, "insert", str(e), correlation_id)
                return MutationResult.rejected(kind, str(e))
            entity = from_row(kind, row)

        self._collections[kind].append(entity)
        await self._audit_logger.log_entity_created(kind, entity.id, correlation_id)
        return MutationResult.ok(kind, entity=entity)

    async def _insert_many(
        self,
        kind: EntityKind,
        drafts: list[BaseModel],
        correlation_id: UUID,
    ) -> Union[list[BaseModel], StorageError]:
        """Persist several drafts in one call. Returns the entities or the refusal."""
        if self._storage is None:
            entities = [self._local_entity(kind, draft) for draft in drafts]
        else:
            payloads = [
                to_insert_payload(kind, draft, self._storage.household_id, self.created_by)
                for draft in drafts
            ]
            try:
                rows = await self._storage.insert_many(kind, payloads)
            except StorageError as e:
                await self._audit_logger.log_write_rejected(kind, "insert_many", str(e), correlation_id)
                return e
            entities = [from_row(kind, row) for row in rows]

        self._collections[kind].extend(entities)
        return entities

    async def _update(
        self,
        kind: EntityKind,
        entity_id: UUID,
        validation: ValidationResult,
        draft: Optional[BaseModel],
    ) -> MutationResult:
        correlation_id = create_correlation_id()
        if draft is None:
            return await self._reject_invalid(kind, validation, correlation_id)

        if self._index_of(kind, entity_id) is None:
            return MutationResult.rejected(kind, f"No {kind.value} entry with id {entity_id}")

        if self._storage is not None:
            try:
                await self._storage.update(kind, entity_id, to_update_payload(kind, draft))
            except StorageError as e:
                await self._audit_logger.log_write_rejected(
                    kind, "update", str(e), correlation_id, entity_id=entity_id
                )
                return MutationResult.rejected(kind, str(e))

        # Look the entity up again: the collection may have changed while awaiting
        idx = self._index_of(kind, entity_id)
        if idx is None:
            return MutationResult.rejected(kind, f"No {kind.value} entry with id {entity_id}")

        updated = self._collections[kind][idx].model_copy(update=draft.model_dump())
        self._collections[kind][idx] = updated
        await self._audit_logger.log_entity_updated(kind, entity_id, correlation_id)
        return MutationResult.ok(kind, entity=updated)

    # =========================================================================
    # COMMANDS
    # =========================================================================

    async def add_transaction(self, form: Form) -> MutationResult:
        validation, draft = self._validator.validate_transaction(form)
        return await self._insert(EntityKind.TRANSACTION, validation, draft)

    async def update_transaction(self, transaction_id: UUID, form: Form) -> MutationResult:
        validation, draft = self._validator.validate_transaction(form)
        return await self._update(EntityKind.TRANSACTION, transaction_id, validation, draft)

    async def add_budget(self, form: Form) -> MutationResult:
        """Add a budget and switch the budget view to its month."""
        validation, draft = self._validator.validate_budget(form)
        result = await self._insert(EntityKind.BUDGET, validation, draft)
        if result.applied:
            self.context.budget_view_month = result.entity.month
        return result

    async def update_budget(self, budget_id: UUID, form: Form) -> MutationResult:
        validation, draft = self._validator.validate_budget(form)
        return await self._update(EntityKind.BUDGET, budget_id, validation, draft)

    async def add_asset(self, form: Form) -> MutationResult:
        validation, draft = self._validator.validate_asset(form)
        return await self._insert(EntityKind.ASSET, validation, draft)

    async def update_asset(self, asset_id: UUID, form: Form) -> MutationResult:
        validation, draft = self._validator.validate_asset(form)
        return await self._update(EntityKind.ASSET, asset_id, validation, draft)

    async def add_liability(self, form: Form) -> MutationResult:
        validation, draft = self._validator.validate_liability(form)
        return await self._insert(EntityKind.LIABILITY, validation, draft)

    async def update_liability(self, liability_id: UUID, form: Form) -> MutationResult:
        validation, draft = self._validator.validate_liability(form)
        return await self._update(EntityKind.LIABILITY, liability_id, validation, draft)

    async def add_recurring_rule(self, form: Form) -> MutationResult:
        validation, draft = self._validator.validate_recurring_rule(form)
        return await self._insert(EntityKind.RECURRING_RULE, validation, draft)

    async def update_recurring_rule(self, rule_id: UUID, form: Form) -> MutationResult:
        validation, draft = self._validator.validate_recurring_rule(form)
        return await self._update(EntityKind.RECURRING_RULE, rule_id, validation, draft)

    async def toggle_recurring_active(self, rule_id: UUID) -> MutationResult:
        """Pause or resume a recurring rule."""
        rule = self.get(EntityKind.RECURRING_RULE, rule_id)
        if rule is None:
            return MutationResult.rejected(
                EntityKind.RECURRING_RULE, f"No recurring_rules entry with id {rule_id}"
            )
        flipped = rule.model_copy(update={"active": not rule.active})
        validation = ValidationResult(form="recurring_rule")
        return await self._update(EntityKind.RECURRING_RULE, rule_id, validation, flipped)

    async def delete(self, kind: EntityKind, entity_id: UUID) -> MutationResult:
        """Delete one entity of any collection. Nothing cascades."""
        correlation_id = create_correlation_id()
        if self._index_of(kind, entity_id) is None:
            return MutationResult.rejected(kind, f"No {kind.value} entry with id {entity_id}")

        if self._storage is not None:
            try:
                deleted = await self._storage.delete(kind, entity_id)
                if not deleted:
                    raise NotFoundError(f"{kind.value} row not found: {entity_id}")
            except StorageError as e:
                await self._audit_logger.log_write_rejected(
                    kind, "delete", str(e), correlation_id, entity_id=entity_id
                )
                return MutationResult.rejected(kind, str(e))

        idx = self._index_of(kind, entity_id)
        removed = self._collections[kind].pop(idx) if idx is not None else None
        self.context.expansion.pop(entity_id, None)
        await self._audit_logger.log_entity_deleted(kind, entity_id, correlation_id)
        return MutationResult.ok(kind, entity=removed)

    async def clear_all(self, confirmation: str) -> MutationResult:
        """Delete every entity of the household. Needs the confirmation phrase."""
        correlation_id = create_correlation_id()
        validation = self._validator.validate_clear_all(confirmation)
        if validation.has_errors:
            return await self._reject_invalid(None, validation, correlation_id)

        if self._storage is not None:
            try:
                await self._storage.clear_all()
            except StorageError as e:
                await self._audit_logger.log_write_rejected(None, "clear_all", str(e), correlation_id)
                return MutationResult.rejected(None, str(e))

        self._collections = {kind: [] for kind in EntityKind}
        self.context.expansion = {}
        await self._audit_logger.log_data_cleared(correlation_id)
        return MutationResult.ok(None, message="All data has been cleared.")

    async def import_csv(self, data: Union[str, bytes]) -> MutationResult:
        """
        Import transactions from a CSV upload.

        The whole file is rejected on any format error, and the parsed rows
        are persisted in a single call: either all of them land or none.
        """
        kind = EntityKind.TRANSACTION
        correlation_id = create_correlation_id()

        size = len(data.encode("utf-8") if isinstance(data, str) else data)
        validation = self._validator.validate_csv_upload(size, self._settings.max_csv_size_bytes)
        if validation.has_errors:
            await self._audit_logger.log_csv_rejected("too_large", validation.summary(), correlation_id)
            return MutationResult.rejected(kind, validation.summary(), validation.issues)

        try:
            parsed = parse_transactions_csv(data)
        except CsvFormatError as e:
            await self._audit_logger.log_csv_rejected(e.reason.value, e.message, correlation_id)
            return MutationResult.rejected(kind, e.message)

        outcome = await self._insert_many(kind, parsed.drafts, correlation_id)
        if isinstance(outcome, StorageError):
            return MutationResult.rejected(kind, str(outcome))

        await self._audit_logger.log_csv_imported(len(outcome), parsed.skipped_rows, correlation_id)
        return MutationResult.ok(
            kind,
            entities=outcome,
            message=f"Imported {len(outcome)} transaction(s).",
        )

    async def export_csv(self, today: Optional[date] = None) -> Optional[CsvExport]:
        """
        Export the person-scoped transactions (whatever the date range).

        Returns None when there is nothing to export.
        """
        rows = self.scoped_transactions()
        if not rows:
            return None

        today = today or date.today()
        person = self.context.person.value
        await self._audit_logger.log_csv_exported(len(rows), person, create_correlation_id())
        return CsvExport(
            filename=f"transactions-{person}-{today.isoformat()}.csv",
            content=serialize_transactions_csv(rows),
            count=len(rows),
        )

    async def apply_recurring(
        self,
        target_month: Optional[str] = None,
        today: Optional[date] = None,
    ) -> MutationResult:
        """
        Materialize the active recurring rules for a month (default: current).

        Running it twice for the same month adds nothing the second time.
        """
        kind = EntityKind.TRANSACTION
        correlation_id = create_correlation_id()
        month = target_month or current_month(today)

        try:
            split_month_key(month)
        except ValueError as e:
            return MutationResult.rejected(kind, str(e))

        if not self._collections[EntityKind.RECURRING_RULE]:
            return MutationResult.unchanged(kind, "No recurring transactions defined yet.")

        expansion = expand_recurring(
            self._collections[EntityKind.RECURRING_RULE],
            month,
            self._collections[EntityKind.TRANSACTION],
        )
        if expansion.nothing_to_add:
            await self._audit_logger.log_recurring_nothing_to_add(month, correlation_id)
            return MutationResult.unchanged(kind, f"No new recurring transactions to add for {month}.")

        outcome = await self._insert_many(kind, expansion.drafts, correlation_id)
        if isinstance(outcome, StorageError):
            return MutationResult.rejected(kind, str(outcome))

        await self._audit_logger.log_recurring_applied(month, len(outcome), correlation_id)
        return MutationResult.ok(
            kind,
            entities=outcome,
            message=f"Added {len(outcome)} recurring transaction(s) for {month}.",
        )

    # =========================================================================
    # DERIVED VIEWS
    # =========================================================================

    def scoped_transactions(self) -> list[Transaction]:
        return filter_by_person(self._collections[EntityKind.TRANSACTION], self.context.person)

    def scoped_budgets(self) -> list[Budget]:
        return filter_by_person(self._collections[EntityKind.BUDGET], self.context.person)

    def scoped_assets(self) -> list[Asset]:
        return filter_by_person(self._collections[EntityKind.ASSET], self.context.person)

    def scoped_liabilities(self) -> list[Liability]:
        return filter_by_person(self._collections[EntityKind.LIABILITY], self.context.person)

    def table_rows(self) -> list[Transaction]:
        """Transactions table: person scope, then category, kind and search."""
        return table_filter(self.scoped_transactions(), self.context.table_filter)

    def month_groups(self) -> list[MonthGroup]:
        return group_by_month(self.table_rows())

    def table_totals(self) -> Totals:
        return compute_totals(self.table_rows())

    def dashboard_interval(self, today: Optional[date] = None) -> DateInterval:
        return resolve_interval(
            self.context.date_range,
            today=today,
            custom_start=self.context.custom_start,
            custom_end=self.context.custom_end,
        )

    def dashboard_transactions(self, today: Optional[date] = None) -> list[Transaction]:
        """Person-scoped transactions inside the selected date range."""
        return date_interval_filter(self.scoped_transactions(), self.dashboard_interval(today))

    def dashboard_totals(self, today: Optional[date] = None) -> Totals:
        return compute_totals(self.dashboard_transactions(today))

    def category_totals(self, today: Optional[date] = None) -> dict:
        return category_expense_totals(self.dashboard_transactions(today))

    def monthly_totals(self, today: Optional[date] = None) -> dict:
        return monthly_expense_totals(self.dashboard_transactions(today))

    def net_worth(self) -> NetWorth:
        return net_worth(self.scoped_assets(), self.scoped_liabilities())

    # -------------------------------------------------------------------------
    # Budget tab
    # -------------------------------------------------------------------------

    def budget_month_options(self, today: Optional[date] = None) -> list[str]:
        return budget_month_options(self.scoped_budgets(), self.scoped_transactions(), today)

    def budget_view_month(self, today: Optional[date] = None) -> str:
        """
        The month the budget tab shows.

        Defaults to the current month; snaps to the newest available month
        when the selection is no longer among the options.
        """
        selected = self.context.budget_view_month or current_month(today)
        month = resolve_view_month(selected, self.budget_month_options(today))
        self.context.budget_view_month = month
        return month

    def _month_lines(self, month: str, rows: Optional[list[Budget]] = None) -> list[BudgetLine]:
        return build_budget_lines(
            month,
            self.scoped_transactions(),
            self.scoped_budgets(),
            rollover_enabled=self.context.rollover_enabled,
            rows=rows,
            expanded_ids=expanded_ids(self.context.expansion),
        )

    def budget_lines(self, today: Optional[date] = None) -> list[BudgetLine]:
        """
        Budget lines of the view month that match the budget search.

        Every call first lets lines that went over their effective budget
        open automatically, unless the user has toggled them.
        """
        month = self.budget_view_month(today)
        self.context.expansion = auto_expand(self.context.expansion, self._month_lines(month))

        rows = search_budgets(
            budgets_for_month(self.scoped_budgets(), month),
            self.context.budget_search,
            self.scoped_transactions(),
        )
        return self._month_lines(month, rows)

    def budget_summary(self, today: Optional[date] = None) -> BudgetSummary:
        """Totals for the view month, ignoring the budget search."""
        return budget_summary(self._month_lines(self.budget_view_month(today)))

    def expanded_budget_ids(self) -> set[UUID]:
        return expanded_ids(self.context.expansion)

    def toggle_budget_details(self, budget_id: UUID) -> None:
        self.context.expansion = toggle(self.context.expansion, budget_id)

    def toggle_show_all_transactions(self, budget_id: UUID) -> None:
        self.context.expansion = toggle_show_all(self.context.expansion, budget_id)

    def budget_transactions(self, budget_id: UUID) -> list[Transaction]:
        """Expenses behind one budget line, newest first."""
        budget = self.get(EntityKind.BUDGET, budget_id)
        if budget is None:
            return []
        return budget_transactions(budget.category, budget.month, self.scoped_transactions())

    def top_contributors(self, budget_id: UUID) -> list[Contributor]:
        return top_contributors(
            self.budget_transactions(budget_id),
            limit=self._settings.top_contributors,
        )

    def budget_for(self, category: str, month: str) -> Optional[Budget]:
        """First person-scoped budget row for (category, month), or None."""
        return find_budget(self.scoped_budgets(), category, month)


def create_ledger(
    household_id: Optional[str] = None,
    created_by: Optional[str] = None,
    use_storage: bool = True,
) -> HouseholdLedger:
    """
    Factory function to create a household session.

    Args:
        household_id: Household the session is scoped to
        created_by: Signed-in identity stamped on inserts
        use_storage: Whether to initialize Google Sheets storage.
                    Set to False for an offline session.

    Returns:
        A HouseholdLedger, backed by Google Sheets when it is configured
        and offline otherwise. Call ``load()`` before use.
    """
    storage = None
    audit_logger = None

    if use_storage and household_id:
        try:
            sheets_client = GoogleSheetsClient()
            storage = GoogleSheetsHouseholdStorage(household_id, sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except (ValidationError, LedgerError) as e:
            # Storage not configured - continue offline
            logger.warning("storage_not_configured", error=str(e))
            storage = None
            audit_logger = AuditLogger()  # Local-only logging
    else:
        audit_logger = AuditLogger()  # Local-only logging

    return HouseholdLedger(
        storage=storage,
        audit_logger=audit_logger,
        created_by=created_by,
    )
