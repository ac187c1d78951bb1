"""
Storage Payloads

Translation between the ledger models and the flat rows a storage backend
keeps. This is the only place that knows storage column names.

Rules of the row format:
- inserts carry ``household_id`` and ``created_by``; updates never do
- a transaction's direction is stored in the ``type`` column
- a budget's month is stored as the first day of the month (``YYYY-MM-01``)
  and read back as the ``YYYY-MM`` key
- recurring rules are stored as monthly rules with open start/end dates;
  a stored rule without ``active`` counts as active
"""

from typing import Any, Optional

import structlog
from pydantic import BaseModel, ValidationError

from household_ledger.models.ledger import ENTITY_MODELS, EntityKind
from household_ledger.months import month_to_storage_date


logger = structlog.get_logger()

Row = dict[str, Any]

RECURRING_FREQUENCY = "monthly"

# Mutable fields per collection, in storage column order
PAYLOAD_FIELDS: dict[EntityKind, tuple[str, ...]] = {
    EntityKind.TRANSACTION: ("date", "description", "category", "amount", "type", "person"),
    EntityKind.BUDGET: ("category", "amount", "month", "person"),
    EntityKind.ASSET: ("name", "value", "person"),
    EntityKind.LIABILITY: ("name", "value", "person"),
    EntityKind.RECURRING_RULE: (
        "description",
        "category",
        "amount",
        "type",
        "person",
        "day_of_month",
        "frequency",
        "start_date",
        "end_date",
        "active",
    ),
}

IDENTITY_FIELDS = ("id", "household_id", "created_by", "created_at")


def to_update_payload(kind: EntityKind, draft: BaseModel) -> Row:
    """Mutable fields of an entity (or draft) as a storage row fragment."""
    data = draft.model_dump(mode="json")

    if "kind" in data:
        data["type"] = data.pop("kind")

    if kind == EntityKind.BUDGET:
        data["month"] = month_to_storage_date(data["month"])

    if kind == EntityKind.RECURRING_RULE:
        data.setdefault("frequency", RECURRING_FREQUENCY)
        data.setdefault("start_date", None)
        data.setdefault("end_date", None)

    return {field: data.get(field) for field in PAYLOAD_FIELDS[kind]}


def to_insert_payload(
    kind: EntityKind,
    draft: BaseModel,
    household_id: str,
    created_by: Optional[str],
) -> Row:
    """Insert payload: the mutable fields plus household scope and author."""
    payload = to_update_payload(kind, draft)
    payload["household_id"] = household_id
    payload["created_by"] = created_by
    return payload


def _as_bool(value: Any) -> bool:
    if value is None or value == "":
        return True
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() not in ("false", "0", "no", "off")


def _as_day(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 1


def from_row(kind: EntityKind, row: Row) -> BaseModel:
    """
    Build the entity model for a stored row.

    Raises:
        ValidationError: If the row cannot form a valid entity
    """
    data = dict(row)

    if "type" in data:
        data["kind"] = data.pop("type")
    if not data.get("created_by"):
        data["created_by"] = None

    if kind == EntityKind.RECURRING_RULE:
        data["active"] = _as_bool(data.get("active"))
        data["day_of_month"] = _as_day(data.get("day_of_month"))
        if data.get("kind") in (None, ""):
            data.pop("kind", None)

    if kind == EntityKind.TRANSACTION:
        for field in ("date", "description"):
            if data.get(field) is None:
                data[field] = ""
        if not data.get("category"):
            data["category"] = "Other"

    return ENTITY_MODELS[kind].model_validate(data)


def from_rows(kind: EntityKind, rows: list[Row]) -> list[BaseModel]:
    """Build entities for every readable row, skipping malformed ones."""
    entities = []
    for row in rows:
        try:
            entities.append(from_row(kind, row))
        except ValidationError as e:
            logger.warning(
                "storage_row_skipped",
                collection=kind.value,
                row_id=str(row.get("id", "")),
                error_count=e.error_count(),
            )
    return entities
