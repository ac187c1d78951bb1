"""
CSV Transaction Codec

The only file format the ledger reads or writes:

    Date,Description,Amount,Type,Category,Person
    2024-12-01,Salary,5000,income,Income,you
    2024-12-03,Groceries,250,expense,Food,joint

Import is all-or-nothing at the file level: a missing column, an unreadable
file or a file without a single usable row raises ``CsvFormatError`` and
produces nothing. Inside a good file, rows whose amount is not a number are
dropped quietly and only show up as a lower count.

DESIGN DECISION: amounts are parsed as ``Decimal`` and must be finite and
non-negative. Direction comes from ``Type``, never from a sign.
"""

import csv
from decimal import Decimal, InvalidOperation
from enum import Enum
from io import StringIO
from typing import Iterable, Optional, Union

import structlog

from household_ledger.errors import LedgerError
from household_ledger.models.ledger import Person, TransactionDraft, TransactionKind
from household_ledger.models.results import CsvImportResult

logger = structlog.get_logger()

EXPECTED_COLUMNS = ("Date", "Description", "Amount", "Type", "Category", "Person")
EXPECTED_HEADER = ",".join(EXPECTED_COLUMNS)


# =============================================================================
# ERRORS
# =============================================================================

class CsvErrorReason(str, Enum):
    EMPTY_FILE = "empty_file"
    MISSING_COLUMNS = "missing_columns"
    UNREADABLE = "unreadable"
    NO_VALID_ROWS = "no_valid_rows"


class CsvFormatError(LedgerError):
    """A CSV upload that cannot be imported at all."""

    def __init__(
        self,
        reason: CsvErrorReason,
        message: str,
        missing_columns: Optional[list[str]] = None,
    ):
        self.reason = reason
        self.missing_columns = missing_columns or []
        self.message = f"{message} Expected header is: {EXPECTED_HEADER}"
        super().__init__(self.message)


# =============================================================================
# PARSING
# =============================================================================

def _decode(data: Union[str, bytes]) -> str:
    if isinstance(data, str):
        return data.lstrip("\ufeff")
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError:
        return data.decode("latin-1")


def parse_amount(value: Optional[str]) -> Optional[Decimal]:
    """Finite, non-negative decimal, or None."""
    if value is None:
        return None
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        return None
    if not amount.is_finite() or amount < 0:
        return None
    return amount


def normalize_kind(value: Optional[str]) -> TransactionKind:
    """Anything starting with "inc" (any case) is income; everything else is expense."""
    if value and value.strip().lower().startswith("inc"):
        return TransactionKind.INCOME
    return TransactionKind.EXPENSE


def normalize_person(value: Optional[str]) -> Person:
    token = (value or "").strip().lower()
    if token == Person.PARTNER_A.value:
        return Person.PARTNER_A
    if token == Person.PARTNER_B.value:
        return Person.PARTNER_B
    return Person.JOINT


def _row_to_draft(row: dict) -> Optional[TransactionDraft]:
    amount = parse_amount(row.get("Amount"))
    if amount is None:
        return None
    # Text fields are kept as written; blankness only decides the defaults
    category = row.get("Category") or ""
    return TransactionDraft(
        date=row.get("Date") or "",
        description=row.get("Description") or "",
        category=category if category.strip() else "Other",
        amount=amount,
        kind=normalize_kind(row.get("Type")),
        person=normalize_person(row.get("Person")),
    )


def parse_transactions_csv(data: Union[str, bytes]) -> CsvImportResult:
    """
    Parse an uploaded CSV into transaction drafts.

    Args:
        data: File contents, text or raw bytes

    Returns:
        The valid drafts in file order, plus how many rows were dropped

    Raises:
        CsvFormatError: empty file, missing columns, unreadable file,
            or no valid rows
    """
    text = _decode(data)

    try:
        reader = csv.DictReader(StringIO(text, newline=""), strict=True)
        fieldnames = [name.strip() for name in (reader.fieldnames or [])]
        reader.fieldnames = fieldnames
        rows = list(reader)
    except csv.Error as e:
        logger.warning("csv_unreadable", error=str(e))
        raise CsvFormatError(CsvErrorReason.UNREADABLE, f"Error parsing CSV ({e}).")

    if not fieldnames or not rows:
        raise CsvFormatError(CsvErrorReason.EMPTY_FILE, "No data found in file.")

    missing = [column for column in EXPECTED_COLUMNS if column not in fieldnames]
    if missing:
        raise CsvFormatError(
            CsvErrorReason.MISSING_COLUMNS,
            f"Missing columns: {', '.join(missing)}.",
            missing_columns=missing,
        )

    drafts = []
    for row in rows:
        draft = _row_to_draft(row)
        if draft is not None:
            drafts.append(draft)

    if not drafts:
        raise CsvFormatError(CsvErrorReason.NO_VALID_ROWS, "No valid rows found in file.")

    skipped = len(rows) - len(drafts)
    logger.info("csv_parsed", rows=len(rows), imported=len(drafts), skipped=skipped)
    return CsvImportResult(drafts=drafts, skipped_rows=skipped)


# =============================================================================
# SERIALIZING
# =============================================================================

def serialize_transactions_csv(transactions: Iterable[TransactionDraft]) -> str:
    """
    Render transactions as CSV text.

    Fields holding a comma, quote or line break are quoted with inner quotes
    doubled. Every row, the header included, ends with CRLF.
    """
    buffer = StringIO()
    writer = csv.writer(buffer, lineterminator="\r\n", quoting=csv.QUOTE_MINIMAL)
    writer.writerow(EXPECTED_COLUMNS)
    for t in transactions:
        writer.writerow([
            t.date,
            t.description,
            format(t.amount, "f"),
            t.kind.value,
            t.category,
            t.person.value,
        ])
    return buffer.getvalue()
