"""File exchange: CSV import and export of transactions."""

from household_ledger.exchange.csv_codec import (
    EXPECTED_COLUMNS,
    EXPECTED_HEADER,
    CsvErrorReason,
    CsvFormatError,
    parse_transactions_csv,
    serialize_transactions_csv,
)

__all__ = [
    "EXPECTED_COLUMNS",
    "EXPECTED_HEADER",
    "CsvErrorReason",
    "CsvFormatError",
    "parse_transactions_csv",
    "serialize_transactions_csv",
]
