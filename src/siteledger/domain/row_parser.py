"""Parsing of accounting-export rows into RawRow objects."""

import csv
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Mapping, Optional

from siteledger.domain.entities import RawRow, TransactionKind
from siteledger.domain.errors import RowParseError, ValidationError
from siteledger.utils.amount_parser import parse_amount, quantize_amount
from siteledger.utils.date_parser import parse_date

logger = logging.getLogger(__name__)

# Fixed export column contract
COL_DATE = "Date"
COL_AMOUNT = "Amount"
COL_NAME = "Name"
COL_TYPE = "Transaction type"
COL_ACCOUNT_FULL_NAME = "Account full name"
COL_ACCOUNT_NAME = "Account name"
COL_DESCRIPTION = "Description"
COL_PROJECT = "Project/WO #"
COL_INVOICE = "Invoice #"

REQUIRED_COLUMNS = (COL_DATE, COL_AMOUNT, COL_NAME, COL_TYPE)

# Export spellings of each transaction type
TRANSACTION_KIND_MAP = {
    "expense": TransactionKind.EXPENSE,
    "bill": TransactionKind.BILL,
    "bill payment": TransactionKind.BILL,
    "check": TransactionKind.CHECK,
    "cheque": TransactionKind.CHECK,
    "credit card": TransactionKind.CREDIT_CARD,
    "credit card expense": TransactionKind.CREDIT_CARD,
    "credit_card": TransactionKind.CREDIT_CARD,
    "cash": TransactionKind.CASH,
    "cash expense": TransactionKind.CASH,
    "invoice": TransactionKind.INVOICE,
}


@dataclass
class ParseResult:
    """Rows parsed from one file plus the rows that were rejected."""

    rows: list[RawRow] = field(default_factory=list)
    errors: list[RowParseError] = field(default_factory=list)

    @property
    def error_messages(self) -> list[str]:
        return [str(e) for e in self.errors]


def map_transaction_kind(value: Optional[str]) -> TransactionKind:
    """Map an export transaction type to TransactionKind.

    Unknown or empty types are treated as plain expenses.
    """
    normalized = (value or "").strip().lower()
    if not normalized:
        return TransactionKind.EXPENSE
    kind = TRANSACTION_KIND_MAP.get(normalized)
    if kind is None:
        logger.warning("Unknown transaction type '%s', treating as expense", value)
        return TransactionKind.EXPENSE
    return kind


def _cell(row: Mapping[str, Optional[str]], column: str) -> str:
    value = row.get(column)
    return value.strip() if value else ""


def parse_row(row: Mapping[str, Optional[str]], row_number: int) -> RawRow:
    """Parse a single header-mapped row.

    Raises:
        RowParseError: If the date or amount is missing or unparseable
    """
    date_str = _cell(row, COL_DATE)
    if not date_str:
        raise RowParseError(row_number, "Missing date")
    amount_str = _cell(row, COL_AMOUNT)
    if not amount_str:
        raise RowParseError(row_number, "Missing amount")

    try:
        txn_date = parse_date(date_str)
    except ValueError as e:
        raise RowParseError(row_number, str(e))
    try:
        amount = quantize_amount(parse_amount(amount_str))
    except ValueError as e:
        raise RowParseError(row_number, str(e))

    kind = map_transaction_kind(row.get(COL_TYPE))
    invoice_number = _cell(row, COL_INVOICE) or None
    if kind is not TransactionKind.INVOICE:
        invoice_number = None

    return RawRow(
        row_number=row_number,
        date=txn_date,
        amount=amount,
        name=_cell(row, COL_NAME),
        account_path=_cell(row, COL_ACCOUNT_FULL_NAME),
        account_name=_cell(row, COL_ACCOUNT_NAME),
        description=_cell(row, COL_DESCRIPTION),
        kind=kind,
        project_reference=_cell(row, COL_PROJECT),
        invoice_number=invoice_number,
    )


def parse_rows(rows: Iterable[Mapping[str, Optional[str]]], first_row_number: int = 2) -> ParseResult:
    """Parse header-mapped rows, routing bad rows to ``errors``.

    Args:
        rows: Rows keyed by export column name
        first_row_number: File line of the first row (header is line 1)

    Returns:
        ParseResult with rows in input order
    """
    result = ParseResult()
    for row_number, row in enumerate(rows, start=first_row_number):
        if not any((value or "").strip() for value in row.values() if isinstance(value, str)):
            # Blank line
            continue
        try:
            result.rows.append(parse_row(row, row_number))
        except RowParseError as e:
            logger.info("Skipping %s", e)
            result.errors.append(e)
    logger.info("Parsed %d rows (%d rejected)", len(result.rows), len(result.errors))
    return result


def parse_csv_file(csv_file_path: str) -> ParseResult:
    """Read and parse an export CSV file.

    Args:
        csv_file_path: Path to CSV file

    Returns:
        ParseResult

    Raises:
        FileNotFoundError: If the file does not exist
        ValidationError: If required columns are missing
    """
    csv_path = Path(csv_file_path)
    if not csv_path.exists():
        raise FileNotFoundError(f"CSV file not found: {csv_file_path}")

    with open(csv_path, "r", encoding="utf-8-sig", newline="") as f:
        sample = f.read(4096)
        f.seek(0)
        try:
            delimiter = csv.Sniffer().sniff(sample, delimiters=",;\t").delimiter
        except csv.Error:
            delimiter = ","

        reader = csv.DictReader(f, delimiter=delimiter)
        columns = [c.strip() for c in (reader.fieldnames or []) if c]
        if not columns:
            raise ValidationError("CSV file has no columns")
        missing = [col for col in REQUIRED_COLUMNS if col not in columns]
        if missing:
            raise ValidationError(f"CSV file missing required columns: {', '.join(missing)}")

        # Tolerate stray whitespace around header names
        reader.fieldnames = [c.strip() if c else c for c in reader.fieldnames]
        return parse_rows(reader)
