"""Composite dedup keys.

Every call site that needs to compare a row against another row (in-file
detection, history detection, preview display) goes through these functions.
Keys are built only from values present verbatim in the export file; a
resolved payee/client/project id must never be part of a key.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from siteledger.domain.entities import RawRow, Track
from siteledger.utils.amount_parser import quantize_amount

KEY_DELIMITER = "|"
DESCRIPTION_KEY_LENGTH = 50


def normalize_amount(amount: Decimal) -> str:
    """Absolute value with exactly two decimal places."""
    return f"{quantize_amount(abs(Decimal(amount))):.2f}"


def normalize_name(name: Optional[str]) -> str:
    """Lower-cased, trimmed name ('' for None)."""
    return (name or "").strip().lower()


def normalize_date(value: date) -> str:
    return value.isoformat()


def make_key(txn_date: date, amount: Decimal, name: Optional[str]) -> str:
    """Build the expense composite key from date, amount and name."""
    return KEY_DELIMITER.join(
        [normalize_date(txn_date), normalize_amount(amount), normalize_name(name)]
    )


def make_revenue_key(
    txn_date: date, amount: Decimal, invoice_number: Optional[str], name: Optional[str]
) -> str:
    """Build the revenue composite key, which also carries the invoice number."""
    return KEY_DELIMITER.join(
        [
            "rev",
            normalize_date(txn_date),
            normalize_amount(amount),
            normalize_name(invoice_number),
            normalize_name(name),
        ]
    )


def make_description_key(txn_date: date, amount: Decimal, description: Optional[str]) -> str:
    """Fallback expense key for rows with an empty name."""
    return KEY_DELIMITER.join(
        [
            "desc",
            normalize_date(txn_date),
            normalize_amount(amount),
            normalize_name(description)[:DESCRIPTION_KEY_LENGTH],
        ]
    )


def key_for(row: RawRow) -> str:
    """Return the dedup key for a parsed row, dispatching on its track."""
    if row.track is Track.REVENUE:
        return make_revenue_key(row.date, row.amount, row.invoice_number, row.name)
    if not normalize_name(row.name) and normalize_name(row.description):
        return make_description_key(row.date, row.amount, row.description)
    return make_key(row.date, row.amount, row.name)
