"""Reconciliation of history duplicates against committed totals."""

import logging
from decimal import Decimal
from typing import Iterable

from siteledger.domain.entities import HistoryDuplicate, ReconciliationResult
from siteledger.utils.amount_parser import quantize_amount

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE = Decimal("0.01")


def calculate_reconciliation(
    duplicates: Iterable[HistoryDuplicate], tolerance: Decimal = DEFAULT_TOLERANCE
) -> ReconciliationResult:
    """Compare committed amounts with file amounts for history duplicates.

    The existing total sums the persisted amount of each distinct matched
    committed row; the duplicate total sums the same duplicates as parsed from
    the current file. Both use absolute values. When two file rows land on one
    committed row, the totals disagree and the result is not aligned.

    Args:
        duplicates: Rows flagged as already imported
        tolerance: Largest difference still considered aligned

    Returns:
        ReconciliationResult
    """
    tolerance = Decimal(tolerance)
    existing: dict[int, Decimal] = {}
    duplicate_total = Decimal("0")
    for duplicate in duplicates:
        existing.setdefault(duplicate.existing_id, abs(Decimal(duplicate.existing_amount)))
        duplicate_total += abs(duplicate.row.amount)

    existing_total = quantize_amount(sum(existing.values(), Decimal("0")))
    duplicate_total = quantize_amount(duplicate_total)
    difference = abs(existing_total - duplicate_total)
    result = ReconciliationResult(
        existing_total=existing_total,
        duplicate_total=duplicate_total,
        difference=difference,
        is_aligned=difference <= tolerance,
        tolerance=tolerance,
    )
    if not result.is_aligned:
        logger.warning(
            "Reconciliation mismatch: existing %s vs duplicates %s (difference %s)",
            existing_total,
            duplicate_total,
            difference,
        )
    return result
