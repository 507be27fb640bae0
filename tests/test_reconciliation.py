"""Tests for the reconciliation validator."""

from datetime import date
from decimal import Decimal

from siteledger.domain.entities import HistoryDuplicate, RawRow, TransactionKind
from siteledger.domain.reconciliation import calculate_reconciliation


def _duplicate(existing_id, existing_amount, file_amount, row_number=2):
    row = RawRow(
        row_number=row_number,
        date=date(2025, 1, 15),
        amount=Decimal(file_amount),
        name="Home Depot",
        account_path="",
        description="",
        kind=TransactionKind.EXPENSE,
    )
    return HistoryDuplicate(
        row=row, existing_id=existing_id, existing_amount=Decimal(existing_amount), key="k"
    )


def test_empty_set_is_aligned():
    """Test that no duplicates reconcile with zero totals."""
    result = calculate_reconciliation([])

    assert result.is_aligned
    assert result.existing_total == Decimal("0.00")
    assert result.duplicate_total == Decimal("0.00")
    assert result.difference == Decimal("0.00")


def test_matching_totals_are_aligned():
    """Test equal persisted and file amounts."""
    result = calculate_reconciliation(
        [_duplicate(1, "100.00", "100.00"), _duplicate(2, "-250.50", "250.50")]
    )

    assert result.is_aligned
    assert result.existing_total == Decimal("350.50")
    assert result.duplicate_total == Decimal("350.50")


def test_signs_are_ignored():
    """Test absolute values on both sides."""
    result = calculate_reconciliation([_duplicate(1, "-100.00", "100.00")])
    assert result.is_aligned


def test_two_rows_on_one_record_mismatch():
    """Test that a committed row counted twice is caught."""
    result = calculate_reconciliation(
        [_duplicate(1, "100.00", "100.00", 2), _duplicate(1, "100.00", "100.00", 3)]
    )

    assert not result.is_aligned
    assert result.existing_total == Decimal("100.00")
    assert result.duplicate_total == Decimal("200.00")
    assert result.difference == Decimal("100.00")


def test_tolerance_boundary():
    """Test that a difference equal to the tolerance is aligned."""
    assert calculate_reconciliation([_duplicate(1, "100.00", "100.01")]).is_aligned
    assert not calculate_reconciliation([_duplicate(1, "100.00", "100.02")]).is_aligned
    assert calculate_reconciliation([_duplicate(1, "100.00", "100.02")], tolerance=Decimal("0.05")).is_aligned


def test_mismatch_logs_warning(caplog):
    """Test that failures are logged."""
    calculate_reconciliation([_duplicate(1, "100.00", "150.00")])
    assert "Reconciliation mismatch" in caplog.text
