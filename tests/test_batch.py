"""Tests for batch commit, rollback and audit."""

import pytest
from datetime import date
from decimal import Decimal
from sqlalchemy.exc import OperationalError

from siteledger.domain.entities import (
    AccountCategory,
    BatchStatus,
    EntityType,
    MatchDecision,
    MatchLogEntry,
    PendingRow,
    Track,
    TransactionKind,
)
from siteledger.domain.errors import CommitFailureError, NotFoundError


def _pending(**kwargs):
    values = dict(
        track=Track.EXPENSE,
        date=date(2025, 1, 15),
        amount=Decimal("100.00"),
        category=AccountCategory.MATERIALS,
        kind=TransactionKind.EXPENSE,
        description="expense - Home Depot",
        source_name="Home Depot",
        account_path="Cost of Goods Sold:Supplies & Materials",
        account_name="Supplies & Materials",
        entity_id=None,
        project_id=None,
    )
    values.update(kwargs)
    return PendingRow(**values)


def _invoice(**kwargs):
    values = dict(
        track=Track.REVENUE,
        kind=TransactionKind.INVOICE,
        category=AccountCategory.REVENUE,
        source_name="Acme",
        description="Invoice from Acme",
        invoice_number="1001",
        amount=Decimal("5000.00"),
    )
    values.update(kwargs)
    return _pending(**values)


def test_commit_writes_batch_and_rows(batch_service):
    """Test a successful commit."""
    log = [
        MatchLogEntry(
            source_text="Home Depot",
            entity_type=EntityType.PAYEE,
            matched_entity_id=None,
            matched_entity_name=None,
            confidence=0.0,
            decision=MatchDecision.UNMATCHED,
            algorithm="fuzzy_match",
        )
    ]
    result = batch_service.commit(
        "jan.csv", [_pending(), _invoice()], duplicate_count=2, error_count=1, match_log=log
    )

    assert result.imported_count == 2
    assert result.duplicate_count == 2
    assert result.error_count == 1
    assert result.status is BatchStatus.COMPLETED

    batch = batch_service.get_batch(result.batch_id)
    assert batch.file_name == "jan.csv"
    assert batch.match_log[0]["decision"] == "unmatched"

    rows = batch_service.list_batch_rows(result.batch_id)
    assert [r.track for r in rows] == [Track.EXPENSE, Track.REVENUE]
    assert all(r.batch_id == result.batch_id for r in rows)
    assert rows[0].source_name == "Home Depot"
    assert rows[1].invoice_number == "1001"


def test_commit_failure_persists_nothing(batch_service, temp_db):
    """Test that one bad row rolls back the whole batch."""
    with pytest.raises(CommitFailureError):
        batch_service.commit("bad.csv", [_pending(), _pending(amount=None)])

    assert batch_service.list_batches() == []
    assert temp_db.list_committed_rows(None, None, Track.EXPENSE) == []

    # The session is usable again afterwards
    result = batch_service.commit("good.csv", [_pending()])
    assert result.imported_count == 1


def test_rollback_removes_every_row(batch_service, temp_db):
    """Test rollback completeness."""
    result = batch_service.commit("jan.csv", [_pending(), _pending(source_name="Lowe's"), _invoice()])

    rollback = batch_service.rollback_batch(result.batch_id)

    assert rollback.rows_reverted == 3
    assert rollback.status is BatchStatus.ROLLED_BACK
    assert batch_service.list_batch_rows(result.batch_id) == []
    assert temp_db.list_committed_rows(None, None, Track.EXPENSE) == []
    assert temp_db.list_committed_rows(None, None, Track.REVENUE) == []
    assert batch_service.get_batch(result.batch_id).status is BatchStatus.ROLLED_BACK


def test_rollback_is_idempotent(batch_service):
    """Test that a second rollback reverts nothing."""
    result = batch_service.commit("jan.csv", [_pending()])
    batch_service.rollback_batch(result.batch_id)

    second = batch_service.rollback_batch(result.batch_id)

    assert second.rows_reverted == 0
    assert second.status is BatchStatus.ROLLED_BACK


def test_rollback_leaves_other_batches(batch_service, temp_db):
    """Test that only the tagged rows are removed."""
    first = batch_service.commit("jan.csv", [_pending()])
    second = batch_service.commit("feb.csv", [_pending(date=date(2025, 2, 1))])

    batch_service.rollback_batch(first.batch_id)

    remaining = temp_db.list_committed_rows(None, None, Track.EXPENSE)
    assert [r.batch_id for r in remaining] == [second.batch_id]


def test_rollback_unknown_batch(batch_service):
    """Test missing batch."""
    with pytest.raises(NotFoundError, match="not found"):
        batch_service.rollback_batch("missing")


def test_get_batch_unknown(batch_service):
    """Test missing batch lookup."""
    with pytest.raises(NotFoundError):
        batch_service.get_batch("missing")


def test_list_batches(batch_service):
    """Test listing batches."""
    batch_service.commit("jan.csv", [_pending()])
    batch_service.commit("feb.csv", [_pending(date=date(2025, 2, 1))])

    assert {b.file_name for b in batch_service.list_batches()} == {"jan.csv", "feb.csv"}


def test_sweep_removes_rows_committed_twice(batch_service, temp_db):
    """Test the post-commit sweep for overlapping imports."""
    first = batch_service.commit("a.csv", [_pending()])
    second = batch_service.commit("b.csv", [_pending(), _pending(source_name="Lowe's")])

    removed = batch_service.sweep_duplicates(second.batch_id)

    assert removed == 1
    assert [r.source_name for r in batch_service.list_batch_rows(second.batch_id)] == ["Lowe's"]
    assert len(batch_service.list_batch_rows(first.batch_id)) == 1
    batch = batch_service.get_batch(second.batch_id)
    assert batch.imported_count == 1
    assert batch.duplicate_count == 1


def test_sweep_keeps_older_batch(batch_service):
    """Test that sweeping the older batch removes nothing."""
    first = batch_service.commit("a.csv", [_pending()])
    batch_service.commit("b.csv", [_pending()])

    assert batch_service.sweep_duplicates(first.batch_id) == 0


def test_sweep_rolled_back_batch(batch_service):
    """Test that rolled-back batches are skipped."""
    result = batch_service.commit("a.csv", [_pending()])
    batch_service.rollback_batch(result.batch_id)

    assert batch_service.sweep_duplicates(result.batch_id) == 0


def test_sweep_is_all_or_nothing(batch_service, temp_db, monkeypatch):
    """Test that a failed sweep leaves rows and counts untouched."""
    batch_service.commit("a.csv", [_pending(), _invoice()])
    second = batch_service.commit("b.csv", [_pending(), _invoice()])

    def failing_commit():
        raise OperationalError("UPDATE import_batches", {}, Exception("database is locked"))

    monkeypatch.setattr(temp_db._get_session(), "commit", failing_commit)
    with pytest.raises(CommitFailureError):
        batch_service.sweep_duplicates(second.batch_id)
    monkeypatch.undo()

    assert len(batch_service.list_batch_rows(second.batch_id)) == 2
    batch = batch_service.get_batch(second.batch_id)
    assert batch.imported_count == 2
    assert batch.duplicate_count == 0

    assert batch_service.sweep_duplicates(second.batch_id) == 2
    assert batch_service.list_batch_rows(second.batch_id) == []
    batch = batch_service.get_batch(second.batch_id)
    assert batch.imported_count == 0
    assert batch.duplicate_count == 2


def test_backfill_source_names(batch_service, temp_db):
    """Test recovering names from legacy descriptions."""
    legacy = [
        _pending(source_name=None, description="bill - Home Depot (Unassigned)"),
        _pending(source_name=None, description="Lumber for deck", date=date(2025, 1, 16)),
        _invoice(source_name=None, description="Invoice from Acme Properties"),
    ]
    temp_db.commit_batch("legacy", "old.csv", legacy, 0, 0, [])

    assert batch_service.backfill_source_names() == 2

    expenses = temp_db.list_committed_rows(None, None, Track.EXPENSE)
    assert [r.source_name for r in expenses] == ["Home Depot", None]
    revenues = temp_db.list_committed_rows(None, None, Track.REVENUE)
    assert revenues[0].source_name == "Acme Properties"
    assert batch_service.backfill_source_names() == 0
