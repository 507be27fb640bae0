"""Batch committer and audit service."""

import logging
import uuid
from typing import Optional

from siteledger.database.base import Database
from siteledger.domain.dedup import LEGACY_EXPENSE_DESCRIPTION, LEGACY_REVENUE_DESCRIPTION, history_keys
from siteledger.domain.entities import (
    BatchStatus,
    CommitResult,
    CommittedRow,
    ImportBatch,
    MatchLogEntry,
    PendingRow,
    RollbackResult,
    Track,
)
from siteledger.domain.errors import NotFoundError, batch_not_found

logger = logging.getLogger(__name__)


class BatchService:
    """Commits import batches atomically and undoes them on request."""

    def __init__(self, db: Database):
        """Initialize batch service.

        Args:
            db: Database instance
        """
        self.db = db

    def commit(
        self,
        file_name: str,
        rows: list[PendingRow],
        duplicate_count: int = 0,
        error_count: int = 0,
        match_log: Optional[list[MatchLogEntry]] = None,
    ) -> CommitResult:
        """Write a batch and its rows in one transaction.

        Args:
            file_name: Name of the imported file
            rows: Resolved, non-duplicate rows
            duplicate_count: In-file plus history duplicates skipped
            error_count: Rows rejected by the parser
            match_log: Resolution decisions for the audit trail

        Returns:
            CommitResult

        Raises:
            CommitFailureError: If the write fails; nothing is persisted
        """
        batch_id = str(uuid.uuid4())
        log = [entry.to_dict() for entry in (match_log or [])]
        batch = self.db.commit_batch(
            batch_id=batch_id,
            file_name=file_name,
            rows=rows,
            duplicate_count=duplicate_count,
            error_count=error_count,
            match_log=log,
        )
        logger.info(
            "Committed batch %s from %s: %d imported, %d duplicates, %d errors",
            batch.id,
            file_name,
            batch.imported_count,
            batch.duplicate_count,
            batch.error_count,
        )
        return CommitResult(
            batch_id=batch.id,
            imported_count=batch.imported_count,
            duplicate_count=batch.duplicate_count,
            error_count=batch.error_count,
            status=batch.status,
        )

    def rollback_batch(self, batch_id: str) -> RollbackResult:
        """Delete every row of a batch and mark it rolled back.

        Idempotent: a second call reverts nothing.

        Raises:
            NotFoundError: If the batch does not exist
        """
        result = self.db.rollback_batch(batch_id)
        if result.rows_reverted:
            logger.info("Rolled back batch %s (%d rows)", batch_id, result.rows_reverted)
        else:
            logger.info("Batch %s already rolled back or empty", batch_id)
        return result

    def get_batch(self, batch_id: str) -> ImportBatch:
        """Get a batch.

        Raises:
            NotFoundError: If the batch does not exist
        """
        batch = self.db.get_import_batch(batch_id)
        if batch is None:
            raise NotFoundError(batch_not_found(batch_id))
        return batch

    def list_batches(self) -> list[ImportBatch]:
        return self.db.list_import_batches()

    def list_batch_rows(self, batch_id: str) -> list[CommittedRow]:
        self.get_batch(batch_id)
        return self.db.list_batch_rows(batch_id)

    def sweep_duplicates(self, batch_id: str) -> int:
        """Remove rows of a batch that an earlier commit already holds.

        Two imports running side by side over overlapping dates can both pass
        history detection. Rows of this batch whose composite key matches an
        older committed row from another batch are deleted and counted as
        duplicates.

        Returns:
            Number of rows removed
        """
        batch = self.get_batch(batch_id)
        if batch.status is not BatchStatus.COMPLETED:
            return 0

        rows = self.db.list_batch_rows(batch_id)
        stale: dict[Track, list[int]] = {}
        for track in (Track.EXPENSE, Track.REVENUE):
            dates = [row.date for row in rows if row.track is track]
            if not dates:
                continue
            records = self.db.list_committed_rows(min(dates), max(dates), track)

            older: dict[str, int] = {}
            for record in records:
                if record.batch_id == batch_id:
                    continue
                for key in history_keys(record):
                    older.setdefault(key, record.id)

            stale[track] = [
                record.id
                for record in records
                if record.batch_id == batch_id
                and any(key in older and older[key] < record.id for key in history_keys(record))
            ]

        if not any(stale.values()):
            return 0
        removed = self.db.remove_batch_duplicates(batch_id, stale)
        if removed:
            logger.warning("Removed %d rows of batch %s already committed elsewhere", removed, batch_id)
        return removed

    def backfill_source_names(self) -> int:
        """Fill ``source_name`` for rows committed before it was stored.

        Only rows whose generated description still carries the export name
        are updated; the rest keep matching through their entity name.

        Returns:
            Number of rows updated
        """
        updated = 0
        for track in (Track.EXPENSE, Track.REVENUE):
            pattern = LEGACY_REVENUE_DESCRIPTION if track is Track.REVENUE else LEGACY_EXPENSE_DESCRIPTION
            names = {}
            for record in self.db.list_committed_rows(None, None, track, missing_source_name=True):
                match = pattern.match((record.description or "").strip())
                if match and match.group(1).strip():
                    names[record.id] = match.group(1).strip()
            updated += self.db.update_source_names(track, names)
        if updated:
            logger.info("Backfilled source names for %d rows", updated)
        return updated
