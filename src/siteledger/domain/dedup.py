"""Duplicate detection within an upload and against committed history."""

import logging
import re
from dataclasses import dataclass, field
from typing import AbstractSet, Iterable, Optional

from siteledger.database.base import Database
from siteledger.domain.entities import (
    HistoricalRecord,
    HistoryDuplicate,
    InFileDuplicate,
    RawRow,
    Track,
)
from siteledger.domain.keys import (
    key_for,
    make_description_key,
    make_key,
    make_revenue_key,
    normalize_amount,
    normalize_name,
)
from siteledger.utils.date_parser import widen_date_range

logger = logging.getLogger(__name__)

# Descriptions written by earlier importers: "bill - Home Depot (Unassigned)"
LEGACY_EXPENSE_DESCRIPTION = re.compile(
    r"^(?:bill|check|expense|credit_card|cash)\s*-\s*(.*?)\s*(?:\(.*\))?\s*$", re.IGNORECASE
)
LEGACY_REVENUE_DESCRIPTION = re.compile(
    r"^invoice from\s+(.*?)\s*(?:\(.*\))?\s*$", re.IGNORECASE
)


@dataclass
class InFileResult:
    """Rows that survived in-file detection and those that did not."""

    unique: list[RawRow] = field(default_factory=list)
    duplicates: list[InFileDuplicate] = field(default_factory=list)
    keys: dict[int, str] = field(default_factory=dict)


@dataclass
class HistoryResult:
    """Rows that survived history detection and those that did not."""

    unique: list[RawRow] = field(default_factory=list)
    duplicates: list[HistoryDuplicate] = field(default_factory=list)
    reimported: list[HistoryDuplicate] = field(default_factory=list)


def detect_in_file_duplicates(rows: Iterable[RawRow]) -> InFileResult:
    """Single pass over parsed rows; later repeats of a key are duplicates.

    The seen map lives only for the duration of this call.
    """
    seen: dict[str, RawRow] = {}
    result = InFileResult()
    for row in rows:
        key = key_for(row)
        first = seen.get(key)
        if first is not None:
            reason = (
                f"Duplicate of: {first.name} on {first.date.isoformat()} "
                f"for {normalize_amount(first.amount)}"
            )
            if row.track is Track.REVENUE and first.invoice_number:
                reason += f" (invoice {first.invoice_number})"
            result.duplicates.append(InFileDuplicate(row=row, first_row=first, key=key, reason=reason))
            continue
        seen[key] = row
        result.keys[row.row_number] = key
        result.unique.append(row)

    if result.duplicates:
        logger.info("Found %d in-file duplicates", len(result.duplicates))
    return result


def reconstruct_name(record: HistoricalRecord) -> str:
    """Recover the export name a committed row was imported under.

    Prefers the stored source name. Legacy rows only kept a generated
    description and a resolved entity, so fall back to parsing the description
    and then to the entity's display name.
    """
    if record.source_name is not None:
        return record.source_name

    description = (record.description or "").strip()
    pattern = LEGACY_REVENUE_DESCRIPTION if record.track is Track.REVENUE else LEGACY_EXPENSE_DESCRIPTION
    match = pattern.match(description)
    if match:
        return match.group(1).strip()

    return record.entity_name or ""


def history_keys(record: HistoricalRecord) -> list[str]:
    """All keys a committed row can be matched under."""
    name = reconstruct_name(record)
    if record.track is Track.REVENUE:
        return [make_revenue_key(record.date, record.amount, record.invoice_number, name)]
    if normalize_name(name):
        return [make_key(record.date, record.amount, name)]
    keys = [make_key(record.date, record.amount, "")]
    if normalize_name(record.description):
        keys.append(make_description_key(record.date, record.amount, record.description))
    return keys


class HistoryDeduplicator:
    """Flags rows that were already committed by an earlier import."""

    def __init__(self, db: Database, window_days: int = 1):
        """Initialize history deduplicator.

        Args:
            db: Database instance
            window_days: Days added on both sides of the file's date range
        """
        self.db = db
        self.window_days = window_days

    def load_history(self, rows: list[RawRow]) -> dict[str, HistoricalRecord]:
        """Fetch committed rows around the file's date range, keyed by composite key.

        One query per track.
        """
        index: dict[str, HistoricalRecord] = {}
        for track in (Track.EXPENSE, Track.REVENUE):
            dates = [row.date for row in rows if row.track is track]
            date_range = widen_date_range(dates, self.window_days)
            if date_range is None:
                continue
            records = self.db.list_committed_rows(date_range[0], date_range[1], track)
            logger.debug("Loaded %d committed %s rows for %s..%s", len(records), track.value, *date_range)
            for record in records:
                for key in history_keys(record):
                    # First committed row wins ties
                    index.setdefault(key, record)
        return index

    def detect(
        self,
        rows: list[RawRow],
        force_keys: Optional[AbstractSet[str]] = None,
        history: Optional[dict[str, HistoricalRecord]] = None,
    ) -> HistoryResult:
        """Split rows into new rows and history duplicates.

        Args:
            rows: Rows that survived in-file detection
            force_keys: Keys the reviewer chose to import again anyway
            history: Preloaded history index (fetched when omitted)

        Returns:
            HistoryResult
        """
        force_keys = force_keys or frozenset()
        if history is None:
            history = self.load_history(rows)

        result = HistoryResult()
        for row in rows:
            key = key_for(row)
            record = history.get(key)
            if record is None:
                result.unique.append(row)
                continue
            duplicate = HistoryDuplicate(
                row=row, existing_id=record.id, existing_amount=record.amount, key=key
            )
            if key in force_keys:
                result.reimported.append(duplicate)
                result.unique.append(row)
            else:
                result.duplicates.append(duplicate)

        if result.duplicates:
            logger.info("Found %d rows already imported", len(result.duplicates))
        return result
