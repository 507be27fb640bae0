"""Transaction import domain service.

Runs one uploaded file through the pipeline:

    parse -> in-file dedup -> history dedup -> resolve + classify -> reconcile

and produces an ``ImportPreview`` for review. Nothing is written until
``commit`` is called with the preview.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import AbstractSet, Iterable, Mapping, Optional

from siteledger.config import ImportSettings, load_settings
from siteledger.database.base import Database
from siteledger.domain.batch import BatchService
from siteledger.domain.categories import CategoryClassifier, normalize_account_path
from siteledger.domain.dedup import HistoryDeduplicator, detect_in_file_duplicates
from siteledger.domain.entities import (
    AccountCategory,
    Classification,
    CommitResult,
    EntityType,
    HistoryDuplicate,
    InFileDuplicate,
    MatchDecision,
    MatchLogEntry,
    PendingRow,
    RawRow,
    ReconciliationResult,
    ResolvedRow,
    Track,
    UnmappedCategory,
    UnresolvedEntity,
)
from siteledger.domain.entity import EntityService
from siteledger.domain.errors import (
    NotFoundError,
    ReconciliationMismatchError,
    RowParseError,
    ValidationError,
    entity_not_found,
    reconciliation_failed,
)
from siteledger.domain.matching import (
    EntityResolver,
    client_targets,
    log_entry,
    payee_targets,
    project_targets,
)
from siteledger.domain.reconciliation import calculate_reconciliation
from siteledger.domain.row_parser import ParseResult, parse_csv_file, parse_rows

logger = logging.getLogger(__name__)

# (entity type, source text) -> entity ID chosen by a reviewer
EntityOverrides = Mapping[tuple[EntityType | str, str], int]


@dataclass
class ImportPreview:
    """Everything a reviewer needs before committing one file."""

    file_name: str
    unique_rows: list[ResolvedRow] = field(default_factory=list)
    in_file_duplicates: list[InFileDuplicate] = field(default_factory=list)
    history_duplicates: list[HistoryDuplicate] = field(default_factory=list)
    reimported: list[HistoryDuplicate] = field(default_factory=list)
    unresolved_entities: list[UnresolvedEntity] = field(default_factory=list)
    unmapped_categories: list[UnmappedCategory] = field(default_factory=list)
    reconciliation: Optional[ReconciliationResult] = None
    revenue_reconciliation: Optional[ReconciliationResult] = None
    errors: list[RowParseError] = field(default_factory=list)
    match_log: list[MatchLogEntry] = field(default_factory=list)
    mapping_stats: dict[str, int] = field(default_factory=dict)

    @property
    def duplicate_count(self) -> int:
        return len(self.in_file_duplicates) + len(self.history_duplicates)

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def is_aligned(self) -> bool:
        return all(r.is_aligned for r in self.reconciliations)

    @property
    def reconciliations(self) -> list[ReconciliationResult]:
        return [r for r in (self.reconciliation, self.revenue_reconciliation) if r is not None]


def _normalize_overrides(overrides: Optional[EntityOverrides]) -> dict[tuple[EntityType, str], int]:
    normalized = {}
    for (entity_type, source_text), entity_id in (overrides or {}).items():
        try:
            entity_type = EntityType(entity_type)
        except ValueError:
            raise ValidationError(f"Unknown entity type '{entity_type}'")
        normalized[(entity_type, (source_text or "").strip().lower())] = entity_id
    return normalized


def committed_description(row: RawRow) -> str:
    """Description stored on the committed row.

    Keeps the export memo when present; otherwise writes the same generated
    text earlier imports used so history matching stays uniform.
    """
    if row.description:
        return row.description
    if row.track is Track.REVENUE:
        return f"Invoice from {row.name}"
    return f"{row.kind.value} - {row.name}"


class TransactionImportService:
    """Service for previewing and committing export files."""

    def __init__(
        self,
        db: Database,
        settings: Optional[ImportSettings] = None,
        resolver: Optional[EntityResolver] = None,
    ):
        """Initialize import service.

        Args:
            db: Database instance
            settings: Import thresholds (read from the environment when None)
            resolver: Entity resolver (built from settings when None)
        """
        self.db = db
        self.settings = settings or load_settings()
        self.resolver = resolver or EntityResolver(
            auto_match_threshold=self.settings.auto_match_threshold,
            suggestion_threshold=self.settings.suggestion_threshold,
        )
        self.entity_service = EntityService(db)
        self.batch_service = BatchService(db)
        self.history = HistoryDeduplicator(db, window_days=self.settings.history_window_days)

    def preview(
        self,
        rows: Iterable[Mapping[str, Optional[str]]],
        file_name: str = "upload.csv",
        force_keys: Optional[AbstractSet[str]] = None,
    ) -> ImportPreview:
        """Run header-mapped rows through the pipeline without writing.

        Args:
            rows: Rows keyed by export column name, in file order
            file_name: Name recorded on the batch
            force_keys: History duplicate keys to import again anyway

        Returns:
            ImportPreview
        """
        return self._build_preview(parse_rows(rows), file_name, force_keys)

    def preview_csv(self, csv_file_path: str, force_keys: Optional[AbstractSet[str]] = None) -> ImportPreview:
        """Preview an export CSV file.

        Raises:
            FileNotFoundError: If the file does not exist
            ValidationError: If required columns are missing
        """
        parsed = parse_csv_file(csv_file_path)
        return self._build_preview(parsed, Path(csv_file_path).name, force_keys)

    def _build_preview(
        self, parsed: ParseResult, file_name: str, force_keys: Optional[AbstractSet[str]]
    ) -> ImportPreview:
        preview = ImportPreview(file_name=file_name, errors=list(parsed.errors))

        in_file = detect_in_file_duplicates(parsed.rows)
        preview.in_file_duplicates = in_file.duplicates

        history = self.history.detect(in_file.unique, force_keys=force_keys)
        preview.history_duplicates = history.duplicates
        preview.reimported = history.reimported
        reimported_rows = {d.row.row_number for d in history.reimported}

        pools = self.entity_service.load_pools()
        payees = payee_targets(pools.payees)
        clients = client_targets(pools.clients)
        projects = project_targets(pools.projects)
        expense_classifier = CategoryClassifier(pools.mappings, self.settings.fallback_category)
        revenue_classifier = CategoryClassifier(pools.mappings, AccountCategory.REVENUE)

        def resolve(row: RawRow) -> ResolvedRow:
            if row.track is Track.REVENUE:
                party = self.resolver.resolve(row.name, EntityType.CLIENT, clients)
                classification = revenue_classifier.classify(row.account_path)
            else:
                party = self.resolver.resolve(row.name, EntityType.PAYEE, payees)
                classification = expense_classifier.classify(row.account_path)
            project = None
            if row.project_reference:
                project = self.resolver.resolve(row.project_reference, EntityType.PROJECT, projects)
            return ResolvedRow(
                row=row,
                key=in_file.keys[row.row_number],
                classification=classification,
                party=party,
                project=project,
                reimported=row.row_number in reimported_rows,
            )

        if self.settings.max_workers > 1 and len(history.unique) > 1:
            with ThreadPoolExecutor(max_workers=self.settings.max_workers) as executor:
                preview.unique_rows = list(executor.map(resolve, history.unique))
        else:
            preview.unique_rows = [resolve(row) for row in history.unique]

        self._summarize(preview)

        tolerance = self.settings.reconciliation_tolerance
        preview.reconciliation = calculate_reconciliation(
            [d for d in history.duplicates if d.row.track is Track.EXPENSE], tolerance
        )
        preview.revenue_reconciliation = calculate_reconciliation(
            [d for d in history.duplicates if d.row.track is Track.REVENUE], tolerance
        )

        logger.info(
            "Preview of %s: %d new, %d in-file duplicates, %d already imported, %d errors",
            file_name,
            len(preview.unique_rows),
            len(preview.in_file_duplicates),
            len(preview.history_duplicates),
            len(preview.errors),
        )
        return preview

    def _summarize(self, preview: ImportPreview) -> None:
        """Aggregate unresolved entities, unmapped paths and the match log."""
        unresolved: dict[tuple[EntityType, str], UnresolvedEntity] = {}
        unmapped: dict[str, UnmappedCategory] = {}
        logged: set[tuple[EntityType, str]] = set()
        stats = {"exact": 0, "prefix": 0, "unmapped": 0, "no_account": 0}

        for resolved in preview.unique_rows:
            amount = abs(resolved.row.amount)

            for resolution in (resolved.party, resolved.project):
                if resolution is None or not resolution.source_text:
                    continue
                log_key = (resolution.entity_type, resolution.source_text.lower())
                if log_key not in logged:
                    logged.add(log_key)
                    entry = log_entry(resolution)
                    logger.debug(
                        "%s '%s' -> %s (%s, %.2f)",
                        entry.entity_type.value,
                        entry.source_text,
                        entry.matched_entity_name,
                        entry.decision.value,
                        entry.confidence,
                    )
                    preview.match_log.append(entry)
                if not resolution.is_resolved:
                    item = unresolved.get(log_key)
                    if item is None:
                        item = UnresolvedEntity(
                            entity_type=resolution.entity_type,
                            source_text=resolution.source_text,
                            suggestions=list(resolution.suggestions),
                        )
                        unresolved[log_key] = item
                    item.count += 1
                    item.total_amount += amount

            classification = resolved.classification
            path_key = normalize_account_path(classification.account_path)
            if not path_key:
                # Nothing a mapping could be created for
                stats["no_account"] += 1
                continue
            if classification.is_mapped:
                is_prefix = normalize_account_path(classification.matched_path) != path_key
                stats["prefix" if is_prefix else "exact"] += 1
            else:
                stats["unmapped"] += 1
                item = unmapped.get(path_key)
                if item is None:
                    item = UnmappedCategory(
                        account_path=classification.account_path,
                        suggested_category=classification.suggested_category,
                    )
                    unmapped[path_key] = item
                item.count += 1
                item.total_amount += amount

            if (EntityType.ACCOUNT, path_key) not in logged:
                logged.add((EntityType.ACCOUNT, path_key))
                preview.match_log.append(self._classification_entry(classification))

        for duplicate in preview.reimported:
            preview.match_log.append(
                MatchLogEntry(
                    source_text=duplicate.key,
                    entity_type=EntityType.CLIENT if duplicate.row.track is Track.REVENUE else EntityType.PAYEE,
                    matched_entity_id=None,
                    matched_entity_name=duplicate.row.name,
                    confidence=100.0,
                    decision=MatchDecision.USER_OVERRIDE,
                    algorithm="reimport",
                )
            )

        preview.unresolved_entities = sorted(unresolved.values(), key=lambda u: (-u.count, u.source_text))
        preview.unmapped_categories = sorted(unmapped.values(), key=lambda u: (-u.count, u.account_path))
        preview.mapping_stats = stats

    @staticmethod
    def _classification_entry(classification: Classification) -> MatchLogEntry:
        if classification.is_mapped:
            return MatchLogEntry(
                source_text=classification.account_path,
                entity_type=EntityType.ACCOUNT,
                matched_entity_id=None,
                matched_entity_name=classification.category.value,
                confidence=100.0,
                decision=MatchDecision.MAPPED,
                algorithm=f"mapping:{classification.matched_path}",
            )
        suggested = classification.suggested_category
        return MatchLogEntry(
            source_text=classification.account_path,
            entity_type=EntityType.ACCOUNT,
            matched_entity_id=None,
            matched_entity_name=suggested.value if suggested else None,
            confidence=0.0,
            decision=MatchDecision.PENDING_REVIEW if suggested else MatchDecision.UNMATCHED,
            algorithm="keyword",
        )

    def commit(
        self,
        preview: ImportPreview,
        override_reconciliation: bool = False,
        entity_overrides: Optional[EntityOverrides] = None,
    ) -> CommitResult:
        """Commit the new rows of a preview as one batch.

        Args:
            preview: Output of ``preview`` or ``preview_csv``
            override_reconciliation: Commit even if duplicate totals disagree
            entity_overrides: Reviewer choices for unresolved names, keyed by
                (entity type, source text)

        Returns:
            CommitResult

        Raises:
            ReconciliationMismatchError: If not aligned and not overridden
            NotFoundError: If an override points at a missing entity
            CommitFailureError: If the write fails
        """
        if not preview.is_aligned:
            failing = [r for r in preview.reconciliations if not r.is_aligned]
            if not override_reconciliation:
                worst = max(failing, key=lambda r: r.difference)
                raise ReconciliationMismatchError(
                    reconciliation_failed(worst.difference, worst.tolerance), results=failing
                )
            logger.warning("Committing %s despite reconciliation mismatch", preview.file_name)

        overrides = _normalize_overrides(entity_overrides)
        for (entity_type, _), entity_id in overrides.items():
            if not self.db.entity_exists(entity_type, entity_id):
                raise NotFoundError(entity_not_found(entity_type.value, entity_id))

        match_log = list(preview.match_log)
        used: set[tuple[EntityType, str]] = set()
        pending = []
        for resolved in preview.unique_rows:
            row = resolved.row
            party_type = EntityType.CLIENT if row.track is Track.REVENUE else EntityType.PAYEE
            party_key = (party_type, row.name.strip().lower())
            project_key = (EntityType.PROJECT, row.project_reference.strip().lower())

            entity_id = resolved.party_id
            if party_key in overrides:
                entity_id = overrides[party_key]
                used.add(party_key)
            project_id = resolved.project_id
            if row.project_reference and project_key in overrides:
                project_id = overrides[project_key]
                used.add(project_key)

            pending.append(
                PendingRow(
                    track=row.track,
                    date=row.date,
                    amount=row.amount,
                    category=resolved.classification.category,
                    kind=row.kind,
                    description=committed_description(row),
                    source_name=row.name,
                    account_path=row.account_path or None,
                    account_name=row.account_name or None,
                    entity_id=entity_id,
                    project_id=project_id,
                    invoice_number=row.invoice_number,
                )
            )

        for entity_type, source_text in sorted(used):
            match_log.append(
                MatchLogEntry(
                    source_text=source_text,
                    entity_type=entity_type,
                    matched_entity_id=overrides[(entity_type, source_text)],
                    matched_entity_name=None,
                    confidence=100.0,
                    decision=MatchDecision.USER_OVERRIDE,
                    algorithm="manual",
                )
            )

        return self.batch_service.commit(
            file_name=preview.file_name,
            rows=pending,
            duplicate_count=preview.duplicate_count,
            error_count=preview.error_count,
            match_log=match_log,
        )

    def import_csv(
        self,
        csv_file_path: str,
        override_reconciliation: bool = False,
        force_keys: Optional[AbstractSet[str]] = None,
    ) -> CommitResult:
        """Preview and commit a CSV file in one step."""
        preview = self.preview_csv(csv_file_path, force_keys=force_keys)
        return self.commit(preview, override_reconciliation=override_reconciliation)


def total_amount(rows: Iterable[ResolvedRow]) -> Decimal:
    """Sum of absolute amounts, as shown in review summaries."""
    return sum((abs(r.row.amount) for r in rows), Decimal("0"))
