"""Domain model entities for siteledger.

These are pure data classes representing business concepts, independent of
database schema. Parsing, matching and reconciliation work on these types so
the import pipeline never touches ORM objects directly.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Optional


class TransactionKind(str, Enum):
    """Transaction type as exported by the accounting system."""

    EXPENSE = "expense"
    BILL = "bill"
    CHECK = "check"
    CREDIT_CARD = "credit_card"
    CASH = "cash"
    INVOICE = "invoice"


class Track(str, Enum):
    """Processing track a row is dispatched to at parse time."""

    EXPENSE = "expense"
    REVENUE = "revenue"


class EntityType(str, Enum):
    """Kinds of internal records an export row can be matched to."""

    PAYEE = "payee"
    CLIENT = "client"
    PROJECT = "project"
    ACCOUNT = "account"


class MatchType(str, Enum):
    """How a match candidate was found."""

    EXACT_NUMBER = "exact_number"
    EXACT_NAME = "exact_name"
    ALIAS_EXACT = "alias_exact"
    ALIAS_PREFIX = "alias_prefix"
    ALIAS_CONTAINS = "alias_contains"
    FUZZY = "fuzzy"
    EXTRACTED = "extracted"


class AliasMatchType(str, Enum):
    """How an alias is compared against free text."""

    EXACT = "exact"
    STARTS_WITH = "starts_with"
    CONTAINS = "contains"


class AccountCategory(str, Enum):
    """Internal accounting categories."""

    LABOR_INTERNAL = "labor_internal"
    SUBCONTRACTORS = "subcontractors"
    MATERIALS = "materials"
    EQUIPMENT = "equipment"
    PERMITS = "permits"
    MANAGEMENT = "management"
    REVENUE = "revenue"
    OTHER = "other"


class BatchStatus(str, Enum):
    """Lifecycle state of an import batch."""

    COMPLETED = "completed"
    ROLLED_BACK = "rolled_back"


class MatchDecision(str, Enum):
    """Outcome recorded in the match log."""

    AUTO_MATCHED = "auto_matched"
    ALIAS_MATCHED = "alias_matched"
    FUZZY_MATCHED = "fuzzy_matched"
    PENDING_REVIEW = "pending_review"
    UNMATCHED = "unmatched"
    MAPPED = "mapped"
    USER_OVERRIDE = "user_override"


# Candidate pools


@dataclass(frozen=True)
class EntityAlias:
    """Alias entry for a payee, client or project."""

    id: int
    entity_type: EntityType
    entity_id: int
    alias: str
    match_type: AliasMatchType
    is_active: bool = True


@dataclass(frozen=True)
class Payee:
    """Worker or vendor."""

    id: int
    display_name: str
    aliases: tuple[EntityAlias, ...] = ()


@dataclass(frozen=True)
class Client:
    """Client billed through invoices."""

    id: int
    display_name: str
    company_name: Optional[str] = None
    aliases: tuple[EntityAlias, ...] = ()


@dataclass(frozen=True)
class Project:
    """Construction project or work order."""

    id: int
    number: str
    name: str
    aliases: tuple[EntityAlias, ...] = ()


@dataclass(frozen=True)
class CategoryMapping:
    """Mapping from an account path (or prefix) to a category."""

    id: int
    account_path: str
    category: AccountCategory
    is_active: bool
    created_at: datetime


@dataclass(frozen=True)
class CandidatePools:
    """Read-only data fetched once per import run."""

    payees: tuple[Payee, ...] = ()
    clients: tuple[Client, ...] = ()
    projects: tuple[Project, ...] = ()
    mappings: tuple[CategoryMapping, ...] = ()


# Import pipeline


@dataclass(frozen=True)
class RawRow:
    """One parsed export line. Exists only for one import run."""

    row_number: int
    date: date
    amount: Decimal
    name: str
    account_path: str
    description: str
    kind: TransactionKind
    account_name: str = ""
    project_reference: str = ""
    invoice_number: Optional[str] = None

    @property
    def track(self) -> Track:
        return Track.REVENUE if self.kind is TransactionKind.INVOICE else Track.EXPENSE


@dataclass(frozen=True)
class MatchCandidate:
    """Scored association between a row field and an internal entity."""

    entity_type: EntityType
    entity_id: int
    entity_name: str
    confidence: float
    match_type: MatchType


@dataclass(frozen=True)
class MatchLogEntry:
    """One resolution decision, persisted with the batch for audit."""

    source_text: str
    entity_type: EntityType
    matched_entity_id: Optional[int]
    matched_entity_name: Optional[str]
    confidence: float
    decision: MatchDecision
    algorithm: str

    def to_dict(self) -> dict:
        return {
            "source_text": self.source_text,
            "entity_type": self.entity_type.value,
            "matched_entity_id": self.matched_entity_id,
            "matched_entity_name": self.matched_entity_name,
            "confidence": self.confidence,
            "decision": self.decision.value,
            "algorithm": self.algorithm,
        }


@dataclass(frozen=True)
class Resolution:
    """Outcome of resolving one piece of free text against one pool."""

    source_text: str
    entity_type: EntityType
    selected: Optional[MatchCandidate] = None
    suggestions: tuple[MatchCandidate, ...] = ()

    @property
    def is_resolved(self) -> bool:
        return self.selected is not None


@dataclass(frozen=True)
class Classification:
    """Category outcome for one row."""

    account_path: str
    category: AccountCategory
    is_mapped: bool
    matched_path: Optional[str] = None
    suggested_category: Optional[AccountCategory] = None


@dataclass(frozen=True)
class HistoricalRecord:
    """A committed row as seen by the history deduplicator."""

    id: int
    track: Track
    date: date
    amount: Decimal
    description: Optional[str]
    source_name: Optional[str]
    entity_name: Optional[str]
    invoice_number: Optional[str] = None
    batch_id: Optional[str] = None


@dataclass(frozen=True)
class InFileDuplicate:
    """Row repeated within the same upload."""

    row: RawRow
    first_row: RawRow
    key: str
    reason: str


@dataclass(frozen=True)
class HistoryDuplicate:
    """Row matching a previously committed record."""

    row: RawRow
    existing_id: int
    existing_amount: Decimal
    key: str


@dataclass
class ResolvedRow:
    """A unique row with its resolution and classification attached."""

    row: RawRow
    key: str
    classification: Classification
    party: Optional[Resolution] = None
    project: Optional[Resolution] = None
    reimported: bool = False

    @property
    def party_id(self) -> Optional[int]:
        if self.party is None or self.party.selected is None:
            return None
        return self.party.selected.entity_id

    @property
    def project_id(self) -> Optional[int]:
        if self.project is None or self.project.selected is None:
            return None
        return self.project.selected.entity_id


@dataclass
class UnresolvedEntity:
    """Free text that no entity matched with enough confidence."""

    entity_type: EntityType
    source_text: str
    count: int = 0
    total_amount: Decimal = Decimal("0")
    suggestions: list[MatchCandidate] = field(default_factory=list)


@dataclass
class UnmappedCategory:
    """Account path with no active mapping."""

    account_path: str
    count: int = 0
    total_amount: Decimal = Decimal("0")
    suggested_category: Optional[AccountCategory] = None


@dataclass(frozen=True)
class ReconciliationResult:
    """Non-persistent check that duplicate totals agree with the ledger."""

    existing_total: Decimal
    duplicate_total: Decimal
    difference: Decimal
    is_aligned: bool
    tolerance: Decimal


@dataclass(frozen=True)
class ImportBatch:
    """One committed import run."""

    id: str
    file_name: str
    created_at: datetime
    imported_count: int
    duplicate_count: int
    error_count: int
    status: BatchStatus
    match_log: tuple[dict, ...] = ()


@dataclass(frozen=True)
class PendingRow:
    """A resolved row waiting to be written by the batch committer."""

    track: Track
    date: date
    amount: Decimal
    category: AccountCategory
    kind: TransactionKind
    description: str
    source_name: str
    account_path: Optional[str]
    account_name: Optional[str]
    entity_id: Optional[int]
    project_id: Optional[int]
    invoice_number: Optional[str] = None


@dataclass(frozen=True)
class CommittedRow:
    """A persisted expense or revenue row."""

    id: int
    track: Track
    batch_id: Optional[str]
    date: date
    amount: Decimal
    category: AccountCategory
    kind: TransactionKind
    description: Optional[str]
    source_name: Optional[str]
    account_path: Optional[str]
    entity_id: Optional[int]
    project_id: Optional[int]
    invoice_number: Optional[str] = None


@dataclass(frozen=True)
class CommitResult:
    """Post-commit summary for the review UI."""

    batch_id: str
    imported_count: int
    duplicate_count: int
    error_count: int
    status: BatchStatus


@dataclass(frozen=True)
class RollbackResult:
    """Outcome of rolling back a batch."""

    rows_reverted: int
    status: BatchStatus
