"""Abstract database interface."""

from abc import ABC, abstractmethod
from typing import Optional
from datetime import date

# Import entities directly to avoid circular import through domain/__init__.py
from siteledger.domain.entities import (
    AccountCategory,
    AliasMatchType,
    CategoryMapping,
    Client,
    CommittedRow,
    EntityType,
    HistoricalRecord,
    ImportBatch,
    Payee,
    PendingRow,
    Project,
    RollbackResult,
    Track,
)


class Database(ABC):
    """Abstract database interface for siteledger."""

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    # Candidate pool operations
    @abstractmethod
    def create_payee(self, display_name: str) -> int:
        """Create a payee (worker/vendor). Returns payee ID."""
        pass

    @abstractmethod
    def create_client(self, display_name: str, company_name: Optional[str] = None) -> int:
        """Create a client. Returns client ID."""
        pass

    @abstractmethod
    def create_project(self, number: str, name: str = "") -> int:
        """Create a project. Returns project ID."""
        pass

    @abstractmethod
    def create_alias(
        self,
        entity_type: EntityType,
        entity_id: int,
        alias: str,
        match_type: AliasMatchType = AliasMatchType.EXACT,
    ) -> int:
        """Add an alias for a payee, client or project. Returns alias ID."""
        pass

    @abstractmethod
    def entity_exists(self, entity_type: EntityType, entity_id: int) -> bool:
        """Check if a payee, client or project exists."""
        pass

    @abstractmethod
    def list_payees(self) -> list[Payee]:
        """List payees with their active aliases."""
        pass

    @abstractmethod
    def list_clients(self) -> list[Client]:
        """List clients with their active aliases."""
        pass

    @abstractmethod
    def list_projects(self) -> list[Project]:
        """List projects with their active aliases."""
        pass

    # Category mapping operations
    @abstractmethod
    def create_category_mapping(self, account_path: str, category: AccountCategory) -> int:
        """Create an active category mapping. Returns mapping ID."""
        pass

    @abstractmethod
    def get_category_mapping_by_path(self, account_path: str) -> Optional[CategoryMapping]:
        """Get mapping by account path (case-insensitive)."""
        pass

    @abstractmethod
    def update_category_mapping(
        self,
        mapping_id: int,
        category: Optional[AccountCategory] = None,
        is_active: Optional[bool] = None,
    ) -> None:
        """Update a mapping's category and/or active flag."""
        pass

    @abstractmethod
    def list_category_mappings(self, include_inactive: bool = False) -> list[CategoryMapping]:
        """List category mappings."""
        pass

    # Committed row operations
    @abstractmethod
    def list_committed_rows(
        self,
        start_date: Optional[date],
        end_date: Optional[date],
        track: Track,
        missing_source_name: bool = False,
    ) -> list[HistoricalRecord]:
        """List committed rows of one track within a date range.

        Args:
            start_date: Optional inclusive start date
            end_date: Optional inclusive end date
            track: Expense or revenue rows
            missing_source_name: If True, only rows without a stored source name
        """
        pass

    @abstractmethod
    def update_source_names(self, track: Track, names: dict[int, str]) -> int:
        """Store source names for committed rows. Returns rows updated."""
        pass

    # Import batch operations
    @abstractmethod
    def commit_batch(
        self,
        batch_id: str,
        file_name: str,
        rows: list[PendingRow],
        duplicate_count: int,
        error_count: int,
        match_log: list[dict],
    ) -> ImportBatch:
        """Write a batch and all its rows in a single transaction.

        Raises:
            CommitFailureError: If anything fails; nothing is persisted
        """
        pass

    @abstractmethod
    def get_import_batch(self, batch_id: str) -> Optional[ImportBatch]:
        """Get import batch by ID."""
        pass

    @abstractmethod
    def list_import_batches(self) -> list[ImportBatch]:
        """List import batches, newest first."""
        pass

    @abstractmethod
    def list_batch_rows(self, batch_id: str) -> list[CommittedRow]:
        """List rows tagged with a batch ID."""
        pass

    @abstractmethod
    def rollback_batch(self, batch_id: str) -> RollbackResult:
        """Delete a batch's rows and mark it rolled back.

        Rolling back an already rolled-back batch is a no-op.

        Raises:
            NotFoundError: If the batch does not exist
        """
        pass

    @abstractmethod
    def remove_batch_duplicates(self, batch_id: str, row_ids: dict[Track, list[int]]) -> int:
        """Delete a batch's duplicate rows and move them to its duplicate count.

        Deletes and count update happen in one transaction. Returns rows deleted.
        """
        pass
