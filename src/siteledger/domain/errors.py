"""Shared domain error messages and error types."""

from typing import Optional


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class ConflictError(DomainError):
    """Domain conflict, such as uniqueness violations."""


class RowParseError(DomainError):
    """A single export row has an unparseable date or amount.

    Collected per row by the parser; never aborts the batch.
    """

    def __init__(self, row_number: int, message: str):
        super().__init__(f"Row {row_number}: {message}")
        self.row_number = row_number
        self.reason = message


class ReconciliationMismatchError(DomainError):
    """Duplicate totals disagree with the committed ledger.

    Blocks commit unless the caller explicitly overrides it.
    """

    def __init__(self, message: str, results: Optional[list] = None):
        super().__init__(message)
        self.results = results or []


class CommitFailureError(DomainError):
    """The batch could not be written. Nothing was persisted."""


def batch_not_found(batch_id: str) -> str:
    """Return message for missing import batch."""
    return f"Import batch {batch_id} not found"


def entity_not_found(entity_type: str, entity_id: int) -> str:
    """Return message for missing payee, client or project."""
    return f"{entity_type.capitalize()} {entity_id} not found"


def duplicate_category_mapping(account_path: str) -> str:
    """Return message for an already active account mapping."""
    return f"Account '{account_path}' is already mapped"


def reconciliation_failed(difference, tolerance) -> str:
    """Return message for a failed reconciliation gate."""
    return (
        f"Reconciliation failed: duplicate totals differ from committed totals by "
        f"{difference:.2f} (tolerance {tolerance:.2f}). "
        "Review the duplicates or commit with an explicit override."
    )
