"""Account-path classification and category mapping management."""

import logging
from typing import Iterable, Optional

from siteledger.database.base import Database
from siteledger.domain.entities import AccountCategory, CategoryMapping, Classification
from siteledger.domain.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

ACCOUNT_SEPARATOR = ":"

# Keyword heuristic, checked in order; first hit wins
CATEGORY_KEYWORDS: list[tuple[AccountCategory, tuple[str, ...]]] = [
    (AccountCategory.REVENUE, ("income", "revenue", "sales")),
    (
        AccountCategory.MATERIALS,
        ("dumpster", "disposal", "material", "supply", "supplies", "lumber", "concrete", "aggregate"),
    ),
    (AccountCategory.EQUIPMENT, ("tool", "safety", "equipment", "rental", "machinery")),
    (
        AccountCategory.MANAGEMENT,
        (
            "insurance", "bond", "office", "admin", "management", "vehicle", "fuel", "gas",
            "uniform", "rent", "legal", "accounting",
        ),
    ),
    (AccountCategory.LABOR_INTERNAL, ("labor", "wage", "payroll")),
    (AccountCategory.SUBCONTRACTORS, ("contract", "subcontract")),
    (AccountCategory.PERMITS, ("permit", "license", "fee")),
]

# Seed mappings for a typical construction chart of accounts
DEFAULT_ACCOUNT_MAPPINGS: list[tuple[str, AccountCategory]] = [
    ("Cost of Goods Sold:Contract Labor", AccountCategory.SUBCONTRACTORS),
    ("Cost of Goods Sold:Supplies & Materials", AccountCategory.MATERIALS),
    ("Cost of Goods Sold:Equipment Rental - COGS", AccountCategory.EQUIPMENT),
    ("Cost of Goods Sold:Equipment Rental", AccountCategory.EQUIPMENT),
    ("Cost of Goods Sold:Job Site Dumpsters", AccountCategory.MATERIALS),
    ("Office Expenses:Office Equipment & Supplies", AccountCategory.MANAGEMENT),
    ("Vehicle Expenses:Vehicle Gas & Fuel", AccountCategory.MANAGEMENT),
    ("General Business Expenses:Uniforms", AccountCategory.MANAGEMENT),
    ("Rent:Building & Land Rent", AccountCategory.MANAGEMENT),
    ("Employee Benefits:Workers' Compensation Insurance", AccountCategory.MANAGEMENT),
    ("Insurance:Business Insurance", AccountCategory.MANAGEMENT),
    ("Legal & Accounting Services:Legal Fees", AccountCategory.MANAGEMENT),
    ("Payroll Expenses:Wages", AccountCategory.LABOR_INTERNAL),
    ("Services", AccountCategory.REVENUE),
]


def normalize_account_path(path: Optional[str]) -> str:
    """Lower-case and tidy whitespace around ':' separators."""
    parts = [part.strip() for part in (path or "").split(ACCOUNT_SEPARATOR)]
    return ACCOUNT_SEPARATOR.join(parts).lower().strip(ACCOUNT_SEPARATOR)


def suggest_category(account_path: Optional[str]) -> Optional[AccountCategory]:
    """Suggest a category from keywords in an account path.

    Returns None if no keyword matches. The suggestion is only shown to a
    reviewer; it is never applied as if it were a mapping.
    """
    lower = (account_path or "").lower()
    if not lower:
        return None
    for category, keywords in CATEGORY_KEYWORDS:
        if any(keyword in lower for keyword in keywords):
            return category
    return None


class CategoryClassifier:
    """Maps account paths to categories using the active mappings."""

    def __init__(
        self,
        mappings: Iterable[CategoryMapping],
        fallback_category: AccountCategory = AccountCategory.OTHER,
    ):
        """Initialize classifier.

        Args:
            mappings: Category mappings; inactive ones are ignored
            fallback_category: Category given to rows with no mapping
        """
        self.fallback_category = fallback_category
        self._exact: dict[str, CategoryMapping] = {}
        for mapping in mappings:
            if mapping.is_active:
                self._exact.setdefault(normalize_account_path(mapping.account_path), mapping)
        # Longest prefix first
        self._prefixes = sorted(self._exact.items(), key=lambda item: len(item[0]), reverse=True)

    def lookup(self, account_path: Optional[str]) -> tuple[Optional[CategoryMapping], bool]:
        """Find the mapping for a path.

        Returns:
            (mapping or None, True if matched by prefix)
        """
        normalized = normalize_account_path(account_path)
        if not normalized:
            return None, False
        mapping = self._exact.get(normalized)
        if mapping is not None:
            return mapping, False
        for prefix, mapping in self._prefixes:
            if normalized.startswith(prefix + ACCOUNT_SEPARATOR):
                return mapping, True
        return None, False

    def classify(self, account_path: Optional[str]) -> Classification:
        """Classify one account path."""
        path = (account_path or "").strip()
        mapping, _ = self.lookup(path)
        if mapping is not None:
            return Classification(
                account_path=path,
                category=mapping.category,
                is_mapped=True,
                matched_path=mapping.account_path,
            )
        return Classification(
            account_path=path,
            category=self.fallback_category,
            is_mapped=False,
            suggested_category=suggest_category(path),
        )


class CategoryMappingService:
    """Service for managing account-path category mappings."""

    def __init__(self, db: Database):
        """Initialize category mapping service.

        Args:
            db: Database instance
        """
        self.db = db

    def list_mappings(self, include_inactive: bool = False) -> list[CategoryMapping]:
        return self.db.list_category_mappings(include_inactive=include_inactive)

    def resolve_unmapped(self, account_path: str, category: AccountCategory | str) -> int:
        """Persist a reviewer's mapping for an account path.

        Reactivates an existing inactive mapping for the same path instead of
        creating a second one.

        Args:
            account_path: Account full name as it appears in exports
            category: Category to assign

        Returns:
            Mapping ID

        Raises:
            ValidationError: If the path is empty or the category unknown
        """
        path = (account_path or "").strip()
        if not path:
            raise ValidationError("Account path cannot be empty")
        try:
            category = AccountCategory(category)
        except ValueError:
            raise ValidationError(f"Unknown category '{category}'")

        existing = self.db.get_category_mapping_by_path(path)
        if existing is not None:
            self.db.update_category_mapping(existing.id, category=category, is_active=True)
            logger.info("Updated mapping '%s' -> %s", path, category.value)
            return existing.id

        mapping_id = self.db.create_category_mapping(account_path=path, category=category)
        logger.info("Created mapping '%s' -> %s", path, category.value)
        return mapping_id

    def deactivate(self, account_path: str) -> None:
        """Stop applying a mapping to future imports.

        Raises:
            NotFoundError: If no mapping exists for the path
        """
        existing = self.db.get_category_mapping_by_path(account_path)
        if existing is None:
            raise NotFoundError(f"No mapping for account '{account_path}'")
        self.db.update_category_mapping(existing.id, is_active=False)

    def seed_defaults(self) -> int:
        """Create any missing default mappings. Returns number created."""
        created = 0
        for path, category in DEFAULT_ACCOUNT_MAPPINGS:
            if self.db.get_category_mapping_by_path(path) is None:
                self.db.create_category_mapping(account_path=path, category=category)
                created += 1
        return created
