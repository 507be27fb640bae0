"""Import settings.

Defaults can be overridden through ``SITELEDGER_*`` environment variables or
by passing an explicit ``ImportSettings`` to the import service.
"""

import os
from dataclasses import dataclass, replace
from decimal import Decimal, InvalidOperation
from typing import Mapping, Optional

from siteledger.domain.entities import AccountCategory
from siteledger.domain.errors import ValidationError

ENV_PREFIX = "SITELEDGER_"


@dataclass(frozen=True)
class ImportSettings:
    """Tunable thresholds for one import run."""

    auto_match_threshold: float = 75.0
    suggestion_threshold: float = 40.0
    reconciliation_tolerance: Decimal = Decimal("0.01")
    history_window_days: int = 1
    max_workers: int = 4
    fallback_category: AccountCategory = AccountCategory.OTHER

    def __post_init__(self):
        if not 0 <= self.suggestion_threshold <= self.auto_match_threshold <= 100:
            raise ValidationError(
                "Thresholds must satisfy 0 <= suggestion_threshold <= auto_match_threshold <= 100"
            )
        if self.reconciliation_tolerance < 0:
            raise ValidationError("Reconciliation tolerance cannot be negative")
        if self.history_window_days < 0:
            raise ValidationError("History window cannot be negative")
        if self.max_workers < 1:
            raise ValidationError("max_workers must be at least 1")


# Environment variable suffix -> (field name, converter)
ENV_FIELDS = {
    "AUTO_MATCH_THRESHOLD": ("auto_match_threshold", float),
    "SUGGESTION_THRESHOLD": ("suggestion_threshold", float),
    "RECONCILIATION_TOLERANCE": ("reconciliation_tolerance", Decimal),
    "HISTORY_WINDOW_DAYS": ("history_window_days", int),
    "MAX_WORKERS": ("max_workers", int),
    "FALLBACK_CATEGORY": ("fallback_category", lambda raw: AccountCategory(raw.lower())),
}


def load_settings(env: Optional[Mapping[str, str]] = None, **overrides) -> ImportSettings:
    """Build settings from the environment, then apply keyword overrides.

    Args:
        env: Environment mapping (defaults to os.environ)
        **overrides: Field values that take precedence over the environment

    Returns:
        ImportSettings instance

    Raises:
        ValidationError: If a variable holds an invalid value
    """
    if env is None:
        env = os.environ

    values = {}
    for suffix, (field_name, convert) in ENV_FIELDS.items():
        raw = env.get(ENV_PREFIX + suffix)
        if raw is None or not raw.strip():
            continue
        try:
            values[field_name] = convert(raw.strip())
        except (ValueError, InvalidOperation) as e:
            raise ValidationError(f"Invalid {ENV_PREFIX}{suffix} value '{raw}': {e}")

    settings = ImportSettings(**values)
    overrides = {k: v for k, v in overrides.items() if v is not None}
    if overrides:
        settings = replace(settings, **overrides)
    return settings
