"""Entity resolution: matching export names to payees, clients and projects.

Resolution is a pure function of the input text and the candidate pool.
Priority, first hit wins:

1. exact identifier (project number)          confidence 100
2. exact display name                           confidence 100
3. exact alias                                  confidence 95
4. alias prefix / alias substring               confidence 90 / 80
5. fuzzy similarity >= auto-match threshold     score
6. identifier extracted from free text          confidence 80

Fuzzy scores between the suggestion and auto-match thresholds are returned
as suggestions and never applied automatically.
"""

import logging
import re
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from rapidfuzz import fuzz
from rapidfuzz.distance import JaroWinkler, Levenshtein

from siteledger.domain.entities import (
    AliasMatchType,
    Client,
    EntityAlias,
    EntityType,
    MatchCandidate,
    MatchDecision,
    MatchLogEntry,
    MatchType,
    Payee,
    Project,
    Resolution,
)
from siteledger.domain.keys import normalize_name

logger = logging.getLogger(__name__)

AUTO_MATCH_THRESHOLD = 75.0
SUGGESTION_THRESHOLD = 40.0
MAX_SUGGESTIONS = 5

ALIAS_EXACT_CONFIDENCE = 95.0
ALIAS_PREFIX_CONFIDENCE = 90.0
ALIAS_CONTAINS_CONFIDENCE = 80.0
EXTRACTED_CONFIDENCE = 80.0

# "24-001 Kitchen remodel" -> "24-001"
PROJECT_NUMBER_PATTERN = re.compile(r"(?<![\w-])(\d{2,4}-\d{2,4})(?![\w-])")

BUSINESS_SUFFIXES = re.compile(
    r"\b(inc|incorporated|llc|l l c|corp|corporation|company|co|ltd|limited|construction|const)\b"
)

Scorer = Callable[[str, str], float]


def normalize_business_name(value: Optional[str]) -> str:
    """Normalize a business name for comparison.

    Lower-cases, spells out '&', drops punctuation and corporate suffixes.
    """
    text = (value or "").lower().replace("&", " and ")
    text = re.sub(r"[^\w\s]", " ", text)
    stripped = BUSINESS_SUFFIXES.sub(" ", text)
    stripped = re.sub(r"\s+", " ", stripped).strip()
    # A name made only of suffixes ("Co.") keeps its words
    return stripped or re.sub(r"\s+", " ", text).strip()


def normalize_alnum(value: Optional[str]) -> str:
    return re.sub(r"[^a-z0-9]", "", (value or "").lower())


def similarity_score(left: str, right: str) -> float:
    """Combined similarity in [0, 100].

    Mixes Jaro-Winkler (typos, transpositions), normalized Levenshtein and
    token-sort ratio (word order) over business-normalized names.
    """
    a = normalize_business_name(left)
    b = normalize_business_name(right)
    if not a or not b:
        return 0.0
    if a == b:
        return 100.0

    jaro_winkler = JaroWinkler.normalized_similarity(a, b) * 100
    levenshtein = Levenshtein.normalized_similarity(a, b) * 100
    tokens = fuzz.token_sort_ratio(a, b)

    score = max(
        jaro_winkler * 0.4 + levenshtein * 0.3 + tokens * 0.3,
        tokens * 0.6 + jaro_winkler * 0.4,
    )
    return round(min(score, 100.0), 2)


@dataclass(frozen=True)
class MatchTarget:
    """One pool entry flattened for matching."""

    entity_type: EntityType
    entity_id: int
    display_name: str
    names: tuple[str, ...]
    number: Optional[str] = None
    aliases: tuple[EntityAlias, ...] = ()


def payee_targets(payees: Iterable[Payee]) -> list[MatchTarget]:
    return [
        MatchTarget(EntityType.PAYEE, p.id, p.display_name, (p.display_name,), aliases=p.aliases)
        for p in payees
    ]


def client_targets(clients: Iterable[Client]) -> list[MatchTarget]:
    targets = []
    for c in clients:
        names = (c.display_name, c.company_name) if c.company_name else (c.display_name,)
        targets.append(MatchTarget(EntityType.CLIENT, c.id, c.display_name, names, aliases=c.aliases))
    return targets


def project_targets(projects: Iterable[Project]) -> list[MatchTarget]:
    return [
        MatchTarget(
            EntityType.PROJECT,
            p.id,
            p.number,
            tuple(n for n in (p.name,) if n),
            number=p.number,
            aliases=p.aliases,
        )
        for p in projects
    ]


class EntityResolver:
    """Resolves free text against candidate pools."""

    def __init__(
        self,
        auto_match_threshold: float = AUTO_MATCH_THRESHOLD,
        suggestion_threshold: float = SUGGESTION_THRESHOLD,
        scorer: Scorer = similarity_score,
        max_suggestions: int = MAX_SUGGESTIONS,
    ):
        self.auto_match_threshold = auto_match_threshold
        self.suggestion_threshold = suggestion_threshold
        self.scorer = scorer
        self.max_suggestions = max_suggestions

    def _candidate(self, target: MatchTarget, confidence: float, match_type: MatchType) -> MatchCandidate:
        return MatchCandidate(
            entity_type=target.entity_type,
            entity_id=target.entity_id,
            entity_name=target.display_name,
            confidence=confidence,
            match_type=match_type,
        )

    def _match_exact(self, text: str, targets: list[MatchTarget]) -> Optional[MatchCandidate]:
        normalized = normalize_name(text)
        for target in targets:
            if target.number and normalize_name(target.number) == normalized:
                return self._candidate(target, 100.0, MatchType.EXACT_NUMBER)

        business = normalize_business_name(text)
        for target in targets:
            for name in target.names:
                if normalize_name(name) == normalized or normalize_business_name(name) == business:
                    return self._candidate(target, 100.0, MatchType.EXACT_NAME)
        return None

    def _match_alias(self, text: str, targets: list[MatchTarget]) -> Optional[MatchCandidate]:
        normalized = normalize_name(text)
        compact = normalize_alnum(text)

        for target in targets:
            for alias in target.aliases:
                if alias.is_active and alias.match_type is AliasMatchType.EXACT:
                    if normalize_name(alias.alias) == normalized:
                        return self._candidate(target, ALIAS_EXACT_CONFIDENCE, MatchType.ALIAS_EXACT)

        # Longest alias wins among prefix (then substring) hits
        for match_type, confidence, test in (
            (AliasMatchType.STARTS_WITH, ALIAS_PREFIX_CONFIDENCE, str.startswith),
            (AliasMatchType.CONTAINS, ALIAS_CONTAINS_CONFIDENCE, str.__contains__),
        ):
            best: Optional[tuple[int, MatchTarget]] = None
            for target in targets:
                for alias in target.aliases:
                    if not alias.is_active or alias.match_type is not match_type:
                        continue
                    needle = normalize_alnum(alias.alias)
                    if needle and test(compact, needle):
                        if best is None or len(needle) > best[0]:
                            best = (len(needle), target)
            if best is not None:
                tag = MatchType.ALIAS_PREFIX if match_type is AliasMatchType.STARTS_WITH else MatchType.ALIAS_CONTAINS
                return self._candidate(best[1], confidence, tag)
        return None

    def _score_all(self, text: str, targets: list[MatchTarget]) -> list[MatchCandidate]:
        scored = []
        for target in targets:
            fields = list(target.names)
            if target.number:
                fields.append(target.number)
            score = max((self.scorer(text, field) for field in fields), default=0.0)
            if score >= self.suggestion_threshold:
                scored.append(self._candidate(target, score, MatchType.FUZZY))
        # Stable sort keeps pool order for equal scores
        scored.sort(key=lambda c: c.confidence, reverse=True)
        return scored

    def _match_extracted(self, text: str, targets: list[MatchTarget]) -> Optional[MatchCandidate]:
        found = PROJECT_NUMBER_PATTERN.search(text)
        if not found:
            return None
        extracted = found.group(1).lower()
        for target in targets:
            if target.number and normalize_name(target.number) == extracted:
                return self._candidate(target, EXTRACTED_CONFIDENCE, MatchType.EXTRACTED)
        return None

    def resolve(self, text: Optional[str], entity_type: EntityType, targets: list[MatchTarget]) -> Resolution:
        """Resolve text against flattened pool entries.

        Args:
            text: Free text from the export (name or project reference)
            entity_type: Pool being searched
            targets: Pool entries

        Returns:
            Resolution with at most one selected candidate
        """
        source = (text or "").strip()
        if not source:
            return Resolution(source_text=source, entity_type=entity_type)

        selected = self._match_exact(source, targets) or self._match_alias(source, targets)
        if selected is not None:
            return Resolution(source_text=source, entity_type=entity_type, selected=selected)

        scored = self._score_all(source, targets)
        if scored and scored[0].confidence >= self.auto_match_threshold:
            others = tuple(scored[1 : 1 + self.max_suggestions])
            return Resolution(source_text=source, entity_type=entity_type, selected=scored[0], suggestions=others)

        suggestions = tuple(scored[: self.max_suggestions])
        extracted = self._match_extracted(source, targets)
        if extracted is not None:
            suggestions = tuple(c for c in suggestions if c.entity_id != extracted.entity_id)
            return Resolution(source_text=source, entity_type=entity_type, selected=extracted, suggestions=suggestions)

        return Resolution(source_text=source, entity_type=entity_type, suggestions=suggestions)

    def resolve_payee(self, name: Optional[str], payees: Iterable[Payee]) -> Resolution:
        return self.resolve(name, EntityType.PAYEE, payee_targets(payees))

    def resolve_client(self, name: Optional[str], clients: Iterable[Client]) -> Resolution:
        return self.resolve(name, EntityType.CLIENT, client_targets(clients))

    def resolve_project(self, reference: Optional[str], projects: Iterable[Project]) -> Resolution:
        return self.resolve(reference, EntityType.PROJECT, project_targets(projects))


def log_entry(resolution: Resolution) -> MatchLogEntry:
    """Describe a resolution for the audit match log."""
    selected = resolution.selected
    if selected is None:
        if resolution.suggestions:
            decision = MatchDecision.PENDING_REVIEW
            confidence = resolution.suggestions[0].confidence
        else:
            decision = MatchDecision.UNMATCHED
            confidence = 0.0
        return MatchLogEntry(
            source_text=resolution.source_text,
            entity_type=resolution.entity_type,
            matched_entity_id=None,
            matched_entity_name=None,
            confidence=confidence,
            decision=decision,
            algorithm="fuzzy_match",
        )

    if selected.match_type in (MatchType.EXACT_NUMBER, MatchType.EXACT_NAME):
        decision = MatchDecision.AUTO_MATCHED
    elif selected.match_type in (MatchType.ALIAS_EXACT, MatchType.ALIAS_PREFIX, MatchType.ALIAS_CONTAINS):
        decision = MatchDecision.ALIAS_MATCHED
    else:
        decision = MatchDecision.FUZZY_MATCHED
    return MatchLogEntry(
        source_text=resolution.source_text,
        entity_type=resolution.entity_type,
        matched_entity_id=selected.entity_id,
        matched_entity_name=selected.entity_name,
        confidence=selected.confidence,
        decision=decision,
        algorithm=selected.match_type.value,
    )
