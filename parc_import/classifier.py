"""
Header classification: map spreadsheet header cells onto canonical fields.

Each header is run through an ordered list of matcher strategies. The first
strategy whose best candidate clears the acceptance threshold wins; later
strategies are not consulted. The result depends on the header row only, so
it is computed once per sheet and shared by every data row.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .schema import CanonicalSchema, clean_header_name
from .similarity import best_similarity, similarity

LOGGER = logging.getLogger(__name__)

# Scores must be strictly greater than this to be accepted. Lower values map
# more columns but let spurious matches through.
DEFAULT_THRESHOLD = 0.3


@dataclass(frozen=True)
class Candidate:
    field: str
    score: float
    strategy: str


@dataclass(frozen=True)
class ColumnMatch:
    column_index: int
    header: str
    field: str
    confidence: float
    strategy: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "column_index": self.column_index,
            "header": self.header,
            "field": self.field,
            "confidence": round(self.confidence, 4),
            "strategy": self.strategy,
        }


@dataclass(frozen=True)
class ColumnMapping:
    """Column -> field associations computed from a header row."""

    matches: Tuple[ColumnMatch, ...]
    header_count: int
    unmatched: Tuple[str, ...] = ()
    _by_field: Dict[str, ColumnMatch] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_by_field", {m.field: m for m in self.matches})

    def __len__(self) -> int:
        return len(self.matches)

    def __iter__(self):
        return iter(self.matches)

    def for_field(self, name: str) -> Optional[ColumnMatch]:
        return self._by_field.get(name)

    @property
    def fields(self) -> List[str]:
        return [m.field for m in self.matches]

    @property
    def confidence(self) -> float:
        """Mean confidence of the accepted associations (0 when nothing mapped)."""

        if not self.matches:
            return 0.0
        return sum(m.confidence for m in self.matches) / len(self.matches)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "columns": [m.to_dict() for m in self.matches],
            "unmatched": list(self.unmatched),
            "header_count": self.header_count,
            "confidence": round(self.confidence, 4),
        }


class MatchStrategy(ABC):
    """Base class for one header-matching phase."""

    name = "base"

    @abstractmethod
    def attempt(self, header: str, schema: CanonicalSchema) -> Optional[Candidate]:
        raise NotImplementedError


class ExactSynonymStrategy(MatchStrategy):
    """A header spelled exactly like a known synonym maps with full confidence."""

    name = "exact"

    def attempt(self, header: str, schema: CanonicalSchema) -> Optional[Candidate]:
        for fld in schema.fields:
            for syn in fld.synonyms:
                if header == syn.casefold():
                    return Candidate(fld.name, 1.0, self.name)
        return None


class TruncatedPatternStrategy(MatchStrategy):
    """Short fragments expected to survive header truncation ("départ", "ociété")."""

    name = "truncated"

    def _patterns(self, fld) -> Sequence[str]:
        return fld.truncated_patterns

    def _contains(self, header: str, pattern: str) -> bool:
        return pattern in header or header in pattern

    def attempt(self, header: str, schema: CanonicalSchema) -> Optional[Candidate]:
        best: Optional[Candidate] = None
        for fld in schema.fields:
            for pattern in self._patterns(fld):
                folded = pattern.casefold()
                if not self._contains(header, folded):
                    continue
                score = similarity(header, folded)
                if best is None or score > best.score:
                    best = Candidate(fld.name, score, self.name)
        return best


class ContentPatternStrategy(TruncatedPatternStrategy):
    """Value-shape hints appearing in the header itself ("RAM (GB)", "Disque SSD")."""

    name = "content"

    def _patterns(self, fld) -> Sequence[str]:
        return fld.content_patterns

    def _contains(self, header: str, pattern: str) -> bool:
        return pattern in header


class SynonymSimilarityStrategy(MatchStrategy):
    """Fuzzy comparison against every synonym of every field."""

    name = "similarity"

    def attempt(self, header: str, schema: CanonicalSchema) -> Optional[Candidate]:
        best: Optional[Candidate] = None
        for fld in schema.fields:
            _, score = best_similarity(header, fld.synonyms)
            if score > 0 and (best is None or score > best.score):
                best = Candidate(fld.name, score, self.name)
        return best


DEFAULT_STRATEGIES: Tuple[MatchStrategy, ...] = (
    ExactSynonymStrategy(),
    TruncatedPatternStrategy(),
    ContentPatternStrategy(),
    SynonymSimilarityStrategy(),
)


def classify_header(
    header: Any,
    schema: CanonicalSchema,
    threshold: float = DEFAULT_THRESHOLD,
    strategies: Sequence[MatchStrategy] = DEFAULT_STRATEGIES,
) -> Optional[Candidate]:
    """Classify a single header cell; returns None when no phase clears the threshold."""

    if not isinstance(header, str):
        return None
    normalized = clean_header_name(header.replace("\u2019", "'")).strip().casefold()
    if not normalized:
        return None

    for strategy in strategies:
        candidate = strategy.attempt(normalized, schema)
        if candidate is not None and candidate.score > threshold:
            return candidate
    return None


def classify_headers(
    headers: Iterable[Any],
    schema: CanonicalSchema,
    threshold: float = DEFAULT_THRESHOLD,
    strategies: Sequence[MatchStrategy] = DEFAULT_STRATEGIES,
) -> ColumnMapping:
    """
    Build the sheet's ColumnMapping from its header row.

    Every header is classified first. When several columns resolve to the
    same field, the highest confidence keeps it and equal confidences go to
    the leftmost column; the other columns are reported as unmatched.
    """

    header_list = list(headers)
    labels = ["" if header is None else str(header) for header in header_list]
    candidates = [classify_header(header, schema, threshold, strategies) for header in header_list]

    winners: Dict[str, int] = {}
    for index, candidate in enumerate(candidates):
        if candidate is None:
            continue
        holder = winners.get(candidate.field)
        if holder is None or candidate.score > candidates[holder].score:
            winners[candidate.field] = index

    matches: List[ColumnMatch] = []
    unmatched: List[str] = []
    for index, candidate in enumerate(candidates):
        label = labels[index]
        if candidate is None:
            if label.strip():
                LOGGER.debug("No mapping for header %r", label)
                unmatched.append(label)
            continue

        holder = winners[candidate.field]
        if holder != index:
            LOGGER.debug(
                "Header %r also matches %s (%.3f); column %d %r keeps it (%.3f)",
                label,
                candidate.field,
                candidate.score,
                holder,
                labels[holder],
                candidates[holder].score,
            )
            unmatched.append(label)
            continue

        match = ColumnMatch(
            column_index=index,
            header=label,
            field=candidate.field,
            confidence=min(max(candidate.score, 0.0), 1.0),
            strategy=candidate.strategy,
        )
        LOGGER.debug(
            "Header %r -> %s (%s, confidence %.3f)", label, match.field, match.strategy, match.confidence
        )
        matches.append(match)

    return ColumnMapping(matches=tuple(matches), header_count=len(header_list), unmatched=tuple(unmatched))
