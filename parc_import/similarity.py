from __future__ import annotations

from functools import lru_cache
from typing import Iterable, Optional, Tuple

from rapidfuzz.distance import Levenshtein


def _fold(text: str) -> str:
    return str(text).strip().casefold()


def levenshtein_ratio(a: str, b: str) -> float:
    """Edit-distance similarity normalized by the longer string."""

    max_len = max(len(a), len(b))
    if max_len == 0:
        return 1.0
    return (max_len - Levenshtein.distance(a, b)) / max_len


@lru_cache(maxsize=4096)
def _similarity_folded(a: str, b: str) -> float:
    if a == b:
        return 1.0

    score = levenshtein_ratio(a, b)

    # Containment boost: "date" inside "date d'achat" scores by length ratio.
    if a and b and (a in b or b in a):
        partial = min(len(a), len(b)) / max(len(a), len(b))
        score = max(score, partial)
    return score


def similarity(a: str, b: str) -> float:
    """
    Score how alike two header fragments are, in [0, 1].

    Both sides are trimmed and case-folded. Exact matches score 1.0; when one
    string contains the other the length ratio is used if it beats the plain
    edit-distance ratio. The score is symmetric.
    """

    fa, fb = _fold(a), _fold(b)
    # Order the key so the cache stays symmetric.
    if fb < fa:
        fa, fb = fb, fa
    return _similarity_folded(fa, fb)


def best_similarity(text: str, candidates: Iterable[str]) -> Tuple[Optional[str], float]:
    """Return the candidate closest to ``text`` and its score (first wins on ties)."""

    best: Optional[str] = None
    best_score = 0.0
    for candidate in candidates:
        score = similarity(text, candidate)
        if score > best_score:
            best, best_score = candidate, score
            if best_score == 1.0:
                break
    return best, best_score
