from __future__ import annotations

from typing import Iterable, List, Optional, Tuple

from ..core.constants import DEFAULT_SUGGESTION_LIMIT
from .normalizer import NameNormalizer, default_normalizer


def levenshtein(a: str, b: str) -> int:
    """Unit-cost edit distance (insert / delete / substitute)."""
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i] + [0] * len(b)
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            current[j] = min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + cost)
        previous = current
    return previous[-1]


def rank(
    target: str,
    candidates: Iterable[str],
    *,
    normalizer: Optional[NameNormalizer] = None,
) -> List[Tuple[str, int]]:
    """Candidates with their distance to target, closest first; ties keep input order."""
    normalizer = normalizer or default_normalizer
    key = normalizer.normalize(target)
    scored = [(c, levenshtein(key, normalizer.normalize(c))) for c in candidates]
    # sorted() is stable
    return sorted(scored, key=lambda item: item[1])


def suggest(
    target: str,
    candidates: Iterable[str],
    limit: int = DEFAULT_SUGGESTION_LIMIT,
    *,
    normalizer: Optional[NameNormalizer] = None,
) -> List[str]:
    """Up to `limit` closest candidates. Advisory only, never applied automatically."""
    return [name for name, _ in rank(target, candidates, normalizer=normalizer)[: max(limit, 0)]]
