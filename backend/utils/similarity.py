"""Edit-distance similarity helpers used by suggestions, ranking and phrases."""

from __future__ import annotations

from typing import Any, Sequence

from rapidfuzz.distance import DamerauLevenshtein

DEFAULT_PREFIX_BONUS = 0.08


def damerau_levenshtein(a: str, b: str) -> int:
    """Unrestricted Damerau-Levenshtein distance (insert/delete/substitute/transpose, cost 1).

    A transposed pair may be edited again afterwards, unlike optimal string alignment.
    """
    return DamerauLevenshtein.distance(a, b)


def similarity(a: Any, b: Any, prefix_bonus: float = DEFAULT_PREFIX_BONUS) -> float:
    """Normalized similarity in [0, 1] between a query-side ``a`` and a candidate ``b``.

    The prefix bonus is asymmetric: a candidate extending the query earns the
    full bonus, a query extending the candidate earns half of it.
    """
    a = a.strip().lower() if isinstance(a, str) else ""
    b = b.strip().lower() if isinstance(b, str) else ""
    if not a and not b:
        return 1.0
    dist = damerau_levenshtein(a, b)
    score = 1.0 - dist / max(len(a), len(b), 1)
    if b.startswith(a):
        score += prefix_bonus
    if a.startswith(b):
        score += prefix_bonus / 2
    return min(1.0, max(0.0, score))


def best_token_similarity(token: str, candidates: Sequence[str], prefix_bonus: float = DEFAULT_PREFIX_BONUS) -> float:
    best = 0.0
    for cand in candidates:
        s = similarity(token, cand, prefix_bonus)
        if s > best:
            best = s
            if best >= 1.0:
                break
    return best


def mean_best_token_similarity(
    query_tokens: Sequence[str],
    candidate_tokens: Sequence[str],
    prefix_bonus: float = DEFAULT_PREFIX_BONUS,
) -> float:
    """Average over query tokens of each token's best similarity against the candidate tokens."""
    if not query_tokens or not candidate_tokens:
        return 0.0
    total = 0.0
    for tok in query_tokens:
        total += best_token_similarity(tok, candidate_tokens, prefix_bonus)
    return total / len(query_tokens)


def token_set_similarity(
    query: str,
    candidate: str,
    query_tokens: Sequence[str],
    candidate_tokens: Sequence[str],
    prefix_bonus: float = DEFAULT_PREFIX_BONUS,
) -> float:
    """Token-wise similarity, falling back to whole-string similarity when either side has no tokens."""
    if query_tokens and candidate_tokens:
        return mean_best_token_similarity(query_tokens, candidate_tokens, prefix_bonus)
    return similarity(query, candidate, prefix_bonus)


def jaccard(a: Sequence[str], b: Sequence[str]) -> float:
    sa, sb = set(a), set(b)
    if not sa and not sb:
        return 0.0
    return len(sa & sb) / len(sa | sb)
