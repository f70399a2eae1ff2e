"""Typeahead suggestions, highlighting and "did you mean" correction."""

from __future__ import annotations

from typing import Any, Mapping

from config import settings

from ..utils.similarity import similarity, token_set_similarity
from ..utils.text import token_tuple


def _clean_query(query: Any) -> str:
    if not isinstance(query, str):
        return ""
    return " ".join(query.lower().split())


def direct_matches(q: str, vocab: Mapping[str, int]) -> list[str]:
    """Vocabulary terms containing ``q``; prefix matches first, then by frequency."""
    hits = [(term, freq) for term, freq in vocab.items() if q in term]
    hits.sort(key=lambda tf: (not tf[0].startswith(q), -tf[1], tf[0]))
    return [term for term, _ in hits]


def fuzzy_matches(
    q: str,
    vocab: Mapping[str, int],
    *,
    threshold: float,
    prefix_bonus: float,
    whole_prefix_bonus: float = 0.0,
) -> list[tuple[str, float]]:
    """(term, score) pairs whose token-averaged similarity clears ``threshold``.

    ``whole_prefix_bonus`` is added when the term starts with the whole query.
    Sorted by score, then frequency, then term.
    """
    q_tokens = token_tuple(q)
    scored = []
    for term, freq in vocab.items():
        score = token_set_similarity(q, term, q_tokens, token_tuple(term), prefix_bonus)
        if whole_prefix_bonus and term.startswith(q):
            score = min(1.0, score + whole_prefix_bonus)
        if score >= threshold:
            scored.append((term, score, freq))
    scored.sort(key=lambda t: (-t[1], -t[2], t[0]))
    return [(term, score) for term, score, _ in scored]


def suggest(
    query: Any,
    vocab: Mapping[str, int] | None,
    limit: int | None = None,
    *,
    threshold: float | None = None,
    prefix_bonus: float | None = None,
) -> list[str]:
    """Rank vocabulary terms for a partial query.

    Substring matches come first; when they do not fill ``limit`` the list is
    topped up with fuzzy token matches. The result is deduplicated and never
    longer than ``limit``.
    """
    if limit is None:
        limit = settings.search.suggestion_limit
    q = _clean_query(query)
    if not q or not vocab or limit <= 0:
        return []
    threshold = settings.search.suggest_threshold if threshold is None else threshold
    prefix_bonus = settings.search.prefix_bonus if prefix_bonus is None else prefix_bonus

    out = direct_matches(q, vocab)[:limit]
    if len(out) < limit:
        seen = set(out)
        fuzzy = fuzzy_matches(q, vocab, threshold=threshold, prefix_bonus=prefix_bonus)[:limit]
        for term, _ in fuzzy:
            if term not in seen:
                seen.add(term)
                out.append(term)
    return out[:limit]


def highlight_ranges(suggestion: Any, query: Any) -> list[tuple[int, int]]:
    """Character ranges [start, end) of ``suggestion`` matching query words.

    Each query word contributes its first case-insensitive occurrence;
    overlapping or touching ranges are merged.
    """
    if not isinstance(suggestion, str) or not isinstance(query, str):
        return []
    hay = suggestion.lower()
    ranges = []
    for word in query.lower().split():
        pos = hay.find(word)
        if pos >= 0:
            ranges.append((pos, pos + len(word)))
    if not ranges:
        return []
    ranges.sort()
    merged = [ranges[0]]
    for start, end in ranges[1:]:
        last_start, last_end = merged[-1]
        if start <= last_end:
            merged[-1] = (last_start, max(last_end, end))
        else:
            merged.append((start, end))
    return merged


def autocorrect_phrase(query: Any, vocab: Mapping[str, int] | None, *, threshold: float | None = None) -> str:
    """Replace each word by its best suggestion when they are similar enough."""
    if not isinstance(query, str):
        return ""
    threshold = settings.search.autocorrect_threshold if threshold is None else threshold
    words = query.split()
    if not vocab:
        return " ".join(words)
    out = []
    for word in words:
        best = suggest(word, vocab, 1)
        if best and similarity(word, best[0]) >= threshold:
            out.append(best[0])
        else:
            out.append(word)
    return " ".join(out)


def did_you_mean(query: Any, vocab: Mapping[str, int] | None, limit: int | None = None) -> list[str]:
    """Alternative queries offered when a search returns nothing.

    The autocorrected phrase leads, followed by fuzzy whole-query matches with a
    bonus for terms that extend the query. The original query is never offered.
    """
    q = _clean_query(query)
    if not q or not vocab:
        return []
    if limit is None:
        limit = settings.search.did_you_mean_limit
    if limit <= 0:
        return []

    bonus = settings.search.prefix_bonus
    candidates = [autocorrect_phrase(query, vocab).lower()]
    fuzzy = fuzzy_matches(
        q,
        vocab,
        threshold=settings.search.suggest_threshold,
        prefix_bonus=bonus,
        whole_prefix_bonus=bonus,
    )
    candidates.extend(term for term, _ in fuzzy[:limit])

    out = []
    seen = {q}
    for cand in candidates:
        cand = " ".join(cand.split())
        if cand and cand not in seen:
            seen.add(cand)
            out.append(cand)
        if len(out) >= limit:
            break
    return out
