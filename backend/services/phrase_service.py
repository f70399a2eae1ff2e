"""Related-phrase extraction from the top-ranked search results."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Iterable, Iterator, Sequence

from loguru import logger

from config import settings

from ..schemas.search import PaperRecord, ScoredRecord
from ..utils.similarity import jaccard, mean_best_token_similarity, similarity
from ..utils.text import collapse_ws, token_tuple

_SENTENCE_RE = re.compile(r"[.!?]\s+")
_WORD_RE = re.compile(r"[^\W_]+")

WINDOW_MIN = 6
WINDOW_MAX = 10


@dataclass(frozen=True)
class PhraseWeights:
    jaccard: float = 0.45
    token: float = 0.35
    string: float = 0.20

    @classmethod
    def from_settings(cls) -> PhraseWeights:
        s = settings.search
        return cls(jaccard=s.phrase_jaccard_weight, token=s.phrase_token_weight, string=s.phrase_string_weight)


def split_sentences(text: Any) -> list[str]:
    if not isinstance(text, str):
        return []
    return [s for s in (collapse_ws(p) for p in _SENTENCE_RE.split(text)) if s]


def token_windows(sentence: str, min_len: int = WINDOW_MIN, max_len: int = WINDOW_MAX) -> Iterator[str]:
    """Contiguous word windows of ``min_len``..``max_len`` words (only for long enough sentences)."""
    words = _WORD_RE.findall(sentence)
    if len(words) < min_len:
        return
    for size in range(min_len, max_len + 1):
        for start in range(0, len(words) - size + 1):
            yield " ".join(words[start : start + size])


def candidate_snippets(record: PaperRecord) -> Iterator[str]:
    """Title, abstract sentences, sentence windows, then keyword and tag values."""
    if record.title:
        yield collapse_ws(record.title)
    for sentence in split_sentences(record.abstract):
        yield sentence
        yield from token_windows(sentence)
    for value in list(record.keywords) + list(record.indexed):
        value = collapse_ws(value)
        if value:
            yield value


def phrase_score(query: str, snippet: str, weights: PhraseWeights | None = None) -> float:
    weights = weights or PhraseWeights()
    q_tokens = token_tuple(query)
    s_tokens = token_tuple(snippet)
    score = (
        weights.jaccard * jaccard(q_tokens, s_tokens)
        + weights.token * mean_best_token_similarity(q_tokens, s_tokens)
        + weights.string * similarity(query, snippet)
    )
    return min(1.0, max(0.0, score))


def _as_record(item: PaperRecord | ScoredRecord) -> PaperRecord | None:
    if isinstance(item, ScoredRecord):
        return item.record
    if isinstance(item, PaperRecord):
        return item
    return None


def related_phrases(
    query: Any,
    top_records: Iterable[PaperRecord | ScoredRecord],
    k: int | None = None,
    *,
    max_records: int | None = None,
    min_chars: int | None = None,
    threshold: float | None = None,
    dedup_threshold: float | None = None,
    weights: PhraseWeights | None = None,
) -> list[str]:
    """Up to ``k`` snippets from the leading records that read like the query.

    Candidates shorter than ``min_chars`` are dropped, the rest are scored with
    a blend of token overlap, token similarity and whole-string similarity.
    Snippets below ``threshold`` are discarded and near-duplicates (token
    Jaccard above ``dedup_threshold`` with an accepted snippet) are skipped.
    """
    s = settings.search
    k = s.phrase_limit if k is None else k
    max_records = s.phrase_top_records if max_records is None else max_records
    min_chars = s.phrase_min_chars if min_chars is None else min_chars
    threshold = s.phrase_threshold if threshold is None else threshold
    dedup_threshold = s.phrase_dedup_jaccard if dedup_threshold is None else dedup_threshold
    weights = weights or PhraseWeights.from_settings()

    q = query.strip() if isinstance(query, str) else ""
    if not q or k <= 0:
        return []

    scored: dict[str, float] = {}
    for i, item in enumerate(top_records):
        if i >= max_records:
            break
        record = _as_record(item)
        if record is None:
            continue
        for snippet in candidate_snippets(record):
            if len(snippet) < min_chars or snippet in scored:
                continue
            scored[snippet] = phrase_score(q, snippet, weights)

    ranked = sorted(
        ((snip, score) for snip, score in scored.items() if score >= threshold),
        key=lambda t: (-t[1], t[0]),
    )
    accepted: list[str] = []
    accepted_tokens: list[Sequence[str]] = []
    for snippet, _ in ranked:
        tokens = token_tuple(snippet)
        if any(jaccard(tokens, prev) > dedup_threshold for prev in accepted_tokens):
            continue
        accepted.append(snippet)
        accepted_tokens.append(tokens)
        if len(accepted) >= k:
            break

    logger.trace(f"related_phrases q={q!r}: {len(scored)} candidates, {len(accepted)} kept")
    return accepted
