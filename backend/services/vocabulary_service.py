"""Vocabulary (term -> frequency) built from corpus snapshots.

The vocabulary feeds typeahead suggestions and autocorrect. It is a plain
immutable value: callers that receive incremental snapshots fold them in with
``merge()`` or through a ``VocabularyAccumulator`` they own.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Mapping
from threading import Lock
from typing import Iterator

from loguru import logger

from ..schemas.search import CorpusSnapshot
from ..utils.names import resolve_author_names
from ..utils.text import collapse_ws, extract_words


class Vocabulary(Mapping):
    """Read-only mapping of term -> frequency (terms >= 2 chars, frequency >= 1)."""

    __slots__ = ("_counts",)

    def __init__(self, counts: Mapping[str, int] | None = None):
        clean: dict[str, int] = {}
        for term, freq in (counts or {}).items():
            if not isinstance(term, str) or len(term) < 2:
                continue
            try:
                n = int(freq)
            except (TypeError, ValueError):
                continue
            if n >= 1:
                clean[term] = n
        self._counts = clean

    def __getitem__(self, term: str) -> int:
        return self._counts[term]

    def __iter__(self) -> Iterator[str]:
        return iter(self._counts)

    def __len__(self) -> int:
        return len(self._counts)

    def __repr__(self) -> str:
        return f"Vocabulary({len(self._counts)} terms)"

    def frequency(self, term: str) -> int:
        return self._counts.get(term, 0)


EMPTY_VOCABULARY = Vocabulary()


def merge(vocab: Mapping[str, int] | None, delta: Mapping[str, int] | None) -> Vocabulary:
    """Additive per-term merge; frequencies never decrease."""
    counts = Counter(dict(vocab or {}))
    for term, freq in (delta or {}).items():
        if isinstance(freq, int) and freq > 0:
            counts[term] += freq
    return Vocabulary(counts)


def build_vocabulary(snapshot: CorpusSnapshot | None, *, base: Mapping[str, int] | None = None) -> Vocabulary:
    """Count words across titles, abstracts, keywords, tags, categorical fields and author names.

    Composed author names also count once as a whole lowercase phrase.
    When ``base`` is given the result is merged into it.
    """
    counts: Counter[str] = Counter()
    if snapshot is None:
        return merge(base, counts) if base else EMPTY_VOCABULARY

    users = snapshot.users
    for record in snapshot.papers:
        counts.update(extract_words(record.title))
        counts.update(extract_words(record.abstract))
        counts.update(extract_words(record.keywords))
        counts.update(extract_words(record.indexed))
        counts.update(extract_words(record.publication_scope))
        counts.update(extract_words(record.publication_type))
        counts.update(extract_words(record.research_field))

        for name in resolve_author_names(record, users):
            counts.update(extract_words(name))
            phrase = collapse_ws(name.lower())
            if " " in phrase:
                counts[phrase] += 1

    logger.trace(f"vocabulary: {len(counts)} terms from {len(snapshot.papers)} papers")
    if base:
        return merge(base, counts)
    return Vocabulary(counts)


def top_terms(vocab: Mapping[str, int] | None, limit: int) -> list[str]:
    """Most frequent terms (ties by term), shown while the search box is empty."""
    if not vocab or limit <= 0:
        return []
    ranked = sorted(vocab.items(), key=lambda kv: (-kv[1], kv[0]))
    return [term for term, _ in ranked[:limit]]


class VocabularyAccumulator:
    """Caller-owned holder that folds successive snapshots into one session vocabulary."""

    def __init__(self, initial: Mapping[str, int] | None = None):
        self._lock = Lock()
        self._vocab = Vocabulary(initial)

    @property
    def vocabulary(self) -> Vocabulary:
        return self._vocab

    def add(self, delta: Mapping[str, int]) -> Vocabulary:
        with self._lock:
            self._vocab = merge(self._vocab, delta)
            return self._vocab

    def add_snapshot(self, snapshot: CorpusSnapshot) -> Vocabulary:
        return self.add(build_vocabulary(snapshot))
