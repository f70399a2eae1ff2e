"""Snapshot loading, caching and the search caller boundary."""

from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from threading import Lock
from typing import Any, Callable, Mapping

from loguru import logger

from config import settings
from paperstore.db import store_mtime
from paperstore.repositories import PaperRepository, RatingRepository, UserRepository

from ..schemas.search import CorpusSnapshot, SearchFilters, SearchOutcome, SortMode
from ..utils.cache import LRUCacheTTL
from .search_service import ScoringOptions, coerce_filters, search
from .vocabulary_service import EMPTY_VOCABULARY, Vocabulary, build_vocabulary

# Lock ordering: SnapshotCache._lock and SearchCoordinator._token_lock are never nested.


def load_snapshot(*, generation: int = 0) -> CorpusSnapshot:
    """Read papers, users and ratings concurrently and join them into one snapshot.

    All three reads must complete before the snapshot exists; any read failure
    propagates to the caller.
    """
    t0 = time.time()
    workers = max(1, int(settings.db.load_workers or 1))
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="snapshot-load") as pool:
        papers_f = pool.submit(PaperRepository.get_tree)
        users_f = pool.submit(UserRepository.get_all)
        ratings_f = pool.submit(RatingRepository.get_all)
        tree = papers_f.result()
        users = users_f.result()
        ratings = ratings_f.result()
    t1 = time.time()

    snapshot = CorpusSnapshot.from_store(tree, users, ratings, generation=generation)
    logger.debug(
        f"snapshot gen={generation}: {len(snapshot.papers)} papers, {len(snapshot.users)} users, "
        f"{len(snapshot.ratings)} rated in {t1 - t0:.3f}s (+{time.time() - t1:.3f}s parse)"
    )
    return snapshot


class SnapshotCache:
    """Holds the current snapshot and its vocabulary, reloaded when the store file changes.

    Every successful load and every ``invalidate()`` advances the generation
    token. A load that finishes after the generation moved on is discarded.
    """

    def __init__(
        self,
        loader: Callable[..., CorpusSnapshot] | None = None,
        mtime_fn: Callable[[], float] | None = None,
    ):
        self._lock = Lock()
        self._loader = loader or load_snapshot
        self._mtime_fn = mtime_fn or store_mtime
        self._snapshot: CorpusSnapshot | None = None
        self._vocab: Vocabulary = EMPTY_VOCABULARY
        self._mtime: float = 0.0
        self._gen: int = 0
        self._loaded_at: float = 0.0
        self.last_error: str | None = None
        self.last_fetch_ms: float = 0.0

    @property
    def generation(self) -> int:
        return self._gen

    @property
    def loaded_at(self) -> float:
        return self._loaded_at

    def invalidate(self) -> int:
        with self._lock:
            self._gen += 1
            self._snapshot = None
            self._mtime = 0.0
            return self._gen

    def _current(self) -> tuple[CorpusSnapshot, Vocabulary]:
        if self._snapshot is None:
            return CorpusSnapshot(generation=self._gen), EMPTY_VOCABULARY
        return self._snapshot, self._vocab

    def get(self) -> tuple[CorpusSnapshot, Vocabulary]:
        """Return (snapshot, vocabulary), reloading first when the store changed."""
        mtime = self._mtime_fn()
        with self._lock:
            if self._snapshot is not None and mtime == self._mtime:
                return self._snapshot, self._vocab
            scheduled_gen = self._gen

        t0 = time.time()
        try:
            snapshot = self._loader(generation=scheduled_gen + 1)
            vocab = build_vocabulary(snapshot)
        except Exception as exc:
            self.last_error = str(exc)
            logger.warning(f"Snapshot load failed: {exc}")
            with self._lock:
                return self._current()
        fetch_ms = (time.time() - t0) * 1000.0

        with self._lock:
            # Invalidated while loading: never write back a stale result.
            if self._gen != scheduled_gen:
                logger.debug(f"Discarding snapshot load for gen {scheduled_gen}; current gen is {self._gen}")
                return self._current() if self._snapshot is not None else (snapshot, vocab)
            self._gen = scheduled_gen + 1
            self._snapshot = snapshot
            self._vocab = vocab
            self._mtime = mtime
            self._loaded_at = time.time()
            self.last_error = None
            self.last_fetch_ms = fetch_ms
            return snapshot, vocab


class Debouncer:
    """Run ``fn`` once calls have stopped for ``wait_s`` seconds (last call's arguments win)."""

    def __init__(self, fn: Callable[..., Any], wait_s: float):
        self._fn = fn
        self._wait_s = max(0.0, float(wait_s))
        self._lock = Lock()
        self._timer: threading.Timer | None = None
        self._pending: tuple[tuple, dict] | None = None

    def __call__(self, *args, **kwargs) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._pending = (args, kwargs)
            self._timer = threading.Timer(self._wait_s, self._fire)
            self._timer.daemon = True
            self._timer.start()

    def _fire(self) -> None:
        with self._lock:
            pending = self._pending
            self._pending = None
            self._timer = None
        if pending is not None:
            args, kwargs = pending
            self._fn(*args, **kwargs)

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = None
            self._pending = None

    def flush(self) -> None:
        """Run a pending call now instead of waiting for the timer."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
        self._fire()


def debounce(wait_s: float | None = None):
    """Decorator form of Debouncer; defaults to the configured typeahead window."""
    if wait_s is None:
        wait_s = settings.search.debounce_ms / 1000.0

    def decorator(fn):
        return Debouncer(fn, wait_s)

    return decorator


class SearchCoordinator:
    """Caller boundary between request handlers and the pure search core.

    Each search may carry a request token from ``next_token()``; when a newer
    token has been issued by the time the search finishes, the result is
    dropped and ``None`` is returned. Outcomes are cached per snapshot
    generation, query, filters, sort and fuzzy flag.
    """

    def __init__(self, snapshots: SnapshotCache | None = None, result_cache: LRUCacheTTL | None = None):
        self.snapshots = snapshots or SnapshotCache()
        if result_cache is None:
            result_cache = LRUCacheTTL(maxsize=settings.search.cache_size, ttl_s=settings.search.cache_ttl)
        self._results = result_cache
        self._token_lock = Lock()
        self._latest_token = 0

    def next_token(self) -> int:
        with self._token_lock:
            self._latest_token += 1
            return self._latest_token

    def is_current(self, token: int) -> bool:
        with self._token_lock:
            return token == self._latest_token

    def snapshot(self) -> tuple[CorpusSnapshot, Vocabulary]:
        return self.snapshots.get()

    def run_search(
        self,
        query: Any,
        filters: SearchFilters | Mapping[str, Any] | None = None,
        sort: SortMode | str = SortMode.RELEVANCE,
        *,
        fuzzy: bool | None = None,
        token: int | None = None,
        options: ScoringOptions | None = None,
    ) -> SearchOutcome | None:
        snapshot, _ = self.snapshots.get()
        filters = coerce_filters(filters)
        mode = SortMode.coerce(sort)
        if fuzzy is None:
            fuzzy = settings.search.fuzzy_enabled
        q = query.strip() if isinstance(query, str) else ""

        key = (snapshot.generation, q.lower(), filters.model_dump_json(), mode.value, bool(fuzzy))
        outcome = self._results.get(key) if options is None else None
        if outcome is None:
            outcome = search(q, snapshot, filters, mode, fuzzy=fuzzy, options=options)
            if options is None:
                self._results.set(key, outcome)
        else:
            logger.trace(f"search cache hit q={q!r} gen={snapshot.generation}")

        if token is not None and not self.is_current(token):
            logger.debug(f"Dropping superseded search q={q!r} token={token}")
            return None
        return outcome

    def clear(self) -> None:
        self._results.clear()


_COORDINATOR_LOCK = Lock()
_COORDINATOR: SearchCoordinator | None = None


def get_coordinator() -> SearchCoordinator:
    global _COORDINATOR
    with _COORDINATOR_LOCK:
        if _COORDINATOR is None:
            _COORDINATOR = SearchCoordinator()
        return _COORDINATOR


def reset_coordinator() -> None:
    """Drop the process-wide coordinator (tests and settings reloads)."""
    global _COORDINATOR
    with _COORDINATOR_LOCK:
        _COORDINATOR = None
