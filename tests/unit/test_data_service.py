"""Unit tests for snapshot loading, caching and the search coordinator."""

from __future__ import annotations

import threading
import time

import pytest


def _snapshot(generation: int, title: str = "Cardiac Arrest Protocols"):
    from backend.schemas.search import CorpusSnapshot

    return CorpusSnapshot.from_store({"R": {"p": {"title": title}}}, {}, {}, generation=generation)


class TestLoadSnapshot:
    """Tests for load_snapshot() against the SQLite store."""

    def test_joins_all_collections(self, seeded_store):
        from backend.services.data_service import load_snapshot

        snapshot = load_snapshot(generation=7)
        assert snapshot.generation == 7
        assert sorted(p.id for p in snapshot.papers) == ["p1", "p2", "p3"]
        assert set(snapshot.users) == {"u1", "u2"}
        assert snapshot.rating_stats("p1") == (4.0, 2)

    def test_empty_store(self, isolated_store):
        from backend.services.data_service import load_snapshot

        snapshot = load_snapshot()
        assert snapshot.papers == []
        assert snapshot.users == {}


class TestSnapshotCache:
    """Tests for SnapshotCache."""

    def test_reuses_snapshot_until_mtime_changes(self):
        from backend.services.data_service import SnapshotCache

        calls = []
        mtime = [1.0]

        def loader(*, generation):
            calls.append(generation)
            return _snapshot(generation)

        cache = SnapshotCache(loader=loader, mtime_fn=lambda: mtime[0])
        first, vocab = cache.get()
        again, _ = cache.get()
        assert again is first
        assert "cardiac" in vocab
        assert calls == [1]

        mtime[0] = 2.0
        refreshed, _ = cache.get()
        assert refreshed.generation == 2
        assert calls == [1, 2]

    def test_invalidated_load_is_discarded(self):
        from backend.services.data_service import SnapshotCache

        calls = []

        def loader(*, generation):
            calls.append(generation)
            if len(calls) == 1:
                # A newer invalidation lands while this load is in flight.
                cache.invalidate()
            return _snapshot(generation)

        cache = SnapshotCache(loader=loader, mtime_fn=lambda: 1.0)
        cache.get()
        assert cache.generation == 1

        snapshot, _ = cache.get()
        assert snapshot.generation == 2
        assert cache.generation == 2
        assert calls == [1, 2]

    def test_failed_load_keeps_serving(self):
        from backend.services.data_service import SnapshotCache

        mtime = [1.0]
        fail = [False]

        def loader(*, generation):
            if fail[0]:
                raise OSError("disk gone")
            return _snapshot(generation)

        cache = SnapshotCache(loader=loader, mtime_fn=lambda: mtime[0])
        good, _ = cache.get()

        fail[0] = True
        mtime[0] = 2.0
        served, _ = cache.get()
        assert served is good
        assert cache.last_error == "disk gone"

    def test_failed_cold_load_returns_empty(self):
        from backend.services.data_service import SnapshotCache

        def loader(*, generation):
            raise OSError("no store")

        snapshot, vocab = SnapshotCache(loader=loader, mtime_fn=lambda: 0.0).get()
        assert snapshot.papers == []
        assert len(vocab) == 0


class TestSearchCoordinator:
    """Tests for SearchCoordinator."""

    @pytest.fixture
    def coordinator(self):
        from backend.services.data_service import SearchCoordinator, SnapshotCache

        cache = SnapshotCache(loader=lambda *, generation: _snapshot(generation), mtime_fn=lambda: 1.0)
        return SearchCoordinator(snapshots=cache)

    def test_newer_request_supersedes_older(self, coordinator):
        older = coordinator.next_token()
        newer = coordinator.next_token()
        assert coordinator.run_search("cardiac", token=older) is None
        outcome = coordinator.run_search("cardiac", token=newer)
        assert outcome is not None
        assert outcome.total == 1

    def test_untokened_requests_always_complete(self, coordinator):
        coordinator.next_token()
        assert coordinator.run_search("cardiac") is not None

    def test_results_are_cached_per_key(self, coordinator):
        first = coordinator.run_search("Cardiac ", {"year": ""}, "relevance")
        second = coordinator.run_search("cardiac", None, "relevance")
        other_sort = coordinator.run_search("cardiac", None, "title")
        assert second is first
        assert other_sort is not first

    def test_malformed_filters_are_ignored(self, coordinator):
        plain = coordinator.run_search("cardiac")
        assert coordinator.run_search("cardiac", {"rating": "abc", "access": "bogus"}) is plain
        assert plain.total == 1

    def test_clear(self, coordinator):
        first = coordinator.run_search("cardiac")
        coordinator.clear()
        assert coordinator.run_search("cardiac") is not first

    def test_process_wide_coordinator(self):
        from backend.services.data_service import get_coordinator, reset_coordinator

        reset_coordinator()
        assert get_coordinator() is get_coordinator()
        before = get_coordinator()
        reset_coordinator()
        assert get_coordinator() is not before


class TestDebounce:
    """Tests for the debounce helper."""

    def test_only_last_call_runs(self):
        from backend.services.data_service import Debouncer

        seen = []
        done = threading.Event()

        def fn(value):
            seen.append(value)
            done.set()

        debounced = Debouncer(fn, 0.05)
        for value in ("d", "di", "dia"):
            debounced(value)
        assert done.wait(2.0)
        time.sleep(0.1)
        assert seen == ["dia"]

    def test_flush_and_cancel(self):
        from backend.services.data_service import debounce

        seen = []

        @debounce(10.0)
        def fn(value):
            seen.append(value)

        fn("a")
        fn.flush()
        assert seen == ["a"]

        fn("b")
        fn.cancel()
        fn.flush()
        assert seen == ["a"]
