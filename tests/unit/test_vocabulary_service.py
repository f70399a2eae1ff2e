"""Unit tests for vocabulary building and merging."""

from __future__ import annotations

import threading


class TestVocabulary:
    """Tests for the Vocabulary value object."""

    def test_drops_short_terms_and_bad_counts(self):
        from backend.services.vocabulary_service import Vocabulary

        vocab = Vocabulary({"a": 3, "ok": 2, "zero": 0, "bad": "x", "fine": "4"})
        assert dict(vocab) == {"ok": 2, "fine": 4}
        assert vocab.frequency("missing") == 0

    def test_merge_is_additive(self):
        from backend.services.vocabulary_service import Vocabulary, merge

        base = Vocabulary({"diabetes": 2})
        merged = merge(base, {"diabetes": 3, "insulin": 1, "neg": -5})
        assert merged["diabetes"] == 5
        assert merged["insulin"] == 1
        assert "neg" not in merged
        # Inputs are untouched.
        assert base["diabetes"] == 2

    def test_top_terms(self):
        from backend.services.vocabulary_service import Vocabulary, top_terms

        vocab = Vocabulary({"bb": 2, "aa": 2, "cc": 5})
        assert top_terms(vocab, 2) == ["cc", "aa"]
        assert top_terms(vocab, 0) == []
        assert top_terms(None, 3) == []


class TestBuildVocabulary:
    """Tests for build_vocabulary()."""

    def test_counts_fields_and_author_names(self, sample_snapshot):
        from backend.services.vocabulary_service import build_vocabulary

        vocab = build_vocabulary(sample_snapshot)
        assert vocab["diabetes"] >= 3  # title, abstract, keyword
        assert "endocrine" in vocab
        assert "endocrinology" in vocab
        assert "international" in vocab
        assert vocab["cruz"] == 2  # p1 and p3
        assert vocab["ana r. cruz"] == 2
        assert "maria santos" in vocab
        assert "u9" in vocab
        assert all(len(term) >= 2 for term in vocab)

    def test_does_not_mutate_snapshot(self, sample_snapshot):
        from backend.services.vocabulary_service import build_vocabulary

        before = sample_snapshot.model_dump()
        build_vocabulary(sample_snapshot)
        assert sample_snapshot.model_dump() == before

    def test_base_is_merged(self, two_record_snapshot):
        from backend.services.vocabulary_service import Vocabulary, build_vocabulary

        vocab = build_vocabulary(two_record_snapshot, base=Vocabulary({"cardiac": 10}))
        assert vocab["cardiac"] == 11

    def test_empty_snapshot(self):
        from backend.services.vocabulary_service import build_vocabulary

        assert len(build_vocabulary(None)) == 0


class TestVocabularyAccumulator:
    """Tests for the caller-owned accumulator."""

    def test_add_snapshot_accumulates(self, two_record_snapshot):
        from backend.services.vocabulary_service import VocabularyAccumulator

        acc = VocabularyAccumulator()
        acc.add_snapshot(two_record_snapshot)
        vocab = acc.add_snapshot(two_record_snapshot)
        assert vocab["diabetes"] == 2
        assert acc.vocabulary is vocab

    def test_concurrent_adds_are_not_lost(self):
        from backend.services.vocabulary_service import VocabularyAccumulator

        acc = VocabularyAccumulator()

        def worker():
            for _ in range(50):
                acc.add({"sepsis": 1})

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert acc.vocabulary["sepsis"] == 200
