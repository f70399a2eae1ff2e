"""Unit tests for suggestions, highlighting and autocorrect."""

from __future__ import annotations

import pytest


@pytest.fixture
def vocab():
    from backend.services.vocabulary_service import Vocabulary

    return Vocabulary(
        {
            "diabetes": 5,
            "diagnosis": 3,
            "diagnostic": 2,
            "dialysis": 1,
            "cardiac": 4,
            "prediabetes": 1,
            "cardiac arrest": 1,
        }
    )


class TestSuggest:
    """Tests for suggest()."""

    def test_prefix_matches_first_then_frequency(self, vocab):
        from backend.services.suggest_service import suggest

        assert suggest("dia", vocab, 3) == ["diabetes", "diagnosis", "diagnostic"]

    def test_substring_after_prefix(self, vocab):
        from backend.services.suggest_service import suggest

        out = suggest("diabetes", vocab, 5)
        assert out[:2] == ["diabetes", "prediabetes"]

    def test_fuzzy_fallback(self, vocab):
        from backend.services.suggest_service import suggest

        assert suggest("diabetis", vocab, 1) == ["diabetes"]

    def test_blank_query(self, vocab):
        from backend.services.suggest_service import suggest

        assert suggest("", vocab, 5) == []
        assert suggest("   ", vocab, 5) == []
        assert suggest(None, vocab, 5) == []

    @pytest.mark.parametrize("query", ["d", "dia", "card", "xyz", "diabetis mellitus", "cardiac arest"])
    @pytest.mark.parametrize("limit", [0, 1, 2, 8])
    def test_limit_and_uniqueness(self, vocab, query, limit):
        from backend.services.suggest_service import suggest

        out = suggest(query, vocab, limit)
        assert len(out) <= limit
        assert len(out) == len(set(out))

    def test_deterministic(self, vocab):
        from backend.services.suggest_service import suggest

        assert suggest("cardiak", vocab, 8) == suggest("cardiak", vocab, 8)

    def test_empty_vocab(self):
        from backend.services.suggest_service import suggest

        assert suggest("dia", {}, 5) == []


class TestHighlightRanges:
    """Tests for highlight_ranges()."""

    def test_each_word_first_occurrence(self):
        from backend.services.suggest_service import highlight_ranges

        assert highlight_ranges("Diabetes Management", "diab man") == [(0, 4), (9, 12)]

    def test_overlapping_ranges_merge(self):
        from backend.services.suggest_service import highlight_ranges

        assert highlight_ranges("diabetes", "dia abe") == [(0, 5)]

    def test_no_match(self):
        from backend.services.suggest_service import highlight_ranges

        assert highlight_ranges("cardiac", "xyz") == []
        assert highlight_ranges(None, "x") == []


class TestAutocorrect:
    """Tests for autocorrect_phrase() and did_you_mean()."""

    def test_corrects_each_word(self, vocab):
        from backend.services.suggest_service import autocorrect_phrase

        assert autocorrect_phrase("diabetis  cardiak", vocab) == "diabetes cardiac"

    def test_keeps_unknown_words(self, vocab):
        from backend.services.suggest_service import autocorrect_phrase

        assert autocorrect_phrase("zebra", vocab) == "zebra"
        assert autocorrect_phrase("", vocab) == ""

    def test_similarity_threshold(self, two_record_snapshot):
        """The misspelled word is close enough to the corrected term."""
        from backend.services.suggest_service import autocorrect_phrase
        from backend.services.vocabulary_service import build_vocabulary
        from backend.utils.similarity import similarity

        vocab = build_vocabulary(two_record_snapshot)
        corrected = autocorrect_phrase("diabetis", vocab)
        assert corrected == "diabetes"
        assert similarity("diabetis", corrected) >= 0.70

    def test_did_you_mean_excludes_original(self, vocab):
        from backend.services.suggest_service import did_you_mean

        out = did_you_mean("diabetis", vocab)
        assert out[0] == "diabetes"
        assert "diabetis" not in out
        assert len(out) == len(set(out))
        assert len(out) <= 5

    def test_did_you_mean_never_offers_query(self, vocab):
        from backend.services.suggest_service import did_you_mean

        assert "diabetes" not in did_you_mean("Diabetes", vocab)

    def test_did_you_mean_limit(self, vocab):
        from backend.services.suggest_service import did_you_mean

        assert len(did_you_mean("dia", vocab, limit=2)) <= 2
        assert did_you_mean("", vocab) == []
