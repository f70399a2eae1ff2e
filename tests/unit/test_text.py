"""Unit tests for tokenization and word extraction."""

from __future__ import annotations

import pytest


class TestSingularize:
    """Tests for the plural-stripping heuristic."""

    @pytest.mark.parametrize(
        "word,expected",
        [
            ("cats", "cat"),
            ("glasses", "glass"),
            ("dishes", "dish"),
            ("matches", "match"),
            ("studies", "study"),
            ("class", "class"),
            ("insulin", "insulin"),
        ],
    )
    def test_rules(self, word, expected):
        from backend.utils.text import singularize

        assert singularize(word) == expected

    def test_short_word_quirk_is_kept(self):
        """A single trailing s is stripped even from short words."""
        from backend.utils.text import singularize

        assert singularize("bus") == "bu"


class TestTokenize:
    """Tests for tokenize()."""

    def test_lowercases_and_splits_on_punctuation(self):
        from backend.utils.text import tokenize

        assert tokenize("Type-2 Diabetes: Outcomes!") == ["type", "2", "diabete", "outcome"]

    def test_underscores_split(self):
        from backend.utils.text import tokenize

        assert tokenize("heart_failure") == ["heart", "failure"]

    def test_non_string_is_empty(self):
        from backend.utils.text import tokenize

        assert tokenize(None) == []
        assert tokenize(42) == []
        assert tokenize("   ") == []

    @pytest.mark.parametrize(
        "text",
        [
            "Diabetes Management Guidelines",
            "studies of glasses, dishes and buses",
            "Early defibrillation improves survival.",
            "COVID-19 vaccines in pregnant patients",
        ],
    )
    def test_idempotent(self, text):
        """Re-tokenizing joined tokens gives the same tokens."""
        from backend.utils.text import tokenize

        once = tokenize(text)
        assert tokenize(" ".join(once)) == once

    def test_returns_fresh_list(self):
        """Callers may mutate the result without affecting the cache."""
        from backend.utils.text import tokenize

        first = tokenize("cardiac arrest")
        first.append("x")
        assert tokenize("cardiac arrest") == ["cardiac", "arrest"]


class TestExtractWords:
    """Tests for the vocabulary word visitor."""

    def test_string(self):
        from backend.utils.text import extract_words

        assert extract_words("Don't  PANIC, type-2 a") == ["don't", "panic", "type-2"]

    def test_nested_list_and_dict(self):
        from backend.utils.text import extract_words

        data = {"k": ["Alpha beta", {"x": "Gamma"}], "n": 3}
        assert extract_words(data) == ["alpha", "beta", "gamma"]

    def test_other_types_contribute_nothing(self):
        from backend.utils.text import extract_words

        assert extract_words(None) == []
        assert extract_words(3.5) == []


class TestNormalizeList:
    """Tests for loose list coercion."""

    def test_shapes(self):
        from backend.utils.text import normalize_list

        assert normalize_list(["a", " b ", "", None]) == ["a", "b"]
        assert normalize_list({"x": "one", "y": "two"}) == ["one", "two"]
        assert normalize_list("solo") == ["solo"]
        assert normalize_list(None) == []
        assert normalize_list([{"nested": 1}, "ok"]) == ["ok"]
