"""Unit tests for author name formatting and canonical keys."""

from __future__ import annotations

import pytest


class TestFormatFullName:
    """Tests for format_full_name()."""

    def test_middle_initial_and_suffix(self):
        from backend.utils.names import format_full_name

        profile = {"firstName": "Ana", "middleInitial": "reyes", "lastName": "Cruz", "suffix": "MD"}
        assert format_full_name(profile) == "Ana R. Cruz, MD"

    def test_missing_parts(self):
        from backend.utils.names import format_full_name

        assert format_full_name({"firstName": "John", "lastName": "Smith"}) == "John Smith"
        assert format_full_name({"lastName": "  Lee "}) == "Lee"
        assert format_full_name(None) == ""
        assert format_full_name({}) == ""

    def test_accepts_user_profile_model(self):
        from backend.schemas.search import UserProfile
        from backend.utils.names import format_full_name

        profile = UserProfile.model_validate({"firstName": "Ana", "lastName": "Cruz"})
        assert format_full_name(profile) == "Ana Cruz"


class TestCanonicalAuthorKey:
    """Tests for canonical_author_key()."""

    @pytest.mark.parametrize(
        "a,b",
        [
            ("Cruz, Ana R.", "Ana R. Cruz"),
            ("cruz, ana", "Ana Cruz"),
            ("John Smith, MD", "Smith, John, MD"),
            ("Jose P. Rizal Jr.", "Rizal, Jose P., Jr."),
        ],
    )
    def test_name_orders_share_a_key(self, a, b):
        from backend.utils.names import canonical_author_key

        assert canonical_author_key(a) == canonical_author_key(b)

    def test_key_format(self):
        from backend.utils.names import canonical_author_key

        assert canonical_author_key("Ana R. Cruz") == "cruz|ana|r|"
        assert canonical_author_key("John Smith, MD") == "smith|john||md"

    def test_blank_and_non_string(self):
        from backend.utils.names import canonical_author_key

        assert canonical_author_key("") == ""
        assert canonical_author_key(None) == ""

    def test_canonical_display(self):
        from backend.utils.names import canonical_display

        assert canonical_display("Cruz, Ana R.") == "ana r cruz"


class TestNameContains:
    """Tests for name_contains()."""

    @pytest.mark.parametrize("query", ["cruz", "Ana Cruz", "cruz, ana", "ana r. cruz", "CRUZ ANA"])
    def test_matches_reordered_names(self, query):
        from backend.utils.names import name_contains

        assert name_contains(query, "Ana R. Cruz")

    def test_non_matches(self):
        from backend.utils.names import name_contains

        assert not name_contains("smith", "Ana R. Cruz")
        assert not name_contains("", "Ana R. Cruz")
        assert not name_contains(None, "Ana R. Cruz")


class TestResolveAuthorNames:
    """Tests for resolve_author_names()."""

    def test_uids_free_text_and_unknown(self, sample_snapshot):
        from backend.utils.names import resolve_author_names

        by_id = {p.id: p for p in sample_snapshot.papers}
        assert resolve_author_names(by_id["p1"], sample_snapshot.users) == ["Ana R. Cruz"]
        assert resolve_author_names(by_id["p2"], sample_snapshot.users) == ["John Smith, MD", "Maria Santos"]
        # u9 is not in the directory: the raw UID is shown.
        assert resolve_author_names(by_id["p3"], sample_snapshot.users) == ["Ana R. Cruz", "u9"]

    def test_deduplicates(self):
        from backend.schemas.search import PaperRecord
        from backend.utils.names import resolve_author_names

        record = PaperRecord(id="x", author_ids=["u1", "u1"], authors=["Ana Cruz"])
        assert resolve_author_names(record, {"u1": {"firstName": "Ana", "lastName": "Cruz"}}) == ["Ana Cruz"]
