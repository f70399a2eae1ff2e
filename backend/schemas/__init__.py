"""Pydantic schemas."""

from .search import (
    AutocorrectRequest,
    CorpusSnapshot,
    FacetAuthor,
    FacetOptions,
    MatchEvaluation,
    PaperRecord,
    ScoredRecord,
    SearchFilters,
    SearchOutcome,
    SearchRequest,
    SortMode,
    SuggestRequest,
    UserProfile,
    normalize_access,
)

__all__ = [
    "AutocorrectRequest",
    "CorpusSnapshot",
    "FacetAuthor",
    "FacetOptions",
    "MatchEvaluation",
    "PaperRecord",
    "ScoredRecord",
    "SearchFilters",
    "SearchOutcome",
    "SearchRequest",
    "SortMode",
    "SuggestRequest",
    "UserProfile",
    "normalize_access",
]
