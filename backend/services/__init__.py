"""Services package initialization."""

from .api_helpers import api_error, api_success, parse_api_request
from .data_service import Debouncer, SearchCoordinator, SnapshotCache, debounce, get_coordinator, load_snapshot
from .phrase_service import related_phrases
from .search_service import ScoringOptions, best_similarity_against, facet_options, paginate, search
from .suggest_service import autocorrect_phrase, did_you_mean, highlight_ranges, suggest
from .vocabulary_service import Vocabulary, VocabularyAccumulator, build_vocabulary, merge, top_terms

__all__ = [
    # API helpers
    "api_error",
    "api_success",
    "parse_api_request",
    # Snapshot loading / caller boundary
    "Debouncer",
    "SearchCoordinator",
    "SnapshotCache",
    "debounce",
    "get_coordinator",
    "load_snapshot",
    # Vocabulary
    "Vocabulary",
    "VocabularyAccumulator",
    "build_vocabulary",
    "merge",
    "top_terms",
    # Suggestions / autocorrect
    "suggest",
    "highlight_ranges",
    "autocorrect_phrase",
    "did_you_mean",
    # Relevance engine
    "ScoringOptions",
    "search",
    "best_similarity_against",
    "facet_options",
    "paginate",
    # Related phrases
    "related_phrases",
]
