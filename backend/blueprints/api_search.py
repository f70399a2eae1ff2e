"""Search, suggestion and autocorrect API routes."""

from __future__ import annotations

from flask import Blueprint
from loguru import logger

from config import settings

from ..schemas.search import AutocorrectRequest, SearchRequest, SortMode, SuggestRequest
from ..services.api_helpers import api_success, parse_api_request
from ..services.data_service import get_coordinator
from ..services.phrase_service import related_phrases
from ..services.search_service import facet_options, paginate
from ..services.suggest_service import autocorrect_phrase, did_you_mean, highlight_ranges, suggest
from ..services.vocabulary_service import top_terms

bp = Blueprint("search", __name__)


@bp.route("/api/suggest", methods=["POST"])
def api_suggest():
    """Typeahead suggestions for a partial query
    ---
    tags:
      - Search
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          properties:
            q:
              type: string
              description: Partial query (alias: query, keyword)
            limit:
              type: integer
              description: Maximum number of suggestions (1-50)
    responses:
      200:
        description: Ranked suggestions; the most frequent terms when q is blank
        schema:
          type: object
          properties:
            success:
              type: boolean
            suggestions:
              type: array
              items:
                type: string
            highlights:
              type: array
      400:
        description: Invalid request body
    """
    req, err = parse_api_request(SuggestRequest)
    if err:
        return err

    _, vocab = get_coordinator().snapshot()
    limit = req.limit or settings.search.suggestion_limit
    if not req.q:
        return api_success(suggestions=top_terms(vocab, limit), highlights=[], blank=True)

    suggestions = suggest(req.q, vocab, limit)
    highlights = [[list(r) for r in highlight_ranges(s, req.q)] for s in suggestions]
    return api_success(suggestions=suggestions, highlights=highlights, blank=False)


@bp.route("/api/search", methods=["POST"])
def api_search():
    """Rank the corpus against a free-text query
    ---
    tags:
      - Search
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          properties:
            q:
              type: string
              description: Query text; blank returns the whole filtered corpus
            filters:
              type: object
              description: year, type, author, status, access, rating, research_field, scope
            sort:
              type: string
              enum: [relevance, date, title, rating]
            page:
              type: integer
            per_page:
              type: integer
            fuzzy:
              type: boolean
    responses:
      200:
        description: One page of ranked papers plus facets, related phrases and did-you-mean
      400:
        description: Invalid request body
    """
    req, err = parse_api_request(SearchRequest)
    if err:
        return err

    coordinator = get_coordinator()
    snapshot, vocab = coordinator.snapshot()
    outcome = coordinator.run_search(req.q, req.filters, req.sort, fuzzy=req.fuzzy)
    # Facets list every option reachable from the query alone, so picking one filter
    # does not hide the alternatives.
    unfiltered = coordinator.run_search(req.q, None, SortMode.RELEVANCE, fuzzy=req.fuzzy)

    per_page = min(req.per_page or settings.search.per_page, settings.search.max_per_page)
    items, page, pages = paginate(outcome.results, req.page, per_page)
    phrases = related_phrases(req.q, outcome.results) if req.q else []
    suggestions = did_you_mean(req.q, vocab) if req.q and outcome.total == 0 else []

    logger.debug(f"api_search q={req.q!r} total={outcome.total} page={page}/{pages}")
    return api_success(
        papers=[item.to_api() for item in items],
        total=outcome.total,
        page=page,
        pages=pages,
        per_page=per_page,
        sort=outcome.sort.value,
        elapsed_ms=round(outcome.elapsed_ms, 3),
        fetch_ms=round(coordinator.snapshots.last_fetch_ms, 3),
        generation=snapshot.generation,
        facets=facet_options([r.record for r in unfiltered.results], snapshot.users).model_dump(),
        related_phrases=phrases,
        did_you_mean=suggestions,
    )


@bp.route("/api/autocorrect", methods=["POST"])
def api_autocorrect():
    """Corrected phrase and did-you-mean candidates
    ---
    tags:
      - Search
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          properties:
            q:
              type: string
    responses:
      200:
        description: Corrected phrase and alternatives
      400:
        description: Invalid request body
    """
    req, err = parse_api_request(AutocorrectRequest)
    if err:
        return err

    _, vocab = get_coordinator().snapshot()
    corrected = autocorrect_phrase(req.q, vocab)
    return api_success(
        query=req.q,
        corrected=corrected,
        changed=corrected.lower() != " ".join(req.q.lower().split()),
        did_you_mean=did_you_mean(req.q, vocab),
    )


@bp.route("/api/search/status", methods=["GET"])
def api_search_status():
    """Snapshot cache status
    ---
    tags:
      - Search
    responses:
      200:
        description: Generation, corpus sizes and the last load error
    """
    cache = get_coordinator().snapshots
    snapshot, vocab = cache.get()
    return api_success(
        generation=snapshot.generation,
        papers=len(snapshot.papers),
        users=len(snapshot.users),
        terms=len(vocab),
        loaded_at=cache.loaded_at,
        last_error=cache.last_error,
    )
