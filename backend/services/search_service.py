"""Search and ranking services."""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Sequence

from loguru import logger
from pydantic import ValidationError

from config import settings

from ..schemas.search import (
    CorpusSnapshot,
    FacetAuthor,
    FacetOptions,
    MatchEvaluation,
    PaperRecord,
    ScoredRecord,
    SearchFilters,
    SearchOutcome,
    SortMode,
)
from ..utils.names import canonical_author_key, format_full_name, name_contains, resolve_author_names
from ..utils.similarity import best_token_similarity, token_set_similarity
from ..utils.text import token_tuple

_DATE_FORMATS = (
    "%m/%d/%Y",
    "%m-%d-%Y",
    "%Y/%m/%d",
    "%B %d, %Y",
    "%b %d, %Y",
    "%d %B %Y",
    "%B %Y",
    "%Y-%m",
    "%Y",
)


@dataclass(frozen=True)
class ScoringOptions:
    """Thresholds and blend weights used by the relevance engine."""

    fuzzy_threshold: float = 0.72
    token_threshold: float = 0.68
    fuzzy_weight: float = 0.7
    coverage_weight: float = 0.3
    prefix_bonus: float = 0.08

    @classmethod
    def from_settings(cls) -> ScoringOptions:
        s = settings.search
        return cls(
            fuzzy_threshold=s.fuzzy_threshold,
            token_threshold=s.token_threshold,
            fuzzy_weight=s.fuzzy_weight,
            coverage_weight=s.coverage_weight,
            prefix_bonus=s.prefix_bonus,
        )


def parse_date(value: Any) -> datetime | None:
    """Parse a stored publication date; None when missing or unparseable."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        # Store timestamps are milliseconds since the epoch.
        try:
            return datetime.fromtimestamp(float(value) / 1000.0, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if not isinstance(value, str):
        return None
    s = value.strip()
    if not s:
        return None
    try:
        dt = datetime.fromisoformat(s.replace("Z", "+00:00"))
    except ValueError:
        dt = None
        for fmt in _DATE_FORMATS:
            try:
                dt = datetime.strptime(s, fmt)
                break
            except ValueError:
                continue
        if dt is None:
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def record_timestamp(record: PaperRecord) -> float | None:
    dt = parse_date(record.publication_date)
    return dt.timestamp() if dt is not None else None


def record_year(record: PaperRecord) -> str:
    dt = parse_date(record.publication_date)
    return str(dt.year) if dt is not None else ""


def searchable_fields(record: PaperRecord, author_names: Sequence[str]) -> dict[str, Any]:
    """The named fields the scorer looks at, in display priority order."""
    return {
        "title": record.title,
        "abstract": record.abstract,
        "keywords": list(record.keywords),
        "indexed": list(record.indexed),
        "publicationScope": record.publication_scope,
        "publicationType": record.publication_type,
        "researchField": record.research_field,
        "authors": list(author_names),
    }


def field_values(record: PaperRecord, author_names: Sequence[str]) -> list[str]:
    """Flat list of non-empty searchable strings for a record."""
    out: list[str] = []
    for value in searchable_fields(record, author_names).values():
        if isinstance(value, str):
            if value:
                out.append(value)
        else:
            out.extend(v for v in value if v)
    return out


def extract_matched_fields(data: str | list | dict, query: str, parent_key: str = "") -> dict[str, str]:
    """Map of field path -> value for every string containing ``query`` (case-insensitive).

    Walks strings, lists (items share the parent key) and dicts (keys are joined
    with dots). The first matching value of a path is kept.
    """
    q = (query or "").strip().lower()
    if not q:
        return {}
    matched: dict[str, str] = {}

    def _visit(node: Any, key: str) -> None:
        if isinstance(node, str):
            if q in node.lower() and key not in matched:
                matched[key] = node
        elif isinstance(node, (list, tuple)):
            for item in node:
                _visit(item, key)
        elif isinstance(node, dict):
            for k, v in node.items():
                _visit(v, f"{key}.{k}" if key else str(k))

    _visit(data, parent_key)
    return matched


def best_similarity_against(query: str, candidates: Iterable[str], prefix_bonus: float = 0.08) -> MatchEvaluation:
    """Best similarity of ``query`` against any candidate string.

    A candidate containing the whole query scores 1.0 immediately; otherwise
    token-averaged similarity is used, or whole-string similarity when either
    side has no tokens.
    """
    q = (query or "").strip()
    if not q:
        return MatchEvaluation()
    q_lower = q.lower()
    q_tokens = token_tuple(q)

    best = MatchEvaluation()
    for cand in candidates:
        if not isinstance(cand, str) or not cand:
            continue
        if q_lower in cand.lower():
            return MatchEvaluation(score=1.0, matched_field="text", matched_value=cand)
        c_tokens = token_tuple(cand)
        score = token_set_similarity(q, cand, q_tokens, c_tokens, prefix_bonus)
        if score > best.score:
            best = MatchEvaluation(
                score=min(1.0, max(0.0, score)),
                matched_field="token" if q_tokens and c_tokens else "string",
                matched_value=cand,
            )
    return best


def token_coverage(
    query_tokens: Sequence[str], values: Iterable[str], threshold: float, prefix_bonus: float = 0.08
) -> float:
    """Fraction of query tokens that find a similar enough token somewhere in ``values``."""
    if not query_tokens:
        return 0.0
    pool: list[str] = []
    seen = set()
    for value in values:
        for tok in token_tuple(value):
            if tok not in seen:
                seen.add(tok)
                pool.append(tok)
    if not pool:
        return 0.0
    covered = sum(1 for tok in query_tokens if best_token_similarity(tok, pool, prefix_bonus) >= threshold)
    return covered / len(query_tokens)


def evaluate_record(
    query: str,
    record: PaperRecord,
    author_names: Sequence[str],
    options: ScoringOptions,
) -> MatchEvaluation:
    """Fuzzy score of one record, blended with token coverage for multi-token queries."""
    values = field_values(record, author_names)
    evaluation = best_similarity_against(query, values, options.prefix_bonus)
    q_tokens = token_tuple(query)
    if len(q_tokens) > 1:
        coverage = token_coverage(q_tokens, values, options.token_threshold, options.prefix_bonus)
        blended = evaluation.score * options.fuzzy_weight + coverage * options.coverage_weight
        evaluation = evaluation.model_copy(update={"score": min(1.0, max(0.0, blended))})
    return evaluation


def _author_filter_matches(wanted: str, record: PaperRecord, author_names: Sequence[str]) -> bool:
    if wanted in record.author_ids or wanted in record.authors:
        return True
    key = canonical_author_key(wanted)
    if not key:
        return False
    return any(canonical_author_key(name) == key for name in author_names)


def passes_filters(
    record: PaperRecord,
    filters: SearchFilters,
    author_names: Sequence[str],
    rating_avg: float,
) -> bool:
    if filters.year and record_year(record) != filters.year:
        return False
    if filters.type and record.publication_type != filters.type:
        return False
    if filters.status and record.status.lower() != filters.status.lower():
        return False
    if filters.access and record.access != filters.access:
        return False
    if filters.research_field and record.research_field.casefold() != filters.research_field.casefold():
        return False
    if filters.scope and record.publication_scope.casefold() != filters.scope.casefold():
        return False
    if filters.rating is not None and rating_avg < filters.rating:
        return False
    if filters.author and not _author_filter_matches(filters.author, record, author_names):
        return False
    return True


def _sort_key(mode: SortMode):
    if mode is SortMode.DATE:
        return lambda r: (r.timestamp is None, -(r.timestamp or 0.0), r.record.id)
    if mode is SortMode.TITLE:
        return lambda r: (r.record.title.casefold(), r.record.id)
    if mode is SortMode.RATING:
        return lambda r: (-r.rating_avg, -r.rating_count, r.record.id)
    return lambda r: (-r.score, -len(r.matched_fields), r.record.id)


def sort_results(results: Iterable[ScoredRecord], mode: SortMode | str) -> list[ScoredRecord]:
    """Order results under a sort mode; record id ascending breaks any remaining tie."""
    return sorted(results, key=_sort_key(SortMode.coerce(mode)))


def coerce_filters(filters: SearchFilters | Mapping[str, Any] | None) -> SearchFilters:
    """Validate a loose filters mapping, dropping keys whose values do not validate.

    Never raises: anything that is not a mapping yields no active filters.
    """
    if filters is None:
        return SearchFilters()
    if isinstance(filters, SearchFilters):
        return filters
    if not isinstance(filters, Mapping):
        logger.warning(f"Ignoring search filters of type {type(filters).__name__}")
        return SearchFilters()

    data = dict(filters)
    try:
        return SearchFilters.model_validate(data)
    except ValidationError as exc:
        bad = {str(err["loc"][0]) for err in exc.errors() if err.get("loc")}
        logger.warning(f"Ignoring invalid search filters: {sorted(bad)}")
    try:
        return SearchFilters.model_validate({k: v for k, v in data.items() if str(k) not in bad})
    except ValidationError:
        return SearchFilters()


def search(
    query: Any,
    snapshot: CorpusSnapshot | None,
    filters: SearchFilters | Mapping[str, Any] | None = None,
    sort: SortMode | str = SortMode.RELEVANCE,
    *,
    fuzzy: bool | None = None,
    options: ScoringOptions | None = None,
) -> SearchOutcome:
    """Score, filter and order every record of a snapshot against a free-text query.

    A record is kept when the query is blank, a searchable field contains the
    query, an author name contains it, or its fuzzy score clears the threshold;
    in every case all active filters must pass. Blank queries skip scoring.
    """
    t0 = time.perf_counter()
    mode = SortMode.coerce(sort)
    q = query.strip() if isinstance(query, str) else ""
    if snapshot is None:
        return SearchOutcome(query=q, sort=mode)

    filters = coerce_filters(filters)
    if options is None:
        options = ScoringOptions.from_settings()
    if fuzzy is None:
        fuzzy = settings.search.fuzzy_enabled

    results: list[ScoredRecord] = []
    for record in snapshot.papers:
        names = resolve_author_names(record, snapshot.users)
        rating_avg, rating_count = snapshot.rating_stats(record.id)
        if not passes_filters(record, filters, names, rating_avg):
            continue

        matched: dict[str, str] = {}
        evaluation = MatchEvaluation()
        if q:
            matched = extract_matched_fields(searchable_fields(record, names), q)
            author_hit = any(name_contains(q, name) for name in names)
            if fuzzy:
                evaluation = evaluate_record(q, record, names, options)
            elif matched or author_hit:
                evaluation = MatchEvaluation(score=1.0, matched_field="text")
            keep = bool(matched) or author_hit or (fuzzy and evaluation.score >= options.fuzzy_threshold)
            if not keep:
                continue

        results.append(
            ScoredRecord(
                record=record,
                score=evaluation.score,
                matched_fields=matched,
                matched_field=evaluation.matched_field,
                matched_value=evaluation.matched_value,
                author_names=names,
                rating_avg=rating_avg,
                rating_count=rating_count,
                timestamp=record_timestamp(record),
                year=record_year(record),
            )
        )

    ordered = sort_results(results, mode)
    elapsed_ms = (time.perf_counter() - t0) * 1000.0
    logger.debug(f"search q={q!r} sort={mode.value} results={len(ordered)} in {elapsed_ms:.1f}ms")
    return SearchOutcome(results=ordered, total=len(ordered), elapsed_ms=elapsed_ms, query=q, sort=mode)


def facet_options(records: Iterable[PaperRecord], users: Mapping[str, Any] | None = None) -> FacetOptions:
    """Filter choices available for a result set: years (newest first), types, authors, statuses."""
    users = users or {}
    years, types, statuses = set(), set(), set()
    authors: dict[str, str] = {}
    for record in records:
        year = record_year(record)
        if year:
            years.add(year)
        if record.publication_type:
            types.add(record.publication_type)
        if record.status:
            statuses.add(record.status.lower())
        for uid in list(record.author_ids) + list(record.authors):
            uid = uid.strip()
            if not uid or uid in authors:
                continue
            profile = users.get(uid)
            authors[uid] = (format_full_name(profile) if profile is not None else "") or uid
    return FacetOptions(
        years=sorted(years, reverse=True),
        types=sorted(types),
        authors=[
            FacetAuthor(uid=uid, name=name)
            for uid, name in sorted(authors.items(), key=lambda kv: (kv[1].casefold(), kv[0]))
        ],
        statuses=sorted(statuses),
    )


def paginate(items: Sequence[Any], page: int = 1, per_page: int | None = None) -> tuple[list[Any], int, int]:
    """Return (page items, clamped page number, page count)."""
    if per_page is None:
        per_page = settings.search.per_page
    per_page = max(1, int(per_page))
    pages = max(1, -(-len(items) // per_page))
    try:
        page = int(page)
    except (TypeError, ValueError):
        page = 1
    page = min(max(1, page), pages)
    start = (page - 1) * per_page
    return list(items[start : start + per_page]), page, pages
