"""Pydantic schemas for the search core and the search APIs."""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal, Mapping

from loguru import logger
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..utils.text import normalize_list

AccessLevel = Literal["public", "private", "eyesOnly", "unknown"]

# Known searchable keys and the loose spellings found in stored paper dicts.
_TITLE_KEYS = ("title",)
_ABSTRACT_KEYS = ("abstract",)
_KEYWORD_KEYS = ("keywords",)
_TAG_KEYS = ("indexed", "tags")
_TYPE_KEYS = ("publicationType", "publication_type", "publicationtype")
_SCOPE_KEYS = ("publicationScope", "publication_scope", "publicationscope")
_FIELD_KEYS = ("researchField", "researchfield", "research_field")
_REQUIRED_KEYS = ("requiredFields", "requiredfields")
_ACCESS_KEYS = ("uploadType", "uploadtype", "accessLevel", "access")
_AUTHOR_ID_KEYS = ("authorIDs", "authorUIDs", "authorIds")
_AUTHOR_NAME_KEYS = ("authors", "manualAuthors")
_DATE_KEYS = ("publicationdate", "publicationDate", "publication_date", "datePublished")
_STATUS_KEYS = ("status",)

_PUBLIC_ACCESS = (
    "public",
    "public only",
    "open",
    "open access",
    "private & public",
    "private and public",
    "public & private",
)
_PRIVATE_ACCESS = ("private", "private only", "restricted")


def normalize_access(value: Any) -> AccessLevel:
    """Map stored upload-type strings onto the access enum."""
    if not isinstance(value, str):
        return "unknown"
    v = " ".join(value.lower().replace("_", " ").replace("-", " ").split())
    if not v:
        return "unknown"
    if "eyes" in v or v == "view only":
        return "eyesOnly"
    if v in _PUBLIC_ACCESS:
        return "public"
    if v in _PRIVATE_ACCESS:
        return "private"
    return "unknown"


def _first_text(raw: Mapping, keys: tuple[str, ...]) -> str:
    for key in keys:
        value = raw.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
    return ""


class PaperRecord(BaseModel):
    """A research paper as seen by the search core.

    Only the named fields are searched; anything else the store holds is kept in
    ``extra`` for presentation.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str
    category: str = ""
    title: str = ""
    abstract: str = ""
    keywords: list[str] = Field(default_factory=list)
    indexed: list[str] = Field(default_factory=list)
    publication_type: str = ""
    publication_scope: str = ""
    research_field: str = ""
    upload_type: str = ""
    author_ids: list[str] = Field(default_factory=list)
    authors: list[str] = Field(default_factory=list)
    publication_date: str = ""
    status: str = ""
    extra: dict[str, Any] = Field(default_factory=dict)

    @property
    def access(self) -> AccessLevel:
        return normalize_access(self.upload_type)

    @classmethod
    def from_raw(cls, pid: str, raw: Mapping[str, Any], category: str = "") -> PaperRecord:
        """Build a record from a loosely-typed stored paper dict."""
        if not isinstance(raw, Mapping):
            raise TypeError(f"paper {pid!r} is not a mapping")

        research_field = _first_text(raw, _FIELD_KEYS)
        if not research_field:
            for key in _REQUIRED_KEYS:
                nested = raw.get(key)
                if isinstance(nested, Mapping):
                    research_field = _first_text(nested, _FIELD_KEYS)
                    if research_field:
                        break

        authors: list[str] = []
        for key in _AUTHOR_NAME_KEYS:
            authors.extend(normalize_list(raw.get(key)))
        author_ids: list[str] = []
        for key in _AUTHOR_ID_KEYS:
            author_ids.extend(normalize_list(raw.get(key)))

        known = set(
            _TITLE_KEYS
            + _ABSTRACT_KEYS
            + _KEYWORD_KEYS
            + _TAG_KEYS
            + _TYPE_KEYS
            + _SCOPE_KEYS
            + _FIELD_KEYS
            + _ACCESS_KEYS
            + _AUTHOR_ID_KEYS
            + _AUTHOR_NAME_KEYS
            + _DATE_KEYS
            + _STATUS_KEYS
        )
        extra = {k: v for k, v in raw.items() if k not in known}

        tags: list[str] = []
        for key in _TAG_KEYS:
            tags.extend(normalize_list(raw.get(key)))

        return cls(
            id=str(pid),
            category=category or "",
            title=_first_text(raw, _TITLE_KEYS),
            abstract=_first_text(raw, _ABSTRACT_KEYS),
            keywords=normalize_list(raw.get("keywords")),
            indexed=tags,
            publication_type=_first_text(raw, _TYPE_KEYS),
            publication_scope=_first_text(raw, _SCOPE_KEYS),
            research_field=research_field,
            upload_type=_first_text(raw, _ACCESS_KEYS),
            author_ids=author_ids,
            authors=authors,
            publication_date=_first_text(raw, _DATE_KEYS),
            status=_first_text(raw, _STATUS_KEYS),
            extra=extra,
        )


class UserProfile(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    first_name: str = Field(default="", validation_alias=AliasChoices("first_name", "firstName"))
    middle_initial: str = Field(default="", validation_alias=AliasChoices("middle_initial", "middleInitial"))
    last_name: str = Field(default="", validation_alias=AliasChoices("last_name", "lastName"))
    suffix: str = ""
    role: str = ""

    @field_validator("first_name", "middle_initial", "last_name", "suffix", "role", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> str:
        if v is None:
            return ""
        return str(v).strip()


class CorpusSnapshot(BaseModel):
    """Immutable view of papers, the user directory and ratings at one point in time."""

    model_config = ConfigDict(frozen=True)

    papers: list[PaperRecord] = Field(default_factory=list)
    users: dict[str, UserProfile] = Field(default_factory=dict)
    ratings: dict[str, dict[str, Any]] = Field(default_factory=dict)
    generation: int = 0

    def rating_stats(self, pid: str) -> tuple[float, int]:
        """Average and count over the numeric ratings stored for a paper."""
        votes = self.ratings.get(pid) or {}
        values = []
        for v in votes.values():
            if isinstance(v, bool):
                continue
            if isinstance(v, (int, float)):
                values.append(float(v))
            elif isinstance(v, str):
                try:
                    values.append(float(v))
                except ValueError:
                    continue
        if not values:
            return 0.0, 0
        return sum(values) / len(values), len(values)

    @classmethod
    def from_store(
        cls,
        tree: Mapping[str, Any] | None,
        users: Mapping[str, Any] | None = None,
        ratings: Mapping[str, Any] | None = None,
        *,
        generation: int = 0,
    ) -> CorpusSnapshot:
        """Build a snapshot from the raw store shapes.

        ``tree`` is ``{category: {pid: paper}}``. Malformed papers and profiles
        are skipped with a warning instead of failing the whole snapshot.
        """
        papers: list[PaperRecord] = []
        for category, group in (tree or {}).items():
            if not isinstance(group, Mapping):
                logger.warning(f"Skipping category {category!r}: not a mapping")
                continue
            for pid, raw in group.items():
                try:
                    papers.append(PaperRecord.from_raw(str(pid), raw, str(category)))
                except (TypeError, ValidationError) as exc:
                    logger.warning(f"Skipping malformed paper {category}/{pid}: {exc}")

        profiles: dict[str, UserProfile] = {}
        for uid, raw in (users or {}).items():
            if not isinstance(raw, Mapping):
                continue
            try:
                profiles[str(uid)] = UserProfile.model_validate(dict(raw))
            except ValidationError as exc:
                logger.warning(f"Skipping malformed user {uid}: {exc}")

        votes = {str(pid): dict(v) for pid, v in (ratings or {}).items() if isinstance(v, Mapping)}
        return cls(papers=papers, users=profiles, ratings=votes, generation=generation)


class SortMode(str, Enum):
    DATE = "date"
    RELEVANCE = "relevance"
    TITLE = "title"
    RATING = "rating"

    @classmethod
    def coerce(cls, value: Any) -> SortMode:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            return cls.RELEVANCE


class SearchFilters(BaseModel):
    """Filter predicates applied on top of query matching; empty values are inactive."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True, populate_by_name=True, frozen=True)

    year: str = ""
    type: str = ""
    author: str = ""
    status: str = Field(default="", validation_alias=AliasChoices("status", "saved"))
    access: Literal["", "public", "private", "eyesOnly"] = ""
    rating: float | None = Field(default=None, ge=0)
    research_field: str = Field(
        default="", validation_alias=AliasChoices("research_field", "researchField", "conference")
    )
    scope: str = ""

    @field_validator("year", mode="before")
    @classmethod
    def coerce_year(cls, v: Any) -> str:
        if v is None:
            return ""
        return str(v).strip()

    @field_validator("access", mode="before")
    @classmethod
    def coerce_access(cls, v: Any) -> str:
        if v is None or (isinstance(v, str) and not v.strip()):
            return ""
        level = normalize_access(v)
        if level == "unknown":
            raise ValueError("access must be one of public, private, eyesOnly")
        return level

    @field_validator("rating", mode="before")
    @classmethod
    def coerce_rating(cls, v: Any) -> Any:
        if v == "" or v is None:
            return None
        return v


class MatchEvaluation(BaseModel):
    """Outcome of scoring one record against one query."""

    score: float = Field(default=0.0, ge=0.0, le=1.0)
    matched_field: str | None = None
    matched_value: str | None = None


class ScoredRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    record: PaperRecord
    score: float = 0.0
    matched_fields: dict[str, str] = Field(default_factory=dict)
    matched_field: str | None = None
    matched_value: str | None = None
    author_names: list[str] = Field(default_factory=list)
    rating_avg: float = 0.0
    rating_count: int = 0
    timestamp: float | None = None
    year: str = ""

    def to_api(self) -> dict[str, Any]:
        r = self.record
        return {
            "id": r.id,
            "category": r.category,
            "title": r.title,
            "abstract": r.abstract,
            "keywords": list(r.keywords),
            "tags": list(r.indexed),
            "publication_type": r.publication_type,
            "publication_scope": r.publication_scope,
            "research_field": r.research_field,
            "access": r.access,
            "authors": list(self.author_names),
            "publication_date": r.publication_date,
            "year": self.year,
            "status": r.status,
            "score": round(self.score, 4),
            "matched_fields": dict(self.matched_fields),
            "rating": {"average": round(self.rating_avg, 2), "count": self.rating_count},
        }


class SearchOutcome(BaseModel):
    results: list[ScoredRecord] = Field(default_factory=list)
    total: int = 0
    elapsed_ms: float = 0.0
    query: str = ""
    sort: SortMode = SortMode.RELEVANCE


class FacetAuthor(BaseModel):
    uid: str
    name: str


class FacetOptions(BaseModel):
    years: list[str] = Field(default_factory=list)
    types: list[str] = Field(default_factory=list)
    authors: list[FacetAuthor] = Field(default_factory=list)
    statuses: list[str] = Field(default_factory=list)


# -----------------------------------------------------------------------------
# API request models


class SearchBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)


class SuggestRequest(SearchBaseModel):
    q: str = Field(default="", validation_alias=AliasChoices("q", "query", "keyword"))
    limit: int | None = Field(default=None, ge=1, le=50)


class SearchRequest(SearchBaseModel):
    q: str = Field(default="", validation_alias=AliasChoices("q", "query", "keyword"))
    filters: SearchFilters = Field(default_factory=SearchFilters)
    sort: SortMode = SortMode.RELEVANCE
    page: int = Field(default=1, ge=1)
    per_page: int | None = Field(default=None, ge=1)
    fuzzy: bool | None = None

    @field_validator("sort", mode="before")
    @classmethod
    def coerce_sort(cls, v: Any) -> Any:
        if v is None or v == "":
            return SortMode.RELEVANCE
        if isinstance(v, str):
            return v.strip().lower()
        return v


class AutocorrectRequest(SearchBaseModel):
    q: str = Field(default="", validation_alias=AliasChoices("q", "query", "keyword"))
