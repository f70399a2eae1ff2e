"""Author display names and canonical author keys."""

from __future__ import annotations

import re
from typing import Any, Mapping

from .text import collapse_ws

_SUFFIXES = {"jr", "sr", "ii", "iii", "iv", "v", "md", "phd", "rn", "dds", "dmd"}
_PUNCT_RE = re.compile(r"[.\s]+")


def _field(profile: Any, *names: str) -> str:
    for name in names:
        if isinstance(profile, Mapping):
            value = profile.get(name)
        else:
            value = getattr(profile, name, None)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


def format_full_name(profile: Any) -> str:
    """Format a user profile as "First M. Last" (", Suffix" appended when present).

    Accepts a raw directory dict (camelCase keys) or a UserProfile.
    """
    if profile is None:
        return ""
    first = _field(profile, "first_name", "firstName")
    mi_raw = _field(profile, "middle_initial", "middleInitial")
    last = _field(profile, "last_name", "lastName")
    suffix = _field(profile, "suffix")
    mi = f"{mi_raw[0].upper()}." if mi_raw else ""
    core = collapse_ws(" ".join(p for p in (first, mi, last) if p))
    return f"{core}, {suffix}" if suffix else core


def _clean(part: str) -> str:
    return _PUNCT_RE.sub(" ", part.lower()).strip()


def _is_suffix(part: str) -> bool:
    return _clean(part).replace(" ", "") in _SUFFIXES


def _split_name(name: str) -> tuple[str, str, str, str]:
    """Return (last, first, middle_initial, suffix) for "Last, First M." or "First M. Last[, Suffix]"."""
    name = collapse_ws(name or "")
    if not name:
        return "", "", "", ""

    suffix = ""
    parts = [p.strip() for p in name.split(",") if p.strip()]
    if len(parts) > 1 and _is_suffix(parts[-1]):
        suffix = _clean(parts.pop()).replace(" ", "")

    if len(parts) >= 2:
        # "Last, First Middle"
        last = _clean(parts[0])
        given = _clean(" ".join(parts[1:])).split()
        first = given[0] if given else ""
        middle = given[1] if len(given) > 1 else ""
    else:
        words = _clean(parts[0] if parts else "").split()
        if words and not suffix and len(words) > 1 and _is_suffix(words[-1]):
            suffix = words.pop()
        if not words:
            return "", "", "", suffix
        if len(words) == 1:
            return words[0], "", "", suffix
        first, last = words[0], words[-1]
        middle = words[1] if len(words) > 2 else ""
    return last, first, middle[:1], suffix


def canonical_author_key(name: Any) -> str:
    """Key of the form ``last|first|middleInitial|suffix`` shared by both name orders."""
    if not isinstance(name, str):
        return ""
    last, first, mi, suffix = _split_name(name)
    if not last and not first:
        return ""
    return f"{last}|{first}|{mi}|{suffix}"


def canonical_display(name: Any) -> str:
    """Lowercase "first middle last suffix" rendering of a name in either order."""
    if not isinstance(name, str):
        return ""
    last, first, mi, suffix = _split_name(name)
    return collapse_ws(" ".join(p for p in (first, mi, last, suffix) if p))


def author_name_variants(name: Any) -> list[str]:
    """Lowercase renderings of a name used for substring containment checks."""
    if not isinstance(name, str) or not name.strip():
        return []
    last, first, mi, suffix = _split_name(name)
    variants = [collapse_ws(name.lower()), _clean(name), canonical_display(name)]
    if first and last:
        variants.extend(
            [
                f"{first} {last}",
                f"{first} {mi} {last}" if mi else f"{first} {last}",
                f"{last} {first}",
                f"{last}, {first}",
            ]
        )
    elif last:
        variants.append(last)
    if suffix and first and last:
        variants.append(f"{first} {last} {suffix}")
    seen = set()
    out = []
    for v in variants:
        v = collapse_ws(v)
        if v and v not in seen:
            seen.add(v)
            out.append(v)
    return out


def name_contains(query: Any, name: Any) -> bool:
    """True when the query is a substring of any rendering of the name."""
    if not isinstance(query, str):
        return False
    q = collapse_ws(query.lower())
    if not q:
        return False
    q_clean = _clean(q)
    for variant in author_name_variants(name):
        if q in variant or (q_clean and q_clean in variant):
            return True
    return False


def resolve_author_names(record: Any, users: Mapping[str, Any]) -> list[str]:
    """Display names for a record's authors.

    UID references resolve through the user directory (the raw UID is shown when
    it is missing); free-text author entries are used as written unless they
    happen to be a known UID.
    """
    names: list[str] = []
    seen = set()

    def _add(name: str) -> None:
        if name and name not in seen:
            seen.add(name)
            names.append(name)

    for uid in getattr(record, "author_ids", None) or []:
        profile = users.get(uid) if users else None
        _add((format_full_name(profile) if profile is not None else "") or uid)
    for entry in getattr(record, "authors", None) or []:
        profile = users.get(entry) if users else None
        _add((format_full_name(profile) if profile is not None else "") or entry)
    return names
