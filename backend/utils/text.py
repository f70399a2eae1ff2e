"""Tokenization and light normalization for search text."""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Any

_SPLIT_RE = re.compile(r"[\W_]+")
_WORD_STRIP_RE = re.compile(r"[^\w\-']|_")
_WS_RE = re.compile(r"\s+")


def singularize(token: str) -> str:
    """Naive English plural stripping.

    "ies" -> "y"; "sses"/"shes"/"ches" lose their last two characters; any other
    trailing "s" not preceded by "s" is dropped. Short words ending in a single
    "s" are stripped too ("bus" -> "bu"); rankings depend on this.
    """
    if token.endswith("ies"):
        return token[:-3] + "y"
    if token.endswith(("sses", "shes", "ches")):
        return token[:-2]
    if token.endswith("s") and not token.endswith("ss"):
        return token[:-1]
    return token


@lru_cache(maxsize=65536)
def _tokenize_cached(text: str) -> tuple[str, ...]:
    out = []
    for piece in _SPLIT_RE.split(text.lower()):
        if not piece:
            continue
        tok = singularize(piece)
        if tok:
            out.append(tok)
    return tuple(out)


def tokenize(text: Any) -> list[str]:
    """Split text into lowercase alphanumeric singularized tokens.

    Non-string input is treated as empty text.
    """
    if not isinstance(text, str) or not text:
        return []
    return list(_tokenize_cached(text))


def token_tuple(text: Any) -> tuple[str, ...]:
    """Like tokenize() but returns the cached immutable tuple."""
    if not isinstance(text, str) or not text:
        return ()
    return _tokenize_cached(text)


def collapse_ws(text: str) -> str:
    return _WS_RE.sub(" ", text or "").strip()


def extract_words(data: Any) -> list[str]:
    """Collect vocabulary words from a str, list or dict value (recursively).

    Strings are split on whitespace; each word keeps only letters, digits,
    hyphens and apostrophes, is lowercased and must be at least two characters.
    Other value types contribute nothing.
    """
    if isinstance(data, str):
        out = []
        for w in data.split():
            w = _WORD_STRIP_RE.sub("", w).lower()
            if len(w) > 1:
                out.append(w)
        return out
    if isinstance(data, (list, tuple)):
        out = []
        for item in data:
            out.extend(extract_words(item))
        return out
    if isinstance(data, dict):
        out = []
        for value in data.values():
            out.extend(extract_words(value))
        return out
    return []


def normalize_list(raw: Any) -> list[str]:
    """Coerce a loosely-typed list field (list, dict of values, str) to a list of strings."""
    if not raw:
        return []
    if isinstance(raw, (list, tuple)):
        values = raw
    elif isinstance(raw, dict):
        values = list(raw.values())
    elif isinstance(raw, str):
        values = [raw]
    elif isinstance(raw, (int, float)):
        values = [raw]
    else:
        return []
    out = []
    for v in values:
        if v is None or v == "" or isinstance(v, (dict, list, tuple)):
            continue
        s = str(v).strip()
        if s:
            out.append(s)
    return out
