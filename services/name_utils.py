from __future__ import annotations

import hashlib
import re
import unicodedata
from typing import List, Optional


_HONORIFIC_RE = re.compile(
    r"^(Sheikh|Shaykh|Shaykha|Ustadh|Ustadha|Ustaz|Ustadz|Maulana|Imam|Mufti|Qari|Dr\.|Br\.|Sr\.)\s+",
    re.IGNORECASE,
)
_PARENTHESIZED_RE = re.compile(r"\s*\(.*?\)\s*")


def clean_name(name: Optional[str]) -> str:
    """Strip a leading honorific and any parenthesized text from a display name."""
    if not name:
        return ""
    text = unicodedata.normalize("NFKC", str(name)).strip()
    text = _HONORIFIC_RE.sub("", text)
    text = _PARENTHESIZED_RE.sub(" ", text)
    return re.sub(r"\s+", " ", text).strip()


def normalize_name(name: Optional[str]) -> str:
    """Comparison form of a name: cleaned, lowercase, single-spaced, no punctuation."""
    text = clean_name(name).lower()
    text = re.sub(r"[^\w\s-]", "", text)
    return re.sub(r"\s+", " ", text).strip()


def name_tokens(name: Optional[str], min_length: int = 3) -> List[str]:
    return [p for p in normalize_name(name).split() if len(p) >= min_length]


def is_relevant_text(name: Optional[str], *texts: Optional[str]) -> bool:
    """True when at least min(2, tokens) name tokens appear in the combined texts."""
    parts = name_tokens(name)
    if not parts:
        return False
    haystack = " ".join(t for t in texts if t).lower()
    matches = sum(1 for p in parts if p in haystack)
    return matches >= min(2, len(parts))


def slugify(name: Optional[str]) -> str:
    """Stable subject identifier derived from a display name.

    Falls back to a short hash for names with no ASCII letters or digits.
    """
    text = (name or "").lower()
    text = re.sub(r"[^a-z0-9\s-]", "", text)
    text = re.sub(r"\s+", "-", text.strip())
    text = re.sub(r"-+", "-", text).strip("-")
    if text:
        return text
    digest = hashlib.sha1((name or "").strip().encode("utf-8")).hexdigest()[:10]
    return f"subject-{digest}"


def feed_slug(name: Optional[str]) -> str:
    """Slug used by the fixed-convention podcast feed: letters only, spaces to dashes."""
    text = clean_name(name).lower()
    text = re.sub(r"[^a-z\s]", "", text)
    return re.sub(r"\s+", "-", text.strip())
