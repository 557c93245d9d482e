"""Social-link discovery from free structured sources.

Two inputs: URLs and @handles found in free text (typically a channel's
About section), and Wikidata person properties queried over SPARQL.
"""
from __future__ import annotations

import re
from typing import Any, Dict, Optional
from urllib.parse import urlparse

from models import SocialLinkHints
from providers.base import HttpProvider
from providers.registry import register
from services.link_utils import extract_apex_domain, is_social_url
from services.name_utils import clean_name


_URL_RE = re.compile(r"https?://[^\s<>\"{}|\\^`\[\]]+", re.IGNORECASE)

_RESERVED = {
    "twitter": {"home", "search", "explore", "settings", "i", "intent", "share"},
    "instagram": {"p", "reel", "stories", "explore", "accounts"},
    "facebook": {"sharer", "share", "dialog", "login", "watch"},
    "tiktok": set(),
}

_PLATFORM_DOMAINS = {
    "twitter.com": "twitter",
    "x.com": "twitter",
    "instagram.com": "instagram",
    "facebook.com": "facebook",
    "fb.com": "facebook",
    "tiktok.com": "tiktok",
}

_HANDLE_PATTERNS = (
    (re.compile(r"@([\w.]+)\s+(?:on\s+)?(?:twitter|x\.com)", re.IGNORECASE), "twitter"),
    (re.compile(r"@([\w.]+)\s+(?:on\s+)?instagram", re.IGNORECASE), "instagram"),
    (re.compile(r"@([\w.]+)\s+(?:on\s+)?tiktok", re.IGNORECASE), "tiktok"),
    (re.compile(r"(?:twitter|x\.com)[:\s]+@([\w.]+)", re.IGNORECASE), "twitter"),
    (re.compile(r"instagram[:\s]+@([\w.]+)", re.IGNORECASE), "instagram"),
    (re.compile(r"tiktok[:\s]+@([\w.]+)", re.IGNORECASE), "tiktok"),
)

_CANONICAL = {
    "twitter": "https://twitter.com/{}",
    "instagram": "https://instagram.com/{}",
    "facebook": "https://facebook.com/{}",
    "tiktok": "https://tiktok.com/@{}",
}


def _platform_url(platform: str, url: str) -> Optional[str]:
    parts = [p for p in urlparse(url).path.split("/") if p]
    if not parts:
        return None
    handle = parts[0].lstrip("@")
    if not handle or handle.lower() in _RESERVED[platform]:
        return None
    return _CANONICAL[platform].format(handle)


def extract_social_links_from_text(text: Optional[str]) -> SocialLinkHints:
    if not text:
        return SocialLinkHints()
    found: Dict[str, str] = {}
    for raw in _URL_RE.findall(text):
        url = raw.rstrip(".,);")
        domain = extract_apex_domain(url)
        platform = _PLATFORM_DOMAINS.get(domain or "")
        if platform:
            if platform not in found:
                canonical = _platform_url(platform, url)
                if canonical:
                    found[platform] = canonical
            continue
        if domain == "spotify.com" and ("/artist/" in url or "/show/" in url):
            found.setdefault("spotify", url)
            continue
        if "website" not in found and not is_social_url(url):
            found["website"] = url
    for pattern, platform in _HANDLE_PATTERNS:
        if platform in found:
            continue
        m = pattern.search(text)
        if m:
            found[platform] = _CANONICAL[platform].format(m.group(1))
    if not found:
        return SocialLinkHints()
    return SocialLinkHints(**found, sources=["channel_description"])


_SPARQL = """
SELECT ?item ?twitter ?instagram ?facebook ?tiktok ?website WHERE {{
  ?item rdfs:label "{name}"@en .
  ?item wdt:P31 wd:Q5 .
  OPTIONAL {{ ?item wdt:P2002 ?twitter . }}
  OPTIONAL {{ ?item wdt:P2003 ?instagram . }}
  OPTIONAL {{ ?item wdt:P2013 ?facebook . }}
  OPTIONAL {{ ?item wdt:P7085 ?tiktok . }}
  OPTIONAL {{ ?item wdt:P856 ?website . }}
}}
LIMIT 5
"""


class WikidataSocialLinksProvider(HttpProvider):
    provider_name = "wikidata"

    def lookup(self, name: str) -> SocialLinkHints:
        cleaned = clean_name(name).replace('"', "")
        if not cleaned:
            return SocialLinkHints()
        data = self._get_json(
            self.settings.wikidata_sparql_url,
            params={"query": _SPARQL.format(name=cleaned), "format": "json"},
            headers={"Accept": "application/sparql-results+json"},
            operation="sparql",
        ) or {}
        with self._parsing("sparql"):
            return self._hints_from(data)

    def _hints_from(self, data: Dict[str, Any]) -> SocialLinkHints:
        bindings = (data.get("results") or {}).get("bindings") or []
        if not bindings:
            return SocialLinkHints()
        row = bindings[0]

        def value(key: str) -> Optional[str]:
            return (row.get(key) or {}).get("value") or None

        links: Dict[str, str] = {}
        for platform in ("twitter", "instagram", "facebook", "tiktok"):
            handle = value(platform)
            if handle:
                links[platform] = _CANONICAL[platform].format(handle.lstrip("@"))
        if value("website"):
            links["website"] = value("website")  # type: ignore[assignment]
        if not links:
            return SocialLinkHints()
        return SocialLinkHints(**links, sources=[self.provider_name])


def merge_hints(primary: SocialLinkHints, secondary: SocialLinkHints) -> SocialLinkHints:
    """Fill gaps in primary from secondary; primary values are kept."""
    merged = {}
    for field in ("website", "twitter", "instagram", "facebook", "tiktok", "spotify"):
        merged[field] = getattr(primary, field) or getattr(secondary, field)
    sources = list(dict.fromkeys(primary.sources + secondary.sources))
    return SocialLinkHints(**merged, sources=sources)


def _register():
    register(WikidataSocialLinksProvider.provider_name, WikidataSocialLinksProvider)


_register()
