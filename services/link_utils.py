from __future__ import annotations

import re
from typing import Optional, Tuple
from urllib.parse import urlparse

import tldextract

# Platforms that are never a person's own website
SOCIAL_DOMAINS = {
    "twitter.com", "x.com", "instagram.com", "facebook.com", "fb.com", "tiktok.com",
    "linkedin.com", "threads.net", "patreon.com", "spotify.com", "youtube.com", "youtu.be",
    "apple.com", "soundcloud.com", "amazon.com", "goo.gl", "bit.ly", "linktr.ee",
    "google.com", "wikipedia.org",
}

_CHANNEL_ID_RE = re.compile(r"youtube\.com/channel/(UC[\w-]{20,})", re.IGNORECASE)
_HANDLE_RE = re.compile(r"youtube\.com/@([\w.-]+)", re.IGNORECASE)
_LEGACY_RE = re.compile(r"youtube\.com/(?:user|c)/([\w.-]+)", re.IGNORECASE)

# Bundled public-suffix snapshot only; no network fetch at lookup time
_EXTRACT = tldextract.TLDExtract(suffix_list_urls=())


def extract_apex_domain(url_or_domain: Optional[str]) -> Optional[str]:
    if not url_or_domain:
        return None
    text = str(url_or_domain).strip().lower()
    if not text.startswith("http://") and not text.startswith("https://"):
        text = f"http://{text}"
    ext = _EXTRACT(text)
    if ext.domain and ext.suffix:
        return f"{ext.domain}.{ext.suffix}"
    return None


def is_social_url(url: Optional[str]) -> bool:
    return extract_apex_domain(url) in SOCIAL_DOMAINS


def is_http_url(url: Optional[str]) -> bool:
    if not url or not isinstance(url, str):
        return False
    parsed = urlparse(url.strip())
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def parse_youtube_url(url: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    """Split a YouTube channel URL into (channel_id, handle_or_username).

    Handles /channel/UC..., /@handle, /user/name and /c/name forms.
    """
    if not url:
        return None, None
    m = _CHANNEL_ID_RE.search(url)
    if m:
        return m.group(1), None
    m = _HANDLE_RE.search(url)
    if m:
        return None, m.group(1)
    m = _LEGACY_RE.search(url)
    if m:
        return None, m.group(1)
    return None, None


def handle_from_url(url: Optional[str]) -> Optional[str]:
    """First path segment of a social profile URL, without a leading '@'."""
    if not is_http_url(url):
        return None
    parts = [p for p in urlparse(url).path.split("/") if p]
    if not parts:
        return None
    return parts[0].lstrip("@") or None
