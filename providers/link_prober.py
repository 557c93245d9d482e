from __future__ import annotations

import logging
from typing import Optional

import requests
from bs4 import BeautifulSoup

from config.settings import Settings, get_settings
from models import ProbeResult
from providers.registry import register
from services.link_utils import is_http_url
from utils.call_trace import traced


logger = logging.getLogger(__name__)

# Servers that refuse HEAD but may answer GET
_RETRY_WITH_GET = {403, 405, 501}


def _page_title(html: str) -> Optional[str]:
    soup = BeautifulSoup(html, "html.parser")
    if soup.title and soup.title.string:
        return soup.title.string.strip() or None
    og = soup.find("meta", attrs={"property": "og:title"})
    if og and og.get("content"):
        return str(og["content"]).strip() or None
    return None


class LinkProber:
    """HTTP reachability probe: 2xx/3xx means reachable; anything else, or no answer, does not."""

    provider_name = "link_probe"

    def __init__(self, settings: Optional[Settings] = None, session: Optional[requests.Session] = None):
        self.settings = settings or get_settings()
        self.session = session or requests.Session()
        self.session.headers.setdefault("User-Agent", self.settings.user_agent)

    def probe(self, url: str, fetch_title: bool = False) -> ProbeResult:
        if not is_http_url(url):
            return ProbeResult(url=url or "", reachable=False, error="not an http(s) url")
        timeout = self.settings.probe_timeout_seconds
        try:
            with traced("link_prober.probe", self.provider_name, "probe", url=url) as info:
                response = self.session.head(url, allow_redirects=True, timeout=timeout)
                if fetch_title or response.status_code in _RETRY_WITH_GET:
                    response = self.session.get(url, allow_redirects=True, timeout=timeout)
                info["status"] = str(response.status_code)
        except requests.exceptions.RequestException as e:
            logger.info("link probe failed", extra={"provider": self.provider_name, "error": str(e)})
            return ProbeResult(url=url, reachable=False, error=str(e))

        status = response.status_code
        reachable = 200 <= status < 400
        title = None
        if reachable and fetch_title and "html" in (response.headers.get("Content-Type") or "").lower():
            title = _page_title(response.text)
        return ProbeResult(url=url, reachable=reachable, status_code=status, final_url=response.url or url, title=title)

    def is_reachable(self, url: str) -> bool:
        return self.probe(url).reachable


def _register():
    register(LinkProber.provider_name, LinkProber)


_register()
