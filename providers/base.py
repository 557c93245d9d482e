from __future__ import annotations

import logging
import threading
import time
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

import requests

from config.settings import Settings, get_settings
from services.errors import ProviderUnavailable
from utils.call_trace import traced


logger = logging.getLogger(__name__)


class Throttle:
    """Minimum spacing between consecutive calls to one provider, shared across threads."""

    def __init__(self, min_interval_seconds: float):
        self.min_interval_seconds = max(0.0, min_interval_seconds)
        self._lock = threading.Lock()
        self._next_allowed = 0.0

    def wait(self) -> None:
        if self.min_interval_seconds <= 0:
            return
        with self._lock:
            now = time.monotonic()
            delay = self._next_allowed - now
            self._next_allowed = max(now, self._next_allowed) + self.min_interval_seconds
        if delay > 0:
            time.sleep(delay)


_THROTTLES: Dict[str, Throttle] = {}
_THROTTLES_LOCK = threading.Lock()


def throttle_for(provider: str, min_interval_seconds: float) -> Throttle:
    with _THROTTLES_LOCK:
        throttle = _THROTTLES.get(provider)
        if throttle is None:
            throttle = Throttle(min_interval_seconds)
            _THROTTLES[provider] = throttle
        return throttle


class HttpProvider:
    """Shared HTTP plumbing for provider adapters.

    Every request carries a timeout, honours the provider's call spacing and
    retries transient failures with exponential backoff. Anything unusable is
    raised as ProviderUnavailable so the calling stage can degrade it to
    "not found".
    """

    provider_name = "http"

    def __init__(self, settings: Optional[Settings] = None, session: Optional[requests.Session] = None):
        self.settings = settings or get_settings()
        self.session = session or requests.Session()
        self.session.headers.setdefault("User-Agent", self.settings.user_agent)
        self.throttle = throttle_for(self.provider_name, self.settings.provider_min_interval_seconds)
        self.calls_made = 0

    def _require(self, value: Optional[str], what: str) -> str:
        if not value:
            raise ProviderUnavailable(self.provider_name, f"{what} not configured")
        return value

    @contextmanager
    def _parsing(self, operation: str) -> Iterator[None]:
        """Turn a payload that does not have the documented shape into ProviderUnavailable."""
        try:
            yield
        except ProviderUnavailable:
            raise
        except (KeyError, IndexError, TypeError, AttributeError, ValueError) as e:
            logger.warning(
                f"{self.provider_name} {operation} returned an unexpected payload",
                extra={"provider": self.provider_name, "error": f"{type(e).__name__}: {e}"},
            )
            raise ProviderUnavailable(
                self.provider_name, f"malformed response ({operation}: {type(e).__name__})"
            ) from e

    def _get_json(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        operation: str = "get",
    ) -> Any:
        attempts = max(1, self.settings.max_retries)
        last_error = "no attempt made"
        for attempt in range(attempts):
            self.throttle.wait()
            try:
                with traced(f"{self.provider_name}.{operation}", self.provider_name, operation) as info:
                    response = self.session.get(
                        url, params=params, headers=headers, timeout=self.settings.http_timeout_seconds
                    )
                    info["status"] = str(response.status_code)
            except requests.exceptions.RequestException as e:
                last_error = f"request error: {e}"
                logger.warning(
                    f"{self.provider_name} {operation} attempt {attempt + 1} failed",
                    extra={"provider": self.provider_name, "error": str(e)},
                )
                if attempt < attempts - 1:
                    time.sleep(2 ** attempt)
                continue

            self.calls_made += 1
            status = response.status_code
            if status == 200:
                try:
                    return response.json()
                except ValueError:
                    raise ProviderUnavailable(self.provider_name, "malformed JSON response", status)
            if status == 429 or status == 403:
                raise ProviderUnavailable(self.provider_name, "rate limit or quota exceeded", status)
            if status >= 500 and attempt < attempts - 1:
                last_error = f"HTTP {status}"
                time.sleep(2 ** attempt)
                continue
            raise ProviderUnavailable(self.provider_name, f"HTTP {status}", status)
        raise ProviderUnavailable(self.provider_name, last_error)
