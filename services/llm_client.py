from __future__ import annotations

import json
import re
import time
from typing import Any, Dict, List, Optional

from openai import OpenAI, OpenAIError

from config.llm_routes import ROUTES
from config.settings import Settings, get_settings
from services.errors import ProviderUnavailable
from utils.call_trace import log_call, sha256_text


_FENCED_RE = re.compile(r"```(?:json)?\s*\n?([\s\S]*?)\n?```")


def extract_json(text: Optional[str]) -> Optional[Dict[str, Any]]:
    """Pull a JSON object out of model output: raw, fenced block, or outermost braces."""
    if not text:
        return None
    candidates = [text.strip()]
    m = _FENCED_RE.search(text)
    if m:
        candidates.append(m.group(1).strip())
    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end > start:
        candidates.append(text[start : end + 1])
    for candidate in candidates:
        try:
            data = json.loads(candidate)
        except ValueError:
            continue
        if isinstance(data, dict):
            return data
    return None


class LLMClient:
    """Minimal wrapper to centralize per-use-case routing, timing and tracing.

    Both routes speak the OpenAI chat-completions protocol; Perplexity is
    reached through its OpenAI-compatible base URL.
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or get_settings()
        self._clients: Dict[str, OpenAI] = {}

    def _client_for(self, provider: str) -> OpenAI:
        if provider in self._clients:
            return self._clients[provider]
        timeout = max(self.settings.http_timeout_seconds, 60.0)
        if provider == "perplexity":
            if not self.settings.perplexity_api_key:
                raise ProviderUnavailable(provider, "PERPLEXITY_API_KEY not configured")
            client = OpenAI(api_key=self.settings.perplexity_api_key, base_url=self.settings.perplexity_base_url, timeout=timeout)
        elif provider == "openai":
            if not self.settings.openai_api_key:
                raise ProviderUnavailable(provider, "OPENAI_API_KEY not configured")
            client = OpenAI(api_key=self.settings.openai_api_key, timeout=timeout)
        else:
            raise NotImplementedError(f"Provider not implemented: {provider}")
        self._clients[provider] = client
        return client

    def _model_for(self, provider: str, route: Dict[str, Any]) -> str:
        if route.get("model"):
            return route["model"]
        if provider == "perplexity":
            return self.settings.research_model
        return self.settings.openai_model

    def chat(
        self,
        *,
        use_case: str,
        messages: List[Dict[str, str]],
        temperature: Optional[float] = None,
        prompt_name: Optional[str] = None,
        prompt_text: Optional[str] = None,
    ) -> str:
        """Run one chat completion for a routed use case and return the message text."""
        route = ROUTES.get(use_case, {})
        provider = route.get("provider", "openai")
        model = self._model_for(provider, route)
        op = route.get("operation", "chat")
        temp = temperature if temperature is not None else route.get("temperature")

        client = self._client_for(provider)
        kwargs: Dict[str, Any] = {"model": model, "messages": messages}
        if temp is not None:
            kwargs["temperature"] = temp
        if route.get("max_tokens"):
            kwargs["max_tokens"] = route["max_tokens"]

        t0 = time.time()
        try:
            resp = client.chat.completions.create(**kwargs)
        except OpenAIError as e:
            log_call(
                caller=f"llm_client.chat:{use_case}",
                provider=provider,
                operation=op,
                duration_ms=int((time.time() - t0) * 1000),
                status="error",
                error=str(e),
                model=model,
                prompt_hash=sha256_text(prompt_text),
                extras={"prompt_name": prompt_name} if prompt_name else None,
            )
            raise ProviderUnavailable(provider, f"{type(e).__name__}: {e}")
        duration_ms = int((time.time() - t0) * 1000)

        usage = getattr(resp, "usage", None)
        usage_obj = None
        if usage is not None:
            usage_obj = {
                "prompt_tokens": getattr(usage, "prompt_tokens", None),
                "completion_tokens": getattr(usage, "completion_tokens", None),
                "total_tokens": getattr(usage, "total_tokens", None),
            }
        log_call(
            caller=f"llm_client.chat:{use_case}",
            provider=provider,
            operation=op,
            duration_ms=duration_ms,
            status="ok",
            model=model,
            prompt_hash=sha256_text(prompt_text),
            usage=usage_obj,
            extras={"prompt_name": prompt_name} if prompt_name else None,
        )

        choices = getattr(resp, "choices", None) or []
        if not choices:
            return ""
        return choices[0].message.content or ""
