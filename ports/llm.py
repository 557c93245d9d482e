from __future__ import annotations

from typing import Dict, List, Literal, Optional, Protocol


# Route names in config/llm_routes.py
ResearchUseCase = Literal["profile_research", "bio_rewrite"]


class LLMClientPort(Protocol):
    """Chat completion used by the research provider.

    The reply is the raw message text; the caller extracts the JSON profile
    or rewrite from it. Quota and transport problems are raised as
    ProviderUnavailable, never returned as text.
    """

    def chat(
        self,
        *,
        use_case: ResearchUseCase,
        messages: List[Dict[str, str]],
        temperature: Optional[float] = None,
        prompt_name: Optional[str] = None,
        prompt_text: Optional[str] = None,
    ) -> str:
        ...
