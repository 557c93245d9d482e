from __future__ import annotations

import os


# Central routing for LLM use-cases. Edit here to change per-operation defaults.
# Per-route model can be overridden via env vars for quick testing.
#
# Keys are use_case identifiers consumed by services/llm_client.py
ROUTES: dict[str, dict] = {
    # Free-text research about a subject (Perplexity, OpenAI-compatible API)
    "profile_research": {
        "provider": os.getenv("LLM_RESEARCH_PROVIDER", "perplexity"),
        "model": os.getenv("RESEARCH_MODEL_OVERRIDE"),  # falls back to settings.research_model
        "temperature": 0.1,
        "max_tokens": 4000,
        "operation": "profile_research",
    },
    # Expand a verified-but-sparse biography
    "bio_rewrite": {
        "provider": os.getenv("LLM_REWRITE_PROVIDER", "openai"),
        "model": os.getenv("OPENAI_MODEL_REWRITE"),  # falls back to settings.openai_model
        "temperature": 0.3,
        "max_tokens": 1500,
        "operation": "bio_rewrite",
    },
}
