"""Free-text research provider backed by an LLM with a strict JSON contract."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import ValidationError

from config.settings import Settings, get_settings
from models import ResearchResult, RewriteResult
from ports.llm import LLMClientPort
from providers.registry import register
from services.errors import ResearchParseFailure
from services.llm_client import LLMClient, extract_json


logger = logging.getLogger(__name__)

PROMPTS_DIR = Path(__file__).resolve().parent.parent / "prompts"

SYSTEM_PROMPT = (
    "You are a meticulous researcher building public-figure profiles. "
    "Always respond with valid JSON only. Use null for anything you cannot verify."
)


def _load_prompt(filename: str, fallback: str) -> str:
    path = PROMPTS_DIR / filename
    if path.exists():
        return path.read_text(encoding="utf-8")
    return fallback


class ResearchProvider:
    provider_name = "research"

    def __init__(self, llm: Optional[LLMClientPort] = None, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.llm = llm or LLMClient(self.settings)

    def research(self, name: str) -> ResearchResult:
        """Narrative fields and link hints for a subject.

        Raises ResearchParseFailure when the answer is not the expected JSON;
        transport problems surface as ProviderUnavailable from the client.
        """
        template = _load_prompt("research_prompt.txt", 'Research "{name}" and return only a JSON profile object.')
        prompt = template.format(name=name)
        text = self.llm.chat(
            use_case="profile_research",
            messages=[{"role": "system", "content": SYSTEM_PROMPT}, {"role": "user", "content": prompt}],
            prompt_name="research_prompt",
            prompt_text=prompt,
        )
        data = extract_json(text)
        if data is None:
            raise ResearchParseFailure("research response was not JSON", raw_excerpt=text)
        try:
            return ResearchResult.model_validate(data)
        except ValidationError as e:
            raise ResearchParseFailure(f"research JSON did not match the profile shape: {e.error_count()} errors", raw_excerpt=text)

    def rewrite_bio(self, name: str, bio: Optional[str], context: Dict[str, Any]) -> Optional[RewriteResult]:
        template = _load_prompt("bio_rewrite_prompt.txt", 'Improve the biography of "{name}": {bio}\nFacts: {facts}\nReturn JSON.')
        prompt = template.format(
            name=name,
            bio=bio or "(none)",
            facts=json.dumps(context, ensure_ascii=False, indent=2, default=str),
        )
        text = self.llm.chat(
            use_case="bio_rewrite",
            messages=[{"role": "system", "content": SYSTEM_PROMPT}, {"role": "user", "content": prompt}],
            prompt_name="bio_rewrite_prompt",
            prompt_text=prompt,
        )
        data = extract_json(text)
        if data is None:
            raise ResearchParseFailure("bio rewrite response was not JSON", raw_excerpt=text)
        try:
            result = RewriteResult.model_validate(data)
        except ValidationError as e:
            raise ResearchParseFailure(f"bio rewrite JSON invalid: {e.error_count()} errors", raw_excerpt=text)
        if not result.improved_bio:
            return None
        return result


def _register():
    register(ResearchProvider.provider_name, ResearchProvider)


_register()
