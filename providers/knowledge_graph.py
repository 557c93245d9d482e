"""Google Knowledge Graph adapter: encyclopedic description and image."""
from __future__ import annotations

from typing import Any, Dict, Optional

from models import KnowledgeGraphEntity
from providers.base import HttpProvider
from providers.registry import register
from services.name_utils import clean_name, name_tokens, normalize_name


def _is_relevant(element: Dict[str, Any], cleaned: str) -> bool:
    result = element.get("result") or {}
    parts = name_tokens(cleaned)
    if not parts:
        return False
    entity_name = normalize_name(result.get("name"))
    matched = sum(1 for p in parts if p in entity_name)
    if matched < min(2, len(parts)):
        return False
    types = result.get("@type") or []
    return "Person" in types or "Thing" in types


def parse_entity(element: Dict[str, Any]) -> KnowledgeGraphEntity:
    result = element.get("result") or {}
    detailed = result.get("detailedDescription") or {}
    image = result.get("image") or {}
    return KnowledgeGraphEntity(
        name=result.get("name") or "",
        description=result.get("description"),
        detailed_description=detailed.get("articleBody"),
        image_url=image.get("contentUrl"),
        url=result.get("url") or detailed.get("url"),
        entity_types=list(result.get("@type") or []),
    )


class KnowledgeGraphProvider(HttpProvider):
    provider_name = "knowledge_graph"

    def lookup(self, name: str) -> Optional[KnowledgeGraphEntity]:
        key = self._require(self.settings.google_api_key, "GOOGLE_API_KEY")
        cleaned = clean_name(name)
        if not cleaned:
            return None
        params = {"query": cleaned, "key": key, "limit": 5, "types": "Person", "languages": "en"}
        data = self._get_json(self.settings.knowledge_graph_url, params=params, operation="entities_search") or {}
        with self._parsing("entities_search"):
            for element in data.get("itemListElement") or []:
                if _is_relevant(element, cleaned):
                    return parse_entity(element)
        return None


def _register():
    register(KnowledgeGraphProvider.provider_name, KnowledgeGraphProvider)


_register()
