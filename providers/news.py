"""NewsAPI adapter: recent articles mentioning the subject."""
from __future__ import annotations

from typing import Any, Dict, List

from models import NewsArticle
from providers.base import HttpProvider
from providers.registry import register
from services.name_utils import clean_name, is_relevant_text


MAX_ARTICLES = 5


class NewsApiProvider(HttpProvider):
    provider_name = "newsapi"

    def search(self, name: str) -> List[NewsArticle]:
        key = self._require(self.settings.newsapi_key, "NEWSAPI_KEY")
        cleaned = clean_name(name)
        if not cleaned:
            return []
        params = {"q": f'"{cleaned}"', "sortBy": "relevancy", "pageSize": 10, "language": "en", "apiKey": key}
        data = self._get_json(self.settings.newsapi_url, params=params, operation="everything") or {}
        with self._parsing("everything"):
            return self._relevant_articles(cleaned, data.get("articles") or [])

    def _relevant_articles(self, cleaned: str, raw_articles: List[Dict[str, Any]]) -> List[NewsArticle]:
        articles: List[NewsArticle] = []
        for raw in raw_articles:
            if len(articles) >= MAX_ARTICLES:
                break
            title = raw.get("title")
            url = raw.get("url")
            if not title or not url or title == "[Removed]":
                continue
            if not is_relevant_text(cleaned, title, raw.get("description")):
                continue
            articles.append(
                NewsArticle(
                    title=title,
                    url=url,
                    description=raw.get("description"),
                    image_url=raw.get("urlToImage"),
                    source=(raw.get("source") or {}).get("name") or "Unknown",
                    published_at=raw.get("publishedAt"),
                )
            )
        return articles


def _register():
    register(NewsApiProvider.provider_name, NewsApiProvider)


_register()
