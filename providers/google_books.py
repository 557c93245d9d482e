"""Google Books adapter: books written by the subject."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

import requests

from config.settings import Settings
from models import BookResult
from providers.base import HttpProvider
from providers.registry import register
from services.cache import TTLCache, cache_key
from services.name_utils import clean_name, is_relevant_text


MAX_BOOKS = 10


def _isbn(volume: Dict[str, Any]) -> Optional[str]:
    identifiers = {i.get("type"): i.get("identifier") for i in volume.get("industryIdentifiers") or []}
    return identifiers.get("ISBN_13") or identifiers.get("ISBN_10")


def parse_volume(volume: Dict[str, Any]) -> Optional[BookResult]:
    title = volume.get("title")
    if not title:
        return None
    isbn = _isbn(volume)
    images = volume.get("imageLinks") or {}
    thumbnail = images.get("thumbnail") or images.get("smallThumbnail")
    if thumbnail and thumbnail.startswith("http://"):
        thumbnail = "https://" + thumbnail[len("http://"):]
    return BookResult(
        title=title,
        authors=list(volume.get("authors") or []),
        published_date=volume.get("publishedDate"),
        thumbnail=thumbnail,
        isbn=isbn,
        amazon_url=f"https://www.amazon.com/dp/{isbn}" if isbn else None,
        description=volume.get("description"),
    )


class GoogleBooksProvider(HttpProvider):
    provider_name = "google_books"

    def __init__(self, settings: Optional[Settings] = None, session: Optional[requests.Session] = None, cache: Optional[TTLCache] = None):
        super().__init__(settings, session)
        self.cache = cache

    def _fetch(self, cleaned: str) -> List[dict]:
        params: Dict[str, Any] = {"q": f'inauthor:"{cleaned}"', "maxResults": 20, "printType": "books"}
        if self.settings.google_books_api_key:
            params["key"] = self.settings.google_books_api_key
        data = self._get_json(self.settings.google_books_url, params=params, operation="volumes") or {}
        with self._parsing("volumes"):
            return self._authored_books(cleaned, data.get("items") or [])

    def _authored_books(self, cleaned: str, items: List[Dict[str, Any]]) -> List[dict]:
        books: List[dict] = []
        seen = set()
        for item in items:
            book = parse_volume(item.get("volumeInfo") or {})
            if book is None:
                continue
            # inauthor: also matches co-authors with similar names
            if not any(is_relevant_text(cleaned, author) for author in book.authors):
                continue
            key = book.title.strip().lower()
            if key in seen:
                continue
            seen.add(key)
            books.append(book.model_dump())
            if len(books) >= MAX_BOOKS:
                break
        return books

    def search_by_author(self, name: str) -> List[BookResult]:
        cleaned = clean_name(name)
        if not cleaned:
            return []
        if self.cache is None:
            raw = self._fetch(cleaned)
        else:
            raw = self.cache.get_or_fetch(cache_key(self.provider_name, "search_by_author", cleaned), lambda: self._fetch(cleaned))
        with self._parsing("volumes"):
            return [BookResult.model_validate(b) for b in raw or []]


def _register():
    register(GoogleBooksProvider.provider_name, GoogleBooksProvider)


_register()
