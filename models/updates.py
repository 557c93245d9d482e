from __future__ import annotations

import copy
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, Tuple


class ProfileField(str, Enum):
    """Every updatable location in a stored subject record."""

    PROFILE_NAME = "profile.name"
    PROFILE_DISPLAY_NAME = "profile.display_name"
    PROFILE_BIO = "profile.bio"
    PROFILE_SHORT_BIO = "profile.short_bio"
    PROFILE_AVATAR = "profile.avatar"
    CATEGORY = "category"
    REGION = "region"
    COUNTRY = "country"
    LANGUAGES = "languages"
    TOPICS = "topics"
    SOCIAL_WEBSITE = "social_links.website"
    SOCIAL_YOUTUBE = "social_links.youtube"
    SOCIAL_TWITTER = "social_links.twitter"
    SOCIAL_INSTAGRAM = "social_links.instagram"
    SOCIAL_FACEBOOK = "social_links.facebook"
    SOCIAL_TIKTOK = "social_links.tiktok"
    SOCIAL_PODCAST = "social_links.podcast"
    SOCIAL_SPOTIFY = "social_links.spotify"
    CONTENT_YOUTUBE = "content.youtube"
    CONTENT_YOUTUBE_SUBSCRIBERS = "content.youtube.subscriber_count"
    CONTENT_YOUTUBE_SUBSCRIBERS_FORMATTED = "content.youtube.subscriber_count_formatted"
    CONTENT_YOUTUBE_VIDEOS = "content.youtube.video_count"
    CONTENT_YOUTUBE_AVATAR = "content.youtube.avatar_url"
    CONTENT_YOUTUBE_CHANNEL_ID = "content.youtube.channel_id"
    CONTENT_PODCAST = "content.podcast"
    CONTENT_BOOKS = "content.books"
    CONTENT_NEWS = "content.news"
    STATS_YOUTUBE_SUBSCRIBERS = "stats.youtube_subscribers"
    STATS_YOUTUBE_VIDEOS = "stats.youtube_videos"
    STATS_PODCAST_EPISODES = "stats.podcast_episodes"
    STATS_BOOKS_PUBLISHED = "stats.books_published"
    DATA_SOURCES = "data_source.sources"

    @property
    def parts(self) -> Tuple[str, ...]:
        return tuple(self.value.split("."))


# High-value fields compared between consecutive versions
WATCHED_FIELDS: Tuple[ProfileField, ...] = (
    ProfileField.PROFILE_NAME,
    ProfileField.PROFILE_BIO,
    ProfileField.PROFILE_AVATAR,
    ProfileField.SOCIAL_WEBSITE,
    ProfileField.SOCIAL_YOUTUBE,
    ProfileField.SOCIAL_TWITTER,
    ProfileField.SOCIAL_INSTAGRAM,
    ProfileField.SOCIAL_PODCAST,
    ProfileField.STATS_YOUTUBE_SUBSCRIBERS,
    ProfileField.CONTENT_BOOKS,
)


def get_field(record: Dict[str, Any] | None, field: ProfileField) -> Any:
    node: Any = record or {}
    for part in field.parts:
        if not isinstance(node, dict):
            return None
        node = node.get(part)
    return node


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) == 0
    return False


@dataclass(frozen=True)
class ProfileUpdate:
    """Immutable set of (field, value) pairs applied as one partial update."""

    items: Tuple[Tuple[ProfileField, Any], ...] = ()

    def __post_init__(self) -> None:
        seen = set()
        for field, _ in self.items:
            if not isinstance(field, ProfileField):
                raise TypeError(f"not a ProfileField: {field!r}")
            if field in seen:
                raise ValueError(f"duplicate field in update: {field.value}")
            seen.add(field)

    def set(self, field: ProfileField, value: Any) -> "ProfileUpdate":
        kept = tuple((f, v) for f, v in self.items if f is not field)
        return ProfileUpdate(kept + ((field, value),))

    def __iter__(self) -> Iterator[Tuple[ProfileField, Any]]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def fields(self) -> list[str]:
        return [f.value for f, _ in self.items]

    def to_paths(self) -> Dict[str, Any]:
        return {f.value: v for f, v in self.items}

    def apply(self, record: Dict[str, Any]) -> Dict[str, Any]:
        """Return a deep copy of record with every pair written."""
        out = copy.deepcopy(record)
        for field, value in self.items:
            node = out
            *parents, leaf = field.parts
            for part in parents:
                child = node.get(part)
                if not isinstance(child, dict):
                    child = {}
                    node[part] = child
                node = child
            node[leaf] = copy.deepcopy(value)
        return out
