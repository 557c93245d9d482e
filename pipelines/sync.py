"""Sync/Merge: re-discover existing subjects and fill only the fields they are missing."""
from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, List, Optional, Sequence

from config.settings import Settings, get_settings
from db.repos.profile_store import ProfileStore
from models import ProfileField, ProfileUpdate, VerifiedProfile, get_field, is_blank
from pipelines.steps.discover import discover_profile
from pipelines.steps.enrich import books_for, enrich_profile, podcast_content, verified_social_links, youtube_content
from pipelines.steps.verify import verify_profile
from profile_validator import ProfileValidator
from providers import ProviderSet
from services.errors import PipelineError, ProviderUnavailable
from utils.number_parsing import format_count


logger = logging.getLogger(__name__)

SOCIAL_FIELDS = {
    "website": ProfileField.SOCIAL_WEBSITE,
    "youtube": ProfileField.SOCIAL_YOUTUBE,
    "twitter": ProfileField.SOCIAL_TWITTER,
    "instagram": ProfileField.SOCIAL_INSTAGRAM,
    "facebook": ProfileField.SOCIAL_FACEBOOK,
    "tiktok": ProfileField.SOCIAL_TIKTOK,
    "podcast": ProfileField.SOCIAL_PODCAST,
    "spotify": ProfileField.SOCIAL_SPOTIFY,
}


def _fresh_values(profile: VerifiedProfile) -> Dict[ProfileField, Any]:
    """What re-discovery can offer, in stored-record shape. Only verified links are included."""
    youtube = youtube_content(profile)
    podcast = podcast_content(profile)
    books = [b.model_dump() for b in books_for(profile) if b.source == "google_books"]
    kg = profile.verified_api.knowledge_graph
    values: Dict[ProfileField, Any] = {
        ProfileField.PROFILE_BIO: profile.full_bio,
        ProfileField.PROFILE_SHORT_BIO: profile.short_bio,
        ProfileField.PROFILE_AVATAR: (kg.image_url if kg else None) or (youtube.avatar_url if youtube else None),
        ProfileField.CATEGORY: profile.category,
        ProfileField.REGION: profile.region,
        ProfileField.COUNTRY: profile.country,
        ProfileField.LANGUAGES: list(profile.languages),
        ProfileField.TOPICS: list(profile.topics),
        ProfileField.CONTENT_YOUTUBE: youtube.model_dump() if youtube else None,
        ProfileField.CONTENT_PODCAST: podcast.model_dump() if podcast else None,
        ProfileField.CONTENT_BOOKS: books,
        ProfileField.DATA_SOURCES: list(profile.data_sources),
    }
    for kind, url in verified_social_links(profile).populated().items():
        values[SOCIAL_FIELDS[kind]] = url
    return values


# Counters that belong to a content block and are written together with it
DERIVED_STATS = {
    ProfileField.CONTENT_YOUTUBE: (
        (ProfileField.STATS_YOUTUBE_SUBSCRIBERS, "subscriber_count"),
        (ProfileField.STATS_YOUTUBE_VIDEOS, "video_count"),
    ),
    ProfileField.CONTENT_PODCAST: ((ProfileField.STATS_PODCAST_EPISODES, "episode_count"),),
}


def gap_fill(existing: Dict[str, Any], fresh: Dict[ProfileField, Any]) -> ProfileUpdate:
    """Build an update that only writes where the stored record is empty."""
    update = ProfileUpdate()
    for field, value in fresh.items():
        if is_blank(value) or not is_blank(get_field(existing, field)):
            continue
        update = update.set(field, value)
        for stat_field, key in DERIVED_STATS.get(field, ()):
            if not get_field(existing, stat_field) and value.get(key) is not None:
                update = update.set(stat_field, value.get(key))
        if field is ProfileField.CONTENT_BOOKS and not get_field(existing, ProfileField.STATS_BOOKS_PUBLISHED):
            update = update.set(ProfileField.STATS_BOOKS_PUBLISHED, len(value))
    return update


class SyncService:
    def __init__(
        self,
        providers: ProviderSet,
        store: ProfileStore,
        settings: Optional[Settings] = None,
        sleep: Callable[[float], None] = time.sleep,
        validator: Optional[ProfileValidator] = None,
    ):
        self.providers = providers
        self.store = store
        self.settings = settings or get_settings()
        self.validator = validator or ProfileValidator(providers.prober)
        self._sleep = sleep

    def _outcome(self, subject_id: str, name: str, action: str, **extra: Any) -> Dict[str, Any]:
        return {
            "subject_id": subject_id,
            "name": name,
            "success": action != "failed",
            "action": action,
            "enrichments": extra.get("enrichments", []),
            "version": extra.get("version"),
            "flags": extra.get("flags", []),
            "error": extra.get("error"),
        }

    def _review(self, verified: VerifiedProfile) -> List[Dict[str, Any]]:
        """Validator flags for the re-discovered data. Reported only, never stored."""
        report = self.validator.validate(enrich_profile(verified, None, self.settings))
        return [f.model_dump() for f in report.flags]

    def sync_profile(self, subject_id: str, created_by: str = "sync") -> Dict[str, Any]:
        existing = self.store.get_profile(subject_id)
        if existing is None:
            return self._outcome(subject_id, subject_id, "failed", error="Profile not found in database")
        name = (
            get_field(existing, ProfileField.PROFILE_DISPLAY_NAME)
            or get_field(existing, ProfileField.PROFILE_NAME)
            or subject_id
        )
        try:
            candidate = discover_profile(name, self.providers, settings=self.settings)
            verified = verify_profile(candidate, self.providers)
            flags = self._review(verified)
            update = gap_fill(existing, _fresh_values(verified))
            if not len(update):
                logger.info("nothing new to add", extra={"stage": "sync", "subject": subject_id, "status": "skipped"})
                return self._outcome(subject_id, name, "skipped", flags=flags)
            saved = self.store.apply_update(subject_id, update, trigger="sync", created_by=created_by)
        except PipelineError as e:
            logger.error("sync failed", extra={"stage": "sync", "subject": subject_id, "error": str(e)})
            return self._outcome(subject_id, name, "failed", error=str(e))
        except Exception as e:
            logger.exception("sync failed unexpectedly", extra={"stage": "sync", "subject": subject_id, "error": str(e)})
            return self._outcome(subject_id, name, "failed", error=f"Unexpected error: {type(e).__name__}: {e}")

        logger.info(
            f"filled {', '.join(update.fields())}",
            extra={"stage": "sync", "subject": subject_id, "status": "enriched"},
        )
        return self._outcome(subject_id, name, "enriched", enrichments=update.fields(), version=saved.version, flags=flags)

    def sync_batch(self, subject_ids: Sequence[str], created_by: str = "sync") -> Dict[str, Any]:
        results: List[Dict[str, Any]] = []
        for i, subject_id in enumerate(subject_ids):
            if i > 0:
                self._sleep(self.settings.sync_delay_seconds)
            logger.info(f"sync {i + 1}/{len(subject_ids)}", extra={"stage": "sync", "subject": subject_id})
            results.append(self.sync_profile(subject_id, created_by=created_by))
        summary = {
            "total": len(results),
            "enriched": sum(1 for r in results if r["action"] == "enriched"),
            "skipped": sum(1 for r in results if r["action"] == "skipped"),
            "failed": sum(1 for r in results if r["action"] == "failed"),
        }
        return {"summary": summary, "results": results}

    def refresh_youtube_stats(self, subject_id: str, created_by: str = "sync") -> Dict[str, Any]:
        """Re-read the stored channel's counters without running discovery.

        Counters are overwritten, unlike the gap-filling sync.
        """
        existing = self.store.get_profile(subject_id)
        if existing is None:
            return self._stats_outcome(subject_id, "failed", error="Profile not found in database")
        channel_id = get_field(existing, ProfileField.CONTENT_YOUTUBE_CHANNEL_ID)
        if not channel_id:
            return self._stats_outcome(subject_id, "skipped", error="No YouTube channel on record")
        try:
            channel = self.providers.channels.get_channel_by_id(channel_id)
        except ProviderUnavailable as e:
            logger.warning("stats refresh failed", extra={"stage": "sync", "subject": subject_id, "provider": "youtube", "error": str(e)})
            return self._stats_outcome(subject_id, "failed", error=str(e))
        if channel is None:
            return self._stats_outcome(subject_id, "failed", error="Failed to fetch YouTube data")

        fresh = {
            ProfileField.CONTENT_YOUTUBE_SUBSCRIBERS: channel.subscriber_count,
            ProfileField.CONTENT_YOUTUBE_SUBSCRIBERS_FORMATTED: format_count(channel.subscriber_count),
            ProfileField.CONTENT_YOUTUBE_VIDEOS: channel.video_count,
            ProfileField.CONTENT_YOUTUBE_AVATAR: channel.thumbnail_url,
            ProfileField.STATS_YOUTUBE_SUBSCRIBERS: channel.subscriber_count,
            ProfileField.STATS_YOUTUBE_VIDEOS: channel.video_count,
        }
        update = ProfileUpdate()
        for field, value in fresh.items():
            # Hidden counters come back as None; the last known value is kept
            if value is not None and get_field(existing, field) != value:
                update = update.set(field, value)
        new_stats = {"subscriber_count": channel.subscriber_count, "video_count": channel.video_count}
        if not len(update):
            return self._stats_outcome(subject_id, "skipped", new_stats=new_stats)
        try:
            saved = self.store.apply_update(subject_id, update, trigger="sync", created_by=created_by)
        except PipelineError as e:
            logger.error("stats refresh failed", extra={"stage": "sync", "subject": subject_id, "error": str(e)})
            return self._stats_outcome(subject_id, "failed", error=str(e))
        logger.info(
            f"youtube stats updated: {', '.join(update.fields())}",
            extra={"stage": "sync", "subject": subject_id, "provider": "youtube", "status": "updated"},
        )
        return self._stats_outcome(
            subject_id, "updated", new_stats=new_stats, updated_fields=update.fields(), version=saved.version
        )

    def _stats_outcome(self, subject_id: str, action: str, **extra: Any) -> Dict[str, Any]:
        return {
            "subject_id": subject_id,
            "success": action != "failed",
            "updated": action == "updated",
            "action": action,
            "new_stats": extra.get("new_stats"),
            "updated_fields": extra.get("updated_fields", []),
            "version": extra.get("version"),
            "error": extra.get("error"),
        }
