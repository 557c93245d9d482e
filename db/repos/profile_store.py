from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence

from models import (
    EnrichedProfile,
    FieldChange,
    ProfileFlag,
    ProfileField,
    ProfileUpdate,
    ProfileVersion,
    RefreshSchedule,
    SaveResult,
    WATCHED_FIELDS,
    get_field,
    is_blank,
)
from ports.document_store import DocumentStorePort
from services.errors import PersistenceFailure
from services.name_utils import slugify
from services.scoring import refresh_cadence_days, refresh_priority


logger = logging.getLogger(__name__)

CREATORS = "creators"
VERSIONS = "profile_versions"
FLAGS = "creator_flags"
FLAG_SUMMARIES = "flag_summaries"
SCHEDULES = "refresh_schedules"
SLUGS = "slugs"

DEFAULT_CLAIM_TTL = timedelta(minutes=30)
LOCK_STRIPES = 64


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).isoformat(timespec="seconds")


def _parse(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    dt = datetime.fromisoformat(value)
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def version_id(subject_id: str, version: int) -> str:
    return f"{subject_id}_v{version}"


def to_record(profile: EnrichedProfile, subject_id: str) -> Dict[str, Any]:
    """Storage shape of an enriched profile; every ProfileField path exists in it."""
    youtube = profile.youtube.model_dump() if profile.youtube else None
    podcast = profile.podcast.model_dump() if profile.podcast else None
    return {
        "subject_id": subject_id,
        "slug": slugify(profile.display_name),
        "profile": {
            "name": profile.name,
            "display_name": profile.display_name,
            "title": profile.title,
            "bio": profile.full_bio,
            "short_bio": profile.short_bio,
            "avatar": profile.avatar_url,
            "image_search_query": profile.image_search_query,
            "gender": profile.gender,
            "location": profile.location,
            "country_flag": profile.country_flag,
        },
        "category": profile.category,
        "tier": profile.tier,
        "region": profile.region,
        "country": profile.country,
        "languages": list(profile.languages),
        "topics": list(profile.topics),
        "affiliations": list(profile.affiliations),
        "social_links": profile.social_links.model_dump(),
        "content": {
            "youtube": youtube,
            "podcast": podcast,
            "books": [b.model_dump() for b in profile.books],
            "courses": [c.model_dump() for c in profile.courses],
            "audio_books": [c.model_dump() for c in profile.audio_books],
            "ebooks": [c.model_dump() for c in profile.ebooks],
            "news": [n.model_dump() for n in profile.news],
        },
        "stats": {
            "youtube_subscribers": profile.youtube.subscriber_count if profile.youtube else None,
            "youtube_videos": profile.youtube.video_count if profile.youtube else None,
            "podcast_episodes": profile.podcast.episode_count if profile.podcast else None,
            "books_published": len(profile.books),
        },
        "historical": {
            "is_historical": profile.is_historical,
            "lifespan": profile.lifespan,
            "note": profile.note,
        },
        "confidence": profile.confidence,
        "confidence_score": profile.confidence_score,
        "data_source": {
            "sources": list(profile.data_sources),
            "name_variants": dict(profile.name_variants),
        },
        "pipeline": profile.pipeline.model_dump(mode="json"),
    }


def diff(old: Optional[Dict[str, Any]], new: Dict[str, Any], fields: Sequence[ProfileField] = WATCHED_FIELDS) -> List[FieldChange]:
    changes = []
    for f in fields:
        before, after = get_field(old, f), get_field(new, f)
        if before != after:
            changes.append(FieldChange(field=f.value, old_value=before, new_value=after))
    return changes


class ProfileStore:
    """Versioned subject records over the document contract.

    A subject's record, version snapshot, flags and schedule are written in
    one transaction under the subject's lock stripe. Storage errors surface as
    PersistenceFailure.
    """

    def __init__(
        self,
        store: DocumentStorePort,
        clock: Callable[[], datetime] = _utcnow,
        claim_ttl: timedelta = DEFAULT_CLAIM_TTL,
    ):
        self.store = store
        self._clock = clock
        self.claim_ttl = claim_ttl
        self._locks = [threading.Lock() for _ in range(LOCK_STRIPES)]

    def _subject_lock(self, subject_id: str) -> threading.Lock:
        # Fixed stripe set; two subjects may share a lock
        return self._locks[hash(subject_id) % len(self._locks)]

    @contextmanager
    def _writing(self, subject_id: str, action: str) -> Iterator[None]:
        with self._subject_lock(subject_id):
            try:
                with self.store.transaction():
                    yield
            except sqlite3.Error as e:
                logger.error(
                    f"{action} failed",
                    extra={"stage": "store", "subject": subject_id, "status": "error", "error": str(e)},
                )
                raise PersistenceFailure(f"{action} failed for {subject_id}: {e}", subject_id=subject_id)

    # --- writes ---

    def save(
        self,
        profile: EnrichedProfile,
        flags: Sequence[ProfileFlag] = (),
        trigger: str = "initial_creation",
        created_by: str = "pipeline",
        subject_id: Optional[str] = None,
    ) -> SaveResult:
        subject_id = subject_id or slugify(profile.display_name)
        record = to_record(profile, subject_id)
        with self._writing(subject_id, "save"):
            envelope = self.store.get(CREATORS, subject_id)
            current = envelope["version"] if envelope else 0
            previous = envelope["data"] if envelope else None
            changes = diff(previous, record)
            version = current + 1
            now = self._clock()

            self._write_version(subject_id, version, trigger, record, changes, created_by, flags, now)
            for flag in flags:
                self.store.set(FLAGS, flag.id, {**flag.model_dump(), "subject_id": subject_id})
            if flags:
                self._adjust_flag_count(subject_id, len(flags), now)
            schedule = self._reschedule(subject_id, profile.confidence_score, now)
            self.store.set(SLUGS, record["slug"], {"subject_id": subject_id, "name": profile.display_name})

        logger.info(
            f"saved version {version}",
            extra={"stage": "store", "subject": subject_id, "status": "new" if current == 0 else "updated"},
        )
        return SaveResult(
            subject_id=subject_id,
            slug=record["slug"],
            version=version,
            is_new=current == 0,
            changes=changes,
            flag_ids=[f.id for f in flags],
            next_refresh=schedule.next_refresh,
        )

    def apply_update(
        self,
        subject_id: str,
        update: ProfileUpdate,
        trigger: str = "sync",
        created_by: str = "sync",
    ) -> Optional[SaveResult]:
        """Write a typed partial update as a new version; an empty update writes nothing."""
        if not len(update):
            return None
        with self._writing(subject_id, "update"):
            envelope = self._require(subject_id)
            record = update.apply(envelope["data"])
            changes = diff(envelope["data"], record, [f for f, _ in update])
            version = envelope["version"] + 1
            self._write_version(subject_id, version, trigger, record, changes, created_by, (), self._clock())
        return SaveResult(
            subject_id=subject_id,
            slug=record.get("slug") or subject_id,
            version=version,
            is_new=False,
            changes=changes,
        )

    def rollback_to_version(self, subject_id: str, target_version: int, created_by: str = "admin") -> SaveResult:
        """Restore a past snapshot as a brand-new version; history is never edited."""
        with self._writing(subject_id, "rollback"):
            envelope = self._require(subject_id)
            target = self.store.get(VERSIONS, version_id(subject_id, target_version))
            if target is None:
                raise ValueError(f"{subject_id} has no version {target_version}")
            record = target["data"]
            changes = diff(envelope["data"], record)
            version = envelope["version"] + 1
            self._write_version(
                subject_id, version, "manual_update", record, changes, created_by, (), self._clock(),
                restored_from=target_version,
            )
        logger.info(
            f"rolled back to version {target_version} as version {version}",
            extra={"stage": "store", "subject": subject_id},
        )
        return SaveResult(
            subject_id=subject_id,
            slug=record.get("slug") or subject_id,
            version=version,
            is_new=False,
            changes=changes,
        )

    def resolve_flag(self, subject_id: str, flag_id: str, resolved_by: str = "admin") -> bool:
        """Mark a flag resolved. Returns False when it was already resolved."""
        with self._writing(subject_id, "resolve flag"):
            flag = self.store.get(FLAGS, flag_id)
            if flag is None or flag.get("subject_id") != subject_id:
                raise KeyError(f"flag {flag_id} not found for {subject_id}")
            if flag.get("resolved_at"):
                return False
            now = self._clock()
            self.store.update(FLAGS, flag_id, {"resolved_at": _iso(now), "resolved_by": resolved_by})
            self._adjust_flag_count(subject_id, -1, now)
        return True

    def add_flags(self, subject_id: str, flags: Sequence[ProfileFlag]) -> List[str]:
        """Attach flags raised after the save. The record and its versions are untouched."""
        if not flags:
            return []
        with self._writing(subject_id, "add flags"):
            self._require(subject_id)
            for flag in flags:
                self.store.set(FLAGS, flag.id, {**flag.model_dump(), "subject_id": subject_id})
            self._adjust_flag_count(subject_id, len(flags), self._clock())
        logger.info(
            f"added {len(flags)} flag(s)",
            extra={"stage": "store", "subject": subject_id, "status": "flagged"},
        )
        return [f.id for f in flags]

    def claim_for_refresh(self, subject_id: str, worker: str, now: Optional[datetime] = None) -> bool:
        """Mark a due subject as processing; False if it is not due or someone else holds it."""
        now = now or self._clock()
        with self._writing(subject_id, "claim"):
            schedule = self.store.get(SCHEDULES, subject_id)
            if schedule is None or not self._is_claimable(schedule, now):
                return False
            self.store.update(SCHEDULES, subject_id, {
                "status": "processing",
                "claimed_by": worker,
                "claimed_at": _iso(now),
            })
        return True

    def release_claim(self, subject_id: str, error: Optional[str] = None) -> None:
        """Return a claimed subject to scheduled without moving next_refresh."""
        with self._writing(subject_id, "release"):
            if self.store.get(SCHEDULES, subject_id) is None:
                return
            self.store.update(SCHEDULES, subject_id, {
                "status": "scheduled",
                "claimed_by": None,
                "claimed_at": None,
                "last_error": error,
            })

    # --- reads ---

    def get_envelope(self, subject_id: str) -> Optional[Dict[str, Any]]:
        return self.store.get(CREATORS, subject_id)

    def get_profile(self, subject_id: str) -> Optional[Dict[str, Any]]:
        envelope = self.store.get(CREATORS, subject_id)
        return envelope["data"] if envelope else None

    def find_by_slug(self, slug: str) -> Optional[str]:
        doc = self.store.get(SLUGS, slug)
        return doc["subject_id"] if doc else None

    def get_version(self, subject_id: str, version: int) -> Optional[ProfileVersion]:
        doc = self.store.get(VERSIONS, version_id(subject_id, version))
        return ProfileVersion.model_validate(doc) if doc else None

    def get_version_history(self, subject_id: str, limit: Optional[int] = None) -> List[ProfileVersion]:
        rows = self.store.query(
            VERSIONS, [("subject_id", "==", subject_id)], order_by="version", descending=True, limit=limit
        )
        return [ProfileVersion.model_validate(data) for _, data in rows]

    def get_flags(self, subject_id: str, include_resolved: bool = False) -> List[ProfileFlag]:
        rows = self.store.query(FLAGS, [("subject_id", "==", subject_id)], order_by="created_at")
        flags = [ProfileFlag.model_validate(data) for _, data in rows]
        return flags if include_resolved else [f for f in flags if not f.resolved]

    def get_flag_summary(self, subject_id: str) -> Dict[str, Any]:
        return self.store.get(FLAG_SUMMARIES, subject_id) or {
            "subject_id": subject_id, "active_count": 0, "has_unresolved": False,
        }

    def subjects_missing(self, field: ProfileField, limit: Optional[int] = None) -> List[str]:
        """Subject ids whose live record has nothing at the given field."""
        ids = [
            doc_id for doc_id, envelope in self.store.query(CREATORS, order_by="updated_at")
            if is_blank(get_field(envelope.get("data"), field))
        ]
        return ids if limit is None else ids[: max(0, limit)]

    def list_flagged(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        rows = self.store.query(
            FLAG_SUMMARIES, [("has_unresolved", "==", True)], order_by="active_count", descending=True, limit=limit
        )
        out = []
        for subject_id, summary in rows:
            data = self.get_profile(subject_id) or {}
            out.append({
                "subject_id": subject_id,
                "display_name": get_field(data, ProfileField.PROFILE_DISPLAY_NAME),
                "confidence": data.get("confidence"),
                "active_flag_count": summary["active_count"],
                "flags": [f.model_dump() for f in self.get_flags(subject_id)],
            })
        return out

    def get_schedule(self, subject_id: str) -> Optional[RefreshSchedule]:
        doc = self.store.get(SCHEDULES, subject_id)
        return RefreshSchedule.model_validate(doc) if doc else None

    def get_due_for_refresh(self, limit: int = 10, now: Optional[datetime] = None) -> List[RefreshSchedule]:
        now = now or self._clock()
        rows = self.store.query(SCHEDULES, [("next_refresh", "<=", _iso(now))], order_by="next_refresh")
        due = [RefreshSchedule.model_validate(data) for _, data in rows if self._is_claimable(data, now)]
        return due[: max(0, limit)]

    # --- internals ---

    def _require(self, subject_id: str) -> Dict[str, Any]:
        envelope = self.store.get(CREATORS, subject_id)
        if envelope is None:
            raise KeyError(f"no stored profile for {subject_id}")
        return envelope

    def _write_version(
        self,
        subject_id: str,
        version: int,
        trigger: str,
        record: Dict[str, Any],
        changes: List[FieldChange],
        created_by: str,
        flags: Sequence[ProfileFlag],
        now: datetime,
        restored_from: Optional[int] = None,
    ) -> None:
        snapshot = ProfileVersion(
            version_id=version_id(subject_id, version),
            subject_id=subject_id,
            version=version,
            trigger=trigger,
            data=record,
            changes=changes,
            confidence=record.get("confidence"),
            data_sources=list(get_field(record, ProfileField.DATA_SOURCES) or []),
            flags=list(flags),
            created_at=_iso(now),
            created_by=created_by,
            restored_from=restored_from,
        )
        self.store.set(VERSIONS, snapshot.version_id, snapshot.model_dump(mode="json"))
        self.store.set(CREATORS, subject_id, {"version": version, "data": record, "updated_at": _iso(now)})

    def _adjust_flag_count(self, subject_id: str, delta: int, now: datetime) -> None:
        summary = self.get_flag_summary(subject_id)
        active = max(0, summary["active_count"] + delta)
        self.store.set(FLAG_SUMMARIES, subject_id, {
            "subject_id": subject_id,
            "active_count": active,
            "has_unresolved": active > 0,
            "updated_at": _iso(now),
        })

    def _reschedule(self, subject_id: str, score: int, now: datetime) -> RefreshSchedule:
        previous = self.get_schedule(subject_id)
        next_refresh = now + timedelta(days=refresh_cadence_days(score))
        if previous is not None:
            floor = _parse(previous.next_refresh) + timedelta(seconds=1)
            next_refresh = max(next_refresh, floor)
        schedule = RefreshSchedule(
            subject_id=subject_id,
            last_refreshed=_iso(now),
            next_refresh=_iso(next_refresh),
            refresh_count=previous.refresh_count + 1 if previous else 0,
            priority=refresh_priority(score),
            last_confidence_score=score,
        )
        self.store.set(SCHEDULES, subject_id, schedule.model_dump())
        return schedule

    def _is_claimable(self, schedule: Dict[str, Any], now: datetime) -> bool:
        if _parse(schedule.get("next_refresh")) > now:
            return False
        if schedule.get("status") != "processing":
            return True
        claimed_at = _parse(schedule.get("claimed_at"))
        # An abandoned claim expires so the subject is not stuck forever
        return claimed_at is None or now - claimed_at >= self.claim_ttl
