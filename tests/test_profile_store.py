from __future__ import annotations

import sqlite3
from datetime import datetime, timedelta

import pytest

from db.repos.document_store import SQLiteDocumentStore
from db.repos.profile_store import ProfileStore
from models import EnrichedProfile, PipelineAudit, ProfileField, ProfileFlag, ProfileUpdate, SocialLinks
from services.errors import PersistenceFailure


def _profile(score=80, **kwargs) -> EnrichedProfile:
    confidence = "high" if score >= 70 else "medium" if score >= 40 else "low"
    base = dict(
        name="Omar Suleiman",
        display_name="Omar Suleiman",
        full_bio="Original biography.",
        tier={"high": "verified", "medium": "rising", "low": "community"}[confidence],
        confidence=confidence,
        confidence_score=score,
        data_sources=["youtube"],
        social_links=SocialLinks(website="https://omarsuleiman.com"),
        pipeline=PipelineAudit(discovered_at="t0", verified_at="t1", enriched_at="t2"),
    )
    base.update(kwargs)
    return EnrichedProfile(**base)


def _flag(clock, **kwargs) -> ProfileFlag:
    base = dict(type="invalid_link", severity="medium", field="website", message="dead", created_at=clock().isoformat())
    base.update(kwargs)
    return ProfileFlag(**base)


def test_versions_increase_and_live_record_matches_latest(store):
    first = store.save(_profile())
    second = store.save(_profile(full_bio="Updated biography."), trigger="manual_update", created_by="admin")

    assert (first.subject_id, first.version, first.is_new) == ("omar-suleiman", 1, True)
    assert (second.version, second.is_new) == (2, False)
    assert [c.field for c in second.changes] == ["profile.bio"]
    assert second.changes[0].old_value == "Original biography."

    history = store.get_version_history("omar-suleiman")
    assert [v.version for v in history] == [2, 1]
    assert history[0].data == store.get_profile("omar-suleiman")
    assert history[0].trigger == "manual_update"
    assert history[0].version_id == "omar-suleiman_v2"


def test_rollback_appends_a_new_version(store):
    store.save(_profile())
    store.save(_profile(full_bio="Vandalised."))
    restored = store.rollback_to_version("omar-suleiman", 1, created_by="admin")

    history = store.get_version_history("omar-suleiman")
    assert restored.version == 3
    assert len(history) == 3
    assert history[0].data == history[2].data
    assert history[0].restored_from == 1
    assert history[1].data["profile"]["bio"] == "Vandalised."
    assert store.get_profile("omar-suleiman")["profile"]["bio"] == "Original biography."

    with pytest.raises(ValueError):
        store.rollback_to_version("omar-suleiman", 9)


def test_flags_and_resolution(store, clock):
    flags = [_flag(clock), _flag(clock, type="missing_data", field="bio")]
    saved = store.save(_profile(), flags)

    summary = store.get_flag_summary(saved.subject_id)
    assert summary["active_count"] == 2 and summary["has_unresolved"] is True
    assert [f["subject_id"] for f in store.list_flagged()] == ["omar-suleiman"]

    assert store.resolve_flag(saved.subject_id, flags[0].id, resolved_by="reviewer") is True
    assert store.resolve_flag(saved.subject_id, flags[0].id) is False
    assert store.get_flag_summary(saved.subject_id)["active_count"] == 1

    store.resolve_flag(saved.subject_id, flags[1].id)
    assert store.get_flag_summary(saved.subject_id)["has_unresolved"] is False
    assert store.list_flagged() == []
    assert store.get_flags(saved.subject_id) == []
    resolved = store.get_flags(saved.subject_id, include_resolved=True)
    assert {f.resolved_by for f in resolved} == {"reviewer", "admin"}

    # Resolving never touches the versioned record
    assert store.get_version_history(saved.subject_id)[0].data == store.get_profile(saved.subject_id)


def test_unknown_flag_raises(store):
    store.save(_profile())
    with pytest.raises(KeyError):
        store.resolve_flag("omar-suleiman", "flag_nope")


@pytest.mark.parametrize("score,days,priority", [(80, 30, "low"), (55, 14, "normal"), (10, 7, "high")])
def test_schedule_cadence(store, clock, score, days, priority):
    saved = store.save(_profile(score=score))
    schedule = store.get_schedule(saved.subject_id)
    assert datetime.fromisoformat(schedule.next_refresh) == clock() + timedelta(days=days)
    assert schedule.priority == priority
    assert schedule.refresh_count == 0
    assert schedule.last_confidence_score == score


def test_next_refresh_never_moves_backwards(store, clock):
    store.save(_profile(score=80))
    first = datetime.fromisoformat(store.get_schedule("omar-suleiman").next_refresh)
    clock.advance(days=1)
    store.save(_profile(score=10), trigger="scheduled_refresh")
    second = store.get_schedule("omar-suleiman")
    assert datetime.fromisoformat(second.next_refresh) > first
    assert second.refresh_count == 1
    assert second.priority == "high"


def test_apply_update_is_a_sync_version(store):
    store.save(_profile(social_links=SocialLinks()))
    update = ProfileUpdate().set(ProfileField.SOCIAL_TWITTER, "https://twitter.com/omarsuleiman10")
    saved = store.apply_update("omar-suleiman", update)

    latest = store.get_version_history("omar-suleiman")[0]
    assert saved.version == 2 and latest.trigger == "sync"
    assert [c.field for c in saved.changes] == ["social_links.twitter"]
    assert latest.data == store.get_profile("omar-suleiman")
    assert store.apply_update("omar-suleiman", ProfileUpdate()) is None
    with pytest.raises(KeyError):
        store.apply_update("nobody", update)


def test_due_and_claims(store, clock):
    store.save(_profile(score=10, display_name="Low One", name="Low One"))
    clock.advance(hours=1)
    store.save(_profile(score=10, display_name="Low Two", name="Low Two"))
    store.save(_profile(score=80))

    later = clock() + timedelta(days=8)
    due = store.get_due_for_refresh(10, now=later)
    assert [s.subject_id for s in due] == ["low-one", "low-two"]

    assert store.claim_for_refresh("low-one", "worker-a", now=later) is True
    assert store.claim_for_refresh("low-one", "worker-b", now=later) is False
    assert [s.subject_id for s in store.get_due_for_refresh(10, now=later)] == ["low-two"]
    # Not due yet
    assert store.claim_for_refresh("omar-suleiman", "worker-a", now=later) is False

    store.release_claim("low-one", error="boom")
    released = store.get_schedule("low-one")
    assert released.status == "scheduled" and released.last_error == "boom"
    assert released.refresh_count == 0

    # Abandoned claims expire
    store.claim_for_refresh("low-two", "worker-a", now=later)
    assert store.claim_for_refresh("low-two", "worker-b", now=later + timedelta(minutes=31)) is True


class FailingDocuments(SQLiteDocumentStore):
    def set(self, collection, doc_id, data, merge=False):
        if collection == "refresh_schedules":
            raise sqlite3.OperationalError("database is locked")
        super().set(collection, doc_id, data, merge)


def test_failed_save_leaves_nothing_behind(conn, clock):
    store = ProfileStore(FailingDocuments(conn), clock=clock)
    with pytest.raises(PersistenceFailure) as err:
        store.save(_profile())
    assert err.value.subject_id == "omar-suleiman"
    assert store.get_profile("omar-suleiman") is None
    assert store.get_version_history("omar-suleiman") == []


def test_lock_set_stays_fixed(store):
    locks = list(store._locks)
    for i in range(200):
        store.save(_profile(display_name=f"Person {i}"))
    assert store._locks == locks
    assert store._subject_lock("person-7") is store._subject_lock("person-7")


def test_add_flags_writes_no_version(store, clock):
    subject_id = store.save(_profile()).subject_id

    ids = store.add_flags(subject_id, [_flag(clock), _flag(clock, field="twitter")])

    assert sorted(f.id for f in store.get_flags(subject_id)) == sorted(ids)
    assert store.get_flag_summary(subject_id)["active_count"] == 2
    assert len(store.get_version_history(subject_id)) == 1
    assert store.add_flags(subject_id, []) == []
    with pytest.raises(KeyError):
        store.add_flags("nobody", [_flag(clock)])
