from __future__ import annotations

import sqlite3

from db.repos.document_store import SQLiteDocumentStore
from db.repos.profile_store import ProfileStore
from pipelines.profile_pipeline import run_pipeline
from pipelines.refresh import run_refresh


class Switchable(SQLiteDocumentStore):
    fail = False

    def set(self, collection, doc_id, data, merge=False):
        if self.fail and collection == "creators":
            raise sqlite3.OperationalError("disk I/O error")
        super().set(collection, doc_id, data, merge)


def _seed(providers, store, settings):
    result = run_pipeline("Totally Unknown Person", providers=providers, store=store, settings=settings)
    assert result["success"] is True
    return result["subject_id"]


def test_nothing_due_means_nothing_runs(make_providers, store, settings):
    providers = make_providers()
    _seed(providers, store, settings)
    assert run_refresh(providers, store, settings=settings, worker="w1") == {"refreshed": 0, "total": 0, "results": []}


def test_due_subject_gets_a_new_version(make_providers, store, settings, clock):
    providers = make_providers()
    subject_id = _seed(providers, store, settings)
    before = store.get_schedule(subject_id)
    clock.advance(days=8)

    run = run_refresh(providers, store, settings=settings, worker="w1")

    assert run["refreshed"] == 1
    assert run["results"][0]["version"] == 2
    latest = store.get_version_history(subject_id)[0]
    assert latest.trigger == "scheduled_refresh" and latest.created_by == "scheduler"
    after = store.get_schedule(subject_id)
    assert after.refresh_count == 1
    assert after.next_refresh > before.next_refresh
    assert after.status == "scheduled"


def test_failed_refresh_keeps_subject_due(make_providers, conn, clock, settings):
    docs = Switchable(conn)
    store = ProfileStore(docs, clock=clock)
    providers = make_providers()
    subject_id = _seed(providers, store, settings)
    before = store.get_schedule(subject_id)
    clock.advance(days=8)
    docs.fail = True

    run = run_refresh(providers, store, settings=settings, worker="w1")

    assert run["refreshed"] == 0
    assert run["results"][0]["success"] is False
    after = store.get_schedule(subject_id)
    assert after.next_refresh == before.next_refresh
    assert after.refresh_count == 0
    assert after.status == "scheduled"
    assert "save failed" in after.last_error
    assert [s.subject_id for s in store.get_due_for_refresh(10)] == [subject_id]
