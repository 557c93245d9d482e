from __future__ import annotations

from db.repos.profile_store import ProfileStore
from pipelines.runner import RunContext


class PersistStep:
    stage = "store"

    def __init__(self, store: ProfileStore) -> None:
        self.store = store

    def run(self, ctx: RunContext) -> RunContext:
        if ctx.enriched is None:
            raise ValueError("nothing to persist")
        saved = self.store.save(
            ctx.enriched,
            ctx.flags,
            trigger=ctx.trigger,
            created_by=ctx.created_by,
            subject_id=ctx.subject_id,
        )
        ctx.saved = saved
        ctx.subject_id = saved.subject_id
        ctx.storage_record = self.store.get_profile(saved.subject_id)
        return ctx
