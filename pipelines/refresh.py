"""Refresh scheduler run: re-process subjects whose next_refresh has passed."""
from __future__ import annotations

import logging
import os
import socket
import time
from typing import Any, Callable, Dict, List, Optional

from config.settings import Settings, get_settings
from db.repos.profile_store import ProfileStore
from models import ProfileField, get_field
from pipelines.profile_pipeline import build_pipeline, run_pipeline
from providers import ProviderSet


logger = logging.getLogger(__name__)


def default_worker_id() -> str:
    return f"{socket.gethostname()}:{os.getpid()}"


def run_refresh(
    providers: ProviderSet,
    store: ProfileStore,
    limit: Optional[int] = None,
    *,
    settings: Optional[Settings] = None,
    worker: Optional[str] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> Dict[str, Any]:
    """Claim due subjects (oldest next_refresh first) and run the full pipeline on each.

    A successful run writes a new version and a later next_refresh. A failed
    run only releases the claim, leaving next_refresh and refresh_count as
    they were so the subject stays due.
    """
    settings = settings or get_settings()
    limit = settings.refresh_batch_size if limit is None else limit
    worker = worker or default_worker_id()
    pipeline = build_pipeline(providers, store, settings)

    due = store.get_due_for_refresh(limit)
    results: List[Dict[str, Any]] = []
    for schedule in due:
        subject_id = schedule.subject_id
        if not store.claim_for_refresh(subject_id, worker):
            # Another run got there first
            continue
        if results:
            sleep(settings.refresh_delay_seconds)
        record = store.get_profile(subject_id) or {}
        name = get_field(record, ProfileField.PROFILE_DISPLAY_NAME) or get_field(record, ProfileField.PROFILE_NAME)
        if not name:
            store.release_claim(subject_id, error="stored record has no name")
            results.append({"subject_id": subject_id, "success": False, "action": "failed", "confidence": None,
                            "message": "stored record has no name"})
            continue

        outcome = run_pipeline(
            name,
            settings=settings,
            trigger="scheduled_refresh",
            created_by="scheduler",
            subject_id=subject_id,
            pipeline=pipeline,
        )
        if not outcome["success"]:
            store.release_claim(subject_id, error=outcome["message"])
            logger.warning(
                "refresh failed, subject stays due",
                extra={"stage": "refresh", "subject": subject_id, "status": "failed", "error": outcome["message"]},
            )
        profile = outcome.get("profile") or {}
        results.append({
            "subject_id": subject_id,
            "success": outcome["success"],
            "action": "refreshed" if outcome["success"] else "failed",
            "confidence": profile.get("confidence"),
            "version": outcome.get("version"),
            "message": outcome["message"],
        })

    refreshed = sum(1 for r in results if r["success"])
    logger.info(f"refresh run complete: {refreshed}/{len(results)}", extra={"stage": "refresh"})
    return {"refreshed": refreshed, "total": len(results), "results": results}
