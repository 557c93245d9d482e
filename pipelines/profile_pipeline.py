"""Pipeline entry points: one subject, or a capped batch of subjects."""
from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from config.settings import Settings, get_settings
from db.connection import get_connection
from db.repos.document_store import SQLiteDocumentStore
from db.repos.profile_store import ProfileStore
from db.schema import bootstrap
from pipelines.runner import Pipeline, RunContext
from pipelines.steps import DiscoverStep, EnrichStep, PersistStep, ValidateStep, VerifyStep
from profile_validator import ProfileValidator
from providers import ProviderSet, build_provider_set
from services.cache import TTLCache
from services.errors import PipelineError
from utils.logging_setup import init_logging


logger = logging.getLogger(__name__)


def open_store(settings: Optional[Settings] = None) -> ProfileStore:
    settings = settings or get_settings()
    conn = get_connection(settings.db_path)
    bootstrap(conn)
    return ProfileStore(SQLiteDocumentStore(conn))


def default_resources(settings: Optional[Settings] = None) -> Tuple[ProviderSet, ProfileStore]:
    """Live adapters plus the SQLite-backed store, sharing one database file."""
    settings = settings or get_settings()
    store = open_store(settings)
    cache = TTLCache(store.store.conn, default_ttl_seconds=settings.cache_ttl_days * 24 * 60 * 60)
    return build_provider_set(cache, settings), store


def build_pipeline(
    providers: ProviderSet,
    store: ProfileStore,
    settings: Optional[Settings] = None,
    cancel_event: Optional[threading.Event] = None,
    validator: Optional[ProfileValidator] = None,
) -> Pipeline:
    return Pipeline([
        DiscoverStep(providers, cancel_event=cancel_event),
        VerifyStep(providers),
        EnrichStep(providers.research, settings),
        ValidateStep(providers.prober, validator=validator),
        PersistStep(store),
    ])


def _result(ctx: RunContext, success: bool, message: str) -> Dict[str, Any]:
    return {
        "success": success,
        "name": ctx.name,
        "subject_id": ctx.subject_id,
        "version": ctx.saved.version if ctx.saved else None,
        "is_new": ctx.saved.is_new if ctx.saved else None,
        "next_refresh": ctx.saved.next_refresh if ctx.saved else None,
        "profile": ctx.enriched.model_dump(mode="json") if ctx.enriched else None,
        "storage_record": ctx.storage_record,
        "stage_report": ctx.stage_report,
        "flags": [f.model_dump() for f in ctx.flags],
        "message": message,
    }


def run_pipeline(
    name: str,
    *,
    providers: Optional[ProviderSet] = None,
    store: Optional[ProfileStore] = None,
    settings: Optional[Settings] = None,
    trigger: str = "initial_creation",
    created_by: str = "pipeline",
    subject_id: Optional[str] = None,
    cancel_event: Optional[threading.Event] = None,
    pipeline: Optional[Pipeline] = None,
) -> Dict[str, Any]:
    """Discovery -> Verification -> Enrichment -> Validation -> Store for one subject.

    Never raises for a failed run: the result carries success False and a
    readable message, plus whatever stages completed before the failure.
    """
    init_logging()
    settings = settings or get_settings()
    name = (name or "").strip()
    ctx = RunContext(name=name, subject_id=subject_id, trigger=trigger, created_by=created_by)
    if not name:
        return _result(ctx, False, "A subject name is required")
    if pipeline is None:
        if providers is None or store is None:
            default_providers, default_store = default_resources(settings)
            providers = providers or default_providers
            store = store or default_store
        pipeline = build_pipeline(providers, store, settings, cancel_event)

    try:
        ctx = pipeline.run(ctx)
    except PipelineError as e:
        logger.error("pipeline failed", extra={"subject": name, "status": "failed", "error": str(e)})
        return _result(ctx, False, str(e))
    except Exception as e:
        logger.exception("pipeline crashed", extra={"subject": name, "status": "failed", "error": str(e)})
        return _result(ctx, False, f"Unexpected error: {type(e).__name__}: {e}")

    enriched = ctx.enriched
    message = (
        f"Saved {enriched.display_name} as version {ctx.saved.version} "
        f"({enriched.confidence} confidence, {len(ctx.flags)} flag(s))"
    )
    return _result(ctx, True, message)


def run_batch(
    names: Iterable[str],
    *,
    providers: Optional[ProviderSet] = None,
    store: Optional[ProfileStore] = None,
    settings: Optional[Settings] = None,
    created_by: str = "pipeline",
    sleep: Callable[[float], None] = time.sleep,
) -> Dict[str, Any]:
    """Run subjects one after another with a fixed delay; one failure never stops the rest."""
    settings = settings or get_settings()
    cleaned = [n.strip() for n in names if n and n.strip()]
    if not cleaned:
        raise ValueError("At least one name is required")
    if len(cleaned) > settings.batch_max_names:
        raise ValueError(f"Maximum {settings.batch_max_names} names per batch")

    if providers is None or store is None:
        default_providers, default_store = default_resources(settings)
        providers = providers or default_providers
        store = store or default_store
    validator = ProfileValidator(providers.prober)
    pipeline = build_pipeline(providers, store, settings, validator=validator)

    results: List[Dict[str, Any]] = []
    for i, name in enumerate(cleaned):
        if i > 0:
            sleep(settings.batch_delay_seconds)
        logger.info(f"batch {i + 1}/{len(cleaned)}", extra={"subject": name})
        results.append(
            run_pipeline(name, settings=settings, created_by=created_by, pipeline=pipeline)
        )

    successful = [r for r in results if r["success"]]
    summary = {
        "total": len(results),
        "successful": len(successful),
        "flagged": sum(1 for r in successful if r["flags"]),
        "failed": len(results) - len(successful),
    }
    return {"results": results, "summary": summary, "validation_stats": validator.get_validation_stats()}
