import argparse
import dataclasses
import json
import os
import uuid as _uuid
from pathlib import Path
from typing import List, Optional

from config.settings import get_settings
from db import schema
from db.connection import get_connection
from models import ProfileField
from pipelines.profile_pipeline import default_resources, open_store, run_batch, run_pipeline
from pipelines.refresh import run_refresh
from pipelines.revalidate import revalidate_batch
from pipelines.sync import SyncService
from services.reporting import print_batch_summary
from utils.logging_setup import init_logging


def _settings(args):
    return dataclasses.replace(get_settings(), db_path=args.db)


def _print(result) -> None:
    print(json.dumps(result, indent=2, ensure_ascii=False, default=str))


def _read_names(args) -> List[str]:
    names = list(args.names or [])
    if args.input:
        lines = Path(args.input).read_text(encoding="utf-8").splitlines()
        names.extend(line.strip() for line in lines if line.strip() and not line.startswith("#"))
    return names


def cmd_bootstrap(args):
    conn = get_connection(args.db)
    schema.bootstrap(conn)
    print("Schema ready")


def cmd_generate(args):
    settings = _settings(args)
    providers, store = default_resources(settings)
    _print(run_pipeline(args.name, providers=providers, store=store, settings=settings, created_by=args.created_by))


def cmd_generate_batch(args):
    settings = _settings(args)
    names = _read_names(args)
    providers, store = default_resources(settings)
    try:
        batch = run_batch(names, providers=providers, store=store, settings=settings, created_by=args.created_by)
    except ValueError as e:
        _print({"success": False, "message": str(e)})
        return
    if args.summary:
        print_batch_summary(batch, title="PROFILE GENERATION")
    else:
        _print(batch)


def cmd_list_flagged(args):
    store = open_store(_settings(args))
    _print(store.list_flagged(limit=args.limit))


def cmd_sync(args):
    settings = _settings(args)
    providers, store = default_resources(settings)
    _print(SyncService(providers, store, settings).sync_profile(args.subject_id))


def cmd_sync_batch(args):
    settings = _settings(args)
    providers, store = default_resources(settings)
    subject_ids = list(args.subject_ids or [])
    if args.missing:
        subject_ids.extend(store.subjects_missing(ProfileField(args.missing), limit=args.limit))
    batch = SyncService(providers, store, settings).sync_batch(subject_ids)
    if args.summary:
        print_batch_summary(batch, title="PROFILE SYNC")
    else:
        _print(batch)


def cmd_sync_stats(args):
    settings = _settings(args)
    providers, store = default_resources(settings)
    service = SyncService(providers, store, settings)
    _print([service.refresh_youtube_stats(sid) for sid in args.subject_ids])


def cmd_revalidate(args):
    settings = _settings(args)
    providers, store = default_resources(settings)
    _print(revalidate_batch(store, providers.prober, args.subject_ids))


def cmd_rollback(args):
    store = open_store(_settings(args))
    try:
        saved = store.rollback_to_version(args.subject_id, args.version, created_by=args.created_by)
    except (KeyError, ValueError) as e:
        _print({"success": False, "message": str(e).strip("'")})
        return
    _print({"success": True, **saved.model_dump()})


def cmd_resolve_flag(args):
    store = open_store(_settings(args))
    try:
        changed = store.resolve_flag(args.subject_id, args.flag_id, resolved_by=args.by)
    except KeyError as e:
        _print({"success": False, "message": str(e).strip("'")})
        return
    _print({
        "success": True,
        "already_resolved": not changed,
        **store.get_flag_summary(args.subject_id),
    })


def cmd_history(args):
    store = open_store(_settings(args))
    versions = store.get_version_history(args.subject_id, limit=args.limit)
    _print([
        {
            "version": v.version,
            "trigger": v.trigger,
            "created_at": v.created_at,
            "created_by": v.created_by,
            "confidence": v.confidence,
            "restored_from": v.restored_from,
            "changes": [c.model_dump() for c in v.changes],
        }
        for v in versions
    ])


def cmd_show(args):
    store = open_store(_settings(args))
    subject_id = args.subject if store.get_envelope(args.subject) else store.find_by_slug(args.subject)
    if subject_id is None:
        _print({"success": False, "message": f"No stored profile for {args.subject}"})
        return
    if args.version:
        version = store.get_version(subject_id, args.version)
        if version is None:
            _print({"success": False, "message": f"{subject_id} has no version {args.version}"})
            return
        _print(version.model_dump())
        return
    envelope = store.get_envelope(subject_id)
    schedule = store.get_schedule(subject_id)
    _print({
        "subject_id": subject_id,
        "version": envelope["version"],
        "updated_at": envelope["updated_at"],
        "record": envelope["data"],
        "flags": store.get_flag_summary(subject_id),
        "schedule": schedule.model_dump() if schedule else None,
    })


def cmd_refresh_due(args):
    settings = _settings(args)
    providers, store = default_resources(settings)
    result = run_refresh(providers, store, limit=args.limit, settings=settings)
    if args.summary:
        print_batch_summary(result, title="PROFILE REFRESH")
    else:
        _print(result)


def main(argv: Optional[List[str]] = None):
    settings = get_settings()
    init_logging(settings.log_level)
    if not os.getenv("RUN_ID"):
        os.environ["RUN_ID"] = _uuid.uuid4().hex
    parser = argparse.ArgumentParser(description="Creator profile pipeline CLI")
    parser.add_argument("--db", default=settings.db_path, help="Path to SQLite DB (default from settings)")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_boot = sub.add_parser("bootstrap", help="Create tables and indexes")
    p_boot.set_defaults(func=cmd_bootstrap)

    p_gen = sub.add_parser("generate", help="Run the full pipeline for one name")
    p_gen.add_argument("name", help="Subject name, e.g. \"Omar Suleiman\"")
    p_gen.add_argument("--created-by", default="cli")
    p_gen.set_defaults(func=cmd_generate)

    p_gb = sub.add_parser("generate-batch", help=f"Run the pipeline for up to {settings.batch_max_names} names")
    p_gb.add_argument("names", nargs="*", help="Subject names")
    p_gb.add_argument("--input", "-i", help="Text file with one name per line")
    p_gb.add_argument("--created-by", default="cli")
    p_gb.add_argument("--summary", action="store_true", help="Print a readable summary instead of JSON")
    p_gb.set_defaults(func=cmd_generate_batch)

    p_lf = sub.add_parser("list-flagged", help="List subjects with unresolved flags")
    p_lf.add_argument("--limit", type=int, default=None)
    p_lf.set_defaults(func=cmd_list_flagged)

    p_sync = sub.add_parser("sync", help="Fill missing fields of one stored subject from fresh discovery")
    p_sync.add_argument("subject_id")
    p_sync.set_defaults(func=cmd_sync)

    p_sb = sub.add_parser("sync-batch", help="Sync several subjects with a delay between them")
    p_sb.add_argument("subject_ids", nargs="*")
    p_sb.add_argument("--missing", choices=[f.value for f in ProfileField], help="Also sync every subject with this field empty")
    p_sb.add_argument("--limit", type=int, default=50, help="Cap for --missing selection (default: 50)")
    p_sb.add_argument("--summary", action="store_true", help="Print a readable summary instead of JSON")
    p_sb.set_defaults(func=cmd_sync_batch)

    p_ss = sub.add_parser("sync-stats", help="Re-read YouTube counters for stored subjects with a channel")
    p_ss.add_argument("subject_ids", nargs="+")
    p_ss.set_defaults(func=cmd_sync_stats)

    p_rv = sub.add_parser("revalidate", help="Re-probe stored links and flag the ones that stopped resolving")
    p_rv.add_argument("subject_ids", nargs="+")
    p_rv.set_defaults(func=cmd_revalidate)

    p_rb = sub.add_parser("rollback", help="Restore a past version as a new version")
    p_rb.add_argument("subject_id")
    p_rb.add_argument("version", type=int)
    p_rb.add_argument("--created-by", default="cli")
    p_rb.set_defaults(func=cmd_rollback)

    p_rf = sub.add_parser("resolve-flag", help="Mark a flag as resolved")
    p_rf.add_argument("subject_id")
    p_rf.add_argument("flag_id")
    p_rf.add_argument("--by", default="cli", help="Reviewer name")
    p_rf.set_defaults(func=cmd_resolve_flag)

    p_hist = sub.add_parser("history", help="Show version history, newest first")
    p_hist.add_argument("subject_id")
    p_hist.add_argument("--limit", type=int, default=None)
    p_hist.set_defaults(func=cmd_history)

    p_show = sub.add_parser("show", help="Show the live record, or one stored version, by id or slug")
    p_show.add_argument("subject", help="Subject id or slug")
    p_show.add_argument("--version", type=int, default=None)
    p_show.set_defaults(func=cmd_show)

    p_ref = sub.add_parser("refresh-due", help="Refresh subjects whose next refresh time has passed")
    p_ref.add_argument("--limit", type=int, default=settings.refresh_batch_size)
    p_ref.add_argument("--summary", action="store_true", help="Print a readable summary instead of JSON")
    p_ref.set_defaults(func=cmd_refresh_due)

    args = parser.parse_args(argv)
    args.func(args)


if __name__ == "__main__":
    main()
