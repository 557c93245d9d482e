from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Dict, Optional

from config.settings import get_settings


logger = logging.getLogger(__name__)


def provider_usage_for_run(run_id: str, log_path: Optional[str] = None) -> Dict[str, Dict[str, int]]:
    """Aggregate traced provider calls from the JSONL trace for the given run_id.

    Returns dict like { 'youtube': {'calls': N, 'errors': E, 'tokens': T}, 'perplexity': {...} }
    """
    result: Dict[str, Dict[str, int]] = {}
    path = Path(log_path or get_settings().provider_log_path)
    if not path.exists():
        return result
    with path.open("r", encoding="utf-8") as f:
        for line in f:
            try:
                rec = json.loads(line)
            except json.JSONDecodeError:
                continue
            if not isinstance(rec, dict) or rec.get("run_id") != run_id:
                continue
            provider = rec.get("provider") or "unknown"
            bucket = result.setdefault(provider, {"calls": 0, "errors": 0, "tokens": 0})
            bucket["calls"] += 1
            if rec.get("status") == "error":
                bucket["errors"] += 1
            usage = rec.get("usage") or {}
            total_tokens = usage.get("total_tokens") or 0
            if isinstance(total_tokens, int):
                bucket["tokens"] += total_tokens
    return result


def print_batch_summary(batch: dict, title: str = "PROFILE PIPELINE") -> None:
    """Print summary of a batch, sync or refresh run."""
    summary = batch.get('summary') or {
        'total': batch.get('total', 0),
        'refreshed': batch.get('refreshed', 0),
    }

    print("\n" + "="*60)
    print(f"{title} - SUMMARY")
    print("="*60)
    for key, value in summary.items():
        print(f"  {key.replace('_', ' ').title()}: {value}")
    print()
    for r in batch.get('results', []):
        label = r.get('name') or r.get('subject_id')
        status = r.get('action') or ('ok' if r.get('success') else 'failed')
        detail = r.get('message') or r.get('error') or ''
        print(f"  [{status}] {label} {detail}".rstrip())

    # Provider usage summary for current RUN_ID if tracing enabled
    settings = get_settings()
    run_id = os.getenv("RUN_ID")
    if run_id and settings.provider_trace:
        usage = provider_usage_for_run(run_id)
        if usage:
            print()
            print("Provider Usage:")
            for provider, stats in sorted(usage.items()):
                print(f"  {provider}: calls={stats['calls']}, errors={stats['errors']}, tokens={stats['tokens']}")
    print("="*60)
