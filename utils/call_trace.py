from __future__ import annotations

import hashlib
import json
import logging
import os
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

from config.settings import get_settings


logger = logging.getLogger(__name__)


def sha256_text(text: Optional[str]) -> Optional[str]:
    if not text:
        return None
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def log_call(
    *,
    caller: str,
    provider: str,
    operation: str,
    duration_ms: Optional[int] = None,
    status: str = "ok",
    error: Optional[str] = None,
    model: Optional[str] = None,
    prompt_hash: Optional[str] = None,
    usage: Optional[Dict[str, Any]] = None,
    extras: Optional[Dict[str, Any]] = None,
) -> None:
    """Append one JSON line describing an external provider call.

    Only active when PROVIDER_TRACE is on. The settings cache is cleared first so
    env changes between calls (tests, long-lived shells) take effect.
    """
    get_settings.cache_clear()
    settings = get_settings()
    if not settings.provider_trace:
        return

    payload: Dict[str, Any] = {
        "ts": datetime.now(timezone.utc).isoformat(),
        "caller": caller,
        "provider": provider,
        "operation": operation,
        "duration_ms": duration_ms,
        "status": status,
        "error": error,
    }
    if model:
        payload["model"] = model
    if prompt_hash:
        payload["prompt_hash"] = prompt_hash
    if usage:
        payload["usage"] = usage
    run_id = os.getenv("RUN_ID")
    if run_id:
        payload["run_id"] = run_id
    if extras:
        payload["extras"] = extras

    log_path = Path(settings.provider_log_path)
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        with log_path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(payload, ensure_ascii=False, default=str) + "\n")
    except OSError as e:
        # Tracing must never break a pipeline run
        logger.warning("provider trace write failed", extra={"error": str(e)})


@contextmanager
def traced(caller: str, provider: str, operation: str, **extras: Any) -> Iterator[Dict[str, Any]]:
    """Time a block and record it with log_call; the yielded dict may carry usage/model."""
    info: Dict[str, Any] = {}
    t0 = time.time()
    try:
        yield info
    except Exception as e:
        log_call(
            caller=caller,
            provider=provider,
            operation=operation,
            duration_ms=int((time.time() - t0) * 1000),
            status="error",
            error=str(e),
            model=info.get("model"),
            extras=extras or None,
        )
        raise
    log_call(
        caller=caller,
        provider=provider,
        operation=operation,
        duration_ms=int((time.time() - t0) * 1000),
        status=info.get("status", "ok"),
        model=info.get("model"),
        prompt_hash=info.get("prompt_hash"),
        usage=info.get("usage"),
        extras=extras or None,
    )
