"""Process-wide logging for pipeline runs.

Every line carries the stage, subject and provider it concerns plus the
RUN_ID shared with the provider call trace, so one run can be followed
across both.
"""
from __future__ import annotations

import logging
import os
import sys
from typing import Any

from config.settings import get_settings


_INITIALIZED: bool = False

# Client libraries that log every request at INFO
QUIET_LOGGERS = ("urllib3", "httpx", "openai", "feedparser")


class SafeExtraFormatter(logging.Formatter):
    """Formatter that tolerates missing extra fields by injecting defaults."""

    DEFAULTS: dict[str, Any] = {
        "stage": "-",
        "subject": "-",
        "provider": "-",
        "status": "-",
        "duration_ms": "-",
        "error": "-",
        "run_id": "-",
    }

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        for key, value in self.DEFAULTS.items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return super().format(record)


class RunIdFilter(logging.Filter):
    """Stamps records with the current RUN_ID unless the caller passed one."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "run_id"):
            run_id = os.getenv("RUN_ID")
            if run_id:
                record.run_id = run_id
        return True


LINE_FORMAT = (
    "%(asctime)s %(levelname)s %(name)s %(message)s "
    "stage=%(stage)s subject=%(subject)s provider=%(provider)s "
    "status=%(status)s duration_ms=%(duration_ms)s error=%(error)s run_id=%(run_id)s"
)


def init_logging(level: str | None = None) -> None:
    global _INITIALIZED
    if _INITIALIZED:
        return

    settings = get_settings()
    log_level_str = (level or settings.log_level).upper()
    log_level = getattr(logging, log_level_str, logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    if not root_logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(log_level)
        handler.addFilter(RunIdFilter())
        handler.setFormatter(SafeExtraFormatter(fmt=LINE_FORMAT))
        root_logger.addHandler(handler)

    for noisy in QUIET_LOGGERS:
        logging.getLogger(noisy).setLevel(max(log_level, logging.WARNING))

    _INITIALIZED = True
