from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

from models import CandidateProfile, EnrichedProfile, ProfileFlag, SaveResult, VerifiedProfile
from utils.logging_setup import init_logging


logger = logging.getLogger(__name__)


@dataclass
class RunContext:
    name: str = ""
    subject_id: Optional[str] = None
    trigger: str = "initial_creation"
    created_by: str = "pipeline"
    candidate: Optional[CandidateProfile] = None
    verified: Optional[VerifiedProfile] = None
    enriched: Optional[EnrichedProfile] = None
    flags: List[ProfileFlag] = field(default_factory=list)
    saved: Optional[SaveResult] = None
    storage_record: Optional[Dict[str, Any]] = None
    stage_report: Dict[str, Any] = field(default_factory=dict)
    meta: dict = field(default_factory=dict)


class Step(Protocol):
    stage: str

    def run(self, ctx: RunContext) -> RunContext:
        ...


class Pipeline:
    """Runs steps strictly in order; each step consumes the previous step's output."""

    def __init__(self, steps: List[Step]):
        self.steps = steps

    def run(self, ctx: RunContext) -> RunContext:
        # Make logging idempotent for any direct runner use
        init_logging()
        for step in self.steps:
            stage = getattr(step, "stage", type(step).__name__)
            t0 = time.time()
            ctx = step.run(ctx)
            logger.info(
                "stage complete",
                extra={
                    "stage": stage,
                    "subject": ctx.subject_id or ctx.name,
                    "status": "ok",
                    "duration_ms": int((time.time() - t0) * 1000),
                },
            )
        return ctx
