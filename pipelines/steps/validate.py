from __future__ import annotations

from typing import Optional

from pipelines.runner import RunContext
from ports.providers import LinkProberPort
from profile_validator import ProfileValidator


class ValidateStep:
    stage = "validation"

    def __init__(self, prober: Optional[LinkProberPort] = None, validator: Optional[ProfileValidator] = None) -> None:
        self.validator = validator or ProfileValidator(prober)

    def run(self, ctx: RunContext) -> RunContext:
        if ctx.enriched is None:
            raise ValueError("validation needs an enriched profile")
        report = self.validator.validate(ctx.enriched)
        ctx.flags = list(report.flags)
        ctx.stage_report["validation"] = report.to_dict()
        # Attach validation stats into meta for optional logging
        ctx.meta["validation_stats"] = self.validator.get_validation_stats()
        return ctx
