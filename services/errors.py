"""Error taxonomy for the profile pipeline.

Only PersistenceFailure is meant to reach callers; the others are recovered
inside the stage that observes them.
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class PipelineError(Exception):
    """Base class for pipeline errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (details: {self.details})"
        return self.message


class ProviderUnavailable(PipelineError):
    """An external source timed out, hit its quota or returned something unusable."""

    def __init__(self, provider: str, reason: str, status_code: Optional[int] = None):
        details: Dict[str, Any] = {"provider": provider}
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(f"{provider} unavailable: {reason}", details)
        self.provider = provider
        self.reason = reason
        self.status_code = status_code


class ResearchParseFailure(PipelineError):
    """The research provider answered with content that is not the expected JSON."""

    def __init__(self, message: str, raw_excerpt: Optional[str] = None):
        details = {"raw_excerpt": raw_excerpt[:200]} if raw_excerpt else None
        super().__init__(message, details)


class PersistenceFailure(PipelineError):
    """A write to the document store failed; surfaced to the caller."""

    def __init__(self, message: str, subject_id: Optional[str] = None):
        super().__init__(message, {"subject_id": subject_id} if subject_id else None)
        self.subject_id = subject_id
