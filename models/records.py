from __future__ import annotations

import uuid
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


FlagType = Literal["missing_data", "invalid_link", "data_conflict", "low_confidence"]
Severity = Literal["low", "medium", "high"]
Trigger = Literal["initial_creation", "manual_update", "scheduled_refresh", "sync"]
Priority = Literal["high", "normal", "low"]
ScheduleStatus = Literal["scheduled", "processing"]


def new_flag_id() -> str:
    return f"flag_{uuid.uuid4().hex[:12]}"


class ProfileFlag(BaseModel):
    """Reviewable data-quality annotation. Append-only until resolved."""

    id: str = Field(default_factory=new_flag_id)
    type: FlagType
    severity: Severity
    field: str | None = None
    message: str
    created_at: str
    resolved_at: str | None = None
    resolved_by: str | None = None

    model_config = ConfigDict(frozen=True, extra="ignore")

    @property
    def resolved(self) -> bool:
        return self.resolved_at is not None


class FieldChange(BaseModel):
    field: str
    old_value: Any = None
    new_value: Any = None

    model_config = ConfigDict(frozen=True)


class ProfileVersion(BaseModel):
    version_id: str
    subject_id: str
    version: int = Field(ge=1)
    trigger: Trigger
    data: dict[str, Any]
    changes: list[FieldChange] = Field(default_factory=list)
    confidence: str | None = None
    data_sources: list[str] = Field(default_factory=list)
    flags: list[ProfileFlag] = Field(default_factory=list)
    created_at: str
    created_by: str
    restored_from: int | None = None

    model_config = ConfigDict(frozen=True, extra="ignore")


class RefreshSchedule(BaseModel):
    subject_id: str
    last_refreshed: str
    next_refresh: str
    refresh_count: int = 0
    priority: Priority
    last_confidence_score: int | None = None
    status: ScheduleStatus = "scheduled"
    claimed_by: str | None = None
    claimed_at: str | None = None
    last_error: str | None = None

    model_config = ConfigDict(frozen=True, extra="ignore")


class SaveResult(BaseModel):
    subject_id: str
    slug: str
    version: int
    is_new: bool
    changes: list[FieldChange] = Field(default_factory=list)
    flag_ids: list[str] = Field(default_factory=list)
    next_refresh: str | None = None

    model_config = ConfigDict(frozen=True)
