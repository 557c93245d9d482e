from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar


T = TypeVar("T")
U = TypeVar("U")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Result of a best-effort sub-operation: either a value or the reason it failed."""

    value: Optional[T] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.value is not None

    def or_else(self, fallback: T) -> T:
        return self.value if self.ok else fallback  # type: ignore[return-value]

    def map(self, fn: Callable[[T], U]) -> "Outcome[U]":
        if not self.ok:
            return self
        return Outcome(value=fn(self.value))  # type: ignore[arg-type]


def attempt(label: str, fn: Callable[..., Optional[T]], *args, **kwargs) -> Outcome[T]:
    """Run fn and capture its failure as an Outcome instead of raising.

    The failure is logged at WARNING with the label so it stays visible.
    """
    try:
        value = fn(*args, **kwargs)
    except Exception as e:
        logger.warning("%s failed", label, extra={"status": "fallback", "error": str(e)})
        return Outcome(error=f"{type(e).__name__}: {e}")
    if value is None:
        return Outcome(error="no result")
    return Outcome(value=value)
