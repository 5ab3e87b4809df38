from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from app.services.breach.normalizer import BreachRecord

STATUS_SAFE = "safe"
STATUS_BREACHED = "breached"


@dataclass
class CheckResult:
    email: str
    records: list[BreachRecord]
    risk_score: int
    is_new: bool
    new_breach_names: list[str]
    snapshot: Optional[dict[str, Any]] = None

    @property
    def breach_count(self) -> int:
        return len(self.records)

    @property
    def status(self) -> str:
        return STATUS_BREACHED if self.records else STATUS_SAFE


@dataclass(frozen=True)
class BreachDetected:
    owner: str
    email: str
    new_breach_count: int
    breach_names: tuple[str, ...] = ()


@dataclass
class CheckOutcome:
    email: str
    result: Optional[CheckResult] = None
    error: Optional[Exception] = None
    notified: bool = False
    notification_error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.result is not None

    @property
    def error_kind(self) -> Optional[str]:
        kind = getattr(self.error, "kind", None)
        if kind is not None:
            return getattr(kind, "value", str(kind))
        if self.error is not None:
            return type(self.error).__name__
        return None


@dataclass
class BatchSummary:
    total: int = 0
    checked: int = 0
    new_breaches_found: int = 0
    errors: int = 0
    cancelled: bool = False
    failures: list[dict[str, Any]] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "checked": self.checked,
            "new_breaches_found": self.new_breaches_found,
            "errors": self.errors,
            "cancelled": self.cancelled,
            "failures": list(self.failures),
        }
