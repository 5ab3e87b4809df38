from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from app.core.limits import Limit, get_global_limit
from app.services.breach.normalizer import UNKNOWN_BREACH_NAME, BreachRecord


@dataclass(frozen=True)
class BreachChange:
    is_new: bool
    new_count: int


def detect_change(previous_count: int | None, current_records: Sequence[BreachRecord]) -> BreachChange:
    # Count based: a grown total is "new", whatever the individual records are.
    new_count = len(current_records)
    return BreachChange(is_new=new_count > (previous_count or 0), new_count=new_count)


def notification_breach_names(records: Sequence[BreachRecord], limit: int | None = None) -> list[str]:
    """
    Names shown in the alert: the first few records of the fresh fetch.

    This is not identity-stable. If the provider drops one breach and adds
    another in the same cycle, the count is unchanged and nothing fires; if
    it reorders, the names listed may include old breaches.
    """
    limit = get_global_limit(Limit.NOTIFICATION_BREACH_NAMES) if limit is None else limit
    return [record.name or UNKNOWN_BREACH_NAME for record in records][:limit]
