"""
Single-address breach check.

    fetch analytics -> normalize -> score -> detect change -> persist -> notify

Ordering contract: the new snapshot is persisted BEFORE the BreachDetected
event is emitted, and the event is only emitted when that persist succeeded.
Once persisted, the stored count equals the fetched count, so a re-run with
unchanged upstream data sees no change and cannot fire a second time.
"""

import logging
from typing import Any

from app.services.breach.base import BreachProvider
from app.services.breach.changes import detect_change, notification_breach_names
from app.services.breach.errors import ProviderError, StorageError
from app.services.breach.normalizer import build_breach_snapshot, normalize_breaches
from app.services.breach.scoring import calculate_risk_score
from app.services.monitoring.notifier import BreachNotifier
from app.services.monitoring.types import BreachDetected, CheckOutcome, CheckResult

logger = logging.getLogger(__name__)


class MonitorOrchestrator:

    def __init__(self, provider: BreachProvider, store: Any, notifier: BreachNotifier):
        self.provider = provider
        self.store = store
        self.notifier = notifier

    def check_one(self, address) -> CheckOutcome:
        email = address.email
        previous_count = address.breaches or 0

        # ---------- FETCH ----------
        try:
            analytics = self.provider.fetch_breach_analytics(email)
        except ProviderError as exc:
            logger.warning(
                "breach_check_failed email=%s kind=%s status=%s error=%s",
                email,
                exc.kind.value,
                exc.status_code,
                exc,
            )
            self._touch_last_checked(address)
            return CheckOutcome(email=email, error=exc)

        if analytics is None:
            logger.info("breach_check_not_found email=%s", email)

        # ---------- COMPUTE ----------
        records, metrics = normalize_breaches(analytics or {})
        risk_score = calculate_risk_score(records, metrics)
        change = detect_change(previous_count, records)

        result = CheckResult(
            email=email,
            records=records,
            risk_score=risk_score,
            is_new=change.is_new,
            new_breach_names=notification_breach_names(records) if change.is_new else [],
            snapshot=build_breach_snapshot(email, analytics or {}, records, metrics, risk_score),
        )

        # ---------- PERSIST ----------
        try:
            self.store.upsert_check_result(address, result)
        except StorageError as exc:
            logger.error("breach_check_store_failed email=%s error=%s", email, exc)
            return CheckOutcome(email=email, result=result, error=exc)

        outcome = CheckOutcome(email=email, result=result)

        # ---------- NOTIFY ----------
        if not (change.is_new and change.new_count > 0):
            logger.info(
                "breach_check_unchanged email=%s breaches=%s risk_score=%s",
                email,
                change.new_count,
                risk_score,
            )
            return outcome

        event = BreachDetected(
            owner=address.user_id,
            email=email,
            new_breach_count=change.new_count,
            breach_names=tuple(result.new_breach_names),
        )
        try:
            self.notifier.emit(event)
            outcome.notified = True
        except Exception as exc:
            # State is already persisted; the alert for this transition is lost.
            logger.error("breach_notification_failed email=%s error=%s", email, exc)
            outcome.notification_error = exc

        logger.info(
            "breach_check_new email=%s breaches=%s previous=%s risk_score=%s",
            email,
            change.new_count,
            previous_count,
            risk_score,
        )
        return outcome

    def _touch_last_checked(self, address) -> None:
        try:
            self.store.touch_last_checked(address)
        except StorageError as exc:
            logger.error("last_checked_update_failed email=%s error=%s", address.email, exc)
