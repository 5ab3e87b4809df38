"""
Batch re-check of every monitored email.

SAFE DESIGN:
- Strictly sequential (the provider rate limit is global to the account)
- One failure != total failure
- Cancellation only between addresses, never mid-check
- No retries inside a run; the next scheduled run picks failures up

Run from cron:
    python -m app.jobs.breach_auto_check
"""

import logging
from typing import Callable, Iterable, Optional

from app.services.monitoring.orchestrator import MonitorOrchestrator
from app.services.monitoring.types import BatchSummary

logger = logging.getLogger(__name__)


class BatchRunner:

    def __init__(self, orchestrator: MonitorOrchestrator):
        self.orchestrator = orchestrator

    def run_all(
        self,
        addresses: Iterable,
        should_stop: Optional[Callable[[], bool]] = None,
    ) -> BatchSummary:
        addresses = list(addresses)
        summary = BatchSummary(total=len(addresses))

        if not addresses:
            logger.info("breach_auto_check_skipped reason=no_addresses")
            return summary

        logger.info("breach_auto_check_started total=%s", summary.total)

        for address in addresses:
            if should_stop is not None and should_stop():
                summary.cancelled = True
                logger.info("breach_auto_check_cancelled after=%s", summary.checked + summary.errors)
                break

            email = getattr(address, "email", None)
            try:
                outcome = self.orchestrator.check_one(address)
            except Exception as exc:
                logger.exception("breach_auto_check_address_crashed email=%s", email)
                summary.errors += 1
                summary.failures.append({"email": email, "kind": type(exc).__name__, "error": str(exc)})
                continue

            if not outcome.ok:
                summary.errors += 1
                summary.failures.append(
                    {"email": email, "kind": outcome.error_kind, "error": str(outcome.error)}
                )
                continue

            summary.checked += 1
            if outcome.result.is_new and outcome.result.breach_count > 0:
                summary.new_breaches_found += 1

        logger.info(
            "breach_auto_check_completed checked=%s total=%s new_breaches=%s errors=%s cancelled=%s",
            summary.checked,
            summary.total,
            summary.new_breaches_found,
            summary.errors,
            summary.cancelled,
        )
        return summary


def run_breach_auto_check(db, provider=None, should_stop=None, send_mail: bool = True) -> BatchSummary:
    from app.services.breach.manager import get_breach_provider
    from app.services.monitoring.notifier import DatabaseBreachNotifier
    from app.services.monitoring.store import MonitoredEmailStore

    store = MonitoredEmailStore(db)
    orchestrator = MonitorOrchestrator(
        provider=provider or get_breach_provider(),
        store=store,
        notifier=DatabaseBreachNotifier(db, send_mail=send_mail),
    )
    return BatchRunner(orchestrator).run_all(store.list_addresses(), should_stop=should_stop)


def main():
    from app.db import SessionLocal, init_db

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(levelname)s | %(message)s",
    )

    init_db()
    db = SessionLocal()
    try:
        summary = run_breach_auto_check(db)
    finally:
        db.close()

    logger.info("breach_auto_check_summary %s", summary.as_dict())


if __name__ == "__main__":
    main()
