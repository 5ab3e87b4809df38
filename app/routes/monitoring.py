import logging
from threading import Lock
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.core.limits import Limit, get_global_limit
from app.db import SessionLocal, get_db
from app.dependencies.access import get_owner_id
from app.models.monitored_email import MonitoredEmail
from app.services.breach.base import BreachProvider
from app.services.breach.errors import ErrorKind, ProviderError
from app.services.breach.manager import check_email_breach, get_breach_provider
from app.services.breach.scoring import risk_band
from app.services.breach.xposed_provider import EMAIL_PATTERN
from app.services.monitoring.notifier import DatabaseBreachNotifier
from app.services.monitoring.orchestrator import MonitorOrchestrator
from app.services.monitoring.store import (
    DuplicateAddressError,
    MonitoredEmailStore,
    PrimaryAddressError,
    normalize_email,
)
from app.services.monitoring.types import CheckOutcome

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Breach Monitoring"])

ERROR_STATUS = {
    ErrorKind.INVALID_EMAIL: 400,
    ErrorKind.RATE_LIMITED: 429,
    ErrorKind.PROVIDER_BLOCKED: 503,
    ErrorKind.TIMEOUT: 504,
    ErrorKind.TRANSIENT_PROVIDER_ERROR: 502,
    ErrorKind.NETWORK_ERROR: 502,
    ErrorKind.UNEXPECTED_STATUS: 502,
    ErrorKind.MALFORMED_RESPONSE: 502,
    ErrorKind.STORAGE_FAILURE: 500,
}

auto_check_lock = Lock()


# ---------- models ----------
class AddEmailRequest(BaseModel):
    email: str


# ---------- dependencies ----------
def get_provider() -> BreachProvider:
    return get_breach_provider()


def get_store(db: Session = Depends(get_db)) -> MonitoredEmailStore:
    return MonitoredEmailStore(db)


def get_orchestrator(
    db: Session = Depends(get_db),
    provider: BreachProvider = Depends(get_provider),
) -> MonitorOrchestrator:
    return MonitorOrchestrator(
        provider=provider,
        store=MonitoredEmailStore(db),
        notifier=DatabaseBreachNotifier(db),
    )


# ---------- helpers ----------
def error_status(kind) -> int:
    return ERROR_STATUS.get(kind, 502)


def raise_for_error(error: Exception) -> None:
    kind = getattr(error, "kind", None)
    raise HTTPException(
        status_code=error_status(kind),
        detail={
            "error": {
                "code": kind.value if kind is not None else "UNKNOWN",
                "message": str(error),
            }
        },
    )


def serialize_address(address: MonitoredEmail) -> dict:
    breach_data = address.breach_data or {}
    risk_score = breach_data.get("riskScore") if isinstance(breach_data, dict) else None
    return {
        "id": str(address.id),
        "email": address.email,
        "status": address.status,
        "breaches": address.breaches,
        "riskScore": risk_score,
        "riskBand": risk_band(risk_score) if isinstance(risk_score, int) else None,
        "addedDate": address.created_at.isoformat() if address.created_at else None,
        "lastChecked": address.last_checked.isoformat() if address.last_checked else None,
        "breachData": address.breach_data,
    }


def serialize_outcome(outcome: CheckOutcome) -> dict:
    result = outcome.result
    return {
        "email": outcome.email,
        "breachCount": result.breach_count,
        "riskScore": result.risk_score,
        "riskBand": risk_band(result.risk_score),
        "status": result.status,
        "isNew": result.is_new,
        "newBreachNames": result.new_breach_names,
        "notified": outcome.notified,
    }


def validate_email(email: str) -> str:
    normalized = normalize_email(email)
    if not normalized:
        raise HTTPException(status_code=400, detail="Email is required")
    if len(normalized) > get_global_limit(Limit.EMAIL_MAX_LENGTH) or not EMAIL_PATTERN.match(normalized):
        raise HTTPException(status_code=400, detail="Invalid email format")
    return normalized


# ---------- routes ----------
@router.get("/emails")
def list_emails(
    owner: str = Depends(get_owner_id),
    store: MonitoredEmailStore = Depends(get_store),
):
    _, created = store.ensure_owner_address(owner)
    if created:
        logger.info("owner_email_auto_added user_id=%s", owner)

    addresses = store.list_addresses(owner)
    return {
        "success": True,
        "count": len(addresses),
        "emails": [serialize_address(address) for address in addresses],
    }


@router.post("/emails", status_code=201)
def add_email(
    payload: AddEmailRequest,
    owner: str = Depends(get_owner_id),
    store: MonitoredEmailStore = Depends(get_store),
    orchestrator: MonitorOrchestrator = Depends(get_orchestrator),
):
    email = validate_email(payload.email)

    try:
        address = store.add_address(owner, email)
    except DuplicateAddressError as exc:
        raise HTTPException(status_code=409, detail=str(exc))

    outcome = orchestrator.check_one(address)
    return {
        "success": True,
        "email": serialize_address(address),
        "checkError": outcome.error_kind,
    }


@router.delete("/emails/{address_id}")
def delete_email(
    address_id: UUID,
    owner: str = Depends(get_owner_id),
    store: MonitoredEmailStore = Depends(get_store),
):
    try:
        deleted = store.delete_address(owner, address_id)
    except PrimaryAddressError as exc:
        raise HTTPException(status_code=403, detail=str(exc))

    if not deleted:
        raise HTTPException(status_code=404, detail="Email not found")
    return {"success": True, "message": "Email removed successfully"}


@router.put("/emails/{address_id}/check")
def check_email(
    address_id: UUID,
    owner: str = Depends(get_owner_id),
    store: MonitoredEmailStore = Depends(get_store),
    orchestrator: MonitorOrchestrator = Depends(get_orchestrator),
):
    address = store.get_address_by_id(owner, address_id)
    if address is None:
        raise HTTPException(status_code=404, detail="Email not found")

    outcome = orchestrator.check_one(address)
    if outcome.error is not None:
        raise_for_error(outcome.error)

    return {
        "success": True,
        "result": serialize_outcome(outcome),
        "email": serialize_address(address),
    }


@router.get("/breach/check")
def check_breach(
    email: str = Query(..., min_length=3),
    owner: str = Depends(get_owner_id),
):
    normalized = validate_email(email)
    try:
        return {"success": True, **check_email_breach(normalized)}
    except ProviderError as exc:
        logger.warning("breach_lookup_failed user_id=%s kind=%s", owner, exc.kind.value)
        raise_for_error(exc)


def _run_auto_check_in_background() -> None:
    from app.jobs.breach_auto_check import run_breach_auto_check

    try:
        db = SessionLocal()
        try:
            run_breach_auto_check(db)
        finally:
            db.close()
    finally:
        auto_check_lock.release()


@router.post("/emails/auto-check/trigger", status_code=202)
def trigger_auto_check(
    background_tasks: BackgroundTasks,
    owner: str = Depends(get_owner_id),
):
    if not auto_check_lock.acquire(blocking=False):
        raise HTTPException(status_code=423, detail="Auto-check already in progress")

    logger.info("auto_check_triggered user_id=%s", owner)
    background_tasks.add_task(_run_auto_check_in_background)
    return {"status": "started"}
