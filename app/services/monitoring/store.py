import logging
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.monitored_email import MonitoredEmail
from app.services.breach.errors import StorageError
from app.services.monitoring.types import STATUS_SAFE, CheckResult

logger = logging.getLogger(__name__)


class DuplicateAddressError(Exception):
    pass


class PrimaryAddressError(Exception):
    pass


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MonitoredEmailStore:
    """
    SQLAlchemy-backed storage for monitored addresses.

    One row per (owner, normalized email). The owner identifier is the
    signed-in email address, so the owner's own row is found by comparing the
    two.
    """

    def __init__(self, db: Session):
        self.db = db

    # ---------- reads ----------

    def get_address(self, owner: str, email: str) -> Optional[MonitoredEmail]:
        return (
            self.db.query(MonitoredEmail)
            .filter(
                MonitoredEmail.user_id == owner,
                MonitoredEmail.email == normalize_email(email),
            )
            .first()
        )

    def get_address_by_id(self, owner: str, address_id: UUID) -> Optional[MonitoredEmail]:
        return (
            self.db.query(MonitoredEmail)
            .filter(MonitoredEmail.id == address_id, MonitoredEmail.user_id == owner)
            .first()
        )

    def list_addresses(self, owner: Optional[str] = None) -> list[MonitoredEmail]:
        query = self.db.query(MonitoredEmail)
        if owner is not None:
            query = query.filter(MonitoredEmail.user_id == owner)
        return query.order_by(MonitoredEmail.created_at, MonitoredEmail.email).all()

    # ---------- lifecycle ----------

    def add_address(self, owner: str, email: str) -> MonitoredEmail:
        normalized = normalize_email(email)
        if self.get_address(owner, normalized) is not None:
            raise DuplicateAddressError("This email is already being monitored")

        address = MonitoredEmail(
            user_id=owner,
            email=normalized,
            status=STATUS_SAFE,
            breaches=0,
            breach_data=None,
        )
        self.db.add(address)
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise DuplicateAddressError("This email is already being monitored") from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StorageError(f"Failed to add {normalized}: {exc}") from exc

        self.db.refresh(address)
        logger.info("monitored_email_added user_id=%s email=%s", owner, normalized)
        return address

    def ensure_owner_address(self, owner: str) -> tuple[MonitoredEmail, bool]:
        """Make sure the owner's own identity is monitored. Returns (row, created)."""
        existing = self.get_address(owner, owner)
        if existing is not None:
            return existing, False
        try:
            return self.add_address(owner, owner), True
        except DuplicateAddressError:
            # Lost a race with a concurrent request.
            return self.get_address(owner, owner), False

    def delete_address(self, owner: str, address_id: UUID) -> bool:
        address = self.get_address_by_id(owner, address_id)
        if address is None:
            return False

        if address.email == normalize_email(owner):
            raise PrimaryAddressError(
                "Cannot remove your signed-in account. This is your primary account."
            )

        try:
            self.db.delete(address)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StorageError(f"Failed to delete {address_id}: {exc}") from exc
        return True

    # ---------- check results ----------

    def upsert_check_result(self, address: MonitoredEmail, result: CheckResult) -> MonitoredEmail:
        address.breach_data = result.snapshot
        address.breaches = result.breach_count
        address.status = result.status
        address.last_checked = _utcnow()
        try:
            self.db.add(address)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StorageError(f"Failed to store check result for {address.email}: {exc}") from exc
        return address

    def touch_last_checked(self, address: MonitoredEmail) -> None:
        address.last_checked = _utcnow()
        try:
            self.db.add(address)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StorageError(f"Failed to update last_checked for {address.email}: {exc}") from exc
