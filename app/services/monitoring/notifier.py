import logging
from typing import Callable, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.notification import Notification
from app.models.notification_settings import NotificationSettings
from app.services.breach.errors import StorageError
from app.services.email_service import (
    breach_alert_subject,
    build_breach_alert_email,
    send_email,
)
from app.services.monitoring.types import BreachDetected

logger = logging.getLogger(__name__)


class BreachNotifier(Protocol):
    def emit(self, event: BreachDetected) -> None:
        ...


def breach_message(event: BreachDetected) -> str:
    plural = "es" if event.new_breach_count > 1 else ""
    return f"Your email {event.email} was found in {event.new_breach_count} data breach{plural}"


def email_notifications_enabled(db: Session, owner: str) -> bool:
    """Owners without a settings row get the defaults, which include email."""
    try:
        settings = (
            db.query(NotificationSettings)
            .filter(NotificationSettings.user_id == owner)
            .first()
        )
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning("notification_settings_read_failed user_id=%s error=%s", owner, exc)
        return False

    if settings is None:
        return True
    return bool(settings.email_notifications)


class DatabaseBreachNotifier:
    """
    Records an in-app notification for the owner, then emails the owner if
    their notification settings allow it.

    The row insert is the delivery guarantee and raises StorageError on
    failure. Email is best effort and never raises.
    """

    def __init__(
        self,
        db: Session,
        send_mail: bool = True,
        mailer: Callable[[str, str, str], bool] = send_email,
    ):
        self.db = db
        self.send_mail = send_mail
        self.mailer = mailer

    def emit(self, event: BreachDetected) -> None:
        notification = Notification(
            user_id=event.owner,
            type="breach",
            title="New breach detected",
            message=breach_message(event),
            payload={
                "email": event.email,
                "breachCount": event.new_breach_count,
                "breachNames": list(event.breach_names),
            },
            read=False,
        )

        try:
            self.db.add(notification)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StorageError(f"Failed to record breach notification for {event.email}: {exc}") from exc

        logger.info(
            "breach_notification_created user_id=%s email=%s breach_count=%s",
            event.owner,
            event.email,
            event.new_breach_count,
        )

        if not self.send_mail:
            return

        if not email_notifications_enabled(self.db, event.owner):
            logger.info("breach_email_skipped user_id=%s reason=email_notifications_off", event.owner)
            return

        # Alerts go to the owner's signed-in address, not the monitored one.
        self.mailer(
            event.owner,
            breach_alert_subject(event.new_breach_count),
            build_breach_alert_email(event.email, event.new_breach_count, list(event.breach_names)),
        )
