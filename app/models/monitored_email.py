import uuid

from sqlalchemy import JSON, Column, DateTime, Integer, String, UniqueConstraint, Uuid
from sqlalchemy.sql import func

from app.db import Base


class MonitoredEmail(Base):
    __tablename__ = "monitored_emails"
    __table_args__ = (
        UniqueConstraint("user_id", "email", name="uq_monitored_emails_user_email"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # Owner identity is the signed-in email address.
    user_id = Column(String, nullable=False, index=True)
    email = Column(String(254), nullable=False)

    status = Column(String(16), nullable=False, default="safe", server_default="safe")
    breaches = Column(Integer, nullable=False, default=0, server_default="0")

    # Full analytics snapshot from the last successful check.
    breach_data = Column(JSON, nullable=True)

    last_checked = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(
        DateTime(timezone=True),
        server_default=func.now()
    )

    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now()
    )
