import uuid
from sqlalchemy import Boolean, Column, DateTime, String, Uuid
from sqlalchemy.sql import func

from app.db import Base


class NotificationSettings(Base):
    __tablename__ = "notification_settings"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(String, nullable=False, unique=True, index=True)

    website_notifications = Column(Boolean, nullable=False, default=True, server_default="true")
    email_notifications = Column(Boolean, nullable=False, default=True, server_default="true")
    monthly_summary = Column(Boolean, nullable=False, default=False, server_default="false")
    security_updates = Column(Boolean, nullable=False, default=True, server_default="true")

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
