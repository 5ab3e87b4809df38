import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.db import Base
from app.models import monitored_email, notification, notification_settings  # noqa: F401
from app.services.breach.errors import ProviderError


@pytest.fixture
def db_session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = Session()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(autouse=True)
def no_smtp(monkeypatch):
    for name in ("SMTP_HOST", "SMTP_USERNAME", "SMTP_PASSWORD", "EMAIL_FROM_ADDRESS", "REDIS_URL"):
        monkeypatch.delenv(name, raising=False)


class FakeProvider:
    """Serves canned analytics payloads (or raises canned errors) per email."""

    def __init__(self, responses=None):
        self.responses = dict(responses or {})
        self.calls = []

    def fetch_breach_analytics(self, email):
        self.calls.append(("analytics", email))
        response = self.responses.get(email)
        if isinstance(response, ProviderError):
            raise response
        return response

    def fetch_breach_summary(self, email):
        self.calls.append(("summary", email))
        response = self.responses.get(email)
        if isinstance(response, ProviderError):
            raise response
        return response


class RecordingNotifier:
    def __init__(self, fail=False):
        self.events = []
        self.fail = fail

    def emit(self, event):
        if self.fail:
            raise RuntimeError("notification channel down")
        self.events.append(event)


def analytics_payload(*entries, risk_score=None, password_strength=None, xposed_data=None):
    metrics = {}
    if risk_score is not None:
        metrics["risk"] = [{"risk_label": "Medium", "risk_score": risk_score}]
    if password_strength is not None:
        metrics["passwords_strength"] = [password_strength]
    if xposed_data is not None:
        metrics["xposed_data"] = xposed_data
    return {
        "BreachMetrics": metrics,
        "BreachesSummary": {"site": ";".join(e.get("breach", "") for e in entries)},
        "ExposedBreaches": {"breaches_details": list(entries)},
    }


@pytest.fixture
def fake_provider():
    return FakeProvider()


@pytest.fixture
def notifier():
    return RecordingNotifier()
