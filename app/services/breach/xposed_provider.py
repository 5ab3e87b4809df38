import logging
import re
import threading
import time
from typing import Callable, Optional
from urllib.parse import quote

import requests

from app.core.limits import Limit, get_global_limit, get_provider_base_url
from app.services.breach.base import BreachProvider
from app.services.breach.errors import ErrorKind, ProviderError

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

DEFAULT_HEADERS = {
    "Content-Type": "application/json",
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
    "Accept": "application/json",
    "Accept-Language": "en-US,en;q=0.9",
}


class XposedOrNotProvider(BreachProvider):
    """
    XposedOrNot provider.

    The provider allows one query per second for the whole account, so this
    client is single-flight: every call waits until the minimum interval has
    passed since the start of the previous call, and the wait plus the call
    happen under one lock. Share ONE instance per process.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        session: Optional[requests.Session] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.base_url = (base_url or get_provider_base_url()).rstrip("/")
        self.session = session or requests.Session()
        self.session.headers.update(DEFAULT_HEADERS)

        self.min_interval = get_global_limit(Limit.PROVIDER_MIN_INTERVAL_MS) / 1000.0
        self.summary_timeout = get_global_limit(Limit.PROVIDER_SUMMARY_TIMEOUT_SECONDS)
        self.analytics_timeout = get_global_limit(Limit.PROVIDER_ANALYTICS_TIMEOUT_SECONDS)

        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._last_call_started: float | None = None

    # ==================================================
    # BREACH SUMMARY (names only)
    # ==================================================
    def fetch_breach_summary(self, email: str) -> dict | None:
        self._validate_email(email)
        url = f"{self.base_url}/check-email/{quote(email, safe='')}"
        return self._get(url, params=None, timeout=self.summary_timeout, operation="summary")

    # ==================================================
    # BREACH ANALYTICS (full details)
    # ==================================================
    def fetch_breach_analytics(self, email: str) -> dict | None:
        self._validate_email(email)
        url = f"{self.base_url}/breach-analytics"
        return self._get(
            url,
            params={"email": email},
            timeout=self.analytics_timeout,
            operation="analytics",
        )

    # ==================================================
    # INTERNALS
    # ==================================================
    def _validate_email(self, email: str) -> None:
        if not isinstance(email, str) or not EMAIL_PATTERN.match(email):
            raise ProviderError(ErrorKind.INVALID_EMAIL, "Invalid email format")

    def _wait_for_slot(self) -> None:
        # Caller holds self._lock.
        if self._last_call_started is not None:
            elapsed = self._clock() - self._last_call_started
            remaining = self.min_interval - elapsed
            if remaining > 0:
                self._sleep(remaining)
        self._last_call_started = self._clock()

    def _get(self, url: str, params: dict | None, timeout: int, operation: str) -> dict | None:
        with self._lock:
            self._wait_for_slot()
            try:
                resp = self.session.get(url, params=params, timeout=timeout)
            except requests.Timeout as exc:
                logger.warning("provider_timeout operation=%s timeout=%s", operation, timeout)
                raise ProviderError(
                    ErrorKind.TIMEOUT,
                    f"Breach provider did not respond within {timeout}s",
                ) from exc
            except requests.RequestException as exc:
                logger.warning("provider_network_error operation=%s error=%s", operation, exc)
                raise ProviderError(
                    ErrorKind.NETWORK_ERROR,
                    f"Unable to connect to the breach provider: {exc}",
                ) from exc

        status = resp.status_code
        logger.info("provider_call operation=%s status=%s", operation, status)

        # ---------- NO BREACH ----------
        if status == 404:
            return None

        if status == 403:
            raise ProviderError(
                ErrorKind.PROVIDER_BLOCKED,
                "Access forbidden. The provider may be blocking automated requests.",
                status_code=status,
            )

        # ---------- RATE LIMITED ----------
        if status == 429:
            raise ProviderError(
                ErrorKind.RATE_LIMITED,
                "Rate limit exceeded. The provider allows 1 query per second.",
                status_code=status,
            )

        if 500 <= status < 600:
            raise ProviderError(
                ErrorKind.TRANSIENT_PROVIDER_ERROR,
                f"Breach provider temporarily unavailable ({status})",
                status_code=status,
            )

        if not 200 <= status < 300:
            raise ProviderError(
                ErrorKind.UNEXPECTED_STATUS,
                f"Breach provider returned status {status}",
                status_code=status,
            )

        try:
            payload = resp.json()
        except ValueError as exc:
            raise ProviderError(
                ErrorKind.MALFORMED_RESPONSE,
                "Breach provider returned a non-JSON body",
                status_code=status,
            ) from exc

        if not isinstance(payload, dict):
            raise ProviderError(
                ErrorKind.MALFORMED_RESPONSE,
                f"Breach provider returned {type(payload).__name__}, expected object",
                status_code=status,
            )

        if payload.get("Error") == "Not found":
            return None

        return payload
