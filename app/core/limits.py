from __future__ import annotations

import os
from enum import Enum


class Limit(str, Enum):
    PROVIDER_MIN_INTERVAL_MS = "PROVIDER_MIN_INTERVAL_MS"
    PROVIDER_SUMMARY_TIMEOUT_SECONDS = "PROVIDER_SUMMARY_TIMEOUT_SECONDS"
    PROVIDER_ANALYTICS_TIMEOUT_SECONDS = "PROVIDER_ANALYTICS_TIMEOUT_SECONDS"
    NOTIFICATION_BREACH_NAMES = "NOTIFICATION_BREACH_NAMES"
    EMAIL_MAX_LENGTH = "EMAIL_MAX_LENGTH"
    BREACH_SUMMARY_CACHE_TTL_SECONDS = "BREACH_SUMMARY_CACHE_TTL_SECONDS"


# The provider allows one query per second per account. Not configurable.
GLOBAL_LIMITS: dict[Limit, int] = {
    Limit.PROVIDER_MIN_INTERVAL_MS: 1000,
    Limit.PROVIDER_SUMMARY_TIMEOUT_SECONDS: 10,
    Limit.PROVIDER_ANALYTICS_TIMEOUT_SECONDS: 15,
    Limit.NOTIFICATION_BREACH_NAMES: 5,
    Limit.EMAIL_MAX_LENGTH: 254,
    Limit.BREACH_SUMMARY_CACHE_TTL_SECONDS: 300,
}


DEFAULT_XPOSED_API_BASE_URL = "https://api.xposedornot.com/v1"
XPOSED_SITE_ORIGIN = "https://xposedornot.com"
XPOSED_LOGO_PATH = f"{XPOSED_SITE_ORIGIN}/static/logos/"


def get_global_limit(limit: Limit | str) -> int:
    resolved = Limit(limit) if isinstance(limit, str) else limit
    return GLOBAL_LIMITS[resolved]


def get_provider_base_url() -> str:
    base_url = os.getenv("XPOSED_API_BASE_URL", "").strip()
    return (base_url or DEFAULT_XPOSED_API_BASE_URL).rstrip("/")
