import logging
import threading
from copy import deepcopy

from redis.exceptions import RedisError

from app.core.limits import Limit, get_global_limit
from app.services.breach.base import BreachProvider
from app.services.breach.xposed_provider import XposedOrNotProvider
from app.services.monitoring.store import normalize_email
from app.services.redis_store import get_json, redis_configured, set_json

logger = logging.getLogger(__name__)

_provider: BreachProvider | None = None
_provider_lock = threading.Lock()


def get_breach_provider() -> BreachProvider:
    """
    Returns THE process-wide provider instance.
    The rate limit only holds if every caller shares it.
    """
    global _provider
    with _provider_lock:
        if _provider is None:
            _provider = XposedOrNotProvider()
        return _provider


def set_breach_provider(provider: BreachProvider | None) -> None:
    global _provider
    with _provider_lock:
        _provider = provider


def _summary_cache_key(email: str) -> str:
    return f"summary:{email}"


def parse_breach_summary(payload: dict | None) -> list[str]:
    """
    The summary endpoint answers {"breaches": [["Adobe", "LinkedIn"]]};
    older responses send a flat list or a comma-joined string.
    """
    if not isinstance(payload, dict):
        return []

    names: list[str] = []
    raw = payload.get("breaches")
    groups = raw if isinstance(raw, list) else [raw]
    for group in groups:
        items = group if isinstance(group, list) else [group]
        for item in items:
            if not isinstance(item, str):
                continue
            for name in item.split(","):
                name = name.strip()
                if name and name not in names:
                    names.append(name)
    return names


def check_email_breach(email: str) -> dict:
    """
    Ad-hoc summary lookup for a single address (not monitored, not persisted).
    Raises ProviderError on provider failures.
    """
    email = normalize_email(email)
    cache_key = _summary_cache_key(email)
    use_cache = redis_configured()

    if use_cache:
        try:
            cached = get_json("cache:breach:summary", cache_key)
            if cached:
                return deepcopy(cached)
        except RedisError as exc:
            logger.warning("breach_summary_cache_read_failed error=%s", exc)

    payload = get_breach_provider().fetch_breach_summary(email)
    sites = parse_breach_summary(payload)

    result = {
        "email": email,
        "breached": bool(sites),
        "count": len(sites),
        "sites": sites,
    }

    if use_cache:
        try:
            ttl = get_global_limit(Limit.BREACH_SUMMARY_CACHE_TTL_SECONDS)
            set_json("cache:breach:summary", deepcopy(result), ttl, cache_key)
        except RedisError as exc:
            logger.warning("breach_summary_cache_write_failed error=%s", exc)
    return result
