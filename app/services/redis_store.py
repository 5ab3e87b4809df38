from __future__ import annotations

import hashlib
import json
import os
from typing import Any

from redis import Redis

KEY_PREFIX = "breachmonitor"

_redis_client: Redis | None = None


def redis_configured() -> bool:
    return bool(os.getenv("REDIS_URL"))


def _require_redis_url() -> str:
    redis_url = os.getenv("REDIS_URL")
    if not redis_url:
        raise RuntimeError("REDIS_URL not set")
    return redis_url


def get_redis() -> Redis:
    global _redis_client
    if _redis_client is None:
        _redis_client = Redis.from_url(
            _require_redis_url(),
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
    return _redis_client


def build_hashed_key(namespace: str, *parts: Any) -> str:
    # Keys never carry raw email addresses.
    payload = "|".join(str(part) for part in parts)
    digest = hashlib.sha256(payload.encode("utf-8")).hexdigest()
    return f"{KEY_PREFIX}:{namespace}:{digest}"


def get_json(namespace: str, *parts: Any) -> dict[str, Any] | None:
    redis = get_redis()
    key = build_hashed_key(namespace, *parts)
    value = redis.get(key)
    if not value:
        return None
    return json.loads(value)


def set_json(namespace: str, data: dict[str, Any], ttl_seconds: int, *parts: Any) -> None:
    redis = get_redis()
    key = build_hashed_key(namespace, *parts)
    redis.set(key, json.dumps(data), ex=ttl_seconds)
