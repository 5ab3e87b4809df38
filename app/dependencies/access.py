from __future__ import annotations

import logging

from fastapi import Header, HTTPException, Request

from app.services.monitoring.store import normalize_email

logger = logging.getLogger(__name__)


def get_owner_id(
    request: Request,
    user_id: str | None = Header(default=None, alias="user-id"),
) -> str:
    """
    Owner identity (the signed-in email) forwarded by the auth gateway.
    """
    owner = normalize_email(user_id or "")
    if not owner:
        logger.warning(
            "owner_missing path=%s method=%s",
            request.url.path,
            request.method,
        )
        raise HTTPException(status_code=401, detail="User ID is required")

    request.state.owner_id = owner
    return owner
