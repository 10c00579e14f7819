"""Outbound webhook delivery (dashboard summary, parent notifications)."""

from __future__ import annotations

import hashlib
import hmac
import json
from typing import Any

import httpx

from practice_exam.core.config import settings

SIGNATURE_HEADER = "X-Webhook-Signature"


def sign_payload(body: bytes, secret: str) -> str:
    return "sha256=" + hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


async def post_webhook(
    url: str,
    payload: dict[str, Any],
    secret: str | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> None:
    """
    POST a JSON payload. Raises httpx.HTTPError on transport or non-2xx
    failure; callers decide whether to swallow it.
    """
    body = json.dumps(payload, separators=(",", ":"), default=str).encode()
    headers = {"Content-Type": "application/json", "X-App-Key": settings.APP_KEY}
    if secret:
        headers[SIGNATURE_HEADER] = sign_payload(body, secret)

    async with httpx.AsyncClient(timeout=settings.WEBHOOK_TIMEOUT_SECONDS, transport=transport) as client:
        resp = await client.post(url, content=body, headers=headers)
        resp.raise_for_status()
