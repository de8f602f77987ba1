from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import logging
import os
from datetime import datetime, timezone

from skedify.config import AUTH_TOKEN_TTL_SECONDS

logger = logging.getLogger("skedify.security")

DEV_FALLBACK_SECRET = "skedify-dev-secret"


def resolve_token_secret() -> str:
    secret = os.getenv("AUTH_TOKEN_SECRET", "").strip()
    if secret:
        return secret
    if os.getenv("ENV", "dev").lower() in {"dev", "development", "local"}:
        logger.warning("AUTH_TOKEN_SECRET is not set in dev; using the built-in dev secret.")
        return DEV_FALLBACK_SECRET
    return ""


def build_access_token(
    provider_id: int,
    secret: str,
    ttl_seconds: int = AUTH_TOKEN_TTL_SECONDS,
    now: datetime | None = None,
) -> str:
    now_utc = now or datetime.now(timezone.utc)
    issued_at = int(now_utc.timestamp())
    payload = {"provider_id": provider_id, "iat": issued_at, "exp": issued_at + ttl_seconds}
    payload_json = json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
    payload_b64 = _urlsafe_b64encode(payload_json.encode("utf-8"))
    signature = hmac.new(secret.encode("utf-8"), payload_b64.encode("utf-8"), hashlib.sha256)
    return f"{payload_b64}.{signature.hexdigest()}"


def parse_access_token(token: str, secret: str, now: datetime | None = None) -> int:
    try:
        payload_b64, provided_sig = token.split(".", 1)
    except ValueError as exc:
        raise ValueError("Invalid token format.") from exc

    expected_sig = hmac.new(
        secret.encode("utf-8"),
        payload_b64.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()
    if not hmac.compare_digest(expected_sig, provided_sig):
        raise ValueError("Invalid token signature.")

    try:
        payload = json.loads(_urlsafe_b64decode(payload_b64).decode("utf-8"))
        provider_id = int(payload.get("provider_id", 0))
        expires_at = int(payload.get("exp", 0))
    except (binascii.Error, UnicodeDecodeError, ValueError, TypeError, AttributeError) as exc:
        raise ValueError("Invalid token payload.") from exc
    if provider_id <= 0 or expires_at <= 0:
        raise ValueError("Invalid token payload.")

    now_utc = now or datetime.now(timezone.utc)
    if int(now_utc.timestamp()) >= expires_at:
        raise ValueError("Token expired.")
    return provider_id


def _urlsafe_b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("utf-8").rstrip("=")


def _urlsafe_b64decode(raw: str) -> bytes:
    padding = "=" * ((4 - len(raw) % 4) % 4)
    return base64.urlsafe_b64decode(raw + padding)
