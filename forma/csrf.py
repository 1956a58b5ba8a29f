"""CSRF nonces bound to a form action and the visitor's session.

Tokens are HMAC-SHA256 signed JSON payloads (Python stdlib only). A token
carries the action it was issued for and a random per-session salt, so a
token lifted from one session or form is useless for another.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import secrets
import time
from typing import Protocol

from forma.config import get_settings
from forma.request import RequestContext

SESSION_SALT_KEY = "_forma_nonce_salt"


class CsrfProvider(Protocol):
    """Token primitive used by forms. Hosts may supply their own."""

    def issue(self, action: str, ctx: RequestContext) -> str: ...

    def verify(self, token: str, action: str, ctx: RequestContext) -> bool: ...


def create_signed_token(payload: dict, secret: str, expires_in: int) -> str:
    """Create a base64url-encoded, HMAC-signed JSON payload with expiration.

    Returns:
        URL-safe base64 string: ``base64(json_payload).base64(signature)``
    """
    payload = {**payload, "exp": int(time.time()) + expires_in}
    payload_bytes = json.dumps(payload, separators=(",", ":")).encode()
    payload_b64 = base64.urlsafe_b64encode(payload_bytes).decode()

    sig = hmac.new(secret.encode(), payload_b64.encode(), hashlib.sha256).digest()
    sig_b64 = base64.urlsafe_b64encode(sig).decode()

    return f"{payload_b64}.{sig_b64}"


def verify_signed_token(token: str, secret: str) -> dict | None:
    """Verify and decode a signed token.

    Returns:
        Decoded payload dict, or ``None`` if the token is invalid, expired,
        or has been tampered with.
    """
    parts = token.split(".")
    if len(parts) != 2:
        return None

    payload_b64, sig_b64 = parts

    expected_sig = hmac.new(secret.encode(), payload_b64.encode(), hashlib.sha256).digest()
    try:
        actual_sig = base64.urlsafe_b64decode(sig_b64)
    except (binascii.Error, ValueError):
        return None

    if not hmac.compare_digest(expected_sig, actual_sig):
        return None

    try:
        payload = json.loads(base64.urlsafe_b64decode(payload_b64))
    except (binascii.Error, ValueError):
        return None

    if not isinstance(payload, dict):
        return None

    exp = payload.get("exp")
    if not isinstance(exp, (int, float)) or time.time() > exp:
        return None

    return payload


class SignedNonceProvider:
    """Default ``CsrfProvider`` keeping a random salt in the session."""

    def __init__(self, secret: str | None = None, lifetime: int | None = None) -> None:
        self._secret = secret
        self._lifetime = lifetime

    @property
    def secret(self) -> str:
        return self._secret or get_settings().secret_key

    @property
    def lifetime(self) -> int:
        return self._lifetime if self._lifetime is not None else get_settings().nonce_lifetime

    def issue(self, action: str, ctx: RequestContext) -> str:
        salt = ctx.session.get(SESSION_SALT_KEY)
        if not salt:
            salt = ctx.session[SESSION_SALT_KEY] = secrets.token_urlsafe(16)
        return create_signed_token({"act": action, "sid": salt}, self.secret, self.lifetime)

    def verify(self, token: str, action: str, ctx: RequestContext) -> bool:
        salt = ctx.session.get(SESSION_SALT_KEY)
        if not token or not salt or not isinstance(token, str):
            return False

        payload = verify_signed_token(token, self.secret)
        if payload is None:
            return False

        return _same(payload.get("act"), action) and _same(payload.get("sid"), salt)


def _same(a: object, b: object) -> bool:
    return hmac.compare_digest(str(a or "").encode(), str(b or "").encode())


default_provider = SignedNonceProvider()
