from __future__ import annotations

import hmac

from fastapi import Request

from lastnote.config import Settings


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def bearer_matches(request: Request, secret: str) -> bool:
    """Check the Authorization header against a configured shared secret.

    An unset secret never matches.
    """
    if not secret:
        return False
    header = request.headers.get("authorization", "")
    return hmac.compare_digest(header.encode(), f"Bearer {secret}".encode())


def subject_id(request: Request) -> str | None:
    """Identity-provider subject forwarded by the auth proxy in front of the app."""
    value = request.headers.get(get_settings(request).auth_subject_header, "").strip()
    return value or None
