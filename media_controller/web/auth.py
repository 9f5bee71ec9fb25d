"""
Bearer-token auth gate.

Applied as an application-wide dependency, so every route (including
/status) is checked before any handler or dispatcher code runs.
"""

from __future__ import annotations

import hmac
from collections.abc import Callable

from fastapi import Header

from media_controller.errors import AuthError


def is_authorized(header_value: str | None, token: str) -> bool:
    """
    Check an Authorization header against the configured token.

    Only the exact value ``"Bearer <token>"`` is accepted; the scheme and
    token are case-sensitive. The comparison is constant-time.
    """
    if not header_value or not token:
        return False
    expected = f"Bearer {token}".encode()
    return hmac.compare_digest(header_value.encode(), expected)


def make_auth_dependency(token: str) -> Callable[..., None]:
    """Build a FastAPI dependency that raises AuthError on a bad credential."""

    async def require_token(authorization: str | None = Header(default=None)) -> None:
        if not is_authorized(authorization, token):
            raise AuthError("Invalid or missing API token")

    return require_token
