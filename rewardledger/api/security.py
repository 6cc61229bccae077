"""Caller authentication for the reward endpoints."""

from __future__ import annotations

import hashlib
import hmac
import secrets
from typing import Iterable, Optional, Protocol

from fastapi import Header, HTTPException, Request, status


class CallerAuthenticator(Protocol):
    async def authenticate(self, fused_key: str, random_string: str) -> bool: ...


def fuse_key(secret: str, random_string: str) -> str:
    """Derive the ``x-fused-key`` header a client sends for ``random_string``."""
    return hmac.new(secret.encode(), random_string.encode(), hashlib.sha256).hexdigest()


class HmacHeaderAuthenticator:
    """Accept requests whose fused key is an HMAC of the nonce under a known secret."""

    def __init__(self, secrets_: Iterable[str]) -> None:
        self._secrets = tuple(secrets_)

    async def authenticate(self, fused_key: str, random_string: str) -> bool:
        if not random_string:
            return False
        return any(
            secrets.compare_digest(fuse_key(secret, random_string), fused_key)
            for secret in self._secrets
        )


async def require_caller(
    request: Request,
    x_fused_key: Optional[str] = Header(default=None),
    x_random_string: Optional[str] = Header(default=None),
) -> None:
    if not request.app.state.require_auth:
        return
    if not x_fused_key or not x_random_string:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authentication headers",
        )
    authenticator: CallerAuthenticator = request.app.state.authenticator
    if not await authenticator.authenticate(x_fused_key, x_random_string):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication",
        )
