"""
User authentication for the JournalQ API.

BearerAuthMiddleware turns away requests without a bearer header before
anything else runs. get_current_user then verifies the token against the
identity provider and returns the Credential passed explicitly to every core
operation.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import httpx
from cachetools import TTLCache
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from journalq.api.responses import error_response
from journalq.config import (
    IDENTITY_URL,
    TOKEN_CACHE_MAX_SIZE,
    TOKEN_CACHE_TTL_SECONDS,
    UPSTREAM_TIMEOUT_SECONDS,
)
from journalq.contracts.identity import Credential
from journalq.errors import AuthRequired, IdentityUnavailable
from journalq.observability.logging import get_logger
from journalq.observability.telemetry import counter

logger = get_logger(__name__)

AUTH_REQUIRED_MESSAGE = "You must be logged in to access this endpoint"

# Reachable without a bearer credential
PUBLIC_PATHS = frozenset({"/", "/health", "/docs", "/redoc", "/openapi.json"})

# Short TTL so revoked tokens stop working within minutes
_token_cache: TTLCache[str, Credential] = TTLCache(
    maxsize=TOKEN_CACHE_MAX_SIZE, ttl=TOKEN_CACHE_TTL_SECONDS
)

# Tests swap this for an httpx.MockTransport
_identity_transport: httpx.AsyncBaseTransport | None = None


def set_identity_transport(transport: httpx.AsyncBaseTransport | None) -> None:
    global _identity_transport
    _identity_transport = transport


async def verify_token(token: str) -> Credential:
    """
    Verify a bearer token with the identity provider.

    Raises:
        AuthRequired: If the provider rejects the token (401)
        IdentityUnavailable: If the provider cannot be reached (503)
    """
    if token in _token_cache:
        return _token_cache[token]

    try:
        async with httpx.AsyncClient(
            timeout=UPSTREAM_TIMEOUT_SECONDS, transport=_identity_transport
        ) as client:
            response = await client.get(IDENTITY_URL, headers={"Authorization": f"Bearer {token}"})
    except httpx.TimeoutException:
        logger.warning("Token validation timed out")
        raise IdentityUnavailable() from None
    except httpx.HTTPError as e:
        logger.error("Token validation request failed: %s", type(e).__name__)
        raise IdentityUnavailable() from e

    if response.status_code in (401, 403):
        raise AuthRequired("Invalid or expired token")
    if not response.is_success:
        logger.error("Identity provider returned HTTP %d", response.status_code)
        raise IdentityUnavailable()

    try:
        info = response.json()
    except ValueError:
        raise AuthRequired("Invalid or expired token") from None

    # Identity provider answers either {user: {...}} or the bare user
    if isinstance(info, dict) and isinstance(info.get("user"), dict):
        info = info["user"]
    user_id = info.get("id", info.get("_id")) if isinstance(info, dict) else None
    if user_id is None:
        raise AuthRequired("Invalid or expired token")

    credential = Credential(
        user_id=str(user_id),
        token=token,
        email=info.get("email", ""),
        name=info.get("name"),
    )
    _token_cache[token] = credential

    logger.info("Authenticated user: %s (cache size: %d)", credential, len(_token_cache))
    return credential


def _extract_bearer_token(authorization: str | None) -> str:
    """Extract token from Authorization header."""
    if not authorization:
        raise AuthRequired(AUTH_REQUIRED_MESSAGE)

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise AuthRequired("Invalid authorization header format. Expected: Bearer <token>")

    return parts[1]


async def get_current_user(request: Request) -> Credential:
    """
    FastAPI dependency to get the caller's verified Credential.

    Usage:
        @router.get("/endpoint")
        async def endpoint(credential: Credential = Depends(get_current_user)):
            ...
    """
    token = _extract_bearer_token(request.headers.get("Authorization"))
    return await verify_token(token)


def clear_token_cache() -> None:
    """Clear the token cache. Useful for testing."""
    _token_cache.clear()


class BearerAuthMiddleware(BaseHTTPMiddleware):
    """
    Reject requests without a well-formed bearer header before routing.

    Runs ahead of body parsing and rate limiting, so a missing credential is
    always a 401 even when the body is malformed. Token verification itself
    stays in get_current_user.
    """

    async def dispatch(self, request: Request, call_next: Callable[..., Any]) -> Response:
        if request.url.path in PUBLIC_PATHS or request.method == "OPTIONS":
            return await call_next(request)

        try:
            _extract_bearer_token(request.headers.get("Authorization"))
        except AuthRequired as e:
            counter("api.auth.missing_bearer")
            return error_response(e)

        return await call_next(request)
