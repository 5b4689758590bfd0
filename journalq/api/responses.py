"""JSON error bodies shared by exception handlers and middleware."""

from __future__ import annotations

import math

from fastapi import status
from fastapi.responses import JSONResponse

from journalq.errors import JournalQError, RateLimited
from journalq.utils.error_sanitizer import sanitize_error_message


def error_response(exc: JournalQError) -> JSONResponse:
    """Render a JournalQError as ``{"error": ...}`` with its status code."""
    content: dict[str, object] = {"error": sanitize_error_message(exc.message, exc.status_code)}
    headers: dict[str, str] = {}

    if isinstance(exc, RateLimited):
        content["retryAfter"] = exc.retry_after
        headers["Retry-After"] = str(math.ceil(exc.retry_after))
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        headers["WWW-Authenticate"] = "Bearer"

    return JSONResponse(status_code=exc.status_code, content=content, headers=headers or None)
