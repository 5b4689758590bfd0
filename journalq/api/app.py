"""FastAPI server for JournalQ journal analysis"""

from __future__ import annotations

import os

from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from journalq.api.dependencies import get_rate_limiter
from journalq.api.middleware.rate_limit import RateLimitMiddleware
from journalq.api.middleware.user_auth import BearerAuthMiddleware
from journalq.api.responses import error_response
from journalq.api.routes.ai import router as ai_router
from journalq.api.routes.health import router as health_router
from journalq.api.routes.journal import router as journal_router
from journalq.api.routes.preferences import router as preferences_router
from journalq.config import ALLOWED_ORIGINS, APP_NAME, APP_VERSION
from journalq.errors import JournalQError
from journalq.infrastructure.database import init_database
from journalq.observability.logging import get_logger
from journalq.observability.telemetry import counter

load_dotenv()

logger = get_logger(__name__)

app = FastAPI(title=APP_NAME, version=APP_VERSION)


@app.exception_handler(JournalQError)
async def journalq_error_handler(request: Request, exc: JournalQError) -> JSONResponse:
    """
    Map the JournalQ error taxonomy onto {error} bodies.

    Side Effects:
        - Logs server-side failures with full detail
        - Increments api.errors.<status> counter
    """
    if exc.status_code >= 500:
        logger.error("Unhandled %s on %s: %s", type(exc).__name__, request.url.path, exc.message)
    counter(f"api.errors.{exc.status_code}")
    return error_response(exc)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    counter(f"api.errors.{exc.status_code}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


# Custom validation error handler to prevent information leakage
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Return a sanitized 422 that names invalid fields but not the rules they broke.

    Side Effects:
        - Logs detailed validation errors for debugging
        - Increments api.validation_errors counter
    """
    logger.warning("Validation error on %s: %s", request.url.path, exc.errors())
    counter("api.validation_errors")

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "Invalid request format. Please check your request and try again.",
            "error_count": len(exc.errors()),
            "invalid_fields": [str(err["loc"][-1]) for err in exc.errors() if err.get("loc")],
        },
    )


# Starlette runs the last-added middleware first: CORS, then the bearer
# check, then rate limiting. 401 and 429 responses carry CORS headers too
app.add_middleware(RateLimitMiddleware, limiter=get_rate_limiter())
app.add_middleware(BearerAuthMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
)

# Initialize database schema (idempotent - safe to run on every startup)
init_database()

app.include_router(health_router)
app.include_router(ai_router)
app.include_router(journal_router)
app.include_router(preferences_router)


def main() -> None:
    import uvicorn

    uvicorn.run(
        "journalq.api.app:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=os.getenv("JOURNALQ_ENV", "development") == "development",
    )


if __name__ == "__main__":
    main()
