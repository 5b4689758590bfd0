"""Health check endpoint for the JournalQ API.

Reports service status and whether the local preference database opens.
Does not call the analysis engine or the domain stores.
"""

from __future__ import annotations

import sqlite3
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter

from journalq.config import APP_NAME, APP_VERSION
from journalq.infrastructure.database import get_db_connection
from journalq.observability.logging import get_logger

router = APIRouter(tags=["health"])
logger = get_logger(__name__)


@router.get("/health")
async def health_check() -> dict[str, Any]:
    try:
        with get_db_connection() as conn:
            conn.execute("SELECT 1").fetchone()
        database = "ok"
    except sqlite3.Error as e:
        logger.error("Health check database failure: %s", e)
        database = "unavailable"

    return {
        "status": "healthy" if database == "ok" else "degraded",
        "service": APP_NAME,
        "version": APP_VERSION,
        "timestamp": datetime.now(UTC).isoformat(),
        "database": database,
    }
