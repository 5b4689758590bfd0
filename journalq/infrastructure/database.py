"""SQLite access for locally persisted per-user records.

JournalQ keeps exactly one local database (preferences and acceptance
patterns). Domain records (todos, moods, habits, media, journal entries)
live in the domain stores and are never written here.

Provides:
- Environment-aware database path (JOURNALQ_DB_PATH)
- Connection and transaction context managers
- Retry decorator for transient SQLITE_BUSY errors
- Idempotent schema initialization
"""

from __future__ import annotations

import os
import random
import sqlite3
import time
from collections.abc import Callable, Generator
from contextlib import contextmanager
from functools import wraps
from pathlib import Path
from typing import Any, TypeVar

from journalq.config import (
    DB_CONNECT_TIMEOUT,
    DB_RETRY_BASE_DELAY,
    DB_RETRY_JITTER,
    DB_RETRY_MAX,
    DB_RETRY_MAX_DELAY,
)
from journalq.observability.logging import get_logger
from journalq.observability.telemetry import counter

F = TypeVar("F", bound=Callable[..., Any])

DB_PATH = Path(__file__).parent.parent / "data" / "journalq.db"

logger = get_logger(__name__)

SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS user_preferences (
        user_id TEXT PRIMARY KEY,
        confidence_threshold REAL NOT NULL,
        suggestion_types TEXT NOT NULL,
        prompt_style TEXT NOT NULL,
        version INTEGER NOT NULL DEFAULT 1,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS acceptance_patterns (
        user_id TEXT NOT NULL,
        kind TEXT NOT NULL,
        accepted INTEGER NOT NULL DEFAULT 0,
        rejected INTEGER NOT NULL DEFAULT 0,
        average_confidence REAL NOT NULL DEFAULT 0.7,
        updated_at TEXT NOT NULL,
        PRIMARY KEY (user_id, kind)
    )
    """,
)


def retry_on_db_lock(
    max_retries: int = DB_RETRY_MAX,
    base_delay: float = DB_RETRY_BASE_DELAY,
    max_delay: float = DB_RETRY_MAX_DELAY,
) -> Callable[[F], F]:
    """
    Decorator to retry database operations on SQLITE_BUSY errors.

    Concurrent preference writes can hit "database is locked"; this retries
    with exponential backoff and jitter. Any other OperationalError is
    re-raised immediately.

    Side Effects:
        - Sleeps between retries
        - Logs a warning for each retry and an error when retries are exhausted
    """

    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            last_error: sqlite3.OperationalError | None = None

            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)

                except sqlite3.OperationalError as e:
                    last_error = e

                    if "locked" not in str(e).lower() and "busy" not in str(e).lower():
                        raise

                    if attempt >= max_retries:
                        logger.error(
                            "Database lock retry exhausted after %d attempts: %s",
                            max_retries,
                            e,
                        )
                        raise

                    delay = min(base_delay * (2**attempt), max_delay)
                    sleep_time = delay + random.uniform(0, delay * DB_RETRY_JITTER)

                    logger.warning(
                        "Database locked (attempt %d/%d), retrying in %.2fs: %s",
                        attempt + 1,
                        max_retries,
                        sleep_time,
                        e,
                    )
                    counter("db.lock_retry")
                    time.sleep(sleep_time)

            raise last_error  # type: ignore[misc]

        return wrapper  # type: ignore[return-value]

    return decorator


def get_db_path() -> Path:
    """
    Get database path (environment-aware)

    Checks JOURNALQ_DB_PATH first, falls back to the package data directory.
    """
    if env_path := os.getenv("JOURNALQ_DB_PATH"):
        return Path(env_path)

    return DB_PATH


@contextmanager
def get_db_connection() -> Generator[sqlite3.Connection, None, None]:
    """
    Open a connection to the JournalQ database (context manager).

    A fresh connection per use keeps request threads independent; the schema
    is created on first open.

    Yields:
        sqlite3.Connection with Row factory enabled
    """
    db_path = get_db_path()
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path, timeout=DB_CONNECT_TIMEOUT)
    conn.row_factory = sqlite3.Row
    try:
        _ensure_schema(conn)
        yield conn
    finally:
        conn.close()


@contextmanager
def db_transaction() -> Generator[sqlite3.Connection, None, None]:
    """
    Context manager for database transactions.

    Side Effects:
        - Commits on success, rolls back on error
    """
    with get_db_connection() as conn:
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise


def _ensure_schema(conn: sqlite3.Connection) -> None:
    for statement in SCHEMA_STATEMENTS:
        conn.execute(statement)


def init_database() -> None:
    """Create tables if missing (idempotent, safe on every startup)."""
    with db_transaction() as conn:
        _ensure_schema(conn)
    logger.info("Database schema ready at %s", get_db_path())
