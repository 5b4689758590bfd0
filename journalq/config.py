"""Centralized configuration for the JournalQ backend.

Typed constants for upstream services, rate limiting, preferences and the
API. Environment variable overrides use safe defaults so the app starts
without extra env configuration.
"""

from __future__ import annotations

import os

# --- App ---
APP_NAME: str = "JournalQ API"
APP_VERSION: str = "1.0.0"
APP_ENV: str = os.getenv("JOURNALQ_ENV", "development")

# --- Upstream services ---
ANALYSIS_ENGINE_URL: str = os.getenv("JOURNALQ_ANALYSIS_ENGINE_URL", "http://localhost:5001/api")
DOMAIN_STORE_URL: str = os.getenv("JOURNALQ_DOMAIN_STORE_URL", "http://localhost:5001/api")
IDENTITY_URL: str = os.getenv("JOURNALQ_IDENTITY_URL", "http://localhost:5001/api/auth/me")
UPSTREAM_TIMEOUT_SECONDS: float = float(os.getenv("JOURNALQ_UPSTREAM_TIMEOUT", "10.0"))

# --- Database ---
DB_RETRY_MAX: int = int(os.getenv("JOURNALQ_DB_RETRY_MAX", "5"))
DB_RETRY_BASE_DELAY: float = float(os.getenv("JOURNALQ_DB_RETRY_BASE_DELAY", "0.1"))
DB_RETRY_MAX_DELAY: float = float(os.getenv("JOURNALQ_DB_RETRY_MAX_DELAY", "2.0"))
DB_RETRY_JITTER: float = float(os.getenv("JOURNALQ_DB_RETRY_JITTER", "0.1"))
DB_CONNECT_TIMEOUT: float = float(os.getenv("JOURNALQ_DB_CONNECT_TIMEOUT", "30.0"))

# --- Rate Limiting (window seconds, max requests) ---
RATE_LIMIT_REALTIME_WINDOW: int = 60
RATE_LIMIT_REALTIME_MAX: int = 30
RATE_LIMIT_SUGGESTIONS_WINDOW: int = 5 * 60
RATE_LIMIT_SUGGESTIONS_MAX: int = 20
RATE_LIMIT_CONTEXT_WINDOW: int = 60
RATE_LIMIT_CONTEXT_MAX: int = 10
RATE_LIMIT_GENERAL_WINDOW: int = 15 * 60
RATE_LIMIT_GENERAL_MAX: int = 100
RATE_LIMIT_MAX_CLIENTS: int = 10000

# --- Preferences ---
DEFAULT_CONFIDENCE_THRESHOLD: float = 0.7
DEFAULT_SUGGESTION_TYPES: tuple[str, ...] = ("mood", "reflection", "todo")
DEFAULT_PROMPT_STYLE: str = "reflective"
AUTO_ADJUST_THRESHOLD: bool = os.getenv("JOURNALQ_AUTO_ADJUST_THRESHOLD", "true").lower() in (
    "true",
    "1",
    "yes",
)
AUTO_ADJUST_MIN_INTERACTIONS: int = 10
AUTO_ADJUST_STEP: float = 0.05
MIN_CONFIDENCE_THRESHOLD: float = 0.3
MAX_CONFIDENCE_THRESHOLD: float = 0.95

# --- Context aggregation ---
CONTEXT_TODO_LIMIT: int = 5
CONTEXT_MOOD_LIMIT: int = 5
CONTEXT_MOOD_DAYS: int = 7
CONTEXT_HABIT_LIMIT: int = 5
CONTEXT_MEDIA_LIMIT: int = 5
CONTEXT_JOURNAL_LIMIT: int = 3

# --- API ---
API_LIST_LIMIT_DEFAULT: int = 30
API_LIST_LIMIT_MAX: int = 200
FALLBACK_PROMPT: str = "What's on your mind today?"
TRUSTED_PROXY_HEADER: str = os.getenv("JOURNALQ_TRUSTED_PROXY_HEADER", "X-Cloud-Trace-Context")
ALLOWED_ORIGINS: list[str] = [
    origin.strip()
    for origin in os.getenv("JOURNALQ_ALLOWED_ORIGINS", "http://localhost:3000").split(",")
    if origin.strip()
]

# --- Auth ---
TOKEN_CACHE_MAX_SIZE: int = 1000
TOKEN_CACHE_TTL_SECONDS: int = 600
