"""
Preference Store

Reads and replaces the per-user Preferences record and learns from the
accept/reject decisions users make on extracted candidates.

Policy:
- First access creates the default record (threshold 0.7, mood/reflection/todo,
  reflective prompts)
- Replace is last-writer-wins; there is no concurrent-edit resolution
- Storage failures on read fall back to defaults so filtering keeps working
- Auto-adjust: after at least 10 recorded interactions, an overall acceptance
  rate above 0.8 lowers the threshold by 0.05 (never below 0.3) and a rate
  below 0.4 raises it by 0.05 (never above 0.95)

Usage:
    from journalq.preferences.store import PreferenceStore

    store = PreferenceStore()
    prefs = store.get("user_123")
    store.record_interaction("user_123", "todo", "accepted", confidence=0.9)
"""

from __future__ import annotations

import json
import sqlite3
from datetime import UTC, datetime

from journalq.config import (
    AUTO_ADJUST_MIN_INTERACTIONS,
    AUTO_ADJUST_STEP,
    AUTO_ADJUST_THRESHOLD,
    MAX_CONFIDENCE_THRESHOLD,
    MIN_CONFIDENCE_THRESHOLD,
)
from journalq.infrastructure.database import db_transaction, get_db_connection, retry_on_db_lock
from journalq.observability.logging import get_logger
from journalq.observability.telemetry import counter, log_event
from journalq.preferences.models import (
    AcceptancePattern,
    AcceptanceStats,
    KindStats,
    Preferences,
)

logger = get_logger(__name__)

INTERACTION_ACTIONS = ("accepted", "rejected")


class PreferenceStore:
    """SQLite-backed accessor for Preferences and acceptance patterns."""

    def __init__(self, auto_adjust: bool = AUTO_ADJUST_THRESHOLD):
        self.auto_adjust = auto_adjust

    def get(self, user_id: str) -> Preferences:
        """
        Get preferences for a user, creating the default record on first access.

        Returns defaults (without persisting) if the database is unavailable.
        """
        try:
            return self._get_or_create(user_id)
        except sqlite3.Error as e:
            logger.error("Preference read failed for %s, using defaults: %s", user_id, e)
            counter("preferences.read_fallback")
            return Preferences()

    @retry_on_db_lock()
    def _get_or_create(self, user_id: str) -> Preferences:
        with get_db_connection() as conn:
            row = conn.execute(
                """
                SELECT confidence_threshold, suggestion_types, prompt_style
                FROM user_preferences WHERE user_id = ?
                """,
                (user_id,),
            ).fetchone()

        if row is not None:
            return Preferences(
                confidence_threshold=row["confidence_threshold"],
                suggestion_types=json.loads(row["suggestion_types"]),
                prompt_style=row["prompt_style"],
            )

        preferences = Preferences()
        self._write(user_id, preferences)
        log_event("preferences.created_default", user_id=user_id)
        return preferences

    def replace(self, user_id: str, preferences: Preferences) -> Preferences:
        """
        Replace the user's record wholesale.

        Side Effects:
            - Upserts user_preferences row, bumps version
        """
        self._write(user_id, preferences)
        log_event(
            "preferences.replaced",
            user_id=user_id,
            threshold=preferences.confidence_threshold,
            types=preferences.suggestion_types,
            style=preferences.prompt_style.value,
        )
        return preferences

    def reset(self, user_id: str) -> Preferences:
        """
        Drop the user's record and learning data, then recreate defaults.

        Side Effects:
            - Deletes rows from user_preferences and acceptance_patterns
        """
        with db_transaction() as conn:
            conn.execute("DELETE FROM user_preferences WHERE user_id = ?", (user_id,))
            conn.execute("DELETE FROM acceptance_patterns WHERE user_id = ?", (user_id,))
        log_event("preferences.reset", user_id=user_id)
        return self._get_or_create(user_id)

    @retry_on_db_lock()
    def _write(self, user_id: str, preferences: Preferences) -> None:
        with db_transaction() as conn:
            conn.execute(
                """
                INSERT INTO user_preferences
                    (user_id, confidence_threshold, suggestion_types, prompt_style, version, updated_at)
                VALUES (?, ?, ?, ?, 1, ?)
                ON CONFLICT(user_id) DO UPDATE SET
                    confidence_threshold = excluded.confidence_threshold,
                    suggestion_types = excluded.suggestion_types,
                    prompt_style = excluded.prompt_style,
                    version = user_preferences.version + 1,
                    updated_at = excluded.updated_at
                """,
                (
                    user_id,
                    preferences.confidence_threshold,
                    json.dumps(preferences.suggestion_types),
                    preferences.prompt_style.value,
                    datetime.now(UTC).isoformat(),
                ),
            )

    def get_patterns(self, user_id: str) -> dict[str, AcceptancePattern]:
        with get_db_connection() as conn:
            rows = conn.execute(
                """
                SELECT kind, accepted, rejected, average_confidence
                FROM acceptance_patterns WHERE user_id = ?
                ORDER BY kind
                """,
                (user_id,),
            ).fetchall()

        return {
            row["kind"]: AcceptancePattern(
                accepted=row["accepted"],
                rejected=row["rejected"],
                average_confidence=row["average_confidence"],
            )
            for row in rows
        }

    @retry_on_db_lock()
    def record_interaction(
        self, user_id: str, kind: str, action: str, confidence: float = 0.7
    ) -> None:
        """
        Record that the user accepted or rejected a candidate of ``kind``.

        Accepted interactions also update the running average confidence of
        accepted items. May auto-adjust the confidence threshold.

        Raises:
            ValueError: If action is not "accepted" or "rejected"
        """
        if action not in INTERACTION_ACTIONS:
            raise ValueError(f"Unknown interaction action: {action}")

        accepted = action == "accepted"
        # Counts and the running average are incremented in SQL, never written back from a read
        with db_transaction() as conn:
            conn.execute(
                """
                INSERT INTO acceptance_patterns
                    (user_id, kind, accepted, rejected, average_confidence, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(user_id, kind) DO UPDATE SET
                    accepted = acceptance_patterns.accepted + excluded.accepted,
                    rejected = acceptance_patterns.rejected + excluded.rejected,
                    average_confidence = CASE
                        WHEN excluded.accepted > 0 THEN
                            (acceptance_patterns.average_confidence * acceptance_patterns.accepted
                             + excluded.average_confidence)
                            / (acceptance_patterns.accepted + 1)
                        ELSE acceptance_patterns.average_confidence
                    END,
                    updated_at = excluded.updated_at
                """,
                (
                    user_id,
                    kind,
                    1 if accepted else 0,
                    0 if accepted else 1,
                    confidence if accepted else AcceptancePattern().average_confidence,
                    datetime.now(UTC).isoformat(),
                ),
            )

        counter(f"preferences.interaction.{action}")

        if self.auto_adjust:
            self._auto_adjust_threshold(user_id)

    def _auto_adjust_threshold(self, user_id: str) -> None:
        patterns = self.get_patterns(user_id)
        accepted = sum(p.accepted for p in patterns.values())
        total = sum(p.total for p in patterns.values())
        if total < AUTO_ADJUST_MIN_INTERACTIONS:
            return

        preferences = self._get_or_create(user_id)
        threshold = preferences.confidence_threshold
        rate = accepted / total

        if rate > 0.8 and threshold > MIN_CONFIDENCE_THRESHOLD:
            new_threshold = max(MIN_CONFIDENCE_THRESHOLD, threshold - AUTO_ADJUST_STEP)
        elif rate < 0.4 and threshold < MAX_CONFIDENCE_THRESHOLD:
            new_threshold = min(MAX_CONFIDENCE_THRESHOLD, threshold + AUTO_ADJUST_STEP)
        else:
            return

        new_threshold = round(new_threshold, 2)
        self._write(
            user_id, preferences.model_copy(update={"confidence_threshold": new_threshold})
        )
        logger.info(
            "Auto-adjusted threshold for %s: %.2f -> %.2f (acceptance %.2f over %d)",
            user_id,
            threshold,
            new_threshold,
            rate,
            total,
        )

    def acceptance_stats(self, user_id: str) -> AcceptanceStats:
        """Per-kind acceptance statistics plus the current threshold."""
        patterns = self.get_patterns(user_id)
        return AcceptanceStats(
            stats={
                kind: KindStats(
                    accepted=p.accepted,
                    rejected=p.rejected,
                    total=p.total,
                    acceptance_rate=p.acceptance_rate,
                    average_confidence=p.average_confidence,
                )
                for kind, p in patterns.items()
            },
            current_threshold=self.get(user_id).confidence_threshold,
            auto_adjust=self.auto_adjust,
        )
