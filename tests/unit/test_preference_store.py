"""
Tests for PreferenceStore

Validates:
1. Defaults created on first access
2. Replace then get returns the identical record
3. Validation of threshold range, suggestion types and prompt style
4. Reset restores defaults and forgets history
5. Acceptance learning and threshold auto-adjustment (bounded)
6. Multi-user isolation
7. Storage failure falls back to defaults
8. Concurrent interactions never lose increments
"""

from __future__ import annotations

import sqlite3
import threading

import pytest
from pydantic import ValidationError

from journalq.preferences.models import Preferences, PromptStyle
from journalq.preferences.store import PreferenceStore


@pytest.fixture
def store():
    return PreferenceStore(auto_adjust=True)


def test_first_access_creates_defaults(store, isolated_db):
    prefs = store.get("alice")

    assert prefs.confidence_threshold == 0.7
    assert prefs.suggestion_types == ["mood", "reflection", "todo"]
    assert prefs.prompt_style is PromptStyle.REFLECTIVE

    with sqlite3.connect(isolated_db) as conn:
        rows = conn.execute("SELECT user_id FROM user_preferences").fetchall()
    assert rows == [("alice",)]


def test_replace_then_get_round_trips(store):
    new = Preferences(
        confidence_threshold=0.8,
        suggestion_types=["todo", "media", "habit"],
        prompt_style=PromptStyle.ANALYTICAL,
    )

    store.replace("alice", new)

    assert store.get("alice") == new


def test_replace_bumps_version(store, isolated_db):
    store.get("alice")
    store.replace("alice", Preferences(confidence_threshold=0.5))
    store.replace("alice", Preferences(confidence_threshold=0.6))

    with sqlite3.connect(isolated_db) as conn:
        (version,) = conn.execute(
            "SELECT version FROM user_preferences WHERE user_id = 'alice'"
        ).fetchone()
    assert version == 3


def test_users_are_isolated(store):
    store.replace("alice", Preferences(confidence_threshold=0.9))

    assert store.get("bob").confidence_threshold == 0.7
    assert store.get("alice").confidence_threshold == 0.9


@pytest.mark.parametrize(
    "payload",
    [
        {"confidenceThreshold": 1.5},
        {"confidenceThreshold": -0.1},
        {"suggestionTypes": ["mood", "finance"]},
        {"promptStyle": "poetic"},
    ],
)
def test_invalid_preferences_rejected(payload):
    with pytest.raises(ValidationError):
        Preferences.model_validate(payload)


def test_duplicate_suggestion_types_collapsed():
    prefs = Preferences(suggestion_types=["todo", "mood", "todo"])

    assert prefs.suggestion_types == ["todo", "mood"]


def test_wire_format_is_camel_case():
    assert Preferences().to_wire() == {
        "confidenceThreshold": 0.7,
        "suggestionTypes": ["mood", "reflection", "todo"],
        "promptStyle": "reflective",
    }


def test_reset_restores_defaults_and_clears_history(store):
    store.replace("alice", Preferences(confidence_threshold=0.4, suggestion_types=["media"]))
    store.record_interaction("alice", "media", "accepted", 0.9)

    prefs = store.reset("alice")

    assert prefs == Preferences()
    assert store.get_patterns("alice") == {}


def test_record_interaction_tracks_counts_and_average(store):
    store.record_interaction("alice", "todo", "accepted", 0.9)
    store.record_interaction("alice", "todo", "accepted", 0.7)
    store.record_interaction("alice", "todo", "rejected", 0.2)

    pattern = store.get_patterns("alice")["todo"]

    assert pattern.accepted == 2
    assert pattern.rejected == 1
    assert pattern.average_confidence == pytest.approx(0.8)
    assert pattern.acceptance_rate == pytest.approx(2 / 3)


def test_record_interaction_rejects_unknown_action(store):
    with pytest.raises(ValueError, match="Unknown interaction action"):
        store.record_interaction("alice", "todo", "maybe")


def test_no_adjustment_below_minimum_interactions(store):
    for _ in range(9):
        store.record_interaction("alice", "todo", "accepted", 0.9)

    assert store.get("alice").confidence_threshold == 0.7


def test_high_acceptance_lowers_threshold(store):
    for _ in range(10):
        store.record_interaction("alice", "todo", "accepted", 0.9)

    assert store.get("alice").confidence_threshold == 0.65


def test_low_acceptance_raises_threshold(store):
    for _ in range(10):
        store.record_interaction("alice", "mood", "rejected", 0.5)

    assert store.get("alice").confidence_threshold == 0.75


def test_threshold_never_drops_below_floor(store):
    store.replace("alice", Preferences(confidence_threshold=0.32))
    for _ in range(12):
        store.record_interaction("alice", "todo", "accepted", 0.9)

    assert store.get("alice").confidence_threshold == 0.3


def test_threshold_never_rises_above_ceiling(store):
    store.replace("alice", Preferences(confidence_threshold=0.93))
    for _ in range(12):
        store.record_interaction("alice", "todo", "rejected", 0.9)

    assert store.get("alice").confidence_threshold == 0.95


def test_mixed_acceptance_leaves_threshold(store):
    for i in range(10):
        store.record_interaction("alice", "todo", "accepted" if i % 2 else "rejected", 0.6)

    assert store.get("alice").confidence_threshold == 0.7


def test_auto_adjust_disabled():
    store = PreferenceStore(auto_adjust=False)
    for _ in range(15):
        store.record_interaction("alice", "todo", "accepted", 0.9)

    assert store.get("alice").confidence_threshold == 0.7


def test_acceptance_stats(store):
    store.record_interaction("alice", "todo", "accepted", 0.8)
    store.record_interaction("alice", "todo", "rejected", 0.4)
    store.record_interaction("alice", "media", "accepted", 0.6)

    stats = store.acceptance_stats("alice")

    assert stats.current_threshold == 0.7
    assert stats.auto_adjust is True
    assert stats.stats["todo"].total == 2
    assert stats.stats["todo"].acceptance_rate == 0.5
    assert stats.stats["media"].average_confidence == pytest.approx(0.6)
    assert stats.to_wire()["stats"]["todo"]["acceptanceRate"] == 0.5


def test_storage_failure_falls_back_to_defaults(store, monkeypatch):
    def broken_connection():
        raise sqlite3.OperationalError("unable to open database file")

    monkeypatch.setattr("journalq.preferences.store.get_db_connection", broken_connection)

    assert store.get("alice") == Preferences()


def test_average_starts_from_first_accepted_confidence(store):
    store.record_interaction("alice", "habit", "rejected", 0.1)
    store.record_interaction("alice", "habit", "accepted", 0.9)

    pattern = store.get_patterns("alice")["habit"]

    assert (pattern.accepted, pattern.rejected) == (1, 1)
    assert pattern.average_confidence == pytest.approx(0.9)


def test_concurrent_interactions_keep_every_increment():
    store = PreferenceStore(auto_adjust=False)

    def record(action):
        for _ in range(25):
            store.record_interaction("alice", "todo", action, 0.8)

    threads = [
        threading.Thread(target=record, args=(action,))
        for action in ("accepted", "accepted", "rejected", "rejected")
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    pattern = store.get_patterns("alice")["todo"]
    assert pattern.accepted == 50
    assert pattern.rejected == 50
    assert pattern.average_confidence == pytest.approx(0.8)


def test_auto_adjust_read_failure_keeps_stored_preferences(store, monkeypatch):
    custom = Preferences(suggestion_types=["media"], prompt_style=PromptStyle.CREATIVE)
    store.replace("alice", custom)
    for _ in range(9):
        store.record_interaction("alice", "media", "accepted", 0.9)

    def broken_read(user_id):
        raise sqlite3.OperationalError("disk I/O error")

    with monkeypatch.context() as m:
        m.setattr(store, "_get_or_create", broken_read)
        with pytest.raises(sqlite3.OperationalError):
            store.record_interaction("alice", "media", "accepted", 0.9)

    assert store.get("alice") == custom
    assert store.get_patterns("alice")["media"].accepted == 10
