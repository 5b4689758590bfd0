"""Unit tests for ContextAggregator

Tests cover:
- All five fields populated in store order with per-field limits
- A single failing sub-fetch empties only its field
- Malformed records degrade their field
- Total transport failure raises UpstreamUnavailable
"""

from __future__ import annotations

import asyncio

import pytest

from journalq.errors import UpstreamUnavailable
from journalq.journal.context import ContextAggregator
from journalq.journal.store_client import StoreTransportError
from journalq.observability.telemetry import get_counter


def aggregate(store, credential):
    return asyncio.run(ContextAggregator(store).aggregate(credential))


def test_all_fields_populated(fake_store, credential):
    snapshot = aggregate(fake_store, credential)

    assert [t.title for t in snapshot.upcoming_todos] == ["Call doctor", "Buy groceries"]
    assert snapshot.recent_moods[0].mood == "Calm"
    assert snapshot.active_habits[0].streak == 4
    assert snapshot.recent_media[0].title == "The Bear"
    assert snapshot.recent_journals[0].content == "Long day at work."


def test_per_field_limits_requested(fake_store, credential):
    aggregate(fake_store, credential)

    assert dict(fake_store.calls) == {
        "list_upcoming_todos": 5,
        "list_recent_moods": 5,
        "list_active_habits": 5,
        "list_recent_media": 5,
        "list_journal_entries": 3,
    }


def test_store_order_preserved(fake_store, credential):
    fake_store.data["todos"] = [{"title": t} for t in ["z", "a", "m"]]

    snapshot = aggregate(fake_store, credential)

    assert [t.title for t in snapshot.upcoming_todos] == ["z", "a", "m"]


def test_store_fields_pass_through(fake_store, credential):
    snapshot = aggregate(fake_store, credential)

    wire = snapshot.to_wire()
    assert wire["upcomingTodos"][0]["_id"] == "t1"
    assert wire["upcomingTodos"][0]["dueDate"] == "2026-10-21"


@pytest.mark.parametrize(
    "failure",
    [
        StoreTransportError("media store down", upstream="/media"),
        UpstreamUnavailable("Domain store returned 500 for /media", upstream="/media"),
    ],
)
def test_single_failure_empties_only_that_field(fake_store, credential, failure):
    fake_store.failures["list_recent_media"] = failure

    snapshot = aggregate(fake_store, credential)

    assert snapshot.recent_media == []
    assert len(snapshot.upcoming_todos) == 2
    assert len(snapshot.recent_moods) == 1
    assert len(snapshot.active_habits) == 1
    assert len(snapshot.recent_journals) == 1
    assert get_counter("context.field_degraded") == 1


def test_malformed_records_degrade_field(fake_store, credential):
    fake_store.data["moods"] = [{"date": "2026-10-18"}]

    snapshot = aggregate(fake_store, credential)

    assert snapshot.recent_moods == []
    assert len(snapshot.upcoming_todos) == 2


def test_total_transport_failure_raises(fake_store, credential):
    fake_store.fail_all_reads(StoreTransportError("unreachable", upstream="stores"))

    with pytest.raises(UpstreamUnavailable, match="Failed to fetch journal context"):
        aggregate(fake_store, credential)


def test_all_reads_rejected_returns_empty_snapshot(fake_store, credential):
    fake_store.fail_all_reads(UpstreamUnavailable("HTTP 500", upstream="stores"))

    snapshot = aggregate(fake_store, credential)

    assert snapshot.to_wire() == {
        "upcomingTodos": [],
        "recentMoods": [],
        "activeHabits": [],
        "recentMedia": [],
        "recentJournals": [],
    }


def test_empty_stores(empty_store, credential):
    snapshot = aggregate(empty_store, credential)

    assert snapshot.upcoming_todos == []
    assert snapshot.recent_journals == []
