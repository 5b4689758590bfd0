"""Unit tests for error message sanitization"""

from __future__ import annotations

import pytest

from journalq.utils.error_sanitizer import (
    GENERIC_MESSAGES,
    get_safe_error_detail,
    sanitize_error_message,
)


def test_plain_client_message_passes_through():
    assert sanitize_error_message("Content is required", 400) == "Content is required"


@pytest.mark.parametrize(
    "message",
    [
        'File "/srv/journalq/analysis/gateway.py", line 12',
        "sqlite3.OperationalError: database is locked",
        "Domain store returned 500 for http://stores.internal:5001/api/todos",
        "Bearer eyJhbGciOiJIUzI1NiJ9",
        "boom in journalq.journal.context",
    ],
)
def test_sensitive_messages_replaced(message):
    assert sanitize_error_message(message, 400) == GENERIC_MESSAGES[400]


def test_server_errors_always_generic():
    assert sanitize_error_message("Failed to save", 500) == GENERIC_MESSAGES[500]


def test_long_client_message_replaced():
    assert sanitize_error_message("x " * 80, 422) == GENERIC_MESSAGES[422]


def test_empty_message_uses_generic():
    assert sanitize_error_message("", 404) == GENERIC_MESSAGES[404]


def test_safe_detail_prefers_context_for_server_errors():
    error = RuntimeError("connection refused to 10.0.0.3:27017")

    assert get_safe_error_detail(error, 500, context="Failed to fetch journal context") == (
        "Failed to fetch journal context"
    )


def test_safe_detail_sanitizes_client_errors():
    assert get_safe_error_detail(ValueError("Unknown collection: finances"), 400) == (
        "Unknown collection: finances"
    )
