"""Pydantic request/response models for the JournalQ API.

This module contains shared Pydantic models and validation helpers
used across API endpoints.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from journalq.analysis.models import AnalysisResult, ExtractedCandidate
from journalq.contracts.base import CamelModel

# =============================================================================
# VALIDATION HELPERS
# =============================================================================

# Limits for client-supplied candidate payloads
MAX_DICT_SIZE = 50
MAX_STRING_LENGTH = 5_000
MAX_DICT_DEPTH = 4


def validate_dict_structure(
    data: dict[str, Any],
    max_keys: int = MAX_DICT_SIZE,
    max_str_len: int = MAX_STRING_LENGTH,
    max_depth: int = MAX_DICT_DEPTH,
    current_depth: int = 0,
) -> None:
    """
    Reject oversized or deeply nested payloads.

    Candidate payloads are echoed back by the client and forwarded to the
    domain stores, so they are bounded in keys, string length and nesting
    (dicts and lists combined).

    Raises:
        ValueError: If any limit is exceeded
    """
    if current_depth > max_depth:
        raise ValueError(f"Payload nesting exceeds maximum depth of {max_depth}")

    if len(data) > max_keys:
        raise ValueError(f"Payload has too many keys: {len(data)} > {max_keys}")

    for key, value in data.items():
        if isinstance(key, str) and len(key) > 100:
            raise ValueError(f"Payload key too long: {len(key)} > 100")
        _validate_value(value, max_keys, max_str_len, max_depth, current_depth)


def _validate_value(
    value: Any, max_keys: int, max_str_len: int, max_depth: int, current_depth: int
) -> None:
    if isinstance(value, str):
        if len(value) > max_str_len:
            raise ValueError(f"String value too long: {len(value)} > {max_str_len}")
    elif isinstance(value, dict):
        validate_dict_structure(value, max_keys, max_str_len, max_depth, current_depth + 1)
    elif isinstance(value, list):
        if current_depth + 1 > max_depth:
            raise ValueError(f"Payload nesting exceeds maximum depth of {max_depth}")
        if len(value) > max_keys:
            raise ValueError(f"List too long: {len(value)} > {max_keys}")
        for item in value:
            _validate_value(item, max_keys, max_str_len, max_depth, current_depth + 1)


# =============================================================================
# REQUEST / RESPONSE MODELS
# =============================================================================


class AnalyzeRequest(CamelModel):
    """Entry submitted for analysis. Content is checked by the gateway."""

    content: str | None = None
    mood: str | None = None
    energy: str | None = None
    activities: list[str] = Field(default_factory=list, max_length=50)


class AnalyzeResponse(BaseModel):
    analysis: AnalysisResult
    candidates: list[ExtractedCandidate]


class PromptResponse(BaseModel):
    prompt: str

