"""
Preferences record and acceptance statistics.

Preferences drive the confidence filter (threshold, suggestion types) and the
prompt generator (prompt style). The record is validated on ingress so the
filter never sees an out-of-range threshold or an unknown kind.
"""

from __future__ import annotations

from enum import Enum

from pydantic import Field, field_validator

from journalq.config import (
    DEFAULT_CONFIDENCE_THRESHOLD,
    DEFAULT_PROMPT_STYLE,
    DEFAULT_SUGGESTION_TYPES,
)
from journalq.contracts.base import CamelModel

# Candidate kinds plus "reflection", which only steers prompts
KNOWN_SUGGESTION_TYPES: frozenset[str] = frozenset({"mood", "todo", "media", "habit", "reflection"})


class PromptStyle(str, Enum):
    REFLECTIVE = "reflective"
    ACTIONABLE = "actionable"
    CREATIVE = "creative"
    ANALYTICAL = "analytical"


class Preferences(CamelModel):
    """User-tunable suggestion policy.

    suggestion_types keeps the caller's order (duplicates dropped) so a
    replace followed by a read returns the identical record.
    """

    confidence_threshold: float = Field(default=DEFAULT_CONFIDENCE_THRESHOLD, ge=0.0, le=1.0)
    suggestion_types: list[str] = Field(default_factory=lambda: list(DEFAULT_SUGGESTION_TYPES))
    prompt_style: PromptStyle = PromptStyle(DEFAULT_PROMPT_STYLE)

    @field_validator("suggestion_types")
    @classmethod
    def validate_suggestion_types(cls, v: list[str]) -> list[str]:
        unknown = sorted(set(v) - KNOWN_SUGGESTION_TYPES)
        if unknown:
            raise ValueError(f"Unknown suggestion types: {', '.join(unknown)}")
        return list(dict.fromkeys(v))

    def allows(self, kind: str) -> bool:
        return kind in self.suggestion_types


class AcceptancePattern(CamelModel):
    """Accept/reject history for one candidate kind."""

    accepted: int = 0
    rejected: int = 0
    average_confidence: float = 0.7

    @property
    def total(self) -> int:
        return self.accepted + self.rejected

    @property
    def acceptance_rate(self) -> float:
        return self.accepted / self.total if self.total else 0.0


class KindStats(CamelModel):
    accepted: int
    rejected: int
    total: int
    acceptance_rate: float
    average_confidence: float


class AcceptanceStats(CamelModel):
    stats: dict[str, KindStats]
    current_threshold: float
    auto_adjust: bool
