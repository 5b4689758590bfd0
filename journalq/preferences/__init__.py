"""Per-user suggestion preferences and acceptance learning."""

from journalq.preferences.models import (
    KNOWN_SUGGESTION_TYPES,
    AcceptancePattern,
    AcceptanceStats,
    Preferences,
    PromptStyle,
)
from journalq.preferences.store import PreferenceStore

__all__ = [
    "KNOWN_SUGGESTION_TYPES",
    "AcceptancePattern",
    "AcceptanceStats",
    "PreferenceStore",
    "Preferences",
    "PromptStyle",
]
