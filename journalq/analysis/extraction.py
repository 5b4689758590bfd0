"""
Extraction Pipeline + Confidence Filter

Turns the engine's loosely typed ``extracted`` block into ExtractedCandidate
values and filters them against the caller's Preferences.

Ordering: todos, then mood, then habits, then media, each in engine order.
A score that is absent, non-numeric or outside [0, 1] counts as 0, so such
items only survive a threshold of 0.
"""

from __future__ import annotations

import math
from typing import Any

from journalq.analysis.models import AnalysisResult, CandidateKind, ExtractedCandidate
from journalq.observability.logging import get_logger
from journalq.observability.telemetry import counter
from journalq.preferences.models import Preferences

logger = get_logger(__name__)


def normalize_confidence(value: Any) -> float:
    """Coerce an engine-supplied score to [0, 1], treating anything unusable as 0."""
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return 0.0
    try:
        score = float(value)
    except (ValueError, OverflowError):
        return 0.0
    if not math.isfinite(score) or score < 0.0 or score > 1.0:
        return 0.0
    return score


def _split(item: dict[str, Any]) -> tuple[dict[str, Any], float]:
    payload = {k: v for k, v in item.items() if k != "confidence"}
    return payload, normalize_confidence(item.get("confidence"))


class ExtractionPipeline:
    """Map an AnalysisResult to an ordered list of typed candidates."""

    def extract(self, result: AnalysisResult) -> list[ExtractedCandidate]:
        extracted = result.extracted
        candidates: list[ExtractedCandidate] = []

        candidates.extend(self._from_items(CandidateKind.TODO, extracted.todos))

        mood = self._mood_candidate(extracted.mood)
        if mood is not None:
            candidates.append(mood)

        candidates.extend(self._from_items(CandidateKind.HABIT, extracted.habits))
        candidates.extend(self._from_items(CandidateKind.MEDIA, extracted.media))

        counter("extraction.candidates", len(candidates))
        return candidates

    def _from_items(self, kind: CandidateKind, items: list[Any]) -> list[ExtractedCandidate]:
        out = []
        for item in items:
            if not isinstance(item, dict):
                logger.debug("Skipping non-object %s item: %r", kind.value, item)
                counter("extraction.skipped")
                continue
            payload, confidence = _split(item)
            out.append(ExtractedCandidate(kind=kind, payload=payload, confidence=confidence))
        return out

    def _mood_candidate(self, mood: str | dict[str, Any]) -> ExtractedCandidate | None:
        # Engine sends either a bare label or {value, label?, confidence?}
        if isinstance(mood, str):
            if not mood.strip():
                return None
            return ExtractedCandidate(
                kind=CandidateKind.MOOD, payload={"value": mood}, confidence=0.0
            )

        if not mood or mood.get("value") in (None, ""):
            return None
        payload, confidence = _split(mood)
        return ExtractedCandidate(kind=CandidateKind.MOOD, payload=payload, confidence=confidence)


class ConfidenceFilter:
    """Keep candidates the user wants to see, in their original order."""

    def apply(
        self, candidates: list[ExtractedCandidate], preferences: Preferences
    ) -> list[ExtractedCandidate]:
        kept = [
            c
            for c in candidates
            if c.confidence >= preferences.confidence_threshold
            and preferences.allows(c.kind.value)
        ]
        dropped = len(candidates) - len(kept)
        if dropped:
            counter("extraction.filtered", dropped)
        return kept
