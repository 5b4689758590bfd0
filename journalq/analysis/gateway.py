"""
Analysis Gateway - forwards journal entries to the external analysis engine.

Every failure mode (timeout, transport error, non-2xx status, non-JSON body,
body that does not match AnalysisResult) folds into the canonical degraded
result. Only a missing entry text raises, and it raises before any network
call. No automatic retries: a failed call degrades exactly once.
"""

from __future__ import annotations

from typing import Any

import httpx
from pydantic import ValidationError as SchemaError

from journalq.analysis.models import AnalysisResult, degraded_analysis
from journalq.config import ANALYSIS_ENGINE_URL, UPSTREAM_TIMEOUT_SECONDS
from journalq.contracts.identity import Credential
from journalq.errors import ValidationError
from journalq.observability.logging import get_logger
from journalq.observability.telemetry import counter, log_event, time_block

logger = get_logger(__name__)

ANALYZE_PATH = "/ai/analyze-journal"


class AnalysisGateway:
    """Client for the analysis engine's entry-analysis endpoint."""

    def __init__(
        self,
        base_url: str = ANALYSIS_ENGINE_URL,
        timeout: float = UPSTREAM_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def analyze(
        self,
        credential: Credential,
        content: str | None,
        mood: str | None = None,
        energy: str | None = None,
        activities: list[str] | None = None,
    ) -> AnalysisResult:
        """
        Analyze one entry.

        Raises:
            ValidationError: If content is missing or blank (no network call made)

        Side Effects:
            - POSTs to the analysis engine with the caller's bearer token
            - Increments analysis.success / analysis.degraded counters
        """
        if not content or not content.strip():
            raise ValidationError("Content is required")

        payload: dict[str, Any] = {
            "content": content,
            "mood": mood,
            "energy": energy,
            "activities": activities or [],
        }

        try:
            with time_block("analysis.engine.latency"):
                async with httpx.AsyncClient(
                    timeout=self.timeout, transport=self._transport
                ) as client:
                    response = await client.post(
                        f"{self.base_url}{ANALYZE_PATH}",
                        json=payload,
                        headers=credential.authorization_header,
                    )
        except httpx.TimeoutException:
            return self._degrade(credential, reason="timeout")
        except httpx.HTTPError as e:
            return self._degrade(credential, reason=f"transport: {type(e).__name__}")

        if not response.is_success:
            return self._degrade(credential, reason=f"status {response.status_code}")

        try:
            body = response.json()
        except ValueError:
            return self._degrade(credential, reason="non-JSON body")

        # The engine answers either {"analysis": {...}} or the bare result
        if isinstance(body, dict) and isinstance(body.get("analysis"), dict):
            body = body["analysis"]

        try:
            result = AnalysisResult.model_validate(body)
        except SchemaError as e:
            return self._degrade(credential, reason=f"schema: {e.error_count()} errors")

        counter("analysis.success")
        log_event(
            "analysis.success",
            user_id=credential.user_id,
            todos=len(result.extracted.todos),
            habits=len(result.extracted.habits),
            media=len(result.extracted.media),
        )
        return result

    def _degrade(self, credential: Credential, reason: str) -> AnalysisResult:
        logger.warning("Analysis engine unavailable for %s (%s), degrading", credential, reason)
        counter("analysis.degraded")
        log_event("analysis.degraded", user_id=credential.user_id, reason=reason)
        return degraded_analysis()
