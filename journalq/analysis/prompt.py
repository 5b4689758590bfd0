"""
Prompt Generator - asks the analysis engine for the user's next journal prompt.

The engine sees a slimmed projection of the context snapshot plus the user's
prompt style. It is an enhancement, not a dependency: any failure yields the
fixed fallback prompt and the caller still gets a 200.
"""

from __future__ import annotations

from typing import Any

import httpx

from journalq.api.models import PromptResponse
from journalq.config import ANALYSIS_ENGINE_URL, FALLBACK_PROMPT, UPSTREAM_TIMEOUT_SECONDS
from journalq.contracts.identity import Credential
from journalq.journal.models import ContextSnapshot
from journalq.observability.logging import get_logger
from journalq.observability.telemetry import counter, log_event, time_block
from journalq.preferences.models import Preferences

logger = get_logger(__name__)

PROMPT_PATH = "/ai/journal-prompt"


def project_snapshot(snapshot: ContextSnapshot, preferences: Preferences) -> dict[str, Any]:
    """Reduce a snapshot to the fields the prompt model uses."""
    return {
        "todos": [
            {"title": t.title, "dueDate": t.due_date, "priority": t.priority}
            for t in snapshot.upcoming_todos
        ],
        "moods": [
            {"mood": m.mood, "date": m.date, "energy": m.energy} for m in snapshot.recent_moods
        ],
        "habits": [
            {"name": h.name, "streak": h.streak, "frequency": h.frequency}
            for h in snapshot.active_habits
        ],
        "media": [
            {"title": m.title, "type": m.type, "status": m.status} for m in snapshot.recent_media
        ],
        # Journal entries pass through as the store returned them
        "journals": [
            j.model_dump(by_alias=True, mode="json", exclude_unset=True)
            for j in snapshot.recent_journals
        ],
        "promptStyle": preferences.prompt_style.value,
    }


class PromptGenerator:
    """Client for the analysis engine's prompt endpoint."""

    def __init__(
        self,
        base_url: str = ANALYSIS_ENGINE_URL,
        timeout: float = UPSTREAM_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def generate(
        self, credential: Credential, snapshot: ContextSnapshot, preferences: Preferences
    ) -> PromptResponse:
        """
        Generate a prompt for the user, or the fallback prompt.

        Never raises for upstream problems.

        Side Effects:
            - POSTs the projected context to the analysis engine
            - Increments prompt.generated / prompt.fallback counters
        """
        body = project_snapshot(snapshot, preferences)

        try:
            with time_block("prompt.engine.latency"):
                async with httpx.AsyncClient(
                    timeout=self.timeout, transport=self._transport
                ) as client:
                    response = await client.post(
                        f"{self.base_url}{PROMPT_PATH}",
                        json=body,
                        headers=credential.authorization_header,
                    )
        except httpx.HTTPError as e:
            return self.fallback(credential, reason=f"transport: {type(e).__name__}")

        if not response.is_success:
            return self.fallback(credential, reason=f"status {response.status_code}")

        try:
            data = response.json()
        except ValueError:
            return self.fallback(credential, reason="non-JSON body")

        prompt = data.get("prompt") if isinstance(data, dict) else None
        if not isinstance(prompt, str) or not prompt.strip():
            return self.fallback(credential, reason="empty prompt")

        counter("prompt.generated")
        log_event(
            "prompt.generated",
            user_id=credential.user_id,
            style=preferences.prompt_style.value,
        )
        return PromptResponse(prompt=prompt.strip())

    def fallback(self, credential: Credential, reason: str) -> PromptResponse:
        """The fixed prompt returned whenever the engine cannot be used."""
        logger.warning("Prompt generation failed for %s (%s), using fallback", credential, reason)
        counter("prompt.fallback")
        return PromptResponse(prompt=FALLBACK_PROMPT)
