"""
AI endpoints: entry analysis and next-prompt generation.

Both endpoints treat the analysis engine as optional: an engine failure still
answers 200 with the degraded analysis or the fallback prompt.
"""

from __future__ import annotations

import json

from fastapi import APIRouter, Depends, Request

from journalq.analysis.extraction import ConfidenceFilter, ExtractionPipeline
from journalq.analysis.gateway import AnalysisGateway
from journalq.analysis.prompt import PromptGenerator
from journalq.api.dependencies import (
    get_analysis_gateway,
    get_confidence_filter,
    get_context_aggregator,
    get_extraction_pipeline,
    get_preference_store,
    get_prompt_generator,
)
from journalq.api.middleware.user_auth import get_current_user
from journalq.api.models import AnalyzeRequest, AnalyzeResponse, PromptResponse
from journalq.contracts.identity import Credential
from journalq.errors import UpstreamUnavailable
from journalq.journal.context import ContextAggregator
from journalq.journal.models import ContextSnapshot
from journalq.observability.logging import get_logger
from journalq.preferences.store import PreferenceStore

router = APIRouter(prefix="/ai", tags=["ai"])
logger = get_logger(__name__)


def parse_snapshot(raw: bytes) -> ContextSnapshot | None:
    """
    Parse a client-supplied context body. A JSON null means "no snapshot".

    Raises:
        ValueError: If the body is not JSON or does not fit ContextSnapshot
    """
    data = json.loads(raw)
    if data is None:
        return None
    return ContextSnapshot.model_validate(data)


@router.post("/analyze-journal", response_model=AnalyzeResponse)
async def analyze_journal(
    body: AnalyzeRequest,
    credential: Credential = Depends(get_current_user),
    gateway: AnalysisGateway = Depends(get_analysis_gateway),
    pipeline: ExtractionPipeline = Depends(get_extraction_pipeline),
    confidence_filter: ConfidenceFilter = Depends(get_confidence_filter),
    preferences: PreferenceStore = Depends(get_preference_store),
) -> AnalyzeResponse:
    """
    Analyze an entry and return the candidates the user wants to see.

    Missing content is a 400 raised by the gateway before any engine call.
    """
    analysis = await gateway.analyze(
        credential,
        body.content,
        mood=body.mood,
        energy=body.energy,
        activities=body.activities,
    )
    candidates = confidence_filter.apply(
        pipeline.extract(analysis), preferences.get(credential.user_id)
    )
    return AnalyzeResponse(analysis=analysis, candidates=candidates)


@router.post("/journal-prompt", response_model=PromptResponse)
async def journal_prompt(
    request: Request,
    credential: Credential = Depends(get_current_user),
    generator: PromptGenerator = Depends(get_prompt_generator),
    aggregator: ContextAggregator = Depends(get_context_aggregator),
    preferences: PreferenceStore = Depends(get_preference_store),
) -> PromptResponse:
    """
    Generate the next journal prompt.

    Uses the snapshot in the request body when the client already holds one,
    otherwise aggregates a fresh one. An unreachable store still yields a
    prompt, built from an empty snapshot. A body that is not a valid snapshot
    gets the fallback prompt, never a 422.
    """
    raw = await request.body()
    snapshot: ContextSnapshot | None = None
    if raw.strip():
        try:
            snapshot = parse_snapshot(raw)
        except ValueError as e:
            logger.warning("Unusable context body from %s: %s", credential, type(e).__name__)
            return generator.fallback(credential, reason="invalid context body")

    if snapshot is None:
        try:
            snapshot = await aggregator.aggregate(credential)
        except UpstreamUnavailable as e:
            logger.warning("Context unavailable for prompt (%s), using empty snapshot", e.message)
            snapshot = ContextSnapshot()

    return await generator.generate(credential, snapshot, preferences.get(credential.user_id))
