"""
Journal endpoints: context snapshot, confirmed actions and entry passthrough.

Unlike the AI endpoints, these surface upstream failures as 500 so the
client never believes a write succeeded when it did not.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, status

from journalq.analysis.gateway import AnalysisGateway
from journalq.api.dependencies import (
    get_action_persister,
    get_analysis_gateway,
    get_context_aggregator,
    get_domain_store,
)
from journalq.api.middleware.user_auth import get_current_user
from journalq.config import API_LIST_LIMIT_DEFAULT, API_LIST_LIMIT_MAX
from journalq.contracts.identity import Credential
from journalq.errors import UpstreamUnavailable, ValidationError
from journalq.journal.actions import ActionPersister
from journalq.journal.context import ContextAggregator
from journalq.journal.models import ActionsRequest, ContextSnapshot, JournalEntryCreate, PersistResult
from journalq.journal.store_client import DomainStoreClient
from journalq.observability.logging import get_logger
from journalq.utils.error_sanitizer import get_safe_error_detail

router = APIRouter(prefix="/journal", tags=["journal"])
logger = get_logger(__name__)

TITLE_LENGTH = 50


def entry_title(content: str) -> str:
    return content[:TITLE_LENGTH] + ("..." if len(content) > TITLE_LENGTH else "")


@router.get("/context", response_model=ContextSnapshot)
async def get_journal_context(
    credential: Credential = Depends(get_current_user),
    aggregator: ContextAggregator = Depends(get_context_aggregator),
) -> ContextSnapshot:
    """Recent todos, moods, habits, media and journal entries for the caller."""
    try:
        return await aggregator.aggregate(credential)
    except UpstreamUnavailable as e:
        detail = get_safe_error_detail(e, 500, context="Failed to fetch journal context")
        raise HTTPException(status_code=500, detail=detail) from None


@router.post("/actions", response_model=PersistResult)
async def save_journal_actions(
    body: ActionsRequest,
    credential: Credential = Depends(get_current_user),
    persister: ActionPersister = Depends(get_action_persister),
) -> PersistResult:
    """
    Save the candidates the user confirmed.

    Unconfirmed candidates are not written but still count as rejections for
    threshold learning.
    """
    try:
        return await persister.persist(credential, body.candidates)
    except UpstreamUnavailable as e:
        detail = get_safe_error_detail(e, 500, context="Failed to save extracted items")
        raise HTTPException(status_code=500, detail=detail) from None


@router.get("")
async def list_journal_entries(
    credential: Credential = Depends(get_current_user),
    store: DomainStoreClient = Depends(get_domain_store),
    limit: int = Query(API_LIST_LIMIT_DEFAULT, ge=1, le=API_LIST_LIMIT_MAX),
) -> list[dict[str, Any]]:
    """The caller's journal entries, newest first as the store orders them."""
    try:
        return await store.list_journal_entries(credential, {"limit": limit})
    except UpstreamUnavailable as e:
        detail = get_safe_error_detail(e, 500, context="Error fetching journal entries")
        raise HTTPException(status_code=500, detail=detail) from None


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_journal_entry(
    body: JournalEntryCreate,
    credential: Credential = Depends(get_current_user),
    store: DomainStoreClient = Depends(get_domain_store),
    gateway: AnalysisGateway = Depends(get_analysis_gateway),
) -> dict[str, Any]:
    """
    Analyze and store a new entry.

    The analysis is attached to the stored record; an unavailable engine
    stores the degraded analysis rather than failing the write.

    Side Effects:
        - One analysis engine call, one journal store write
    """
    content = (body.content or "").strip()
    if not content:
        raise ValidationError("Content is required")

    analysis = await gateway.analyze(
        credential, content, mood=body.mood, energy=body.energy, activities=body.activities
    )

    record = {
        "content": content,
        "mood": body.mood,
        "energy": body.energy,
        "activities": body.activities,
        "date": datetime.now(UTC).isoformat(),
        "title": entry_title(content),
        "category": "Personal",
        "analysis": analysis.model_dump(mode="json"),
    }

    try:
        return await store.create_record(credential, "journal", record)
    except UpstreamUnavailable as e:
        detail = get_safe_error_detail(e, 500, context="Error creating journal entry")
        raise HTTPException(status_code=500, detail=detail) from None
