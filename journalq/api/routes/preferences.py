"""
Preference endpoints.

GET and PUT operate on the whole record; PUT replaces it (last writer wins).
"""

from __future__ import annotations

import sqlite3

from fastapi import APIRouter, Depends, HTTPException

from journalq.api.dependencies import get_preference_store
from journalq.api.middleware.user_auth import get_current_user
from journalq.contracts.identity import Credential
from journalq.observability.logging import get_logger
from journalq.preferences.models import AcceptanceStats, Preferences
from journalq.preferences.store import PreferenceStore
from journalq.utils.error_sanitizer import get_safe_error_detail

router = APIRouter(prefix="/journal/preferences", tags=["preferences"])
logger = get_logger(__name__)


@router.get("", response_model=Preferences)
async def get_preferences(
    credential: Credential = Depends(get_current_user),
    store: PreferenceStore = Depends(get_preference_store),
) -> Preferences:
    return store.get(credential.user_id)


@router.put("", response_model=Preferences)
async def replace_preferences(
    preferences: Preferences,
    credential: Credential = Depends(get_current_user),
    store: PreferenceStore = Depends(get_preference_store),
) -> Preferences:
    """Replace the caller's preferences. Invalid records are rejected with 422."""
    try:
        return store.replace(credential.user_id, preferences)
    except sqlite3.Error as e:
        detail = get_safe_error_detail(e, 500, context="Failed to update preferences")
        raise HTTPException(status_code=500, detail=detail) from None


@router.post("/reset", response_model=Preferences)
async def reset_preferences(
    credential: Credential = Depends(get_current_user),
    store: PreferenceStore = Depends(get_preference_store),
) -> Preferences:
    """Restore defaults and forget accept/reject history."""
    try:
        return store.reset(credential.user_id)
    except sqlite3.Error as e:
        detail = get_safe_error_detail(e, 500, context="Failed to reset preferences")
        raise HTTPException(status_code=500, detail=detail) from None


@router.get("/stats", response_model=AcceptanceStats)
async def get_acceptance_stats(
    credential: Credential = Depends(get_current_user),
    store: PreferenceStore = Depends(get_preference_store),
) -> AcceptanceStats:
    try:
        return store.acceptance_stats(credential.user_id)
    except sqlite3.Error as e:
        detail = get_safe_error_detail(e, 500, context="Failed to load acceptance stats")
        raise HTTPException(status_code=500, detail=detail) from None
