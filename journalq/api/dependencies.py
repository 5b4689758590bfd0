"""Process-wide collaborators for the API routes.

Each getter returns a shared instance. Routes receive them through
``Depends`` so tests can swap any of them with ``app.dependency_overrides``.
"""

from __future__ import annotations

from functools import lru_cache

from fastapi import Depends

from journalq.analysis.extraction import ConfidenceFilter, ExtractionPipeline
from journalq.analysis.gateway import AnalysisGateway
from journalq.analysis.prompt import PromptGenerator
from journalq.api.middleware.rate_limit import RateLimiter
from journalq.journal.actions import ActionPersister
from journalq.journal.context import ContextAggregator
from journalq.journal.store_client import DomainStoreClient
from journalq.preferences.store import PreferenceStore


@lru_cache(maxsize=1)
def get_rate_limiter() -> RateLimiter:
    return RateLimiter()


@lru_cache(maxsize=1)
def get_analysis_gateway() -> AnalysisGateway:
    return AnalysisGateway()


@lru_cache(maxsize=1)
def get_prompt_generator() -> PromptGenerator:
    return PromptGenerator()


@lru_cache(maxsize=1)
def get_domain_store() -> DomainStoreClient:
    return DomainStoreClient()


@lru_cache(maxsize=1)
def get_preference_store() -> PreferenceStore:
    return PreferenceStore()


@lru_cache(maxsize=1)
def get_extraction_pipeline() -> ExtractionPipeline:
    return ExtractionPipeline()


@lru_cache(maxsize=1)
def get_confidence_filter() -> ConfidenceFilter:
    return ConfidenceFilter()


def get_context_aggregator(
    store: DomainStoreClient = Depends(get_domain_store),
) -> ContextAggregator:
    return ContextAggregator(store)


def get_action_persister(
    store: DomainStoreClient = Depends(get_domain_store),
    preferences: PreferenceStore = Depends(get_preference_store),
) -> ActionPersister:
    return ActionPersister(store, preferences)
