"""Shared dependencies and helper functions for API routers.

Usage in routers:
    from api.dependencies import get_session, raise_for_outcome
"""
from __future__ import annotations

from functools import lru_cache

from fastapi import Depends, HTTPException

from taskly.aggregator import MutationOutcome, MutationResult
from taskly.auth import get_current_identity
from taskly.config import Settings, load_settings
from taskly.documents import get_document_store
from taskly.errors import NotFound, RemoteCallFailure, TasklyError, Unauthorized, ValidationError
from taskly.models import UserIdentity
from taskly.session import Services, Session, build_services


# =============================================================================
# Cached Functions
# =============================================================================

@lru_cache
def get_settings() -> Settings:
    """Get application settings (cached)."""
    return load_settings()


@lru_cache
def get_services() -> Services:
    """Build the service graph over the configured document store (cached)."""
    settings = get_settings()
    return build_services(
        get_document_store(settings),
        dedupe_invitations=settings.dedupe_invitations,
    )


def get_session(
    identity: UserIdentity = Depends(get_current_identity),
    services: Services = Depends(get_services),
) -> Session:
    """Per-request session for the caller with their task list loaded."""
    session = Session(services)
    session.attach(identity)
    session.load_owned_and_shared()
    return session


# =============================================================================
# Error Mapping
# =============================================================================

OUTCOME_STATUS = {
    MutationOutcome.NOT_FOUND: 404,
    MutationOutcome.FORBIDDEN: 403,
    MutationOutcome.INVALID: 400,
    MutationOutcome.FAILED: 502,
}


def raise_for_outcome(result: MutationResult) -> None:
    """Turn a non-applied mutation into an HTTP error carrying its message."""
    if result.applied:
        return
    raise HTTPException(
        status_code=OUTCOME_STATUS[result.outcome],
        detail=result.message or result.outcome.value,
    )


def status_for_error(exc: TasklyError) -> int:
    if isinstance(exc, NotFound):
        return 404
    if isinstance(exc, Unauthorized):
        return 403
    if isinstance(exc, ValidationError):
        return 400
    if isinstance(exc, RemoteCallFailure):
        return 502
    return 500
