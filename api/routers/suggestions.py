"""Suggestions Router - AI tips for completing a task."""
from __future__ import annotations

from fastapi import APIRouter, Depends

from api.dependencies import get_settings
from api.models import SuggestionRequest
from taskly.auth import get_current_identity
from taskly.llm import suggestions as suggestion_service
from taskly.models import UserIdentity

router = APIRouter()


@router.post("")
def generate_suggestions(
    request: SuggestionRequest,
    identity: UserIdentity = Depends(get_current_identity),
) -> dict:
    """Always 200: failures come back as the fixed error text."""
    config = suggestion_service.resolve_config(get_settings().anthropic_model)
    text = suggestion_service.generate_suggestions(
        request.title,
        request.description,
        config=config,
    )
    return {
        "suggestions": text,
        "ok": text != suggestion_service.SUGGESTION_ERROR,
    }
