"""LLM helpers - AI task suggestions."""
from __future__ import annotations

from .suggestions import (
    SUGGESTION_ERROR,
    SuggestionConfig,
    build_anthropic_client,
    generate_suggestions,
)

__all__ = [
    "SUGGESTION_ERROR",
    "SuggestionConfig",
    "build_anthropic_client",
    "generate_suggestions",
]
