"""AI suggestions for completing a task.

A single request/response call with no retry. Failures never raise: the
caller gets ``SUGGESTION_ERROR`` back so the suggestion stays optional.
"""
from __future__ import annotations

from dataclasses import dataclass
import logging
import os
from typing import Optional

from anthropic import Anthropic, APIStatusError
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-3-5-haiku-latest"
SUGGESTION_ERROR = "Error generating AI response."

SYSTEM_PROMPT = """You are a structured, helpful AI assistant specializing in task management and productivity.
Your primary goal is to provide concise, actionable guidance in a numbered list format.

Response Formatting:
- Always provide a numbered list of practical tips.
- If relevant, include useful references (books, websites, or tools).
- Keep responses short, structured, and to the point.
- If the task involves coding, include code snippets or links.

Example Response Format:
Task: [Task Name]

Steps to Complete the Task:
1. [Step 1]
2. [Step 2]
3. [Step 3]

Helpful References:
- [Reference 1 - Website/Book/Tool]
- [Reference 2 - Website/Book/Tool]"""

USER_PROMPT_TEMPLATE = """Task: {title}
{description}
Provide a short, numbered list of practical tips to complete this task.

If possible, include useful references such as books, websites, or tools.

Format the response exactly as described in the instructions above."""


class SuggestionNotConfigured(RuntimeError):
    """Raised when the Anthropic API key is missing."""


@dataclass(slots=True)
class SuggestionConfig:
    model: str = DEFAULT_MODEL
    max_output_tokens: int = 250
    temperature: float = 0.7


def build_anthropic_client() -> Anthropic:
    """Instantiate the Anthropic SDK client."""

    load_dotenv()
    api_key = os.getenv("ANTHROPIC_API_KEY")
    if not api_key:
        raise SuggestionNotConfigured(
            "ANTHROPIC_API_KEY is missing. Add it to your environment or .env file."
        )
    return Anthropic(api_key=api_key)


def resolve_config(model_override: Optional[str] = None) -> SuggestionConfig:
    model = model_override or os.getenv("ANTHROPIC_MODEL") or DEFAULT_MODEL
    return SuggestionConfig(model=model)


def build_prompt(title: str, description: Optional[str]) -> str:
    existing = f"\nExisting Description: {description}\n" if description else ""
    return USER_PROMPT_TEMPLATE.format(title=title, description=existing)


def _extract_text(response) -> str:
    parts = []
    for block in getattr(response, "content", None) or []:
        if getattr(block, "type", None) == "text":
            parts.append(block.text)
    return "".join(parts).strip()


def generate_suggestions(
    title: str,
    description: Optional[str] = None,
    *,
    client: Optional[Anthropic] = None,
    config: Optional[SuggestionConfig] = None,
) -> str:
    """Return numbered tips for completing a task, or ``SUGGESTION_ERROR``."""

    try:
        client = client or build_anthropic_client()
        config = config or resolve_config()
        response = client.messages.create(
            model=config.model,
            max_tokens=config.max_output_tokens,
            temperature=config.temperature,
            system=SYSTEM_PROMPT,
            messages=[
                {
                    "role": "user",
                    "content": [{"type": "text", "text": build_prompt(title, description)}],
                }
            ],
        )
    except SuggestionNotConfigured as exc:
        logger.error("[Suggestions] %s", exc)
        return SUGGESTION_ERROR
    except APIStatusError as exc:
        logger.error("[Suggestions] Anthropic API error %s: %s", exc.status_code, exc)
        return SUGGESTION_ERROR
    except Exception as exc:
        logger.error("[Suggestions] Anthropic request failed: %s", exc)
        return SUGGESTION_ERROR

    text = _extract_text(response)
    if not text:
        logger.error("[Suggestions] No AI response received for %r", title)
        return SUGGESTION_ERROR
    return text
