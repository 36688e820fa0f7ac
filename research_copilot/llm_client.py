"""Groq client factory (OpenAI-compatible chat completions)."""
from __future__ import annotations

from typing import Any

from research_copilot.config import settings
from research_copilot.services.http import sanitize_ssl_keylogfile


def get_client() -> Any:
    """Get an AsyncOpenAI client pointed at Groq's OpenAI-compatible API."""
    from openai import AsyncOpenAI

    sanitize_ssl_keylogfile()
    base_url = settings.groq_base_url.strip() or "https://api.groq.com/openai/v1"
    return AsyncOpenAI(
        api_key=settings.groq_api_key,
        base_url=base_url,
        max_retries=max(int(settings.llm_max_retries), 0),
    )


def is_configured() -> bool:
    return bool(settings.groq_api_key.strip())


_client: Any | None = None


def client() -> Any:
    """Get or create the shared LLM client."""
    global _client
    if _client is None:
        _client = get_client()
    return _client


def field(obj: Any, name: str, default: Any = None) -> Any:
    """Read `name` from an SDK object or a plain dict.

    Provider-specific extras (Groq's `executed_tools`) come back as raw dicts
    nested inside typed SDK models, so callers see both shapes.
    """
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


def usage_tokens(response: Any) -> tuple[int, int]:
    usage = field(response, "usage")
    return (
        int(field(usage, "prompt_tokens", 0) or 0),
        int(field(usage, "completion_tokens", 0) or 0),
    )
