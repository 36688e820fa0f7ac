from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Protocol, TypeVar

from research_copilot.errors import ProviderTimeoutError, UpstreamError
from research_copilot.models.schemas import ResearchSource
from research_copilot.services import logger as log_service

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class SearchOutcome:
    answer: str
    sources: list[ResearchSource] = field(default_factory=list)
    duration_ms: int = 0


class SearchProvider(Protocol):
    name: str

    async def search(
        self,
        query: str,
        *,
        fast: bool = False,
        context: str | None = None,
    ) -> SearchOutcome: ...


@dataclass(frozen=True, slots=True)
class ProviderAttempt:
    provider: SearchProvider
    fast: bool = False


@dataclass
class SearchResponse:
    outcome: SearchOutcome
    provider: str
    fallback_from: str | None = None
    fallback_reason: str | None = None


async def with_deadline(call: Awaitable[T], timeout: float, provider: str) -> T:
    """Await `call`, cancelling it and raising ProviderTimeoutError past `timeout` seconds."""
    try:
        return await asyncio.wait_for(call, timeout=timeout)
    except asyncio.TimeoutError as e:
        raise ProviderTimeoutError(
            provider=provider,
            detail=f"{provider} exceeded {timeout:.0f}s deadline",
        ) from e


async def search_with_fallback(
    attempts: list[ProviderAttempt],
    query: str,
    *,
    context: str | None = None,
    request_id: str = "",
) -> SearchResponse:
    """Try each provider in order; the first success wins.

    Any failure (timeout, non-2xx, transport) moves on to the next attempt.
    When every attempt fails the last failure surfaces as an UpstreamError.
    """
    if not attempts:
        raise UpstreamError(detail="no search providers configured")

    failures: list[tuple[str, Exception]] = []
    for attempt in attempts:
        name = attempt.provider.name
        log_service.log_research_step(
            request_id, "searching", "started", {"provider": name, "fast": attempt.fast}
        )
        try:
            outcome = await attempt.provider.search(query, fast=attempt.fast, context=context)
        except Exception as e:
            failures.append((name, e))
            log_service.log_event(
                event_type="provider_failed",
                message=f"{name} failed",
                level=logging.WARNING,
                request_id=request_id,
                provider=name,
                error_type=type(e).__name__,
                error=getattr(e, "detail", None) or str(e),
            )
            continue

        log_service.log_research_step(
            request_id,
            "searching",
            "completed",
            {
                "provider": name,
                "sources": len(outcome.sources),
                "duration_ms": outcome.duration_ms,
                "fallback_from": failures[0][0] if failures else None,
            },
        )
        if not failures:
            return SearchResponse(outcome=outcome, provider=name)
        first_name, first_error = failures[0]
        return SearchResponse(
            outcome=outcome,
            provider=name,
            fallback_from=first_name,
            fallback_reason=getattr(first_error, "detail", None) or str(first_error),
        )

    last_name, last_error = failures[-1]
    if isinstance(last_error, UpstreamError):
        raise last_error
    raise UpstreamError(provider=last_name, detail=str(last_error)) from last_error
