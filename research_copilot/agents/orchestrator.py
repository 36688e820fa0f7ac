from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from uuid import uuid4

from research_copilot.agents.synthesis import SynthesisEngine
from research_copilot.config import settings
from research_copilot.errors import (
    ConfigurationError,
    RateLimitError,
    RequestTimeoutError,
    ResearchError,
    ValidationError,
)
from research_copilot.models.schemas import (
    ResearchMetadata,
    ResearchOptions,
    ResearchRequest,
    ResearchResponse,
    ResearchSynthesis,
)
from research_copilot.services import logger as log_service
from research_copilot.services.identity import Identity
from research_copilot.services.rate_limiter import RateLimiter, tenant_key
from research_copilot.services.sanitizer import sanitize_query
from research_copilot.tools.agent_search import AgentSearchProvider
from research_copilot.tools.fast_search import FastSearchProvider
from research_copilot.tools.search_provider import ProviderAttempt, search_with_fallback
from research_copilot.tools.source_scorer import rank_sources

UNSYNTHESIZED_SUMMARY_CHARS = 500


@dataclass(frozen=True, slots=True)
class ResearchRun:
    response: ResearchResponse
    rate_limit_remaining: int


class ResearchOrchestrator:
    """Runs one research request end to end.

    Flow:
      1. Validate and sanitize the query
      2. Count the request against the tenant's rate-limit window
      3. Search: agent first for `deep` (when configured), fast provider otherwise,
         falling back to the fast provider once on any agent failure
      4. Re-rank and cap the scored sources
      5. Synthesize insights (unless the caller opted out) within whatever is
         left of the request deadline; running out degrades the synthesis
      6. Assemble the response with timing metadata

    The rate limiter is injected so a process shares one instance across
    requests; nothing else here holds cross-request state.
    """

    def __init__(
        self,
        *,
        rate_limiter: RateLimiter,
        fast_provider: FastSearchProvider,
        agent_provider: AgentSearchProvider | None = None,
        synthesis_engine: SynthesisEngine | None = None,
        max_sources: int | None = None,
        max_query_length: int | None = None,
        request_timeout: float | None = None,
    ):
        self.rate_limiter = rate_limiter
        self.fast_provider = fast_provider
        self.agent_provider = agent_provider
        self.synthesis_engine = synthesis_engine or SynthesisEngine()
        self.max_sources = max(int(max_sources or settings.max_sources), 1)
        self.max_query_length = max(int(max_query_length or settings.max_query_length), 1)
        self.request_timeout = (
            request_timeout if request_timeout is not None else settings.request_timeout_seconds
        )

    def plan_attempts(self, mode: str) -> list[ProviderAttempt]:
        """Ordered provider chain for a mode; later entries are fallbacks."""
        if mode == "deep" and self.agent_provider is not None:
            return [
                ProviderAttempt(self.agent_provider),
                ProviderAttempt(self.fast_provider),
            ]
        return [ProviderAttempt(self.fast_provider, fast=mode == "quick")]

    async def run(
        self,
        request: ResearchRequest,
        identity: Identity,
        *,
        request_id: str | None = None,
    ) -> ResearchRun:
        request_id = request_id or uuid4().hex[:12]
        started = time.monotonic()
        try:
            return await self._run(request, identity, request_id, started)
        except RequestTimeoutError:
            log_service.log_research_step(
                request_id,
                "responding",
                "timeout",
                {"elapsed_ms": int((time.monotonic() - started) * 1000)},
            )
            raise
        except ResearchError as e:
            log_service.log_research_step(
                request_id,
                "rejected",
                type(e).__name__,
                {"status_code": e.status_code, "detail": e.detail},
            )
            raise
        except Exception as e:
            log_service.logger.exception("Unhandled error in research request %s", request_id)
            raise ResearchError(detail=str(e)) from e

    async def _run(
        self,
        request: ResearchRequest,
        identity: Identity,
        request_id: str,
        started: float,
    ) -> ResearchRun:
        # Validating
        query = (request.query or "").strip()
        if not query:
            raise ValidationError("Query is required")
        sanitized = sanitize_query(query, self.max_query_length)
        if sanitized.blocked:
            log_service.log_event(
                event_type="query_blocked",
                message="Query matched a blocked pattern",
                level=logging.WARNING,
                request_id=request_id,
                user_id=identity.user_id,
            )
            raise ValidationError("Query contains blocked content")

        # Rate limiting
        decision = self.rate_limiter.check(tenant_key(identity.user_id, identity.workspace_id))
        if not decision.allowed:
            raise RateLimitError(decision.reset_in_ms)

        if not self.fast_provider.configured:
            raise ConfigurationError(detail="GROQ_API_KEY is not configured")

        mode = request.mode
        options = request.options or ResearchOptions()
        context = request.doc_context.describe() if request.doc_context else None
        log_service.log_research_step(
            request_id,
            "validating",
            "completed",
            {
                "user_id": identity.user_id,
                "mode": mode,
                "query": sanitized.clean[:50],
                "remaining": decision.remaining,
            },
        )

        # Searching (with fallback); only this stage can exhaust the request deadline
        deadline = started + self.request_timeout
        try:
            search = await asyncio.wait_for(
                search_with_fallback(
                    self.plan_attempts(mode),
                    sanitized.clean,
                    context=context,
                    request_id=request_id,
                ),
                timeout=max(deadline - time.monotonic(), 0),
            )
        except asyncio.TimeoutError as e:
            raise RequestTimeoutError() from e
        raw_answer = search.outcome.answer

        # Scoring already happened inside the providers; re-rank and cap.
        limit = min(options.max_sources or self.max_sources, self.max_sources)
        sources = rank_sources(list(search.outcome.sources), limit)

        # Synthesizing
        synthesis_model: str | None = None
        if options.synthesize and raw_answer:
            log_service.log_research_step(
                request_id, "synthesizing", "started", {"sources": len(sources)}
            )
            synthesis = await self.synthesis_engine.synthesize(
                raw_answer,
                sources,
                sanitized.clean,
                request.doc_context,
                request_id=request_id,
                budget=deadline - time.monotonic(),
            )
            synthesis_model = self.synthesis_engine.model
        else:
            synthesis = ResearchSynthesis(summary=raw_answer[:UNSYNTHESIZED_SUMMARY_CHARS])

        # Responding
        duration_ms = int((time.monotonic() - started) * 1000)
        response = ResearchResponse(
            synthesis=synthesis,
            sources=sources,
            raw_answer=raw_answer,
            metadata=ResearchMetadata(
                mode=mode,
                query=sanitized.clean,
                provider=search.provider,
                duration_ms=duration_ms,
                source_count=len(sources),
                synthesis_model=synthesis_model,
            ),
        )
        log_service.log_research_step(
            request_id,
            "responding",
            "completed",
            {
                "provider": search.provider,
                "fallback_from": search.fallback_from,
                "sources": len(sources),
                "fallback_reason": search.fallback_reason,
                "insights": len(synthesis.insights),
                "duration_ms": duration_ms,
            },
        )
        return ResearchRun(response=response, rate_limit_remaining=decision.remaining)
