from __future__ import annotations

import time
from typing import Any, Callable

import httpx

from research_copilot.config import settings
from research_copilot.errors import ProviderTimeoutError, UpstreamError
from research_copilot.models.events import AgentEventType
from research_copilot.models.schemas import ResearchSource
from research_copilot.services import logger as log_service
from research_copilot.services.http import async_client
from research_copilot.services.sse import aiter_sse
from research_copilot.tools.search_provider import SearchOutcome, with_deadline
from research_copilot.tools.source_scorer import rank_sources, score_raw


class AgentSearchProvider:
    """Long-running You.com research agent read over server-sent events."""

    name = "youcom-agent"

    def __init__(
        self,
        api_key: str,
        *,
        agent_id: str | None = None,
        url: str | None = None,
        timeout: float | None = None,
        max_sources: int | None = None,
        client_factory: Callable[[float], httpx.AsyncClient] = async_client,
    ):
        self.api_key = api_key
        self.agent_id = agent_id or settings.youcom_agent_id
        self.url = url or settings.youcom_agent_url
        self.timeout = timeout if timeout is not None else settings.agent_search_timeout_seconds
        self.max_sources = max_sources or settings.max_sources
        self._client_factory = client_factory

    async def search(
        self,
        query: str,
        *,
        fast: bool = False,
        context: str | None = None,
    ) -> SearchOutcome:
        # The agent has no lighter variant; `fast` is accepted for the shared contract.
        t0 = time.monotonic()
        try:
            answer, sources = await with_deadline(self._run(query, context), self.timeout, self.name)
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError(provider=self.name, detail=f"You.com transport timeout: {e}") from e
        except httpx.HTTPError as e:
            raise UpstreamError(provider=self.name, detail=f"You.com transport error: {e}") from e

        if not answer.strip():
            raise UpstreamError(provider=self.name, detail="You.com agent returned no content")

        duration_ms = int((time.monotonic() - t0) * 1000)
        log_service.log_event(
            event_type="agent_search_completed",
            message="You.com agent run finished",
            provider=self.name,
            sources=len(sources),
            duration_ms=duration_ms,
        )
        return SearchOutcome(
            answer=answer,
            sources=rank_sources(sources, self.max_sources),
            duration_ms=duration_ms,
        )

    async def _run(self, query: str, context: str | None) -> tuple[str, list[ResearchSource]]:
        body: dict[str, Any] = {"agent": self.agent_id, "input": query, "stream": True}
        if context:
            body["context"] = context

        answer_parts: list[str] = []
        sources: list[ResearchSource] = []
        async with self._client_factory(self.timeout) as client:
            async with client.stream(
                "POST",
                self.url,
                json=body,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Accept": "text/event-stream",
                },
            ) as response:
                if not response.is_success:
                    raise UpstreamError(
                        provider=self.name,
                        detail=f"You.com API error: {response.status_code}",
                    )
                async for event in aiter_sse(response.aiter_bytes()):
                    for payload in event.json_payloads():
                        self._apply(payload, answer_parts, sources)

        return "".join(answer_parts), sources

    @staticmethod
    def _apply(payload: dict[str, Any], answer_parts: list[str], sources: list[ResearchSource]) -> None:
        kind = payload.get("type")
        if kind == AgentEventType.CONTENT.value:
            content = payload.get("content")
            if isinstance(content, str) and content:
                answer_parts.append(content)
        elif kind == AgentEventType.SOURCES.value:
            raw_sources = payload.get("sources")
            if isinstance(raw_sources, list):
                sources.extend(score_raw(raw) for raw in raw_sources if isinstance(raw, dict))
