from __future__ import annotations

import re
import time
from datetime import date
from typing import Any

import openai

from research_copilot import llm_client
from research_copilot.config import settings
from research_copilot.errors import ProviderTimeoutError, UpstreamError
from research_copilot.llm_client import field
from research_copilot.models.schemas import ResearchSource
from research_copilot.services import logger as log_service
from research_copilot.services.prompt_store import render_prompt
from research_copilot.tools.search_provider import SearchOutcome, with_deadline
from research_copilot.tools.source_scorer import rank_sources, score_raw, score_source

URL_PATTERN = re.compile(r"https?://[^\s)\]>\"'<]+")
WEB_SEARCH_TOOLS = {"web_search", "search"}


def _tool_results(tool: Any) -> list[Any]:
    """Collect raw search hits from one executed tool entry.

    Groq has reported hits in a few places over time: a `results` list on
    web_search tools, `output.search_results`, and `search_results.results`.
    """
    hits: list[Any] = []
    is_search = field(tool, "name") in WEB_SEARCH_TOOLS or field(tool, "type") in WEB_SEARCH_TOOLS
    results = field(tool, "results")
    if is_search and isinstance(results, list):
        hits.extend(results)

    output = field(tool, "output")
    if isinstance(output, dict) and isinstance(output.get("search_results"), list):
        hits.extend(output["search_results"])

    search_results = field(tool, "search_results")
    nested = field(search_results, "results") if search_results is not None else None
    if isinstance(nested, list):
        hits.extend(nested)
    return hits


def _as_dict(hit: Any) -> dict[str, Any]:
    if isinstance(hit, dict):
        return hit
    if hasattr(hit, "model_dump"):
        return hit.model_dump()
    return {k: field(hit, k) for k in ("title", "url", "snippet", "description", "text", "content")}


def extract_sources(message: Any, response: Any, answer: str, *, limit: int) -> list[ResearchSource]:
    """Scored sources from tool metadata plus URLs cited in the answer text."""
    sources: list[ResearchSource] = []
    executed_tools = field(message, "executed_tools") or field(response, "executed_tools") or []
    if isinstance(executed_tools, list):
        for tool in executed_tools:
            for hit in _tool_results(tool):
                raw = _as_dict(hit)
                if raw.get("url"):
                    if not raw.get("snippet") and isinstance(raw.get("content"), str):
                        raw = {**raw, "snippet": raw["content"]}
                    sources.append(score_raw(raw))

    known = {s.url for s in sources}
    for match in URL_PATTERN.findall(answer):
        url = match.rstrip(".,;:")
        if url and url not in known:
            known.add(url)
            sources.append(score_source(url=url, snippet=""))

    return rank_sources(sources, limit)


class FastSearchProvider:
    """Single search-augmented completion against Groq's compound models."""

    name = "groq-compound"

    def __init__(
        self,
        client: Any | None = None,
        *,
        model: str | None = None,
        fast_model: str | None = None,
        timeout: float | None = None,
        max_sources: int | None = None,
    ):
        self._client = client
        self.model = model or settings.search_model
        self.fast_model = fast_model or settings.search_fast_model
        self.timeout = timeout if timeout is not None else settings.fast_search_timeout_seconds
        self.max_sources = max_sources or settings.max_sources

    @property
    def configured(self) -> bool:
        return self._client is not None or llm_client.is_configured()

    def _messages(self, query: str, context: str | None) -> list[dict[str, str]]:
        today = date.today()
        context_block = render_prompt("fast_search.context_block", context=context) if context else ""
        system_prompt = render_prompt(
            "fast_search.system_prompt",
            prior_year=today.year - 1,
            current_year=today.year,
            context_block=context_block,
        )
        return [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": render_prompt("fast_search.user_prompt", query=query)},
        ]

    async def search(
        self,
        query: str,
        *,
        fast: bool = False,
        context: str | None = None,
    ) -> SearchOutcome:
        model = self.fast_model if fast else self.model
        active_client = self._client or llm_client.client()
        t0 = time.monotonic()

        try:
            response = await with_deadline(
                active_client.chat.completions.create(
                    model=model,
                    messages=self._messages(query, context),
                    temperature=0.2,
                    max_tokens=3000,
                ),
                self.timeout,
                self.name,
            )
        except ProviderTimeoutError:
            self._log_failure(model, t0, "timeout")
            raise
        except openai.APITimeoutError as e:
            self._log_failure(model, t0, "timeout")
            raise ProviderTimeoutError(provider=self.name, detail=str(e)) from e
        except openai.APIStatusError as e:
            self._log_failure(model, t0, f"status {e.status_code}")
            raise UpstreamError(provider=self.name, detail=f"Groq API error: {e.status_code}") from e
        except openai.APIError as e:
            self._log_failure(model, t0, str(e))
            raise UpstreamError(provider=self.name, detail=f"Groq transport error: {e}") from e

        elapsed_ms = int((time.monotonic() - t0) * 1000)
        input_tokens, output_tokens = llm_client.usage_tokens(response)
        log_service.log_llm_call(
            model=model,
            caller="fast_search",
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            duration_ms=elapsed_ms,
        )

        choices = field(response, "choices") or []
        message = field(choices[0], "message") if choices else None
        answer = field(message, "content") or ""

        return SearchOutcome(
            answer=answer,
            sources=extract_sources(message, response, answer, limit=self.max_sources),
            duration_ms=elapsed_ms,
        )

    def _log_failure(self, model: str, t0: float, error: str) -> None:
        log_service.log_llm_call(
            model=model,
            caller="fast_search",
            duration_ms=int((time.monotonic() - t0) * 1000),
            status="error",
            error=error,
        )
