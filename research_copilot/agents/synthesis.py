from __future__ import annotations

import json
import logging
import re
import time
from typing import Any

import pydantic

from research_copilot import llm_client
from research_copilot.config import settings
from research_copilot.llm_client import field
from research_copilot.models.schemas import (
    DocContext,
    KeyStat,
    ResearchInsight,
    ResearchSource,
    ResearchSynthesis,
)
from research_copilot.services import logger as log_service
from research_copilot.services.prompt_store import render_prompt
from research_copilot.tools.search_provider import with_deadline

RAW_ANSWER_BUDGET = 4000
SOURCE_PREVIEW_COUNT = 8
MAX_INSIGHTS = 6
MAX_KEY_STATS = 5
DEGRADED_SUMMARY_CHARS = 300
DEGRADED_INSIGHT_CHARS = 500

_FENCE_OPEN = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_FENCE_CLOSE = re.compile(r"\s*```$")


class SynthesisRejected(ValueError):
    """Model output parsed but is unusable (for example, no insights)."""


def strip_code_fences(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        text = _FENCE_OPEN.sub("", text, count=1)
        text = _FENCE_CLOSE.sub("", text, count=1)
    return text.strip()


def _loads_object(text: str) -> dict[str, Any]:
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        # Tolerate a sentence of prose around the object.
        start, end = text.find("{"), text.rfind("}")
        if start == -1 or end <= start:
            raise
        parsed = json.loads(text[start:end + 1])
    if not isinstance(parsed, dict):
        raise SynthesisRejected("synthesis output is not a JSON object")
    return parsed


def parse_synthesis(content: str, source_count: int) -> ResearchSynthesis:
    """Parse model output into a synthesis with every source index in range.

    Raises json.JSONDecodeError, pydantic.ValidationError or
    SynthesisRejected when the output cannot be used.
    """
    parsed = ResearchSynthesis.model_validate(_loads_object(strip_code_fences(content)))
    if not parsed.insights:
        raise SynthesisRejected("synthesis returned no insights")

    def in_range(index: int | None) -> bool:
        return index is not None and 0 <= index < source_count

    insights = [
        insight.model_copy(
            update={"sources": [i for i in dict.fromkeys(insight.sources) if in_range(i)]}
        )
        for insight in parsed.insights[:MAX_INSIGHTS]
    ]
    key_stats = [
        stat if in_range(stat.source) else stat.model_copy(update={"source": None})
        for stat in parsed.key_stats[:MAX_KEY_STATS]
    ]
    return ResearchSynthesis(
        summary=parsed.summary.strip() or "Research synthesis completed.",
        insights=insights,
        key_stats=key_stats,
    )


def degraded_synthesis(raw_answer: str, source_count: int) -> ResearchSynthesis:
    """Best-effort synthesis straight from the raw answer. Never raises."""
    raw_answer = raw_answer or ""
    summary = raw_answer[:DEGRADED_SUMMARY_CHARS]
    if len(raw_answer) > DEGRADED_SUMMARY_CHARS:
        summary += "..."
    return ResearchSynthesis(
        summary=summary,
        insights=[
            ResearchInsight(
                type="key_finding",
                title="Research Summary",
                content=raw_answer[:DEGRADED_INSIGHT_CHARS] or "No detailed findings were returned.",
                confidence="medium",
                sources=[0] if source_count > 0 else [],
            )
        ],
        key_stats=[],
    )


class SynthesisEngine:
    """Compresses raw research text into typed insights and key stats."""

    def __init__(
        self,
        client: Any | None = None,
        *,
        model: str | None = None,
        timeout: float | None = None,
    ):
        self._client = client
        self.model = model or settings.synthesis_model
        self.timeout = timeout if timeout is not None else settings.synthesis_timeout_seconds

    def _messages(
        self,
        raw_answer: str,
        sources: list[ResearchSource],
        query: str,
        doc_context: DocContext | None,
    ) -> list[dict[str, str]]:
        context_lines = ""
        if doc_context and doc_context.title:
            context_lines += render_prompt(
                "synthesis.document_line",
                title=doc_context.title,
                doc_type=doc_context.type or "GTM doc",
            )
        if doc_context and doc_context.workspace_name:
            context_lines += render_prompt("synthesis.company_line", company=doc_context.workspace_name)

        source_list = "\n".join(
            f"[{i}] {s.title} ({s.domain}) - Quality: {s.quality}/100"
            for i, s in enumerate(sources[:SOURCE_PREVIEW_COUNT])
        ) or "(no sources)"

        return [
            {"role": "system", "content": render_prompt("synthesis.system_prompt")},
            {
                "role": "user",
                "content": render_prompt(
                    "synthesis.user_prompt",
                    query=query,
                    context_lines=context_lines,
                    raw_answer=raw_answer[:RAW_ANSWER_BUDGET],
                    source_list=source_list,
                ),
            },
        ]

    async def synthesize(
        self,
        raw_answer: str,
        sources: list[ResearchSource],
        query: str,
        doc_context: DocContext | None = None,
        *,
        request_id: str = "",
        budget: float | None = None,
    ) -> ResearchSynthesis:
        """Synthesize within `budget` seconds when given (capped by the engine timeout)."""
        timeout = self.timeout if budget is None else max(min(self.timeout, budget), 0)
        t0 = time.monotonic()
        content = ""
        try:
            active_client = self._client or llm_client.client()
            response = await with_deadline(
                active_client.chat.completions.create(
                    model=self.model,
                    messages=self._messages(raw_answer, sources, query, doc_context),
                    temperature=0.1,
                    max_tokens=2000,
                ),
                timeout,
                "synthesis",
            )
            input_tokens, output_tokens = llm_client.usage_tokens(response)
            log_service.log_llm_call(
                model=self.model,
                caller="synthesis",
                input_tokens=input_tokens,
                output_tokens=output_tokens,
                duration_ms=int((time.monotonic() - t0) * 1000),
            )
            choices = field(response, "choices") or []
            message = field(choices[0], "message") if choices else None
            content = field(message, "content") or ""
            return parse_synthesis(content, len(sources))
        except (json.JSONDecodeError, pydantic.ValidationError, SynthesisRejected) as e:
            reason = f"{type(e).__name__}: {e}"
        except Exception as e:
            # Transport failures and timeouts degrade too; synthesis is never fatal.
            reason = f"{type(e).__name__}: {getattr(e, 'detail', None) or e}"

        log_service.log_event(
            event_type="synthesis_degraded",
            message="Synthesis output unusable; returning degraded synthesis",
            level=logging.WARNING,
            request_id=request_id,
            model=self.model,
            reason=reason[:500],
            output_preview=content[:200],
        )
        return degraded_synthesis(raw_answer, len(sources))
