from __future__ import annotations

import json
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest


class FakeClock:
    """Millisecond clock the tests move by hand."""

    def __init__(self, now: int = 1_000_000):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


def chat_response(content: str, executed_tools: list[Any] | None = None) -> SimpleNamespace:
    message = SimpleNamespace(content=content, executed_tools=executed_tools)
    return SimpleNamespace(
        choices=[SimpleNamespace(message=message)],
        usage=SimpleNamespace(prompt_tokens=11, completion_tokens=7),
    )


def fake_llm(*responses: Any) -> MagicMock:
    """OpenAI-style client whose chat.completions.create returns `responses` in order."""
    client = MagicMock()
    if len(responses) == 1:
        client.chat.completions.create = AsyncMock(return_value=responses[0])
    else:
        client.chat.completions.create = AsyncMock(side_effect=list(responses))
    return client


def synthesis_json(insight_count: int = 5, *, sources: list[int] | None = None) -> str:
    types = ["key_finding", "statistic", "trend", "opportunity", "risk", "action"]
    return json.dumps(
        {
            "summary": "B2B SaaS pricing is shifting toward usage-based models.",
            "insights": [
                {
                    "type": types[i % len(types)],
                    "title": f"Insight {i}",
                    "content": f"Detail for insight {i}.",
                    "confidence": "high",
                    "sources": sources if sources is not None else [0],
                }
                for i in range(insight_count)
            ],
            "keyStats": [
                {"label": "Usage-based adoption", "value": "61%", "source": 0},
                {"label": "Median price increase", "value": "12%", "source": 1},
                {"label": "Market size", "value": "$300B"},
            ],
        }
    )


WEB_SEARCH_TOOLS = [
    {
        "name": "web_search",
        "results": [
            {
                "title": "SaaS pricing benchmarks report",
                "url": "https://www.statista.com/saas-pricing",
                "snippet": "Usage-based pricing adopted by 61% of SaaS companies.",
            },
            {
                "title": "Census business survey",
                "url": "https://www.census.gov/survey",
                "snippet": "Survey of software spending.",
            },
            {
                "title": "Blog post",
                "url": "https://example.com/post",
                "description": "Opinions on pricing.",
            },
        ],
    }
]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
