from __future__ import annotations

from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

ResearchMode = Literal["quick", "deep", "competitive", "market", "synthesis"]
SourceType = Literal["news", "article", "research", "company", "government", "other"]
Freshness = Literal["recent", "moderate", "dated"]
InsightType = Literal["key_finding", "statistic", "trend", "opportunity", "risk", "action"]
Confidence = Literal["high", "medium", "low"]


class CamelModel(BaseModel):
    """Wire models use camelCase JSON names and accept snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Requests ---


class DocContext(CamelModel):
    title: str | None = None
    type: str | None = None
    workspace_name: str | None = Field(
        default=None,
        validation_alias=AliasChoices("workspaceName", "workspace", "workspace_name"),
        serialization_alias="workspaceName",
    )
    tags: list[str] = Field(default_factory=list)

    def describe(self) -> str | None:
        """Render the context the way providers receive it."""
        parts: list[str] = []
        if self.title:
            parts.append(f"Document: {self.title}")
        if self.type:
            parts.append(f"Type: {self.type}")
        if self.workspace_name:
            parts.append(f"Company: {self.workspace_name}")
        if self.tags:
            parts.append(f"Topics: {', '.join(self.tags)}")
        return " | ".join(parts) if parts else None


class ResearchOptions(CamelModel):
    max_sources: int | None = Field(default=None, ge=1)
    synthesize: bool = True
    include_competitors: bool | None = None
    freshness: Literal["day", "week", "month", "year"] | None = None


class ResearchRequest(CamelModel):
    query: str = ""
    mode: ResearchMode = "quick"
    doc_context: DocContext | None = None
    options: ResearchOptions | None = None


# --- Pipeline values ---


class ResearchSource(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    title: str
    url: str
    snippet: str
    quality: int = Field(ge=0, le=100)
    freshness: Freshness
    domain: str
    type: SourceType


class ResearchInsight(CamelModel):
    type: InsightType
    title: str
    content: str
    confidence: Confidence
    sources: list[int] = Field(default_factory=list)


class KeyStat(CamelModel):
    label: str
    value: str
    source: int | None = None

    @field_validator("value", mode="before")
    @classmethod
    def _stringify_number(cls, value: Any) -> Any:
        # Models often answer `"value": 42` instead of `"value": "42"`.
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


class ResearchSynthesis(CamelModel):
    summary: str
    insights: list[ResearchInsight] = Field(default_factory=list)
    key_stats: list[KeyStat] = Field(default_factory=list)


# --- Responses ---


class ResearchMetadata(CamelModel):
    mode: ResearchMode
    query: str
    provider: str
    duration_ms: int
    source_count: int
    synthesis_model: str | None = None


class ResearchResponse(CamelModel):
    synthesis: ResearchSynthesis
    sources: list[ResearchSource]
    raw_answer: str | None = None
    metadata: ResearchMetadata

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ErrorResponse(BaseModel):
    error: str
    resetIn: int | None = None
