from __future__ import annotations

import re
from datetime import date
from urllib.parse import urlparse

from research_copilot.models.schemas import ResearchSource

BASE_QUALITY = 50

RESEARCH_DOMAINS = (
    "mckinsey.com", "hbr.org", "gartner.com", "forrester.com",
    "deloitte.com", "pwc.com", "ey.com", "kpmg.com", "bain.com", "bcg.com",
)

NEWS_DOMAINS = (
    "techcrunch.com", "venturebeat.com", "bloomberg.com", "reuters.com",
    "wsj.com", "forbes.com", "businessinsider.com", "cnbc.com",
)

AUTHORITATIVE_DOMAINS = (
    "mckinsey.com", "hbr.org", "forbes.com", "bloomberg.com", "wsj.com",
    "reuters.com", "nytimes.com", "techcrunch.com", "venturebeat.com",
    "gartner.com", "forrester.com", "statista.com", "crunchbase.com",
    "linkedin.com", "nature.com", "sciencedirect.com",
)

STATS_PATTERN = re.compile(r"\d+\s?%|\$\s?\d+|\d+\s*(?i:million|billion|trillion|[mbk])\b")


def extract_domain(url: str) -> str:
    """Hostname without a leading `www.`; the raw input when it has none."""
    try:
        hostname = urlparse(url).hostname
    except ValueError:
        return url
    if not hostname:
        return url
    return hostname[4:] if hostname.startswith("www.") else hostname


def _in_list(domain: str, domains: tuple[str, ...]) -> bool:
    return any(domain == d or domain.endswith("." + d) for d in domains)


def _classify(domain: str) -> tuple[int, str]:
    if domain.endswith(".gov"):
        return 25, "government"
    if domain.endswith(".edu") or _in_list(domain, RESEARCH_DOMAINS):
        return 20, "research"
    if _in_list(domain, NEWS_DOMAINS):
        return 15, "news"
    if _in_list(domain, AUTHORITATIVE_DOMAINS):
        return 15, "article"
    return 0, "other"


def score_source(
    title: str | None = None,
    url: str | None = None,
    snippet: str | None = None,
    *,
    current_year: int | None = None,
) -> ResearchSource:
    """Score a raw search hit for authority, richness and freshness.

    Deterministic for a given `current_year`. Never rejects input: a hit with
    no URL still scores, it just lands in the `other` bucket.
    """
    url = url or ""
    title = title or ""
    snippet = snippet or ""
    domain = extract_domain(url)
    year = current_year if current_year is not None else date.today().year

    bonus, source_type = _classify(domain.lower())
    quality = BASE_QUALITY + bonus

    if len(snippet) > 200:
        quality += 5
    if len(snippet) > 400:
        quality += 5
    if len(title) > 20:
        quality += 3
    if STATS_PATTERN.search(snippet):
        quality += 10

    recent = str(year) in snippet or str(year - 1) in snippet
    if recent:
        quality += 5

    return ResearchSource(
        title=title or domain,
        url=url,
        snippet=snippet,
        quality=min(100, max(0, quality)),
        freshness="recent" if recent else "moderate",
        domain=domain,
        type=source_type,
    )


def score_raw(raw: dict, *, current_year: int | None = None) -> ResearchSource:
    """Score a provider result dict, accepting the snippet field names providers use."""
    snippet = raw.get("snippet") or raw.get("description") or raw.get("text") or ""
    if not isinstance(snippet, str):
        snippet = str(snippet)
    return score_source(
        title=raw.get("title") if isinstance(raw.get("title"), str) else None,
        url=raw.get("url") if isinstance(raw.get("url"), str) else None,
        snippet=snippet,
        current_year=current_year,
    )


def rank_sources(sources: list[ResearchSource], limit: int) -> list[ResearchSource]:
    """Deduplicate by exact URL (first wins), sort by quality desc, keep the top `limit`.

    Sources without a URL are never treated as duplicates of each other.
    """
    seen: set[str] = set()
    unique: list[ResearchSource] = []
    for source in sources:
        if source.url:
            if source.url in seen:
                continue
            seen.add(source.url)
        unique.append(source)
    return sorted(unique, key=lambda s: s.quality, reverse=True)[:limit]
