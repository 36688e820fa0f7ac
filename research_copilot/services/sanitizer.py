"""Query sanitization: injection blocking, truncation and PII redaction."""
from __future__ import annotations

import re
from dataclasses import dataclass

MAX_QUERY_LENGTH = 500

BLOCKED_PATTERNS = (
    re.compile(r"ignore\s+(all\s+)?(previous|prior|above)\s+(instructions?|prompts?|rules?)", re.IGNORECASE),
    re.compile(r"disregard\s+(all\s+)?(previous|prior|above)\s+(instructions?|prompts?|rules?)", re.IGNORECASE),
    re.compile(r"\[?\s*system\s*\]?:", re.IGNORECASE),
)

EMAIL_PATTERN = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")
PHONE_PATTERN = re.compile(r"\b\d{3}[-.]?\d{3}[-.]?\d{4}\b")


@dataclass(frozen=True, slots=True)
class SanitizedQuery:
    clean: str
    blocked: bool


def _sanitize(raw: str, max_length: int) -> SanitizedQuery:
    text = raw.strip()
    for pattern in BLOCKED_PATTERNS:
        if pattern.search(text):
            return SanitizedQuery(clean="", blocked=True)

    text = text[:max_length]
    text = EMAIL_PATTERN.sub("[email]", text)
    text = PHONE_PATTERN.sub("[phone]", text)
    return SanitizedQuery(clean=text, blocked=False)


def sanitize_query(raw: str, max_length: int = MAX_QUERY_LENGTH) -> SanitizedQuery:
    """Clean a raw research query.

    Blocked queries come back with an empty `clean` string. This never raises:
    anything unexpected (including a non-string input) is treated as blocked.
    """
    try:
        return _sanitize(raw, max_length)
    except Exception:
        return SanitizedQuery(clean="", blocked=True)
