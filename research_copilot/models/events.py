from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any


class AgentEventType(str, Enum):
    CONTENT = "content"
    SOURCES = "sources"


@dataclass(frozen=True, slots=True)
class ServerSentEvent:
    data: str
    event: str = "message"
    id: str | None = None

    def json_payloads(self) -> list[dict[str, Any]]:
        """Decode the data field as JSON objects, skipping anything malformed.

        Some upstreams put one JSON document per `data:` line of a single
        event; when the joined data does not parse, each line is tried alone.
        """
        try:
            payload = json.loads(self.data)
        except json.JSONDecodeError:
            if "\n" not in self.data:
                return []
            return [p for p in _parse_lines(self.data.split("\n")) if isinstance(p, dict)]
        return [payload] if isinstance(payload, dict) else []


def _parse_lines(lines: list[str]) -> list[Any]:
    parsed = []
    for line in lines:
        try:
            parsed.append(json.loads(line))
        except json.JSONDecodeError:
            continue
    return parsed
