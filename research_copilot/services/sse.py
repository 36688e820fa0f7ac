"""Incremental server-sent-events decoder for upstream agent streams."""
from __future__ import annotations

import codecs
from typing import AsyncIterable, AsyncIterator

from research_copilot.models.events import ServerSentEvent


class SSEDecoder:
    """Turns arbitrary byte chunks into complete events.

    Lines may be split anywhere across chunks (including inside a multi-byte
    UTF-8 sequence or between `\\r` and `\\n`); partial input is buffered until
    the line terminator arrives. Comments and unknown fields are ignored.
    """

    def __init__(self) -> None:
        self._text = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self._event = ""
        self._data: list[str] = []
        self._last_id: str | None = None

    def feed(self, chunk: bytes) -> list[ServerSentEvent]:
        self._buffer += self._text.decode(chunk)
        return self._drain(final=False)

    def flush(self) -> list[ServerSentEvent]:
        """Emit whatever is left once the stream has ended."""
        self._buffer += self._text.decode(b"", final=True)
        events = self._drain(final=True)
        if self._buffer:
            event = self._process_line(self._buffer)
            self._buffer = ""
            if event:
                events.append(event)
        event = self._dispatch()
        if event:
            events.append(event)
        return events

    def _drain(self, *, final: bool) -> list[ServerSentEvent]:
        events: list[ServerSentEvent] = []
        while True:
            cut = self._next_line_end(final)
            if cut is None:
                return events
            end, width = cut
            line = self._buffer[:end]
            self._buffer = self._buffer[end + width:]
            event = self._process_line(line)
            if event:
                events.append(event)

    def _next_line_end(self, final: bool) -> tuple[int, int] | None:
        for index, char in enumerate(self._buffer):
            if char == "\n":
                return index, 1
            if char == "\r":
                if index + 1 < len(self._buffer):
                    return index, 2 if self._buffer[index + 1] == "\n" else 1
                # A trailing CR might be the first half of CRLF.
                return (index, 1) if final else None
        return None

    def _process_line(self, line: str) -> ServerSentEvent | None:
        if not line:
            return self._dispatch()
        if line.startswith(":"):
            return None

        name, sep, value = line.partition(":")
        if sep and value.startswith(" "):
            value = value[1:]

        if name == "data":
            self._data.append(value)
        elif name == "event":
            self._event = value
        elif name == "id" and "\0" not in value:
            self._last_id = value
        return None

    def _dispatch(self) -> ServerSentEvent | None:
        if not self._data:
            self._event = ""
            return None
        event = ServerSentEvent(
            data="\n".join(self._data),
            event=self._event or "message",
            id=self._last_id,
        )
        self._event = ""
        self._data = []
        return event


async def aiter_sse(chunks: AsyncIterable[bytes]) -> AsyncIterator[ServerSentEvent]:
    """Yield events from a byte stream as soon as each one is complete."""
    decoder = SSEDecoder()
    async for chunk in chunks:
        for event in decoder.feed(chunk):
            yield event
    for event in decoder.flush():
        yield event
