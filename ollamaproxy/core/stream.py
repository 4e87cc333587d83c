from __future__ import annotations

import codecs
import json
from typing import AsyncIterable, AsyncIterator

from ollamaproxy.errors import StreamDecodeGlitch
from ollamaproxy.log import logger
from ollamaproxy.schema import BackendStreamFragment, SseEvent


class LineBuffer:
    """Reassembles newline-delimited records from arbitrarily split byte chunks.

    ``feed`` only ever returns lines whose terminating newline has arrived;
    the unterminated tail stays buffered until more bytes (or ``flush``) come.
    Decoding is incremental, so a multi-byte character cut in half by a chunk
    boundary is held back rather than mangled.
    """

    def __init__(self, encoding: str = "utf-8"):
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._pending = ""

    @property
    def pending(self) -> str:
        return self._pending

    def feed(self, chunk: bytes) -> list[str]:
        self._pending += self._decoder.decode(chunk)
        if "\n" not in self._pending:
            return []
        *lines, self._pending = self._pending.split("\n")
        return lines

    def flush(self) -> list[str]:
        """Return whatever is left once the source has closed."""
        self._pending += self._decoder.decode(b"", final=True)
        rest, self._pending = self._pending, ""
        return [rest] if rest else []


def decode_fragment(line: str) -> BackendStreamFragment:
    try:
        data = json.loads(line)
    except json.JSONDecodeError as e:
        raise StreamDecodeGlitch(line, "invalid JSON") from e
    if not isinstance(data, dict):
        raise StreamDecodeGlitch(line, "not an object")

    # chat streams carry message.content, generate streams carry response
    message = data.get("message")
    if isinstance(message, dict):
        text = message.get("content")
    else:
        text = data.get("response")

    return BackendStreamFragment(
        delta_text=text if isinstance(text, str) else "",
        done=data.get("done") is True,
    )


def events_for_line(line: str) -> list[SseEvent]:
    line = line.strip()
    if not line:
        return []

    try:
        fragment = decode_fragment(line)
    except StreamDecodeGlitch as e:
        logger.debug(f"skipping stream line: {e.message}")
        return []

    events = []
    if fragment.delta_text:
        events.append(SseEvent.delta(fragment.delta_text))
    if fragment.done:
        events.append(SseEvent.terminal())
    return events


async def translate_stream(chunks: AsyncIterable[bytes]) -> AsyncIterator[SseEvent]:
    """Turn a backend NDJSON byte stream into delta events, lazily and in order.

    Stops reading as soon as a fragment with ``done: true`` is seen. If the
    source runs dry first, the sequence simply ends without a terminal event.
    """
    buffer = LineBuffer()

    async for chunk in chunks:
        for line in buffer.feed(chunk):
            for event in events_for_line(line):
                yield event
                if event.is_terminal:
                    return

    for line in buffer.flush():
        for event in events_for_line(line):
            yield event
            if event.is_terminal:
                return
