"""
Incremental parser for OpenAI-style SSE token streams.

Each event line looks like

    data: {"choices":[{"delta":{"content":"<token>"}}]}

and the stream ends with `data: [DONE]`. Network chunks can end anywhere,
including in the middle of a multi-byte character or a JSON object, so
bytes are decoded incrementally and only complete lines are parsed. Invalid
bytes become U+FFFD instead of ending the stream. A line whose JSON does
not parse is put back at the front of the buffer and retried once more
bytes arrive.
"""

import codecs
import json
from typing import AsyncIterable, AsyncIterator, Iterable, Optional

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"


def extract_delta(event: dict) -> Optional[str]:
    """choices[0].delta.content, or None."""
    try:
        content = event["choices"][0]["delta"].get("content")
    except (KeyError, IndexError, TypeError, AttributeError):
        return None
    return content if isinstance(content, str) and content else None


class SSEDeltaParser:
    """
    Turns SSE byte chunks into text deltas.

    feed() every chunk in arrival order, then flush() once the stream has
    ended. `text` holds everything received so far.
    """

    def __init__(self):
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self.buffer = ""
        self.text = ""
        self.done = False

    def _payload(self, line: str) -> Optional[str]:
        """The JSON part of a data line, or None for lines to skip."""
        if line.endswith("\r"):
            line = line[:-1]
        if line.startswith(":") or line.strip() == "":
            return None
        if not line.startswith(DATA_PREFIX):
            return None
        return line[len(DATA_PREFIX):].strip()

    def _emit(self, event: dict, deltas: list[str]):
        content = extract_delta(event)
        if content:
            self.text += content
            deltas.append(content)

    def feed(self, chunk: bytes) -> list[str]:
        """Consume one chunk; return the deltas it completed."""
        deltas: list[str] = []
        if self.done:
            return deltas

        self.buffer += self._decoder.decode(chunk)

        while "\n" in self.buffer:
            line, self.buffer = self.buffer.split("\n", 1)

            payload = self._payload(line)
            if payload is None:
                continue
            if payload == DONE_SENTINEL:
                self.done = True
                self.buffer = ""
                break

            try:
                event = json.loads(payload)
            except json.JSONDecodeError:
                # Incomplete JSON: wait for the next chunk
                self.buffer = line + "\n" + self.buffer
                break

            self._emit(event, deltas)

        return deltas

    def flush(self) -> list[str]:
        """Parse whatever is left once the stream has ended."""
        deltas: list[str] = []
        if self.done:
            return deltas

        self.buffer += self._decoder.decode(b"", final=True)
        remaining, self.buffer = self.buffer, ""
        self.done = True

        if not remaining.strip():
            return deltas

        for raw in remaining.split("\n"):
            payload = self._payload(raw)
            if payload is None:
                continue
            if payload == DONE_SENTINEL:
                break
            try:
                event = json.loads(payload)
            except json.JSONDecodeError:
                continue
            self._emit(event, deltas)

        return deltas


def parse_sse(chunks: Iterable[bytes]) -> str:
    """Full text of a finished stream given as byte chunks."""
    parser = SSEDeltaParser()
    for chunk in chunks:
        parser.feed(chunk)
        if parser.done:
            break
    parser.flush()
    return parser.text


async def iter_text_deltas(chunks: AsyncIterable[bytes]) -> AsyncIterator[str]:
    """
    Yield text deltas from an async byte stream, in arrival order.

    Stops at `[DONE]` or when the stream ends, after a final flush.
    """
    parser = SSEDeltaParser()
    async for chunk in chunks:
        for delta in parser.feed(chunk):
            yield delta
        if parser.done:
            break
    for delta in parser.flush():
        yield delta
