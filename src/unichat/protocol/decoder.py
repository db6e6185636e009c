from __future__ import annotations
import codecs
import logging
import re
from typing import Iterable, Iterator, List, Union

logger = logging.getLogger(__name__)

DONE_SENTINEL = "[DONE]"
DATA_PREFIX = "data:"

FRAMING_SSE = "sse"
FRAMING_NDJSON = "ndjson"

# SSE allows CRLF, LF or a lone CR as the line terminator
_LINE_BREAK = re.compile(r"\r\n|\r|\n")


class _DoneMarker:
    def __repr__(self) -> str:
        return "DONE"


DONE = _DoneMarker()

Chunk = Union[str, _DoneMarker]


def framing_for_content_type(content_type: str) -> str:
    ct = (content_type or "").lower()
    if "application/x-ndjson" in ct or "application/json" in ct:
        return FRAMING_NDJSON
    return FRAMING_SSE


class StreamDecoder:
    """
    Turns raw response bytes into chunk strings, one per ``data:`` line.

    - partial lines (and split UTF-8 sequences) are held until their terminator
    - a line that is exactly ``[DONE]`` yields DONE and everything after it is ignored
    - one instance per request; the buffer dies with it
    """

    def __init__(self, framing: str = FRAMING_SSE):
        if framing not in (FRAMING_SSE, FRAMING_NDJSON):
            raise ValueError(f"Unknown framing '{framing}'")
        self.framing = framing
        self._text = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self._after_cr = False
        self.finished = False

    def feed(self, data: Union[bytes, str]) -> List[Chunk]:
        if self.finished or not data:
            return []
        text = data if isinstance(data, str) else self._text.decode(data)
        if self._after_cr and text.startswith("\n"):
            # second half of a CRLF split across reads
            text = text[1:]
            self._after_cr = False
        if text:
            self._after_cr = text.endswith("\r")
        self._buffer += text
        lines = _LINE_BREAK.split(self._buffer)
        self._buffer = lines.pop()
        return self._consume(lines)

    def flush(self) -> List[Chunk]:
        """End of input: a trailing unterminated line still counts as a line."""
        if self.finished:
            return []
        tail = self._buffer + self._text.decode(b"", final=True)
        self._buffer = ""
        out = self._consume([tail]) if tail else []
        self.finished = True
        return out

    def iter_chunks(self, stream: Iterable[bytes]) -> Iterator[Chunk]:
        for data in stream:
            for chunk in self.feed(data):
                yield chunk
                if chunk is DONE:
                    return
        yield from self.flush()

    def _consume(self, lines: List[str]) -> List[Chunk]:
        out: List[Chunk] = []
        for line in lines:
            payload = self._payload(line.rstrip("\r"))
            if not payload:
                continue
            if payload.strip() == DONE_SENTINEL:
                out.append(DONE)
                self.finished = True
                self._buffer = ""
                break
            out.append(payload)
        return out

    def _payload(self, line: str):
        if not line.strip():
            return None
        if line.startswith(DATA_PREFIX):
            return line[len(DATA_PREFIX):].lstrip()
        if self.framing == FRAMING_NDJSON:
            return line.strip()
        # event:, id:, retry:, ": keep-alive" comments
        logger.debug("Skipping non-data line: %r", line[:80])
        return None
