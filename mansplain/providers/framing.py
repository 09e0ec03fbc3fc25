"""
Incremental decoders that turn an arbitrarily chunked byte stream into DecodedEvents.

A decoder owns a buffer of bytes not consumed yet. Each feed() appends a chunk,
cuts every complete record off the front of the buffer and decodes it; a partial
record stays buffered until the next chunk completes it. Records are cut on raw
bytes and only decoded as UTF-8 once complete, so multi-byte characters that
straddle two network reads come out intact.

Two framings are supported:
- NdjsonDecoder: one JSON object per line (local-generation API)
- SseDecoder:    server-sent events, blocks separated by a blank line, payload in
                 `data:` lines, `[DONE]` sentinel (OpenAI-compatible chat API)

Subclasses implement decode_object() to pull the text out of one parsed record.
"""

import json
from typing import Any, List, Optional

from mansplain.schemas.events import DecodedEvent, Done, Error, is_terminal

SSE_SENTINEL = "[DONE]"
SNIPPET_LIMIT = 200


def snippet(text: str, limit: int = SNIPPET_LIMIT) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


class StreamDecoder:
    def __init__(self) -> None:
        self._buffer = bytearray()
        # the buffer holds no separator before this offset
        self._scan_from = 0
        self.finished = False

    def feed(self, chunk: bytes) -> List[DecodedEvent]:
        """Consume one chunk and return the events of every record it completed."""
        if self.finished:
            return []
        self._append(chunk)
        events: List[DecodedEvent] = []
        while True:
            record = self._next_record()
            if record is None:
                return events
            for event in self._decode_record(record):
                events.append(event)
                if is_terminal(event):
                    # anything after the terminal event is never looked at
                    self._finish()
                    return events

    def close(self) -> List[DecodedEvent]:
        """Signal end of stream.

        A stream that stops on a record boundary is complete even without a
        completion marker. Leftover bytes of an unterminated record mean the
        connection was cut mid-record.
        """
        if self.finished:
            return []
        trailing = bytes(self._buffer).decode("utf-8", errors="replace")
        self._finish()
        if trailing.strip():
            return [Error(message=f"stream ended mid-record: {snippet(trailing)!r}")]
        return [Done()]

    def decode_object(self, obj: Any) -> List[DecodedEvent]:
        raise NotImplementedError

    def _append(self, chunk: bytes) -> None:
        self._buffer.extend(chunk)

    def _next_record(self) -> Optional[bytes]:
        raise NotImplementedError

    def _decode_record(self, record: bytes) -> List[DecodedEvent]:
        raise NotImplementedError

    def _cut(self, separator: bytes) -> Optional[bytes]:
        idx = self._buffer.find(separator, self._scan_from)
        if idx < 0:
            # a separator may still start in the last len(separator) - 1 bytes
            self._scan_from = max(0, len(self._buffer) - len(separator) + 1)
            return None
        record = bytes(self._buffer[:idx])
        del self._buffer[: idx + len(separator)]
        self._scan_from = 0
        return record

    def _decode_payload(self, payload: str) -> List[DecodedEvent]:
        try:
            obj = json.loads(payload)
        except json.JSONDecodeError as e:
            return [Error(message=f"malformed JSON record ({e.msg}): {snippet(payload)!r}")]
        return self.decode_object(obj)

    def _finish(self) -> None:
        self.finished = True
        self._buffer.clear()
        self._scan_from = 0


class NdjsonDecoder(StreamDecoder):
    def _next_record(self) -> Optional[bytes]:
        return self._cut(b"\n")

    def _decode_record(self, record: bytes) -> List[DecodedEvent]:
        line = record.decode("utf-8", errors="replace").strip()
        if not line:
            return []
        return self._decode_payload(line)


class SseDecoder(StreamDecoder):
    def _append(self, chunk: bytes) -> None:
        # only the new bytes need normalizing, plus a "\r" left at the end of
        # the previous chunk that gets its "\n" with this one
        start = len(self._buffer)
        if self._buffer.endswith(b"\r"):
            start -= 1
        self._buffer.extend(chunk)
        tail = self._buffer[start:]
        if b"\r\n" in tail:
            self._buffer[start:] = tail.replace(b"\r\n", b"\n")
            # the rewritten byte at start may complete a separator begun right before it
            self._scan_from = min(self._scan_from, max(0, start - 1))

    def _next_record(self) -> Optional[bytes]:
        return self._cut(b"\n\n")

    def _decode_record(self, record: bytes) -> List[DecodedEvent]:
        data_lines: List[str] = []
        for line in record.decode("utf-8", errors="replace").split("\n"):
            # comments (":"), event:, id: and retry: fields carry no payload
            if not line.startswith("data:"):
                continue
            value = line[len("data:"):]
            if value.startswith(" "):
                value = value[1:]
            data_lines.append(value)
        if not data_lines:
            return []
        payload = "\n".join(data_lines)
        if payload.strip() == SSE_SENTINEL:
            return [Done()]
        return self._decode_payload(payload)
