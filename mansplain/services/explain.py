"""
Drives one request/response cycle and forwards the explanation to the output sink.

    IDLE -> SENDING -> BUFFERED  -> DONE
                    -> STREAMING -> DONE
                    -> FAILED (from SENDING, BUFFERED or STREAMING)

Streamed text is written and flushed delta by delta; text already written stays
on screen when the stream fails later. There is no retry: the first failure is
raised to the caller.
"""

import logging
import sys
from contextlib import aclosing
from enum import Enum
from typing import List, Optional, TextIO

from mansplain.providers.base import DecodeError, HttpStatusError, ProviderAdapter, ProviderError
from mansplain.providers.transport import HttpTransport
from mansplain.schemas.events import Done, Error, TextDelta
from mansplain.schemas.request import HttpRequest, RequestSpec

logger = logging.getLogger(__name__)


class ExplainState(str, Enum):
    IDLE = "idle"
    SENDING = "sending"
    BUFFERED = "buffered"
    STREAMING = "streaming"
    DONE = "done"
    FAILED = "failed"


class Explainer:
    def __init__(self, adapter: ProviderAdapter, transport: HttpTransport, sink: Optional[TextIO] = None) -> None:
        self.adapter = adapter
        self.transport = transport
        self.sink = sink if sink is not None else sys.stdout
        self.state = ExplainState.IDLE
        # partial text is on the sink without its closing newline
        self._line_open = False

    async def run(self, spec: RequestSpec) -> str:
        if self.state is not ExplainState.IDLE:
            raise RuntimeError("Explainer runs a single request; create a new one")
        request = self.adapter.build_request(spec)
        self._transition(ExplainState.SENDING)
        try:
            if spec.stream:
                text = await self._run_streaming(request)
            else:
                text = await self._run_buffered(request)
        except ProviderError:
            if self._line_open:
                # keep the partial output, end its line before the error is reported
                self._write("\n")
            self._transition(ExplainState.FAILED)
            raise
        self._transition(ExplainState.DONE)
        return text

    async def _run_buffered(self, request: HttpRequest) -> str:
        body = await self.transport.send(request)
        self._transition(ExplainState.BUFFERED)
        response = self.adapter.decode_body(body)
        self._write(response.text + "\n")
        return response.text

    async def _run_streaming(self, request: HttpRequest) -> str:
        acc: List[str] = []
        self._transition(ExplainState.STREAMING)
        async with aclosing(self.transport.stream(request)) as chunks:
            async with aclosing(self.adapter.decode_stream(chunks)) as events:
                async for event in events:
                    if isinstance(event, TextDelta):
                        if event.text:
                            acc.append(event.text)
                            self._write(event.text)
                    elif isinstance(event, Done):
                        self._write("\n")
                        return "".join(acc)
                    elif isinstance(event, Error):
                        if event.status_code is not None:
                            raise HttpStatusError(event.status_code, event.message)
                        if event.source == "provider":
                            raise ProviderError(event.message)
                        raise DecodeError(event.message)
        # decode_stream always ends on Done or Error
        raise DecodeError("stream ended without a terminal event")

    def _write(self, text: str) -> None:
        self.sink.write(text)
        self.sink.flush()
        if text:
            self._line_open = not text.endswith("\n")

    def _transition(self, state: ExplainState) -> None:
        logger.debug("state %s -> %s", self.state.value, state.value)
        self.state = state
