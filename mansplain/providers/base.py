# declares the provider adapter contract (build_request / decode) that every backend family implements
# and the error types the rest of the program uses to tell provider faults apart

from abc import ABC, abstractmethod
from typing import AsyncIterable, AsyncIterator, Dict, Optional

from mansplain.providers.framing import StreamDecoder, snippet
from mansplain.schemas.events import DecodedEvent, Error
from mansplain.schemas.request import HttpRequest, ProviderResponse, RequestSpec

BODY_SNIPPET_LIMIT = 500


class ProviderError(Exception):
    stage = "provider"


class TransportError(ProviderError):
    stage = "transport"


class HttpStatusError(ProviderError):
    stage = "http"

    def __init__(self, status_code: int, body: str = "") -> None:
        self.status_code = status_code
        self.body = snippet(body.strip(), BODY_SNIPPET_LIMIT)
        message = f"LLM API returned error: {status_code}"
        if self.body:
            message += f"\nDetails: {self.body}"
        super().__init__(message)


class DecodeError(ProviderError):
    stage = "decode"


class ProviderAdapter(ABC):
    """
    One adapter per backend family.
    - build_request: RequestSpec -> (url, headers, json body)
    - decode_body:   full response body -> ProviderResponse
    - decode_stream: live byte chunks -> DecodedEvent sequence
    Adapters hold no state; every stream gets its own decoder.
    """

    name: str = "base"

    @abstractmethod
    def build_request(self, spec: RequestSpec) -> HttpRequest:
        raise NotImplementedError

    @abstractmethod
    def decode_body(self, body: bytes) -> ProviderResponse:
        raise NotImplementedError

    @abstractmethod
    def stream_decoder(self) -> StreamDecoder:
        raise NotImplementedError

    def headers(self, spec: RequestSpec, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if spec.api_key:
            headers["Authorization"] = f"Bearer {spec.api_key}"
        if extra:
            headers.update(extra)
        return headers

    async def decode_stream(self, chunks: AsyncIterable[bytes]) -> AsyncIterator[DecodedEvent]:
        decoder = self.stream_decoder()
        try:
            async for chunk in chunks:
                for event in decoder.feed(chunk):
                    yield event
                if decoder.finished:
                    return
        except HttpStatusError as e:
            # raised by the transport before the first chunk, so nothing was emitted yet
            yield Error(message=e.body, status_code=e.status_code)
            return
        for event in decoder.close():
            yield event
