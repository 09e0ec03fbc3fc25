# sends the one POST of an invocation with httpx, either buffered or as a live byte stream
# network failures become TransportError, non-2xx replies become HttpStatusError

import json
import logging
from typing import AsyncIterator, Dict, Optional

import httpx

from mansplain.core import config
from mansplain.providers.base import HttpStatusError, TransportError
from mansplain.schemas.request import HttpRequest

logger = logging.getLogger(__name__)


def default_timeout() -> httpx.Timeout:
    # TIMEOUT=0 means wait forever for the next read
    read = config.TIMEOUT if config.TIMEOUT > 0 else None
    return httpx.Timeout(read, connect=config.CONNECT_TIMEOUT)


def _redacted(headers: Dict[str, str]) -> Dict[str, str]:
    return {k: ("Bearer ***" if k.lower() == "authorization" else v) for k, v in headers.items()}


class HttpTransport:
    def __init__(self, timeout: Optional[httpx.Timeout] = None) -> None:
        self._timeout = timeout if timeout is not None else default_timeout()

    def _log_request(self, request: HttpRequest) -> None:
        if not logger.isEnabledFor(logging.DEBUG):
            return
        logger.debug("URL: %s", request.url)
        logger.debug("Headers: %s", _redacted(request.headers))
        logger.debug("Payload: %s", json.dumps(request.body, indent=2, ensure_ascii=False))

    async def send(self, request: HttpRequest) -> bytes:
        """POST and wait for the full body."""
        self._log_request(request)
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                r = await client.post(request.url, json=request.body, headers=request.headers)
                logger.debug("response status %s, %d bytes", r.status_code, len(r.content))
                if not r.is_success:
                    raise HttpStatusError(r.status_code, r.text)
                return r.content
        except httpx.HTTPError as e:
            raise TransportError(f"Failed to connect to LLM API: {e}") from e

    async def stream(self, request: HttpRequest) -> AsyncIterator[bytes]:
        """POST and yield body chunks as they arrive. The status is checked before the first chunk."""
        self._log_request(request)
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                async with client.stream("POST", request.url, json=request.body, headers=request.headers) as r:
                    logger.debug("response status %s, streaming", r.status_code)
                    if not r.is_success:
                        body = await r.aread()
                        raise HttpStatusError(r.status_code, body.decode("utf-8", errors="replace"))
                    async for chunk in r.aiter_bytes():
                        yield chunk
        except httpx.HTTPError as e:
            raise TransportError(f"Failed to read from LLM API: {e}") from e
