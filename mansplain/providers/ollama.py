# Ollama /api/generate adapter
# payload: { "model": "gemma3:12b", "prompt": "<system>\n\n<man page>", "stream": true, "options": {...} }
# non-stream replies are one JSON object with 'response'; streams are NDJSON, the last line has 'done': true

import json
from typing import Any, Dict, List

from mansplain.providers.base import DecodeError, ProviderAdapter, ProviderError
from mansplain.providers.framing import NdjsonDecoder, snippet
from mansplain.schemas.events import DecodedEvent, Done, Error, TextDelta
from mansplain.schemas.request import HttpRequest, ProviderResponse, RequestSpec


def build_prompt(system: str, user: str) -> str:
    return f"{system}\n\n{user}"


class OllamaStreamDecoder(NdjsonDecoder):
    def decode_object(self, obj: Any) -> List[DecodedEvent]:
        if not isinstance(obj, dict):
            return [TextDelta(text="")]
        # if the server reports an error mid-stream, stop there
        err = obj.get("error")
        if isinstance(err, str) and err:
            return [Error(message=f"Ollama error: {err}", source="provider")]
        chunk = obj.get("response")
        if not isinstance(chunk, str):
            chunk = ""
        if obj.get("done") is True:
            events: List[DecodedEvent] = [TextDelta(text=chunk)] if chunk else []
            events.append(Done())
            return events
        return [TextDelta(text=chunk)]


class OllamaAdapter(ProviderAdapter):
    name = "ollama"

    def build_request(self, spec: RequestSpec) -> HttpRequest:
        payload: Dict[str, Any] = {
            "model": spec.model,
            "prompt": build_prompt(spec.system_prompt, spec.user_content),
            "stream": spec.stream,
        }
        # extra generation controls go under 'options' only when the caller set any
        if spec.options:
            payload["options"] = dict(spec.options)
        url = f"{spec.endpoint.rstrip('/')}/api/generate"
        return HttpRequest(url=url, headers=self.headers(spec), body=payload)

    def decode_body(self, body: bytes) -> ProviderResponse:
        try:
            data = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise DecodeError(f"Malformed Ollama response: {snippet(body.decode('utf-8', errors='replace'))!r}") from e
        if not isinstance(data, dict):
            raise DecodeError("Unexpected response type from Ollama.")
        err = data.get("error")
        if isinstance(err, str) and err:
            raise ProviderError(f"Ollama error: {err}")
        reply = data.get("response", "")
        if not isinstance(reply, str):
            raise DecodeError("Unexpected response type from Ollama.")
        model = data.get("model")
        return ProviderResponse(text=reply, model=model if isinstance(model, str) else None)

    def stream_decoder(self) -> OllamaStreamDecoder:
        return OllamaStreamDecoder()
