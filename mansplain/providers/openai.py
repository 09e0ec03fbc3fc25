# OpenAI-compatible /chat/completions adapter (OpenAI, Perplexity, and anything speaking the same dialect)
# non-stream replies carry choices[0].message.content; streams are SSE frames with choices[0].delta.content

import json
from typing import Any, Dict, List, Optional

from mansplain.providers.base import DecodeError, ProviderAdapter, ProviderError
from mansplain.providers.framing import SseDecoder, snippet
from mansplain.schemas.events import DecodedEvent, Error, TextDelta
from mansplain.schemas.request import HttpRequest, ProviderResponse, RequestSpec


def _first_choice(obj: Dict[str, Any]) -> Dict[str, Any]:
    choices = obj.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return {}
    return choices[0]


def _error_message(obj: Dict[str, Any]) -> Optional[str]:
    err = obj.get("error")
    if isinstance(err, dict):
        msg = err.get("message")
        return msg if isinstance(msg, str) and msg else json.dumps(err)
    if isinstance(err, str) and err:
        return err
    return None


class OpenAIStreamDecoder(SseDecoder):
    def decode_object(self, obj: Any) -> List[DecodedEvent]:
        if not isinstance(obj, dict):
            return [TextDelta(text="")]
        err = _error_message(obj)
        if err:
            return [Error(message=f"LLM API error: {err}", source="provider")]
        delta = _first_choice(obj).get("delta")
        content = delta.get("content") if isinstance(delta, dict) else None
        # role-only and usage frames have no content; they count as an empty delta
        return [TextDelta(text=content if isinstance(content, str) else "")]


class OpenAICompatibleAdapter(ProviderAdapter):
    name = "openai"

    def build_request(self, spec: RequestSpec) -> HttpRequest:
        payload: Dict[str, Any] = {
            "model": spec.model,
            "messages": [
                {"role": "system", "content": spec.system_prompt},
                {"role": "user", "content": spec.user_content},
            ],
            "stream": spec.stream,
        }
        extra = {"Accept": "text/event-stream"} if spec.stream else None
        url = f"{spec.endpoint.rstrip('/')}/chat/completions"
        return HttpRequest(url=url, headers=self.headers(spec, extra), body=payload)

    def decode_body(self, body: bytes) -> ProviderResponse:
        try:
            data = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise DecodeError(f"Failed to parse API response: {snippet(body.decode('utf-8', errors='replace'))!r}") from e
        if not isinstance(data, dict):
            raise DecodeError("Failed to parse API response: expected a JSON object")
        err = _error_message(data)
        if err:
            raise ProviderError(f"LLM API error: {err}")
        message = _first_choice(data).get("message")
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str):
            raise DecodeError("No response content in API response")
        model = data.get("model")
        return ProviderResponse(text=content, model=model if isinstance(model, str) else None)

    def stream_decoder(self) -> OpenAIStreamDecoder:
        return OpenAIStreamDecoder()
