# tests/test_providers_ollama.py
import json
import pytest
import respx
import httpx
from mansplain.providers.base import DecodeError, ProviderError, TransportError
from mansplain.providers.ollama import OllamaAdapter
from mansplain.providers.transport import HttpTransport
from mansplain.schemas.events import Done, Error, TextDelta

BASE = "http://localhost:11434"
MODEL = "gemma3:12b"


async def collect(adapter, chunks):
    return [event async for event in adapter.decode_stream(chunks)]


def test_build_request_payload(make_spec):
    # Tests the /api/generate request shape:
    # - system prompt and man page text are joined into one 'prompt'
    # - no 'options' key unless options were configured
    # - no Authorization header without an API key
    spec = make_spec(stream=True)
    url, headers, body = OllamaAdapter().build_request(spec)
    assert url == f"{BASE}/api/generate"
    assert body == {
        "model": MODEL,
        "prompt": "Be condescending.\n\nExplain ls.",
        "stream": True,
    }
    assert headers["Content-Type"] == "application/json"
    assert "Authorization" not in headers


def test_build_request_with_options_and_key(make_spec):
    spec = make_spec(endpoint=f"{BASE}/", api_key="secret", options={"temperature": 0.2, "num_ctx": 4096})
    url, headers, body = OllamaAdapter().build_request(spec)
    assert url == f"{BASE}/api/generate"
    assert body["options"] == {"temperature": 0.2, "num_ctx": 4096}
    assert headers["Authorization"] == "Bearer secret"


def test_decode_body_ok():
    out = OllamaAdapter().decode_body(b'{"model":"gemma3:12b","response":"hello","done":true}')
    assert out.text == "hello"
    assert out.model == MODEL


def test_decode_body_missing_response_is_empty():
    assert OllamaAdapter().decode_body(b'{"done":true}').text == ""


def test_decode_body_error_field():
    # Tests non-streaming error handling:
    # - a 200 response that includes an "error" field instead of "response"
    # - decode_body raises ProviderError in this case.
    with pytest.raises(ProviderError, match="model not loaded"):
        OllamaAdapter().decode_body(b'{"error": "model not loaded"}')


@pytest.mark.parametrize("body", [b"not json", b'{"response": 42}', b"[]"])
def test_decode_body_malformed(body):
    with pytest.raises(DecodeError):
        OllamaAdapter().decode_body(body)


@pytest.mark.asyncio
@respx.mock
async def test_nonstream_roundtrip(make_spec):
    # Tests a normal non-streaming Ollama request through the real transport:
    # - Mocks a 200 response with "response":"hello"
    # - Verifies the endpoint was called with the built payload.
    adapter = OllamaAdapter()
    route = respx.post(f"{BASE}/api/generate").mock(
        return_value=httpx.Response(200, json={"response": "hello", "done": True})
    )
    request = adapter.build_request(make_spec())
    body = await HttpTransport().send(request)
    assert adapter.decode_body(body).text == "hello"
    assert route.called
    sent = json.loads(route.calls.last.request.content)
    assert sent["stream"] is False
    assert sent["model"] == MODEL


@pytest.mark.asyncio
@respx.mock
async def test_stream_ok(make_spec):
    # Tests a successful streaming Ollama request:
    # - Mocks multiple NDJSON lines coming from Ollama
    # - Verifies the deltas concatenate into the final output, followed by Done.
    adapter = OllamaAdapter()
    chunks = [
        b'{"response":"he","done":false}\n',
        b'{"response":"llo","done":false}\n',
        b'{"response":"","done":true}\n',
    ]
    respx.post(f"{BASE}/api/generate").mock(
        return_value=httpx.Response(200, content=b"".join(chunks), headers={"Content-Type": "application/x-ndjson"})
    )
    request = adapter.build_request(make_spec(stream=True))
    events = await collect(adapter, HttpTransport().stream(request))
    assert "".join(e.text for e in events if isinstance(e, TextDelta)) == "hello"
    assert events[-1] == Done()


@pytest.mark.asyncio
@respx.mock
async def test_stream_error_mid(make_spec):
    # Tests error handling during a stream:
    # - the second line contains an "error" field
    # - the sequence ends on that Error, after the text already decoded.
    adapter = OllamaAdapter()
    chunks = [
        b'{"response":"he","done":false}\n',
        b'{"error":"boom"}\n',
    ]
    respx.post(f"{BASE}/api/generate").mock(
        return_value=httpx.Response(200, content=b"".join(chunks), headers={"Content-Type": "application/x-ndjson"})
    )
    request = adapter.build_request(make_spec(stream=True))
    events = await collect(adapter, HttpTransport().stream(request))
    assert events[0] == TextDelta(text="he")
    assert isinstance(events[1], Error)
    assert events[1].source == "provider"
    assert len(events) == 2


@pytest.mark.asyncio
@respx.mock
async def test_stream_http_status_is_only_event(make_spec):
    # A non-2xx status yields a single Error carrying the status and body; no text at all.
    adapter = OllamaAdapter()
    respx.post(f"{BASE}/api/generate").mock(
        return_value=httpx.Response(404, text='{"error":"model \\"nope\\" not found"}')
    )
    request = adapter.build_request(make_spec(stream=True, model="nope"))
    events = await collect(adapter, HttpTransport().stream(request))
    assert len(events) == 1
    assert isinstance(events[0], Error)
    assert events[0].status_code == 404
    assert "not found" in events[0].message


@pytest.mark.asyncio
@respx.mock
async def test_stream_connect_failure_is_transport_error(make_spec):
    # Network failures are not decode events: they surface as TransportError.
    adapter = OllamaAdapter()
    respx.post(f"{BASE}/api/generate").mock(side_effect=httpx.ConnectError("connection refused"))
    request = adapter.build_request(make_spec(stream=True))
    with pytest.raises(TransportError, match="connection refused"):
        await collect(adapter, HttpTransport().stream(request))


@pytest.mark.asyncio
async def test_stream_truncated_body_ends_with_error():
    # The body stops without a done:true record.
    async def chunks():
        yield b'{"response":"he","done":false}\n'
        yield b'{"response":"ll'

    events = await collect(OllamaAdapter(), chunks())
    assert events[0] == TextDelta(text="he")
    assert isinstance(events[-1], Error)
    assert len(events) == 2
