# tests/conftest.py
import io
import os
import logging
import pytest

# Ensure a clean env: no MANSPLAIN_* leaks in from the shell running the tests
for _key in list(os.environ):
    if _key.startswith("MANSPLAIN_"):
        del os.environ[_key]

# IMPORTANT: import the package after envs are cleared
from mansplain.schemas.request import Provider, RequestSpec  # noqa: E402


class RecordingSink(io.StringIO):
    # StringIO that also remembers each write and flush, to check delta-by-delta forwarding
    def __init__(self) -> None:
        super().__init__()
        self.writes: list[str] = []
        self.flushes = 0

    def write(self, s: str) -> int:
        self.writes.append(s)
        return super().write(s)

    def flush(self) -> None:
        self.flushes += 1
        super().flush()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def make_spec():
    def _make(**overrides) -> RequestSpec:
        fields = {
            "provider": Provider.LOCAL,
            "model": "gemma3:12b",
            "endpoint": "http://localhost:11434",
            "api_key": None,
            "system_prompt": "Be condescending.",
            "user_content": "Explain ls.",
            "stream": False,
        }
        fields.update(overrides)
        return RequestSpec(**fields)
    return _make


@pytest.fixture
def caplog_info(caplog):
    caplog.set_level(logging.INFO)
    return caplog


@pytest.fixture
def caplog_debug(caplog):
    caplog.set_level(logging.DEBUG)
    return caplog
