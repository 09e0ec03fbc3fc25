# centralized configuration loader
# runs load_dotenv() to read .env
# every value here is a default; CLI flags win over them

import os
from typing import Optional
from dotenv import load_dotenv

load_dotenv()


def _get_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "y"}


def _get_optional(name: str) -> Optional[str]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return value


def _get_optional_float(name: str) -> Optional[float]:
    value = _get_optional(name)
    return float(value) if value is not None else None


def _get_optional_int(name: str) -> Optional[int]:
    value = _get_optional(name)
    return int(value) if value is not None else None


# Provider selection (ollama, perplexity, openai)
PROVIDER = os.getenv("MANSPLAIN_PROVIDER", "ollama")
MODEL = _get_optional("MANSPLAIN_MODEL")
API_URL = _get_optional("MANSPLAIN_API_URL")
API_KEY = _get_optional("MANSPLAIN_API_KEY")

# custom system prompt, replaces the bundled one
PROMPT = _get_optional("MANSPLAIN_PROMPT")

STREAM = _get_bool("MANSPLAIN_STREAM")
DEBUG = _get_bool("MANSPLAIN_DEBUG")

# transport timeouts in seconds; 0 disables the read timeout
TIMEOUT = float(os.getenv("MANSPLAIN_TIMEOUT", "120"))
CONNECT_TIMEOUT = float(os.getenv("MANSPLAIN_CONNECT_TIMEOUT", "10"))

# local-generation options, only sent when set
TEMPERATURE = _get_optional_float("MANSPLAIN_TEMPERATURE")
NUM_CTX = _get_optional_int("MANSPLAIN_NUM_CTX")
