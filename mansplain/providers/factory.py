from typing import Dict, NamedTuple

from mansplain.providers.base import ProviderAdapter
from mansplain.providers.ollama import OllamaAdapter
from mansplain.providers.openai import OpenAICompatibleAdapter
from mansplain.schemas.request import Provider


class ConfigError(ValueError):
    stage = "config"


class ProviderPreset(NamedTuple):
    family: Provider
    api_url: str
    model: str
    requires_key: bool


PRESETS: Dict[str, ProviderPreset] = {
    "ollama": ProviderPreset(Provider.LOCAL, "http://localhost:11434", "gemma3:12b", False),
    "perplexity": ProviderPreset(Provider.OPENAI_COMPATIBLE, "https://api.perplexity.ai", "sonar", True),
    "openai": ProviderPreset(Provider.OPENAI_COMPATIBLE, "https://api.openai.com/v1", "gpt-4o-mini", True),
}

_ADAPTERS = {
    Provider.LOCAL: OllamaAdapter,
    Provider.OPENAI_COMPATIBLE: OpenAICompatibleAdapter,
}


def get_preset(name: str) -> ProviderPreset:
    preset = PRESETS.get(name.strip().lower())
    if preset is None:
        supported = ", ".join(PRESETS)
        raise ConfigError(f"Unknown provider '{name}'. Supported providers: {supported}")
    return preset


def get_adapter(provider: Provider) -> ProviderAdapter:
    return _ADAPTERS[provider]()
