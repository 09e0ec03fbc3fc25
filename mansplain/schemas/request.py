from enum import Enum
from typing import Any, Dict, NamedTuple, Optional
from pydantic import BaseModel, ConfigDict, Field


class Provider(str, Enum):
    LOCAL = "local"
    OPENAI_COMPATIBLE = "openai_compatible"


class RequestSpec(BaseModel):
    """
    Everything one invocation needs to talk to a backend.
    Built once from the resolved configuration and never mutated afterwards.
    """
    model_config = ConfigDict(frozen=True)

    provider: Provider
    model: str = Field(min_length=1)
    endpoint: str = Field(min_length=1)
    api_key: Optional[str] = None
    system_prompt: str
    user_content: str
    stream: bool = False
    options: Dict[str, Any] = Field(default_factory=dict)


class HttpRequest(NamedTuple):
    url: str
    headers: Dict[str, str]
    body: Dict[str, Any]


class ProviderResponse(BaseModel):
    text: str
    model: Optional[str] = None
