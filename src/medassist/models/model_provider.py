"""Provider configuration models."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ProviderId(str, Enum):
    OPENAI = "openai"
    GEMINI = "gemini"
    OLLAMA = "ollama"
    HUGGINGFACE = "huggingface"
    MOCK = "mock"


class ProviderSpec(BaseModel):
    """Static configuration for one provider in the fallback chain."""

    model_config = ConfigDict(frozen=True)

    id: ProviderId
    endpoint: str = ""
    model: str = ""
    timeout_seconds: float = 30.0
    priority: int = 0  # lower is tried first
    api_key: str = Field(default="", repr=False)
