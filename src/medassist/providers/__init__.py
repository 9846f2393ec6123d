"""Provider adapters, one per ProviderId."""

from typing import Callable

import aiohttp

from medassist.models.model_provider import ProviderId, ProviderSpec
from medassist.providers.base import ProviderClient, ProviderReply, estimate_tokens
from medassist.providers.gemini import GeminiProvider
from medassist.providers.huggingface import HuggingFaceProvider
from medassist.providers.mock import MockProvider
from medassist.providers.ollama import OllamaProvider
from medassist.providers.openai import OpenAIProvider

ProviderFactory = Callable[[ProviderSpec, aiohttp.ClientSession | None], ProviderClient]

PROVIDER_FACTORIES: dict[ProviderId, ProviderFactory] = {
    ProviderId.OPENAI: OpenAIProvider,
    ProviderId.GEMINI: GeminiProvider,
    ProviderId.OLLAMA: OllamaProvider,
    ProviderId.HUGGINGFACE: HuggingFaceProvider,
    ProviderId.MOCK: MockProvider,
}


def build_provider(
    spec: ProviderSpec, session: aiohttp.ClientSession | None = None
) -> ProviderClient:
    return PROVIDER_FACTORIES[spec.id](spec, session)


def build_providers(
    specs: tuple[ProviderSpec, ...] | list[ProviderSpec],
    session: aiohttp.ClientSession | None = None,
) -> dict[ProviderId, ProviderClient]:
    return {spec.id: build_provider(spec, session) for spec in specs}


__all__ = [
    "PROVIDER_FACTORIES",
    "ProviderClient",
    "ProviderReply",
    "build_provider",
    "build_providers",
    "estimate_tokens",
]
