"""OpenAI chat completions adapter."""

import aiohttp

from medassist.models.model_chat import PromptRequest
from medassist.models.model_provider import ProviderId, ProviderSpec
from medassist.providers.base import JsonTransport, ProviderReply, estimate_tokens


class OpenAIProvider:
    provider_id = ProviderId.OPENAI

    def __init__(self, spec: ProviderSpec, session: aiohttp.ClientSession | None = None):
        self.spec = spec
        self.transport = JsonTransport(self.provider_id, spec.timeout_seconds, session)

    async def generate(self, request: PromptRequest) -> ProviderReply:
        if not self.spec.api_key:
            raise self.transport.reject("No API key configured")

        payload = {
            "model": self.spec.model,
            "messages": request.as_messages(),
            "max_tokens": request.max_tokens,
            "temperature": request.temperature,
        }
        data = await self.transport.post_json(
            f"{self.spec.endpoint.rstrip('/')}/chat/completions",
            payload,
            headers={"Authorization": f"Bearer {self.spec.api_key}"},
        )
        data = self.transport.expect_object(data)

        try:
            text = data["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError) as e:
            raise self.transport.reject(f"Unexpected response shape: {e!r}") from e

        usage = data.get("usage") or {}
        return ProviderReply(
            text=text.strip(),
            tokens_used=usage.get("total_tokens") or estimate_tokens(text),
        )

    async def close(self) -> None:
        await self.transport.close()
