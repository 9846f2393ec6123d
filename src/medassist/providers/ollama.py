"""Local Ollama /api/chat adapter."""

import aiohttp

from medassist.models.model_chat import PromptRequest
from medassist.models.model_provider import ProviderId, ProviderSpec
from medassist.providers.base import JsonTransport, ProviderReply, estimate_tokens


class OllamaProvider:
    provider_id = ProviderId.OLLAMA

    def __init__(self, spec: ProviderSpec, session: aiohttp.ClientSession | None = None):
        self.spec = spec
        self.transport = JsonTransport(self.provider_id, spec.timeout_seconds, session)

    async def generate(self, request: PromptRequest) -> ProviderReply:
        payload = {
            "model": self.spec.model,
            "messages": request.as_messages(),
            "stream": False,
            "options": {
                "temperature": request.temperature,
                "num_predict": request.max_tokens,
            },
        }
        data = await self.transport.post_json(
            f"{self.spec.endpoint.rstrip('/')}/api/chat", payload
        )
        data = self.transport.expect_object(data)

        if data.get("error"):
            raise self.transport.reject(str(data["error"]))
        try:
            text = data["message"]["content"].strip()
        except (KeyError, TypeError, AttributeError) as e:
            raise self.transport.reject(f"Unexpected response shape: {e!r}") from e

        tokens = (data.get("prompt_eval_count") or 0) + (data.get("eval_count") or 0)
        return ProviderReply(text=text, tokens_used=tokens or estimate_tokens(text))

    async def close(self) -> None:
        await self.transport.close()
