"""Google Gemini generateContent adapter."""

import aiohttp

from medassist.models.model_chat import PromptRequest, Role
from medassist.models.model_provider import ProviderId, ProviderSpec
from medassist.providers.base import JsonTransport, ProviderReply, estimate_tokens


class GeminiProvider:
    provider_id = ProviderId.GEMINI

    top_p = 0.8
    top_k = 40

    def __init__(self, spec: ProviderSpec, session: aiohttp.ClientSession | None = None):
        self.spec = spec
        self.transport = JsonTransport(self.provider_id, spec.timeout_seconds, session)

    def _payload(self, request: PromptRequest) -> dict:
        contents = [
            {
                "role": "user" if turn.role is Role.USER else "model",
                "parts": [{"text": turn.text}],
            }
            for turn in request.history
        ]
        return {
            "systemInstruction": {"parts": [{"text": request.system_message}]},
            "contents": contents,
            "generationConfig": {
                "temperature": request.temperature,
                "maxOutputTokens": request.max_tokens,
                "topP": self.top_p,
                "topK": self.top_k,
            },
        }

    async def generate(self, request: PromptRequest) -> ProviderReply:
        if not self.spec.api_key:
            raise self.transport.reject("No API key configured")

        data = await self.transport.post_json(
            f"{self.spec.endpoint.rstrip('/')}/models/{self.spec.model}:generateContent",
            self._payload(request),
            params={"key": self.spec.api_key},
        )
        data = self.transport.expect_object(data)

        block_reason = (data.get("promptFeedback") or {}).get("blockReason")
        if block_reason:
            raise self.transport.reject(f"Prompt blocked: {block_reason}")

        try:
            parts = data["candidates"][0]["content"]["parts"]
            text = "".join(part.get("text", "") for part in parts).strip()
        except (KeyError, IndexError, TypeError, AttributeError) as e:
            raise self.transport.reject(f"Unexpected response shape: {e!r}") from e

        usage = data.get("usageMetadata") or {}
        return ProviderReply(
            text=text,
            tokens_used=usage.get("totalTokenCount") or estimate_tokens(text),
        )

    async def close(self) -> None:
        await self.transport.close()
