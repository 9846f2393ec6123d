"""Hugging Face Inference API adapter (text-generation models)."""

import aiohttp

from medassist.errors import TransientProviderError
from medassist.models.model_chat import PromptRequest
from medassist.models.model_provider import ProviderId, ProviderSpec
from medassist.providers.base import JsonTransport, ProviderReply, estimate_tokens


class HuggingFaceProvider:
    provider_id = ProviderId.HUGGINGFACE

    def __init__(self, spec: ProviderSpec, session: aiohttp.ClientSession | None = None):
        self.spec = spec
        self.transport = JsonTransport(self.provider_id, spec.timeout_seconds, session)

    async def generate(self, request: PromptRequest) -> ProviderReply:
        prompt = request.as_text()
        payload = {
            "inputs": prompt,
            "parameters": {
                "max_new_tokens": request.max_tokens,
                "temperature": max(request.temperature, 0.01),
                "do_sample": True,
                "top_p": 0.9,
                "repetition_penalty": 1.1,
                "return_full_text": False,
            },
            "options": {"wait_for_model": True, "use_cache": True},
        }
        headers = {}
        if self.spec.api_key:
            headers["Authorization"] = f"Bearer {self.spec.api_key}"

        data = await self.transport.post_json(
            f"{self.spec.endpoint.rstrip('/')}/models/{self.spec.model}",
            payload,
            headers=headers,
        )

        if isinstance(data, dict) and data.get("error"):
            # the API reports a cold model with an estimated_time
            if "estimated_time" in data:
                raise TransientProviderError(self.provider_id.value, str(data["error"]))
            raise self.transport.reject(str(data["error"]))

        try:
            generated = data[0]["generated_text"]
        except (KeyError, IndexError, TypeError) as e:
            raise self.transport.reject(f"Unexpected response shape: {e!r}") from e

        if generated.startswith(prompt):
            generated = generated[len(prompt) :]
        text = generated.strip()
        if not text:
            raise self.transport.reject("Empty generation")

        return ProviderReply(text=text, tokens_used=estimate_tokens(prompt) + estimate_tokens(text))

    async def close(self) -> None:
        await self.transport.close()
