"""Deterministic offline provider, selected through configuration."""

import aiohttp

from medassist.constants import MOCK_DEFAULT_RESPONSE, MOCK_RESPONSES
from medassist.models.model_chat import PromptRequest, Role
from medassist.models.model_provider import ProviderId, ProviderSpec
from medassist.providers.base import ProviderReply, estimate_tokens

# keyword -> key in MOCK_RESPONSES, checked in order
_TRIGGERS = (
    ("diabetes", "diabetes"),
    ("hypertension", "hypertension"),
    ("blood pressure", "hypertension"),
    ("medication", "medication"),
    ("drug", "medication"),
)


class MockProvider:
    provider_id = ProviderId.MOCK

    def __init__(self, spec: ProviderSpec, session: aiohttp.ClientSession | None = None):
        self.spec = spec

    async def generate(self, request: PromptRequest) -> ProviderReply:
        last_user = next(
            (turn.text for turn in reversed(request.history) if turn.role is Role.USER),
            "",
        ).lower()

        text = MOCK_DEFAULT_RESPONSE
        for trigger, key in _TRIGGERS:
            if trigger in last_user:
                text = MOCK_RESPONSES[key]
                break

        return ProviderReply(
            text=text,
            tokens_used=estimate_tokens(request.as_text()) + estimate_tokens(text),
        )

    async def close(self) -> None:
        return None
