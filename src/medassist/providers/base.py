"""
Shared pieces for provider adapters.

Every adapter exposes the same ``generate`` capability (see ProviderClient) and
owns a JsonTransport, which holds the aiohttp session and maps HTTP failures
onto TransientProviderError / ProviderRejection.
"""

import asyncio
import json
import logging
from typing import Any, Protocol, runtime_checkable

import aiohttp
from pydantic import BaseModel

from medassist.constants import RETRYABLE_STATUS_CODES
from medassist.errors import ProviderRejection, TransientProviderError
from medassist.models.model_chat import PromptRequest
from medassist.models.model_provider import ProviderId

logger = logging.getLogger(__name__)


class ProviderReply(BaseModel):
    """Raw output of one successful provider call."""

    text: str
    tokens_used: int


@runtime_checkable
class ProviderClient(Protocol):
    """Turns a PromptRequest into generated text. Performs no medical logic."""

    provider_id: ProviderId

    async def generate(self, request: PromptRequest) -> ProviderReply: ...

    async def close(self) -> None: ...


def estimate_tokens(text: str) -> int:
    """Word-count approximation for vendors that report no usage."""
    return len(text.split())


class JsonTransport:
    """POSTs JSON to one vendor and classifies failures for the router."""

    def __init__(
        self,
        provider: ProviderId,
        timeout_seconds: float,
        session: aiohttp.ClientSession | None = None,
    ):
        self.provider = provider
        self.timeout_seconds = timeout_seconds
        self._session = session
        self._owns_session = session is None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
            self._session = aiohttp.ClientSession(timeout=timeout)
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()

    def reject(self, message: str, status_code: int | None = None) -> ProviderRejection:
        return ProviderRejection(self.provider.value, message, status_code=status_code)

    async def post_json(
        self,
        url: str,
        payload: dict[str, Any],
        *,
        headers: dict[str, str] | None = None,
        params: dict[str, str] | None = None,
    ) -> Any:
        session = await self._get_session()
        try:
            resp = await session.post(url, json=payload, headers=headers, params=params)
            body = await resp.text()
        except asyncio.TimeoutError as e:
            raise TransientProviderError(self.provider.value, "Request timed out") from e
        except aiohttp.ClientError as e:
            raise TransientProviderError(
                self.provider.value, f"Connection error: {e}"
            ) from e

        if resp.status in RETRYABLE_STATUS_CODES:
            raise TransientProviderError(
                self.provider.value,
                f"HTTP {resp.status}: {body[:200]}",
                status_code=resp.status,
            )
        if resp.status >= 400:
            raise self.reject(f"HTTP {resp.status}: {body[:500]}", status_code=resp.status)

        try:
            data = json.loads(body)
        except json.JSONDecodeError as e:
            raise self.reject(f"Invalid JSON response: {e}") from e
        if not isinstance(data, (dict, list)):
            raise self.reject(f"Unexpected JSON body: {body[:200]}")
        return data

    def expect_object(self, data: Any) -> dict[str, Any]:
        if not isinstance(data, dict):
            raise self.reject(f"Expected a JSON object, got {type(data).__name__}")
        return data
