"""
Fallback-chain routing over provider clients.

One call walks the chain in priority order as an explicit state machine:

    NEXT_PROVIDER -> ATTEMPTING -> (SUCCESS | RETRY_WAIT -> ATTEMPTING | NEXT_PROVIDER)
    NEXT_PROVIDER with no providers left -> EXHAUSTED

Timeouts and TransientProviderError go to RETRY_WAIT while attempts remain;
ProviderRejection goes straight to NEXT_PROVIDER.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping, Sequence

from medassist.data_sources.base_client import RetryConfig
from medassist.errors import (
    AllProvidersExhausted,
    ProviderRejection,
    TransientProviderError,
)
from medassist.models.model_chat import GenerationResult, PromptRequest
from medassist.models.model_provider import ProviderId, ProviderSpec
from medassist.providers.base import ProviderClient, ProviderReply

logger = logging.getLogger(__name__)


class RouterState(str, Enum):
    ATTEMPTING = "attempting"
    RETRY_WAIT = "retry_wait"
    NEXT_PROVIDER = "next_provider"
    SUCCESS = "success"
    EXHAUSTED = "exhausted"


@dataclass
class _Route:
    """Mutable state of a single generate() call."""

    chain: Sequence[ProviderSpec]
    state: RouterState = RouterState.NEXT_PROVIDER
    index: int = -1
    attempt: int = 0
    reply: ProviderReply | None = None
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def spec(self) -> ProviderSpec:
        return self.chain[self.index]


class RetryingProviderRouter:
    """Returns the first successful generation from an ordered provider chain."""

    def __init__(
        self,
        clients: Mapping[ProviderId, ProviderClient],
        retry: RetryConfig | None = None,
    ):
        self.clients = dict(clients)
        self.retry = retry or RetryConfig()

    async def generate(
        self, request: PromptRequest, chain: Sequence[ProviderSpec]
    ) -> GenerationResult:
        """
        Try each provider in ``chain`` until one succeeds.

        Raises
        ------
        AllProvidersExhausted
            With the last error from every provider that was tried.
        """
        route = _Route(chain=sorted(chain, key=lambda s: s.priority))
        start = time.monotonic()

        while True:
            if route.state is RouterState.NEXT_PROVIDER:
                self._next_provider(route)

            elif route.state is RouterState.ATTEMPTING:
                await self._attempt(route, request)

            elif route.state is RouterState.RETRY_WAIT:
                delay = self.retry.backoff(route.attempt)
                logger.debug(
                    "Backing off %.1fs before %s attempt=%d",
                    delay,
                    route.spec.id.value,
                    route.attempt + 1,
                )
                await asyncio.sleep(delay)
                route.state = RouterState.ATTEMPTING

            elif route.state is RouterState.SUCCESS:
                assert route.reply is not None
                latency_ms = int((time.monotonic() - start) * 1000)
                logger.info(
                    "Generated with %s attempt=%d latency=%dms tokens=%d",
                    route.spec.id.value,
                    route.attempt,
                    latency_ms,
                    route.reply.tokens_used,
                )
                return GenerationResult(
                    text=route.reply.text,
                    tokens_used=route.reply.tokens_used,
                    provider_used=route.spec.id,
                    latency_ms=latency_ms,
                )

            else:
                logger.error("All providers exhausted: %s", route.errors)
                raise AllProvidersExhausted(route.errors)

    def _next_provider(self, route: _Route) -> None:
        route.index += 1
        route.attempt = 0
        while route.index < len(route.chain):
            if route.spec.id in self.clients:
                route.state = RouterState.ATTEMPTING
                return
            logger.warning("No client registered for %s, skipping", route.spec.id.value)
            route.errors[route.spec.id.value] = "no client registered"
            route.index += 1
        route.state = RouterState.EXHAUSTED

    async def _attempt(self, route: _Route, request: PromptRequest) -> None:
        spec = route.spec
        client = self.clients[spec.id]
        route.attempt += 1

        try:
            route.reply = await asyncio.wait_for(
                client.generate(request), timeout=spec.timeout_seconds
            )
        except ProviderRejection as e:
            logger.warning("Provider %s rejected the request: %s", spec.id.value, e)
            route.errors[spec.id.value] = str(e)
            route.state = RouterState.NEXT_PROVIDER
            return
        except asyncio.TimeoutError:
            error = f"[{spec.id.value}] Timeout after {spec.timeout_seconds:.1f}s"
            self._transient(route, error)
            return
        except TransientProviderError as e:
            self._transient(route, str(e))
            return

        route.state = RouterState.SUCCESS

    def _transient(self, route: _Route, error: str) -> None:
        logger.warning(
            "Transient failure [%s] attempt=%d/%d: %s",
            route.spec.id.value,
            route.attempt,
            self.retry.max_attempts,
            error,
        )
        route.errors[route.spec.id.value] = error
        if route.attempt < self.retry.max_attempts:
            route.state = RouterState.RETRY_WAIT
        else:
            route.state = RouterState.NEXT_PROVIDER
