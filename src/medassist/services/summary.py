"""AI summaries of individual articles, routed through the provider chain."""

import asyncio
import logging
from typing import Sequence

from medassist.constants import (
    SUMMARY_MAX_TOKENS,
    SUMMARY_PROMPT,
    SUMMARY_SYSTEM_PROMPT,
    SUMMARY_TEMPERATURE,
)
from medassist.errors import AllProvidersExhausted
from medassist.models.model_article import ArticleRecord
from medassist.models.model_chat import ChatTurn, PromptRequest, Role
from medassist.models.model_provider import ProviderSpec
from medassist.services.router import RetryingProviderRouter

logger = logging.getLogger(__name__)


class SummaryGenerator:
    """Summaries are best effort: a failed summary is an empty string."""

    def __init__(
        self,
        router: RetryingProviderRouter,
        chain: Sequence[ProviderSpec],
        max_length: int = 800,
        max_parallelism: int = 4,
    ):
        self.router = router
        self.chain = tuple(chain)
        self.max_length = max_length
        self._semaphore = asyncio.Semaphore(max_parallelism)

    def build_request(self, article: ArticleRecord) -> PromptRequest:
        prompt = SUMMARY_PROMPT.format(title=article.title, abstract=article.abstract_text)
        return PromptRequest(
            system_prompt=SUMMARY_SYSTEM_PROMPT,
            history=(ChatTurn(role=Role.USER, text=prompt),),
            max_tokens=SUMMARY_MAX_TOKENS,
            temperature=SUMMARY_TEMPERATURE,
        )

    async def summarize(self, article: ArticleRecord) -> str:
        if not article.abstract_text:
            return ""
        try:
            async with self._semaphore:
                result = await self.router.generate(self.build_request(article), self.chain)
        except AllProvidersExhausted as e:
            logger.warning("No summary for PMID %s: %s", article.pmid, e)
            return ""
        return result.text.strip()[: self.max_length]

    async def summarize_many(self, articles: Sequence[ArticleRecord]) -> dict[str, str]:
        """Summarize concurrently; completion order does not matter to the caller."""
        summaries = await asyncio.gather(*(self.summarize(a) for a in articles))
        return {article.pmid: summary for article, summary in zip(articles, summaries)}
