"""
MedicalAssistant: the entry point collaborators call.

Owns every component of the chat and literature flows and wires them from
Settings:

  chat    ConversationContextBuilder -> RateLimiter -> RetryingProviderRouter
  search  RateLimiter -> PubMedClient.search -> ArticleCache -> fetch misses
          -> RelevanceScorer -> SummaryGenerator -> deterministic ranking
"""

import logging
from typing import Sequence

from medassist.config import Settings, get_settings
from medassist.constants import (
    DEFAULT_FOLLOW_UP_QUESTIONS,
    QUESTIONS_PROMPT,
    QUESTIONS_SYSTEM_PROMPT,
)
from medassist.data_sources.base_client import RetryConfig
from medassist.data_sources.pubmed import PubMedClient
from medassist.errors import AllProvidersExhausted, LiteratureApiError, RateLimited
from medassist.models.model_article import (
    ArticleRecord,
    ScoredArticle,
    SearchQuery,
    Specialty,
)
from medassist.models.model_chat import (
    ChatFailure,
    ChatTurn,
    EmergencyShortCircuit,
    GenerationResult,
    OutcomeCode,
    PromptRequest,
    Role,
)
from medassist.models.model_provider import ProviderId, ProviderSpec
from medassist.providers import build_providers
from medassist.providers.base import ProviderClient
from medassist.services.article_cache import ArticleCache
from medassist.services.context_builder import ConversationContextBuilder
from medassist.services.rate_limiter import RateLimiter, RateLimitSettings
from medassist.services.relevance import RelevanceScorer, sort_scored
from medassist.services.router import RetryingProviderRouter
from medassist.services.summary import SummaryGenerator

logger = logging.getLogger(__name__)

ANONYMOUS_USER = "anonymous"
MAX_SUGGESTED_QUESTIONS = 3

ChatOutcome = GenerationResult | EmergencyShortCircuit | ChatFailure


class MedicalAssistant:
    """Chat and literature-search facade over the provider chain and PubMed."""

    def __init__(
        self,
        settings: Settings,
        clients: dict[ProviderId, ProviderClient],
        chain: Sequence[ProviderSpec],
        pubmed: PubMedClient,
        retry: RetryConfig | None = None,
        rate_limiter: RateLimiter | None = None,
        cache: ArticleCache | None = None,
        scorer: RelevanceScorer | None = None,
        context_builder: ConversationContextBuilder | None = None,
    ):
        self.settings = settings
        self.clients = clients
        self.chain = tuple(chain)
        self.pubmed = pubmed
        self.router = RetryingProviderRouter(clients, retry)
        self.rate_limiter = rate_limiter or RateLimiter(
            RateLimitSettings(
                enabled=settings.rate_limit_enabled,
                requests_per_minute=settings.rate_limit_rpm,
                requests_per_hour=settings.rate_limit_rph,
                burst_capacity=settings.rate_limit_burst,
            )
        )
        self.cache = cache or ArticleCache(
            settings.cache_ttl_seconds, refresher=self._refresh_article
        )
        self.scorer = scorer or RelevanceScorer()
        self.context_builder = context_builder or ConversationContextBuilder(
            system_prompt=settings.medical_system_prompt,
            specialty_prompts=settings.specialty_prompts,
            emergency_keywords=settings.emergency_keyword_list,
            emergency_response=settings.emergency_response,
            history_turns=settings.history_turns,
            max_tokens=settings.ai_max_tokens,
            temperature=settings.ai_temperature,
        )
        self.summaries = SummaryGenerator(
            self.router,
            self.chain,
            max_length=settings.pubmed_summary_max_length,
            max_parallelism=settings.max_parallelism,
        )

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "MedicalAssistant":
        settings = settings or get_settings()
        retry = RetryConfig(
            max_attempts=settings.ai_retry_max_attempts,
            delay_seconds=settings.ai_retry_delay_seconds,
            timeout_seconds=settings.ai_timeout_seconds,
        )
        chain = settings.provider_specs()
        pubmed = PubMedClient(
            base_url=settings.pubmed_base_url,
            api_key=settings.pubmed_api_key,
            retry=retry,
            max_parallelism=settings.max_parallelism,
        )
        return cls(settings, build_providers(chain), chain, pubmed, retry=retry)

    async def close(self) -> None:
        await self.cache.close()
        for client in self.clients.values():
            await client.close()
        await self.pubmed.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.close()

    # ------------------------------------------------------------------
    # Chat
    # ------------------------------------------------------------------

    async def generate_chat_reply(
        self,
        user_message: str,
        history: Sequence[ChatTurn] = (),
        medical_context: str | None = None,
        specialty: Specialty | None = None,
        *,
        user_id: str | None = None,
    ) -> ChatOutcome:
        """Answer one chat turn.

        Emergency messages are answered before admission and never reach a
        provider. Rate-limit denial and an exhausted chain come back as
        ChatFailure rather than raising.
        """
        built = self.context_builder.build(user_message, history, medical_context, specialty)
        if isinstance(built, EmergencyShortCircuit):
            logger.warning("Emergency keyword %r detected, short-circuiting", built.matched_keyword)
            return built

        user = user_id or ANONYMOUS_USER
        if not self.rate_limiter.admit(user):
            return ChatFailure(
                outcome=OutcomeCode.RATE_LIMITED,
                message=str(RateLimited(user)),
            )

        try:
            return await self.router.generate(built, self.chain)
        except AllProvidersExhausted as e:
            return ChatFailure(
                outcome=OutcomeCode.PROVIDERS_EXHAUSTED,
                message=str(e),
                errors=e.errors,
            )

    async def suggest_questions(
        self,
        history: Sequence[ChatTurn],
        user_message: str,
        reply: str,
    ) -> list[str]:
        """Three follow-up questions for the conversation so far."""
        lines = [
            f"{'User' if turn.role is Role.USER else 'Assistant'}: {turn.text}"
            for turn in history
        ]
        lines.append(f"User: {user_message}")
        lines.append(f"Assistant: {reply}")
        request = PromptRequest(
            system_prompt=QUESTIONS_SYSTEM_PROMPT,
            history=(
                ChatTurn(role=Role.USER, text=QUESTIONS_PROMPT.format(conversation="\n".join(lines))),
            ),
            max_tokens=self.settings.ai_max_tokens,
            temperature=self.settings.ai_temperature,
        )
        try:
            result = await self.router.generate(request, self.chain)
        except AllProvidersExhausted as e:
            logger.warning("Falling back to default follow-up questions: %s", e)
            return list(DEFAULT_FOLLOW_UP_QUESTIONS)

        questions = []
        for line in result.text.splitlines():
            line = line.strip().lstrip("-*0123456789.) ").strip()
            if line:
                questions.append(line)
        return questions[:MAX_SUGGESTED_QUESTIONS] or list(DEFAULT_FOLLOW_UP_QUESTIONS)

    # ------------------------------------------------------------------
    # Literature
    # ------------------------------------------------------------------

    async def search_literature(
        self,
        query: str,
        max_results: int | None = None,
        patient_context: str | None = None,
        specialty: Specialty | None = None,
        *,
        user_id: str | None = None,
    ) -> list[ScoredArticle]:
        """Search PubMed and return ranked articles.

        Raises
        ------
        RateLimited
            If the user is not admitted.
        """
        user = user_id or ANONYMOUS_USER
        if not self.rate_limiter.admit(user):
            raise RateLimited(user)

        search = SearchQuery(
            terms=query,
            max_results=max_results or self.settings.pubmed_max_results,
            patient_context=patient_context,
            specialty=specialty,
        )

        try:
            pmids = await self.pubmed.search(search)
        except LiteratureApiError as e:
            logger.error("PubMed search failed for %r: %s", query, e)
            return []
        pmids = pmids[: search.max_results]
        logger.info("PubMed returned %d PMIDs for %r", len(pmids), query)

        records = await self._records_for(pmids)
        ranked = self.scorer.rank(records, search)
        for scored in ranked:
            self.cache.annotate(scored.article.pmid, relevance_score=scored.relevance_score)

        if self.settings.pubmed_summaries_enabled:
            await self._summarize_missing([s.article.pmid for s in ranked])

        results = []
        for scored in ranked:
            entry = self.cache.entry(scored.article.pmid)
            article = entry.record if entry is not None else scored.article
            results.append(ScoredArticle(article=article, relevance_score=scored.relevance_score))
        return sort_scored(results)

    async def _records_for(self, pmids: list[str]) -> list[ArticleRecord]:
        """Cached records for ``pmids``, fetching and caching the misses."""
        cached = {}
        for pmid in pmids:
            record = self.cache.get(pmid)
            if record is not None:
                cached[pmid] = record

        misses = [pmid for pmid in pmids if pmid not in cached]
        if misses:
            logger.info("Fetching %d uncached articles (%d cached)", len(misses), len(cached))
            try:
                fetched = await self.pubmed.fetch_articles(misses)
            except LiteratureApiError as e:
                logger.error("PubMed fetch failed, returning cached articles only: %s", e)
                fetched = []
            for record in fetched:
                cached[record.pmid] = self.cache.put(record)

        return [cached[pmid] for pmid in pmids if pmid in cached]

    async def _summarize_missing(self, pmids: list[str]) -> None:
        pending = []
        for pmid in pmids:
            entry = self.cache.entry(pmid)
            if entry is not None and entry.record.ai_summary is None:
                pending.append(entry.record)
        if not pending:
            return

        summaries = await self.summaries.summarize_many(pending)
        for pmid, summary in summaries.items():
            if summary:
                self.cache.annotate(pmid, ai_summary=summary)

    async def regenerate_summary(self, pmid: str) -> str | None:
        """Summarize a cached article again, replacing any existing summary."""
        entry = self.cache.entry(pmid)
        if entry is None:
            return None
        summary = await self.summaries.summarize(entry.record)
        if summary:
            self.cache.annotate(pmid, ai_summary=summary)
        return summary

    def articles_with_summaries(self) -> list[ArticleRecord]:
        return self.cache.records_with_summary()

    async def _refresh_article(self, pmid: str) -> ArticleRecord | None:
        records = await self.pubmed.fetch_articles([pmid])
        return records[0] if records else None
