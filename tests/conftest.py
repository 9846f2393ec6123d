"""Pytest configuration and fixtures."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from medassist.config import Settings
from medassist.models.model_article import ArticleRecord
from medassist.models.model_chat import PromptRequest
from medassist.models.model_provider import ProviderId, ProviderSpec
from medassist.providers.base import ProviderReply


def pubmed_article_xml(
    pmid: str,
    title: str = "Test Article Title",
    abstract: str = "This is the abstract text.",
    year: str = "2024",
    keywords: tuple[str, ...] = (),
) -> str:
    """One <PubmedArticle> element with the fields the parser reads."""
    keyword_xml = "".join(f"<Keyword>{k}</Keyword>" for k in keywords)
    return f"""
    <PubmedArticle>
        <MedlineCitation>
            <PMID>{pmid}</PMID>
            <Article>
                <Journal>
                    <JournalIssue><PubDate><Year>{year}</Year></PubDate></JournalIssue>
                    <Title>Test Journal</Title>
                </Journal>
                <ArticleTitle>{title}</ArticleTitle>
                <Abstract><AbstractText>{abstract}</AbstractText></Abstract>
                <AuthorList>
                    <Author><LastName>Smith</LastName><ForeName>John</ForeName></Author>
                </AuthorList>
            </Article>
            <KeywordList>{keyword_xml}</KeywordList>
        </MedlineCitation>
    </PubmedArticle>"""


def pubmed_set_xml(*articles: str) -> str:
    return f'<?xml version="1.0"?><PubmedArticleSet>{"".join(articles)}</PubmedArticleSet>'


def make_response(status: int = 200, text: str = "", headers: dict | None = None) -> AsyncMock:
    """aiohttp-style response mock with .status, .headers and async .text()."""
    resp = AsyncMock()
    resp.status = status
    resp.headers = headers or {}
    resp.text = AsyncMock(return_value=text)
    return resp


class ScriptedProvider:
    """ProviderClient whose outcomes are scripted: exceptions are raised, strings returned."""

    def __init__(self, provider_id: ProviderId, outcomes: list):
        self.provider_id = provider_id
        self.outcomes = list(outcomes)
        self.calls: list[PromptRequest] = []

    async def generate(self, request: PromptRequest) -> ProviderReply:
        self.calls.append(request)
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return ProviderReply(text=outcome, tokens_used=len(outcome.split()))

    async def close(self) -> None:
        return None


class HangingProvider:
    """ProviderClient that blocks until cancelled, recording each start and cancellation."""

    def __init__(self, provider_id: ProviderId):
        self.provider_id = provider_id
        self.started = asyncio.Event()
        self.calls = 0
        self.cancelled = 0

    async def generate(self, request: PromptRequest) -> ProviderReply:
        self.calls += 1
        self.started.set()
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            self.cancelled += 1
            raise
        raise AssertionError("unreachable")

    async def close(self) -> None:
        return None


@pytest.fixture
def sample_article() -> ArticleRecord:
    """Sample article record for testing."""
    return ArticleRecord(
        pmid="12345678",
        title="Metformin in type 2 diabetes: a randomized controlled trial",
        abstract_text="Metformin lowered HbA1c in adults with type 2 diabetes.",
        authors="John Smith, Jane Doe",
        journal="Diabetes Care",
        publication_date="2023-05-01",
        keywords=["Diabetes Mellitus, Type 2", "Metformin"],
    )


@pytest.fixture
def mock_spec() -> ProviderSpec:
    return ProviderSpec(id=ProviderId.MOCK, model="mock", timeout_seconds=5.0)


@pytest.fixture
def mock_settings() -> Settings:
    """Settings with the offline provider only and no .env influence."""
    return Settings(
        _env_file=None,
        ai_provider_order="mock",
        ai_retry_delay_seconds=0.0,
        rate_limit_burst=10,
    )
