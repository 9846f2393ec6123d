"""Unit tests for ArticleCache."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from medassist.errors import LiteratureApiError
from medassist.models.model_article import ArticleRecord
from medassist.services.article_cache import ArticleCache, merge_records

TTL = 100.0


class FakeClock:
    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now


def _record(pmid: str = "1", title: str = "Original", **kwargs) -> ArticleRecord:
    return ArticleRecord(pmid=pmid, title=title, **kwargs)


class TestMergeRecords:
    def test_factual_fields_replaced_summary_kept(self):
        existing = _record(ai_summary="summary", relevance_score=0.5)
        incoming = _record(title="Corrected", abstract_text="new abstract")

        merged = merge_records(existing, incoming)

        assert merged.title == "Corrected"
        assert merged.abstract_text == "new abstract"
        assert merged.ai_summary == "summary"
        assert merged.relevance_score == 0.5
        assert merged.indexed_at == existing.indexed_at

    def test_incoming_summary_wins(self):
        merged = merge_records(_record(ai_summary="old"), _record(ai_summary="new"))
        assert merged.ai_summary == "new"


class TestArticleCache:
    def test_get_miss(self):
        cache = ArticleCache(TTL)
        assert cache.get("404") is None

    def test_put_then_get(self):
        cache = ArticleCache(TTL)
        cache.put(_record())

        assert cache.get("1").title == "Original"
        assert "1" in cache
        assert len(cache) == 1

    def test_put_is_idempotent_per_pmid(self):
        cache = ArticleCache(TTL)
        cache.put(_record())
        cache.annotate("1", ai_summary="kept")

        stored = cache.put(_record(title="Updated"))

        assert len(cache) == 1
        assert stored.title == "Updated"
        assert stored.ai_summary == "kept"

    def test_staleness_uses_ttl(self):
        clock = FakeClock()
        cache = ArticleCache(TTL, clock=clock)
        cache.put(_record())
        entry = cache.entry("1")

        clock.now = TTL
        assert not cache.is_stale(entry)
        clock.now = TTL + 0.001
        assert cache.is_stale(entry)

    def test_annotate_does_not_touch_freshness(self):
        clock = FakeClock()
        cache = ArticleCache(TTL, clock=clock)
        cache.put(_record())

        clock.now = 50
        record = cache.annotate("1", ai_summary="s", relevance_score=0.9)

        assert record.ai_summary == "s"
        assert record.relevance_score == 0.9
        assert cache.entry("1").fetched_at == 0

    def test_annotate_missing_returns_none(self):
        assert ArticleCache(TTL).annotate("nope", ai_summary="s") is None

    def test_records_with_summary(self):
        cache = ArticleCache(TTL)
        cache.put(_record("1"))
        cache.put(_record("2", ai_summary="has one"))

        assert [r.pmid for r in cache.records_with_summary()] == ["2"]

    def test_stale_get_without_loop_still_serves(self):
        clock = FakeClock()
        refresher = AsyncMock()
        cache = ArticleCache(TTL, refresher=refresher, clock=clock)
        cache.put(_record())
        clock.now = TTL * 2

        assert cache.get("1").title == "Original"
        refresher.assert_not_called()


@pytest.mark.asyncio
class TestBackgroundRefresh:
    async def test_stale_reads_schedule_exactly_one_refresh(self):
        clock = FakeClock()
        release = asyncio.Event()
        calls = []

        async def refresher(pmid):
            calls.append(pmid)
            await release.wait()
            return _record(pmid, title="Fresh")

        cache = ArticleCache(TTL, refresher=refresher, clock=clock)
        cache.put(_record(ai_summary="summary"))
        clock.now = TTL + 1

        # concurrent stale reads all get the stale record
        reads = [cache.get("1") for _ in range(5)]
        await asyncio.sleep(0)
        assert all(r.title == "Original" for r in reads)

        release.set()
        await cache.join()

        assert calls == ["1"]
        refreshed = cache.get("1")
        assert refreshed.title == "Fresh"
        assert refreshed.ai_summary == "summary"
        assert not cache.is_stale(cache.entry("1"))

    async def test_failed_refresh_keeps_stale_entry(self):
        clock = FakeClock()
        refresher = AsyncMock(side_effect=LiteratureApiError("pubmed", "HTTP 500"))
        cache = ArticleCache(TTL, refresher=refresher, clock=clock)
        cache.put(_record())
        clock.now = TTL + 1

        cache.get("1")
        await cache.join()

        assert cache.entry("1").record.title == "Original"
        refresher.assert_awaited_once_with("1")

    async def test_unexpected_refresh_error_is_logged_and_entry_kept(self, caplog):
        clock = FakeClock()
        refresher = AsyncMock(side_effect=ValueError("bad header"))
        cache = ArticleCache(TTL, refresher=refresher, clock=clock)
        cache.put(_record())
        clock.now = TTL + 1

        cache.get("1")
        await cache.join()

        assert cache.entry("1").record.title == "Original"
        assert "Unexpected error refreshing 1" in caplog.text

    async def test_refresh_returning_nothing_keeps_entry(self):
        clock = FakeClock()
        cache = ArticleCache(TTL, refresher=AsyncMock(return_value=None), clock=clock)
        cache.put(_record())
        clock.now = TTL + 1

        cache.get("1")
        await cache.join()

        assert cache.entry("1").record.title == "Original"

    async def test_close_cancels_pending_refresh(self):
        clock = FakeClock()

        async def never(pmid):
            await asyncio.Event().wait()

        cache = ArticleCache(TTL, refresher=never, clock=clock)
        cache.put(_record())
        clock.now = TTL + 1
        cache.get("1")

        await cache.close()
        await asyncio.sleep(0)

        assert cache.entry("1").record.title == "Original"
