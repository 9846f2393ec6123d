"""
In-process article cache keyed by PMID.

Entries older than the TTL are stale: they are still served, and the first
stale read schedules one background refresh for that PMID. Per-key operations
contain no await, so each is atomic on the event loop.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable

from medassist.errors import MedAssistError
from medassist.models.model_article import ArticleRecord

logger = logging.getLogger(__name__)

Refresher = Callable[[str], Awaitable[ArticleRecord | None]]


@dataclass
class CacheEntry:
    record: ArticleRecord
    fetched_at: float


def merge_records(existing: ArticleRecord, incoming: ArticleRecord) -> ArticleRecord:
    """Take factual fields from ``incoming``; keep summary and score unless it has new ones."""
    return incoming.model_copy(
        update={
            "ai_summary": incoming.ai_summary
            if incoming.ai_summary is not None
            else existing.ai_summary,
            "relevance_score": incoming.relevance_score
            if incoming.relevance_score is not None
            else existing.relevance_score,
            "indexed_at": existing.indexed_at,
        }
    )


class ArticleCache:
    """At most one entry per PMID; entries are refreshed in place, never removed."""

    def __init__(
        self,
        ttl_seconds: float,
        refresher: Refresher | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.ttl_seconds = ttl_seconds
        self.refresher = refresher
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._refreshing: dict[str, asyncio.Task] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, pmid: str) -> bool:
        return pmid in self._entries

    def is_stale(self, entry: CacheEntry) -> bool:
        return self._clock() - entry.fetched_at > self.ttl_seconds

    def entry(self, pmid: str) -> CacheEntry | None:
        return self._entries.get(pmid)

    def get(self, pmid: str) -> ArticleRecord | None:
        """Return the cached record, scheduling a refresh if it is stale."""
        entry = self._entries.get(pmid)
        if entry is None:
            return None
        if self.is_stale(entry):
            self._schedule_refresh(pmid)
        return entry.record

    def put(self, record: ArticleRecord) -> ArticleRecord:
        """Insert or merge ``record`` and return what the cache now holds."""
        existing = self._entries.get(record.pmid)
        if existing is not None:
            record = merge_records(existing.record, record)
        self._entries[record.pmid] = CacheEntry(record=record, fetched_at=self._clock())
        return record

    def annotate(
        self,
        pmid: str,
        *,
        ai_summary: str | None = None,
        relevance_score: float | None = None,
    ) -> ArticleRecord | None:
        """Attach a summary and/or score without touching freshness."""
        entry = self._entries.get(pmid)
        if entry is None:
            return None
        update = {}
        if ai_summary is not None:
            update["ai_summary"] = ai_summary
        if relevance_score is not None:
            update["relevance_score"] = relevance_score
        if update:
            entry.record = entry.record.model_copy(update=update)
        return entry.record

    def records_with_summary(self) -> list[ArticleRecord]:
        return [e.record for e in self._entries.values() if e.record.ai_summary]

    # -- Background refresh --------------------------------------------------

    def _schedule_refresh(self, pmid: str) -> None:
        if self.refresher is None or pmid in self._refreshing:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop, not refreshing %s", pmid)
            return

        logger.info("Scheduling refresh of stale article %s", pmid)
        task = loop.create_task(self._refresh(pmid))
        self._refreshing[pmid] = task
        task.add_done_callback(lambda _t: self._refreshing.pop(pmid, None))

    async def _refresh(self, pmid: str) -> None:
        try:
            fresh = await self.refresher(pmid)
        except MedAssistError as e:
            logger.warning("Refresh of %s failed, keeping stale entry: %s", pmid, e)
            return
        except Exception:
            logger.exception("Unexpected error refreshing %s, keeping stale entry", pmid)
            return
        if fresh is None:
            logger.warning("Refresh of %s returned no record, keeping stale entry", pmid)
            return
        self.put(fresh)

    async def join(self) -> None:
        """Wait for every refresh scheduled so far."""
        while self._refreshing:
            await asyncio.gather(*list(self._refreshing.values()))

    async def close(self) -> None:
        tasks = list(self._refreshing.values())
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
