"""
PubMed API client.

Two methods, matching the E-utilities two-step protocol:
  1. search         ESearch: find PMIDs matching a query, in ranked order
  2. fetch_articles EFetch: fetch and parse article records for given PMIDs
"""

from __future__ import annotations

import asyncio
import logging
import re
import xml.etree.ElementTree as ET
from typing import Any

from medassist.constants import (
    NCBI_BASE_URL,
    NCBI_RATE_NO_KEY,
    NCBI_RATE_WITH_KEY,
    PUBMED_FETCH_BATCH_SIZE,
)
from medassist.data_sources.base_client import (
    BaseClient,
    ClientConfig,
    RateLimitConfig,
    RequestContext,
    RetryConfig,
)
from medassist.errors import LiteratureApiError, MalformedArticle
from medassist.models.model_article import ArticleRecord, SearchQuery

logger = logging.getLogger(__name__)

MAX_LISTED_AUTHORS = 3

_MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}
_YEAR_RE = re.compile(r"\b(1[89]\d{2}|20\d{2})\b")


class PubMedClient(BaseClient):
    """Client for querying PubMed/NCBI APIs."""

    def __init__(
        self,
        base_url: str = NCBI_BASE_URL,
        api_key: str = "",
        retry: RetryConfig | None = None,
        max_parallelism: int = 4,
    ) -> None:
        rate = NCBI_RATE_WITH_KEY if api_key else NCBI_RATE_NO_KEY
        super().__init__(
            ClientConfig(
                retry=retry or RetryConfig(),
                rate_limit=RateLimitConfig(requests_per_second=rate, burst=int(rate)),
            )
        )
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.max_parallelism = max_parallelism

    @property
    def _source_name(self) -> str:
        return "pubmed"

    @property
    def search_url(self) -> str:
        return f"{self.base_url}/esearch.fcgi"

    @property
    def fetch_url(self) -> str:
        return f"{self.base_url}/efetch.fcgi"

    def _with_key(self, params: dict[str, Any]) -> dict[str, Any]:
        if self.api_key:
            return {**params, "api_key": self.api_key}
        return params

    async def search(self, query: SearchQuery) -> list[str]:
        """Search PubMed and return PMIDs in the order ESearch ranked them."""
        params = self._with_key(
            {
                "db": "pubmed",
                "term": query.terms,
                "retmax": query.max_results,
                "retmode": "json",
            }
        )
        data = await self._rest_get(
            self.search_url,
            params,
            context=RequestContext(
                source=self._source_name, method="search", params={"term": query.terms}
            ),
        )
        id_list = data.get("esearchresult", {}).get("idlist", [])

        pmids: list[str] = []
        for pmid in id_list:
            pmid = str(pmid).strip()
            if pmid and pmid not in pmids:
                pmids.append(pmid)
        return pmids

    async def fetch_articles(
        self, pmids: list[str], batch_size: int = PUBMED_FETCH_BATCH_SIZE
    ) -> list[ArticleRecord]:
        """Fetch and parse article records for the given PMIDs.

        Batches run concurrently, at most ``max_parallelism`` at a time, and
        results keep the batch order. A batch that fails after retries is
        logged and skipped so the other batches still return; if every batch
        fails the last error is raised. Unparseable articles inside a batch
        are skipped individually.
        """
        if not pmids:
            return []

        semaphore = asyncio.Semaphore(self.max_parallelism)

        async def fetch_batch(batch: list[str]) -> list[ArticleRecord] | LiteratureApiError:
            params = self._with_key(
                {
                    "db": "pubmed",
                    "id": ",".join(batch),
                    "retmode": "xml",
                    "rettype": "abstract",
                }
            )
            try:
                async with semaphore:
                    xml_text = await self._rest_get_xml(
                        self.fetch_url,
                        params,
                        context=RequestContext(
                            source=self._source_name,
                            method="fetch_articles",
                            params={"count": len(batch)},
                        ),
                    )
                return self._parse_pubmed_xml(xml_text)
            except LiteratureApiError as e:
                logger.error("EFetch batch of %d PMIDs failed: %s", len(batch), e)
                return e

        batches = [pmids[i : i + batch_size] for i in range(0, len(pmids), batch_size)]
        results = await asyncio.gather(*(fetch_batch(b) for b in batches))

        all_articles: list[ArticleRecord] = []
        last_error: LiteratureApiError | None = None
        succeeded = 0
        for result in results:
            if isinstance(result, LiteratureApiError):
                last_error = result
                continue
            succeeded += 1
            all_articles.extend(result)

        if succeeded == 0 and last_error is not None:
            raise last_error
        return all_articles

    def _parse_pubmed_xml(self, xml_text: str) -> list[ArticleRecord]:
        """Parse PubMed XML response into ArticleRecord objects."""
        try:
            root = ET.fromstring(xml_text)
        except ET.ParseError as e:
            raise LiteratureApiError(self._source_name, f"Failed to parse XML: {e}")

        articles = []
        for article_elem in root.iter("PubmedArticle"):
            try:
                articles.append(self._parse_article(article_elem))
            except MalformedArticle as e:
                logger.warning("Skipping article: %s", e)
        return articles

    def _parse_article(self, article_elem: ET.Element) -> ArticleRecord:
        pmid = self._xml_text(article_elem, "./MedlineCitation/PMID") or self._xml_text(
            article_elem, ".//PMID"
        )
        if not pmid:
            raise MalformedArticle(None, "missing PMID")

        title_elem = article_elem.find(".//ArticleTitle")
        title = "".join(title_elem.itertext()).strip() if title_elem is not None else ""
        if not title:
            raise MalformedArticle(pmid, "missing ArticleTitle")

        # Abstract - may have multiple labeled sections
        abstract_parts = []
        for abs_elem in article_elem.findall(".//Abstract/AbstractText"):
            label = abs_elem.get("Label", "")
            text = "".join(abs_elem.itertext()).strip()
            if not text:
                continue
            abstract_parts.append(f"{label}: {text}" if label else text)

        journal = self._xml_text(article_elem, ".//Journal/Title") or self._xml_text(
            article_elem, ".//Journal/ISOAbbreviation"
        )

        return ArticleRecord(
            pmid=pmid,
            title=title,
            abstract_text=" ".join(abstract_parts),
            authors=self._format_authors(article_elem),
            journal=journal or "",
            publication_date=self._publication_date(article_elem),
            keywords=self._keywords(article_elem),
            doi=self._doi(article_elem),
        )

    def _format_authors(self, article_elem: ET.Element) -> str:
        names = []
        for author in article_elem.findall(".//AuthorList/Author"):
            last_name = self._xml_text(author, "LastName")
            fore_name = self._xml_text(author, "ForeName")
            if last_name:
                names.append(f"{fore_name} {last_name}" if fore_name else last_name)
                continue
            collective = self._xml_text(author, "CollectiveName")
            if collective:
                names.append(collective)

        joined = ", ".join(names[:MAX_LISTED_AUTHORS])
        if len(names) > MAX_LISTED_AUTHORS:
            joined += " et al."
        return joined

    def _publication_date(self, article_elem: ET.Element) -> str | None:
        for path in (".//JournalIssue/PubDate", ".//ArticleDate"):
            date_elem = article_elem.find(path)
            if date_elem is None:
                continue

            year = self._xml_text(date_elem, "Year")
            if not year:
                medline = self._xml_text(date_elem, "MedlineDate")
                match = _YEAR_RE.search(medline or "")
                if match:
                    return match.group(1)
                continue

            month = _month_number(self._xml_text(date_elem, "Month"))
            if month is None:
                return year
            day = self._xml_text(date_elem, "Day")
            if day and day.isdigit():
                return f"{year}-{month:02d}-{int(day):02d}"
            return f"{year}-{month:02d}"
        return None

    def _keywords(self, article_elem: ET.Element) -> list[str]:
        keywords: list[str] = []
        candidates = [
            "".join(kw.itertext()).strip() for kw in article_elem.findall(".//Keyword")
        ]
        candidates += [
            self._xml_text(mesh, "DescriptorName") or ""
            for mesh in article_elem.findall(".//MeshHeading")
        ]
        for keyword in candidates:
            if keyword and keyword not in keywords:
                keywords.append(keyword)
        return keywords

    def _doi(self, article_elem: ET.Element) -> str | None:
        for path in (".//ELocationID[@EIdType='doi']", ".//ArticleId[@IdType='doi']"):
            doi = self._xml_text(article_elem, path)
            if doi:
                return doi
        return None

    @staticmethod
    def _xml_text(elem: ET.Element, path: str) -> str | None:
        """Safely extract stripped text from an XML element."""
        found = elem.find(path)
        if found is None or not found.text:
            return None
        return found.text.strip() or None


def _month_number(month: str | None) -> int | None:
    if not month:
        return None
    if month.isdigit():
        value = int(month)
        return value if 1 <= value <= 12 else None
    return _MONTHS.get(month[:3].lower())
