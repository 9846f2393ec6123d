"""
Relevance scoring for literature search results.

The score is a weighted blend of four signals, each normalized to [0, 1]:

  overlap    query terms found in the title/keywords (full credit) or only in
             the abstract (partial credit); patient context adds a minor share
  recency    1 / (1 + age_years / RECENCY_HALF_LIFE_YEARS)
  specialty  article keywords (or, weaker, title) hit the specialty vocabulary
  design     systematic reviews, trials and guidelines rank above case reports

Scoring depends only on its inputs and the scorer's reference year, so fixtures
can pin it.
"""

import re
from datetime import date

from medassist.constants import (
    RECENCY_HALF_LIFE_YEARS,
    SPECIALTY_VOCABULARY,
    STOPWORDS,
    STUDY_DESIGN_TERMS,
)
from medassist.models.model_article import ArticleRecord, ScoredArticle, SearchQuery, Specialty

W_OVERLAP = 0.55
W_RECENCY = 0.20
W_SPECIALTY = 0.15
W_DESIGN = 0.10

ABSTRACT_ONLY_CREDIT = 0.6
CONTEXT_SHARE = 0.2

_TOKEN_RE = re.compile(r"[a-z0-9]+(?:-[a-z0-9]+)*")
_DATE_RE = re.compile(r"^(\d{4})(?:-(\d{1,2}))?(?:-(\d{1,2}))?")
_YEAR_RE = re.compile(r"\b(\d{4})\b")


def tokenize(text: str) -> set[str]:
    """Lowercase content terms; hyphenated words also contribute their parts."""
    terms = set()
    for token in _TOKEN_RE.findall(text.lower()):
        parts = [token, *token.split("-")] if "-" in token else [token]
        for part in parts:
            if part in STOPWORDS:
                continue
            if len(part) > 2 or part.isdigit():
                terms.add(part)
    return terms


def publication_sort_key(publication_date: str | None) -> tuple[int, int, int]:
    """(year, month, day) with zeros for unknown parts."""
    if not publication_date:
        return (0, 0, 0)
    match = _DATE_RE.match(publication_date)
    if match:
        year, month, day = match.groups()
        return (int(year), int(month or 0), int(day or 0))
    match = _YEAR_RE.search(publication_date)
    return (int(match.group(1)), 0, 0) if match else (0, 0, 0)


def pmid_sort_key(pmid: str) -> tuple[int, int, str]:
    if pmid.isdigit():
        return (0, int(pmid), "")
    return (1, 0, pmid)


class RelevanceScorer:
    """Deterministic article-vs-query scorer."""

    def __init__(self, reference_year: int | None = None):
        self.reference_year = reference_year or date.today().year

    def score(self, article: ArticleRecord, query: SearchQuery) -> float:
        title_terms = tokenize(" ".join([article.title, *article.keywords]))
        abstract_terms = tokenize(article.abstract_text)

        overlap = self._overlap(tokenize(query.terms), title_terms, abstract_terms)
        if query.patient_context:
            context = self._overlap(tokenize(query.patient_context), title_terms, abstract_terms)
            overlap = (1 - CONTEXT_SHARE) * overlap + CONTEXT_SHARE * context

        total = (
            W_OVERLAP * overlap
            + W_RECENCY * self._recency(article.publication_date)
            + W_SPECIALTY * self._specialty(article, query.specialty)
            + W_DESIGN * self._design(article)
        )
        return round(min(1.0, max(0.0, total)), 6)

    def rank(self, articles: list[ArticleRecord], query: SearchQuery) -> list[ScoredArticle]:
        """Score and sort: score desc, then publication date desc, then PMID asc."""
        scored = [
            ScoredArticle(article=article, relevance_score=self.score(article, query))
            for article in articles
        ]
        return sort_scored(scored)

    @staticmethod
    def _overlap(query_terms: set[str], title_terms: set[str], abstract_terms: set[str]) -> float:
        if not query_terms:
            return 0.0
        credit = 0.0
        for term in query_terms:
            if term in title_terms:
                credit += 1.0
            elif term in abstract_terms:
                credit += ABSTRACT_ONLY_CREDIT
        return credit / len(query_terms)

    def _recency(self, publication_date: str | None) -> float:
        year = publication_sort_key(publication_date)[0]
        if not year:
            return 0.0
        age = max(0, self.reference_year - year)
        return 1.0 / (1.0 + age / RECENCY_HALF_LIFE_YEARS)

    @staticmethod
    def _specialty(article: ArticleRecord, specialty: Specialty | None) -> float:
        if specialty is None:
            return 0.0
        vocabulary = SPECIALTY_VOCABULARY.get(specialty.value, frozenset())
        keywords = " ".join(article.keywords).lower()
        if any(term in keywords for term in vocabulary):
            return 1.0
        title = article.title.lower()
        if any(term in title for term in vocabulary):
            return 0.5
        return 0.0

    @staticmethod
    def _design(article: ArticleRecord) -> float:
        title = article.title.lower()
        abstract = article.abstract_text.lower()
        best = 0.0
        for term, weight in STUDY_DESIGN_TERMS.items():
            if term in title:
                best = max(best, weight)
            elif term in abstract:
                best = max(best, weight / 2)
        return best


def sort_scored(scored: list[ScoredArticle]) -> list[ScoredArticle]:
    return sorted(
        scored,
        key=lambda s: (
            -s.relevance_score,
            tuple(-part for part in publication_sort_key(s.article.publication_date)),
            pmid_sort_key(s.article.pmid),
        ),
    )
