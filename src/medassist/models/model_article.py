"""
Pydantic models for literature search.

These are the data contracts between the PubMed client, the article cache and
the ranking/summary services. Callers never see raw E-utilities responses.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Specialty(str, Enum):
    CARDIOLOGY = "cardiology"
    NEUROLOGY = "neurology"
    PSYCHIATRY = "psychiatry"
    PEDIATRICS = "pediatrics"
    GERIATRICS = "geriatrics"
    EMERGENCY = "emergency"
    FAMILY = "family"
    INTERNAL = "internal"


class SearchQuery(BaseModel):
    """A literature search as requested by the caller."""

    model_config = ConfigDict(frozen=True)

    terms: str
    max_results: int = Field(default=20, ge=1)
    patient_context: str | None = None
    specialty: Specialty | None = None


class ArticleRecord(BaseModel):
    """Parsed PubMed article plus the lazily computed summary and score."""

    model_config = ConfigDict(frozen=True)

    pmid: str
    title: str
    abstract_text: str = ""
    authors: str = ""  # "Jane Smith, John Doe, Ann Lee et al."
    journal: str = ""
    publication_date: str | None = None  # "YYYY", "YYYY-MM" or "YYYY-MM-DD"
    keywords: list[str] = []
    doi: str | None = None
    ai_summary: str | None = None
    relevance_score: float | None = None
    indexed_at: datetime = Field(default_factory=datetime.now)

    @model_validator(mode="before")
    @classmethod
    def coerce_nones(cls, values: dict) -> dict:
        for field_name, field_info in cls.model_fields.items():
            if field_name not in values or values[field_name] is not None:
                continue
            if field_info.is_required():
                continue
            if field_info.default_factory is not None:
                del values[field_name]
            elif field_info.default is not None:
                values[field_name] = field_info.default
        return values


class ScoredArticle(BaseModel):
    """One ranked search hit."""

    model_config = ConfigDict(frozen=True)

    article: ArticleRecord
    relevance_score: float
