"""Data models for medassist."""

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

__all__ = [
    "ArticleRecord",
    "ChatFailure",
    "ChatTurn",
    "EmergencyShortCircuit",
    "GenerationResult",
    "OutcomeCode",
    "PromptRequest",
    "ProviderId",
    "ProviderSpec",
    "Role",
    "ScoredArticle",
    "SearchQuery",
    "Specialty",
]
