"""Application configuration."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from medassist.constants import (
    CACHE_TTL_HOURS,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_RETRY_DELAY,
    DEFAULT_TIMEOUT,
    EMERGENCY_KEYWORDS,
    EMERGENCY_RESPONSE,
    GEMINI_BASE_URL,
    HUGGINGFACE_BASE_URL,
    MEDICAL_SYSTEM_PROMPT,
    NCBI_BASE_URL,
    OLLAMA_BASE_URL,
    OPENAI_BASE_URL,
    SPECIALTY_PROMPTS,
)
from medassist.models.model_provider import ProviderId, ProviderSpec


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # Provider chain
    ai_provider_order: str = "gemini,openai,ollama,huggingface"
    ai_fallback_enabled: bool = True
    ai_timeout_seconds: float = DEFAULT_TIMEOUT
    ai_retry_max_attempts: int = DEFAULT_MAX_ATTEMPTS
    ai_retry_delay_seconds: float = DEFAULT_RETRY_DELAY
    ai_temperature: float = 0.3
    ai_max_tokens: int = 2000

    # API keys / models
    openai_api_key: str = ""
    openai_model: str = "gpt-4-turbo"
    openai_base_url: str = OPENAI_BASE_URL
    gemini_api_key: str = ""
    gemini_model: str = "gemini-pro"
    gemini_base_url: str = GEMINI_BASE_URL
    ollama_url: str = OLLAMA_BASE_URL
    ollama_model: str = "medalpaca"
    huggingface_api_key: str = ""
    huggingface_model: str = "microsoft/DialoGPT-medium"
    huggingface_base_url: str = HUGGINGFACE_BASE_URL

    # Rate limiting
    rate_limit_enabled: bool = True
    rate_limit_rpm: int = 60
    rate_limit_rph: int = 500
    rate_limit_burst: int = 10

    # PubMed
    pubmed_base_url: str = NCBI_BASE_URL
    pubmed_api_key: str = ""
    pubmed_max_results: int = 20
    pubmed_cache_ttl_hours: float = CACHE_TTL_HOURS
    pubmed_summary_max_length: int = 800
    pubmed_summaries_enabled: bool = True

    # Conversation
    history_turns: int = 6
    max_parallelism: int = 4
    emergency_keywords: str = EMERGENCY_KEYWORDS
    emergency_response: str = EMERGENCY_RESPONSE
    medical_system_prompt: str = MEDICAL_SYSTEM_PROMPT
    specialty_prompts: dict[str, str] = SPECIALTY_PROMPTS

    # App Settings
    log_level: str = "INFO"

    @property
    def emergency_keyword_list(self) -> list[str]:
        return [k.strip().lower() for k in self.emergency_keywords.split(",") if k.strip()]

    @property
    def provider_order(self) -> list[ProviderId]:
        order = [ProviderId(p.strip().lower()) for p in self.ai_provider_order.split(",") if p.strip()]
        if not self.ai_fallback_enabled:
            return order[:1]
        return order

    @property
    def cache_ttl_seconds(self) -> float:
        return self.pubmed_cache_ttl_hours * 3600

    def provider_specs(self) -> tuple[ProviderSpec, ...]:
        """Build the fallback chain, in priority order, from the provider settings."""
        endpoints = {
            ProviderId.OPENAI: (self.openai_base_url, self.openai_model, self.openai_api_key),
            ProviderId.GEMINI: (self.gemini_base_url, self.gemini_model, self.gemini_api_key),
            ProviderId.OLLAMA: (self.ollama_url, self.ollama_model, ""),
            ProviderId.HUGGINGFACE: (
                self.huggingface_base_url,
                self.huggingface_model,
                self.huggingface_api_key,
            ),
            ProviderId.MOCK: ("", "mock", ""),
        }
        specs = []
        for priority, provider_id in enumerate(self.provider_order):
            endpoint, model, api_key = endpoints[provider_id]
            specs.append(
                ProviderSpec(
                    id=provider_id,
                    endpoint=endpoint,
                    model=model,
                    timeout_seconds=self.ai_timeout_seconds,
                    priority=priority,
                    api_key=api_key,
                )
            )
        return tuple(specs)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
