"""
Configuration management for the R&D Advisory service.
Supports OpenAI, Anthropic Claude, OpenRouter (cloud) and Ollama (local),
plus the zero-cost demo provider that is always available.
"""

from functools import lru_cache
from typing import Dict

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ── Providers ──
    # Priority: OpenAI → Claude → OpenRouter → Ollama → demo
    openai_api_key: str = Field(default="", alias="OPENAI_API_KEY")
    openai_model: str = Field(default="gpt-3.5-turbo", alias="OPENAI_MODEL")
    openai_base_url: str = Field(default="https://api.openai.com/v1", alias="OPENAI_BASE_URL")

    anthropic_api_key: str = Field(default="", alias="ANTHROPIC_API_KEY")
    anthropic_model: str = Field(default="claude-3-haiku-20240307", alias="ANTHROPIC_MODEL")
    anthropic_base_url: str = Field(default="https://api.anthropic.com/v1", alias="ANTHROPIC_BASE_URL")
    anthropic_version: str = Field(default="2023-06-01", alias="ANTHROPIC_VERSION")

    openrouter_api_key: str = Field(default="", alias="OPENROUTER_API_KEY")
    openrouter_model: str = Field(default="google/gemini-2.0-flash-001", alias="OPENROUTER_MODEL")
    openrouter_base_url: str = Field(default="https://openrouter.ai/api/v1", alias="OPENROUTER_BASE_URL")

    # Local fallback, probed at startup only when enabled
    use_ollama: bool = Field(default=False, alias="USE_OLLAMA")
    ollama_model: str = Field(default="qwen2.5:7b", alias="OLLAMA_MODEL")
    ollama_base_url: str = Field(default="http://localhost:11434", alias="OLLAMA_BASE_URL")

    # ── Orchestration ──
    # Industry named in the role framing when the company profile leaves it blank
    default_industry: str = Field(default="遮阳蓬", alias="DEFAULT_INDUSTRY")
    llm_request_timeout: float = Field(default=45.0, alias="LLM_REQUEST_TIMEOUT")
    probe_timeout: float = Field(default=15.0, alias="PROBE_TIMEOUT")
    probe_max_tokens: int = Field(default=10, alias="PROBE_MAX_TOKENS")
    # Max probes in flight during initialize()
    probe_concurrency: int = Field(default=4, alias="PROBE_CONCURRENCY")
    analysis_max_tokens: int = Field(default=2000, alias="ANALYSIS_MAX_TOKENS")
    answer_max_tokens: int = Field(default=800, alias="ANSWER_MAX_TOKENS")
    analysis_temperature: float = Field(default=0.7, alias="ANALYSIS_TEMPERATURE")
    # Attempts per provider while its response has no recognisable headings
    parse_max_attempts: int = Field(default=2, alias="PARSE_MAX_ATTEMPTS")
    summary_fallback_chars: int = Field(default=500, alias="SUMMARY_FALLBACK_CHARS")
    # 0 disables the per-call deadline
    analysis_deadline_seconds: float = Field(default=0.0, alias="ANALYSIS_DEADLINE_SECONDS")
    demo_mode: bool = Field(default=False, alias="DEMO_MODE")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    def get_seed_credentials(self) -> Dict[str, str]:
        """Provider keys found in the environment, keyed by provider name."""
        keys = {
            "openai": self.openai_api_key,
            "claude": self.anthropic_api_key,
            "openrouter": self.openrouter_api_key,
        }
        return {name: key for name, key in keys.items() if key}


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
