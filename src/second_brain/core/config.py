"""
Application Configuration

Centralized settings management using Pydantic BaseSettings.
All values are loaded from environment variables or .env file.

``AIClientConfig`` is the explicit, immutable view of the AI-related
settings that gets injected into the embedding and enrichment clients.
"""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings with environment variable binding.

    Required env vars (no defaults):
        POSTGRES_USER, POSTGRES_PASSWORD, POSTGRES_HOST, POSTGRES_DB, JWT_SECRET

    Optional env vars:
        POSTGRES_PORT (5432), LOG_LEVEL (INFO), AI_API_KEY (mock mode if
        unset), AI_BASE_URL, EMBEDDING_MODEL, CHAT_MODEL, REQUEST_TIMEOUT_MS
        (90000), MATCH_THRESHOLD (0.3), MATCH_COUNT (50)
    """

    PROJECT_NAME: str = "Second Brain"

    # Database
    POSTGRES_USER: str
    POSTGRES_PASSWORD: str
    POSTGRES_HOST: str
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str

    # Logging
    LOG_LEVEL: str = "INFO"

    # AI provider (OpenAI-compatible API, e.g. OpenRouter)
    AI_API_KEY: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "AI_API_KEY", "OPENROUTER_API_KEY", "OPENAI_API_KEY"
        ),
    )
    AI_BASE_URL: str = "https://openrouter.ai/api/v1"
    EMBEDDING_MODEL: str = "openai/text-embedding-3-small"
    EMBEDDING_DIMENSION: int = 1536
    CHAT_MODEL: str = "google/gemini-3-flash-preview"
    CHAT_TEMPERATURE: float = 0.3
    CHAT_MAX_TOKENS: int = 4096
    REQUEST_TIMEOUT_MS: int = 90_000
    EMBEDDING_TIMEOUT_MS: int = 30_000
    HTTP_REFERER: str = "http://localhost:3000"
    APP_TITLE: str = "Second Brain App"

    # Retrieval tuning (small personal corpora need a permissive threshold)
    MATCH_THRESHOLD: float = 0.3
    MATCH_COUNT: int = 50

    # Auth: tokens issued by the identity provider (HS256 shared secret)
    JWT_SECRET: str
    JWT_ALGORITHM: str = "HS256"
    JWT_AUDIENCE: str | None = "authenticated"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",  # Silently ignore unknown env vars
    )

    @property
    def DATABASE_URL(self) -> str:
        """Async PostgreSQL connection string using asyncpg driver."""
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )


@dataclass(frozen=True)
class AIClientConfig:
    """
    Immutable configuration for the AI clients.

    Attributes:
        base_url: OpenAI-compatible API root (no trailing slash).
        api_key: Bearer token. ``None`` or ``"mock"`` enables mock mode.
        embedding_model: Model id sent to ``/embeddings``.
        embedding_dimension: Expected vector length.
        chat_model: Model id sent to ``/chat/completions``.
        request_timeout_ms: Hard budget for one enrichment call.
        embedding_timeout_ms: Timeout for one embedding call.
        match_threshold: Minimum cosine similarity for vector hits.
        match_count: Maximum hits per search strategy.
    """

    base_url: str
    api_key: str | None
    embedding_model: str
    embedding_dimension: int
    chat_model: str
    chat_temperature: float
    chat_max_tokens: int
    request_timeout_ms: int
    embedding_timeout_ms: int
    match_threshold: float
    match_count: int
    http_referer: str = ""
    app_title: str = ""

    @property
    def is_mock(self) -> bool:
        """True when no real API key is configured."""
        return not self.api_key or self.api_key.lower() == "mock"

    @classmethod
    def from_settings(cls, source: Settings | None = None) -> AIClientConfig:
        """Build the client configuration from application settings."""
        s = source or settings
        return cls(
            base_url=s.AI_BASE_URL.rstrip("/"),
            api_key=s.AI_API_KEY,
            embedding_model=s.EMBEDDING_MODEL,
            embedding_dimension=s.EMBEDDING_DIMENSION,
            chat_model=s.CHAT_MODEL,
            chat_temperature=s.CHAT_TEMPERATURE,
            chat_max_tokens=s.CHAT_MAX_TOKENS,
            request_timeout_ms=s.REQUEST_TIMEOUT_MS,
            embedding_timeout_ms=s.EMBEDDING_TIMEOUT_MS,
            match_threshold=s.MATCH_THRESHOLD,
            match_count=s.MATCH_COUNT,
            http_referer=s.HTTP_REFERER,
            app_title=s.APP_TITLE,
        )


settings = Settings()  # type: ignore[call-arg]
