"""Estimate agent configuration settings.

Loads configuration from environment variables with sensible defaults.
Secrets (OPENAI_API_KEY) are resolved through the config.secrets module.
"""

import os
from typing import List, Optional
from dataclasses import dataclass, field
from dotenv import load_dotenv

# Load .env file for local configuration (database URL, rate limits, etc.)
load_dotenv()

VALID_ENVIRONMENTS = ("development", "test", "production")


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


def _env_list(name: str, default: str) -> List[str]:
    return [part.strip() for part in os.getenv(name, default).split(",") if part.strip()]


@dataclass
class Settings:
    """Application settings loaded from environment variables.

    Note: Secrets (OPENAI_API_KEY) should be accessed via the config.secrets
    module. The openai_api_key property delegates to it and caches the value.
    """

    # Server
    port: int = field(default_factory=lambda: int(os.getenv("PORT", "3001")))
    environment: str = field(default_factory=lambda: os.getenv("ENVIRONMENT", "development"))

    # API versioning
    api_version: str = field(default_factory=lambda: os.getenv("API_VERSION", "v1"))
    supported_api_versions: List[str] = field(
        default_factory=lambda: _env_list("SUPPORTED_API_VERSIONS", "v1")
    )

    # Rate limiting (fixed window)
    api_rate_limit: int = field(default_factory=lambda: int(os.getenv("API_RATE_LIMIT", "100")))
    api_rate_limit_window_ms: int = field(
        default_factory=lambda: int(os.getenv("API_RATE_LIMIT_WINDOW_MS", "900000"))  # 15 minutes
    )

    # Auth
    require_api_key: bool = field(default_factory=lambda: _env_bool("REQUIRE_API_KEY"))

    # Database
    database_url: str = field(
        default_factory=lambda: os.getenv("DATABASE_URL", "sqlite:///./estimate_agent.db")
    )
    database_echo: bool = field(default_factory=lambda: _env_bool("DATABASE_ECHO"))

    # LLM Configuration (non-secrets)
    llm_model: str = field(default_factory=lambda: os.getenv("LLM_MODEL", "gpt-4o"))
    llm_temperature: float = field(default_factory=lambda: float(os.getenv("LLM_TEMPERATURE", "0.1")))
    llm_categorization_enabled: bool = field(
        default_factory=lambda: _env_bool("LLM_CATEGORIZATION_ENABLED")
    )

    # Embeddings / RAG
    embedding_model: str = field(
        default_factory=lambda: os.getenv("EMBEDDING_MODEL", "text-embedding-3-small")
    )
    embedding_dimension: int = field(default_factory=lambda: int(os.getenv("EMBEDDING_DIMENSION", "1536")))
    rag_index_name: str = field(
        default_factory=lambda: os.getenv("RAG_INDEX_NAME", "requirements_embeddings")
    )
    rag_top_k: int = field(default_factory=lambda: int(os.getenv("RAG_TOP_K", "5")))
    chunk_size: int = field(default_factory=lambda: int(os.getenv("CHUNK_SIZE", "512")))
    chunk_overlap: int = field(default_factory=lambda: int(os.getenv("CHUNK_OVERLAP", "50")))

    # Estimates
    estimate_ttl_hours: int = field(default_factory=lambda: int(os.getenv("ESTIMATE_TTL_HOURS", "24")))
    default_category_marker: str = field(
        default_factory=lambda: os.getenv("DEFAULT_CATEGORY_MARKER", "CRM")
    )

    # Logging
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))

    # Internal: cached secret value (use openai_api_key property instead)
    _openai_api_key: Optional[str] = field(default=None, repr=False)

    @property
    def openai_api_key(self) -> Optional[str]:
        """Get the OpenAI API key from the secrets module (cached)."""
        if self._openai_api_key is None:
            from config.secrets import get_openai_api_key
            self._openai_api_key = get_openai_api_key()
        return self._openai_api_key

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def rate_limit_window_seconds(self) -> float:
        return self.api_rate_limit_window_ms / 1000

    def validate(self) -> None:
        """Validate settings.

        Raises:
            ValueError: If a setting is out of range.
        """
        if self.environment not in VALID_ENVIRONMENTS:
            raise ValueError(
                f"ENVIRONMENT must be one of {', '.join(VALID_ENVIRONMENTS)}, got {self.environment!r}"
            )
        if self.api_rate_limit <= 0 or self.api_rate_limit_window_ms <= 0:
            raise ValueError("API_RATE_LIMIT and API_RATE_LIMIT_WINDOW_MS must be positive")
        if self.api_version not in self.supported_api_versions:
            raise ValueError(f"API_VERSION {self.api_version!r} is not in SUPPORTED_API_VERSIONS")


# Singleton settings instance
settings = Settings()
