"""Application settings loaded from environment variables via pydantic-settings.

Two sources, in priority order:

  1. Environment variables, e.g. ``OPENAI_API_KEY=sk-abc123`` (always wins)
  2. ``.env`` file in the working directory (local development)

Field ``openai_api_key`` maps to ``OPENAI_API_KEY``; pydantic-settings
upper-cases and matches.  Defaults apply when neither source sets a value.
A YAML file can supply a further layer underneath; see
:mod:`kbindex.config.loader`.
"""

from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

SNAPSHOT_FILENAME = "vector-data.json"


class Settings(BaseSettings):
    """kbindex settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === Embedding Providers ===
    # Empty string = "not configured"; provider selection in main.py skips
    # providers with empty keys and falls through to the next.
    openai_api_key: str = ""
    openai_base_url: str = ""  # Custom base URL for OpenAI-compatible APIs
    openai_embedding_model: str = ""  # Override embedding model
    gemini_api_key: str = ""
    gemini_embedding_model: str = "text-embedding-004"
    ollama_base_url: str = "http://localhost:11434"

    # === Index ===
    knowledge_base_path: str = "./knowledge-base"
    vector_db_path: str = "./vector-db"
    chunk_size: int = Field(default=1000, gt=0)
    chunk_overlap: int = Field(default=200, ge=0)
    search_default_limit: int = Field(default=5, gt=0)

    # === Embedding retry policy ===
    embedding_max_attempts: int = Field(default=3, ge=1)
    embedding_base_delay_ms: int = Field(default=2000, ge=0)

    # === Watcher ===
    watch_debounce_ms: int = Field(default=1600, ge=0)

    # === App Config ===
    app_env: str = "development"
    log_level: str = "INFO"

    @model_validator(mode="after")
    def _overlap_below_chunk_size(self) -> "Settings":
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError(
                f"chunk_overlap ({self.chunk_overlap}) must be smaller than "
                f"chunk_size ({self.chunk_size})"
            )
        return self

    @property
    def snapshot_path(self) -> Path:
        """Location of the persisted index snapshot."""
        return Path(self.vector_db_path) / SNAPSHOT_FILENAME

    def get_available_embedding_providers(self) -> list[str]:
        """Return embedding provider names that have configuration present."""
        providers: list[str] = []
        if self.openai_api_key:
            providers.append("openai")
        if self.gemini_api_key:
            providers.append("gemini")
        if self.ollama_base_url:
            providers.append("ollama")
        return providers
