"""Application settings loaded from environment variables via pydantic-settings.

Settings are read from two sources, in priority order:

  1. Environment variables, e.g. ``OPENAI_API_KEY=sk-abc123``
  2. A ``.env`` file in the working directory

Field ``chunk_max_tokens`` maps to ``CHUNK_MAX_TOKENS`` and so on.  The
YAML file under ``config/`` supplies defaults below both sources; see
:func:`docvector.config.loader.load_settings`.

The chunk and batch budgets are part of the observable contract: changing
them changes which chunks exist and therefore what retrieval returns.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """docvector application settings."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === OpenAI-compatible providers ===
    openai_api_key: str = ""
    openai_base_url: str = ""  # Custom base URL for OpenAI-compatible APIs
    openai_embedding_model: str = "text-embedding-3-small"
    openai_vision_model: str = "gpt-4o"

    # === Chunking ===
    tokenizer_model: str = "text-embedding-3-small"
    chunk_max_tokens: int = Field(default=1000, gt=0)
    chunk_overlap_tokens: int = Field(default=200, ge=0)

    # === Embedding batches ===
    batch_max_tokens: int = Field(default=300_000, gt=0)
    batch_max_items: int | None = Field(default=2048, gt=0)  # None lifts the item cap
    embedding_concurrency: int = Field(default=4, gt=0)
    ingestion_concurrency: int = Field(default=2, gt=0)

    # === Summarizer ===
    summarizer_enabled: bool = True
    summarizer_poll_interval: float = Field(default=5.0, gt=0)
    summarizer_timeout: float = Field(default=600.0, gt=0)
    summary_placeholder: str = "No analysis available"

    # === Storage ===
    vector_store_backend: Literal["sqlite", "memory"] = "sqlite"
    vector_store_db_path: str = "data/docvector.db"
    upload_dir: str = "data/uploads"
    upload_base_url: str = ""  # Public URL prefix for stored uploads; file:// when empty

    # === Retrieval defaults (callers may override per query) ===
    retrieval_top_k: int = Field(default=6, gt=0)
    retrieval_min_similarity: float = Field(default=0.4, ge=-1.0, le=1.0)
    retrieval_post_filter_similarity: float | None = Field(default=0.5, ge=-1.0, le=1.0)

    # === App Config ===
    app_env: str = "development"
    log_level: str = "INFO"
