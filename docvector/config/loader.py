"""YAML configuration loader with environment variable overrides.

Configuration is layered (later layers win):

  1. config/config.yaml  - static defaults checked into the repo
  2. .env file           - local developer overrides (not committed)
  3. Environment vars    - deployment overrides

The YAML file is grouped into sections; :data:`_YAML_FIELDS` maps each
``section.key`` onto a flat :class:`Settings` field.
"""

from pathlib import Path
from typing import Any

import yaml

from docvector.config.settings import Settings
from docvector.utils.errors import ConfigurationError

_YAML_FIELDS: dict[tuple[str, str], str] = {
    ("openai", "base_url"): "openai_base_url",
    ("openai", "embedding_model"): "openai_embedding_model",
    ("openai", "vision_model"): "openai_vision_model",
    ("chunking", "tokenizer_model"): "tokenizer_model",
    ("chunking", "max_tokens"): "chunk_max_tokens",
    ("chunking", "overlap_tokens"): "chunk_overlap_tokens",
    ("batching", "max_tokens"): "batch_max_tokens",
    ("batching", "max_items"): "batch_max_items",
    ("batching", "embedding_concurrency"): "embedding_concurrency",
    ("batching", "ingestion_concurrency"): "ingestion_concurrency",
    ("summarizer", "enabled"): "summarizer_enabled",
    ("summarizer", "poll_interval"): "summarizer_poll_interval",
    ("summarizer", "timeout"): "summarizer_timeout",
    ("summarizer", "placeholder"): "summary_placeholder",
    ("storage", "backend"): "vector_store_backend",
    ("storage", "db_path"): "vector_store_db_path",
    ("storage", "upload_dir"): "upload_dir",
    ("storage", "upload_base_url"): "upload_base_url",
    ("retrieval", "top_k"): "retrieval_top_k",
    ("retrieval", "min_similarity"): "retrieval_min_similarity",
    ("retrieval", "post_filter_similarity"): "retrieval_post_filter_similarity",
    ("logging", "level"): "log_level",
}


def load_config(path: str = "config/config.yaml") -> dict:
    """Load the raw YAML config, or an empty dict when the file is absent."""
    config_path = Path(path)
    if not config_path.exists():
        return {}
    with open(config_path, encoding="utf-8") as f:
        try:
            loaded = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(message=f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(loaded, dict):
        raise ConfigurationError(message=f"{path} must contain a mapping at the top level")
    return loaded


def load_settings(path: str = "config/config.yaml") -> Settings:
    """Build :class:`Settings` with YAML defaults and env/.env overrides.

    Args:
        path: Path to the YAML configuration file.

    Returns:
        Fully resolved settings.
    """
    yaml_values = _flatten(load_config(path))

    # Fields explicitly supplied by the environment or .env end up in
    # model_fields_set; those win over YAML.
    env_settings = Settings()
    env_values = {name: getattr(env_settings, name) for name in env_settings.model_fields_set}

    merged: dict[str, Any] = {**yaml_values, **env_values}
    return Settings(**merged)


def _flatten(config: dict) -> dict[str, Any]:
    """Map sectioned YAML keys onto flat Settings field names."""
    values: dict[str, Any] = {}
    for section, entries in config.items():
        if not isinstance(entries, dict):
            continue
        for key, value in entries.items():
            field = _YAML_FIELDS.get((section, key))
            if field is not None:
                values[field] = value
    return values
