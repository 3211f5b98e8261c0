"""Application configuration handling."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import BaseModel, Field, field_validator

ENV_PREFIX = "ASKDOCS_"
DEFAULT_CONFIG_PATH = Path("~/.config/askdocs/config.yaml")

_YAML_KEY_MAP: Mapping[tuple[str, ...], str] = {
    ("storage", "db_path"): "db_path",
    ("storage", "root"): "storage_dir",
    ("storage", "max_upload_bytes"): "max_upload_bytes",
    ("service", "base_url"): "api_base_url",
    ("service", "api_key"): "api_key",
    ("service", "timeout"): "request_timeout",
    ("embeddings", "model"): "embedding_model",
    ("embeddings", "dim"): "embedding_dim",
    ("embeddings", "batch_size"): "embedding_batch_size",
    ("embeddings", "retry_delay"): "embedding_retry_delay",
    ("embeddings", "batch_delay"): "embedding_batch_delay",
    ("embeddings", "query_max_retries"): "embedding_query_max_retries",
    ("chat", "model"): "chat_model",
    ("chat", "max_tokens"): "chat_max_tokens",
    ("chat", "temperature"): "chat_temperature",
    ("chat", "top_p"): "chat_top_p",
    ("chat", "max_attempts"): "synthesis_max_attempts",
    ("chat", "backoff_base"): "synthesis_backoff_base",
    ("chat", "backoff_cap"): "synthesis_backoff_cap",
    ("chunking", "size"): "chunk_size",
    ("chunking", "overlap"): "chunk_overlap",
    ("chunking", "overlap_divisor"): "chunk_overlap_divisor",
    ("chunking", "min_chars"): "chunk_min_chars",
    ("retrieval", "match_threshold"): "match_threshold",
    ("retrieval", "match_count"): "match_count",
    ("auth", "tokens"): "api_tokens",
}


class Settings(BaseModel):
    """Runtime configuration loaded from YAML file and environment variables."""

    db_path: Path = Field(default=Path.home() / ".askdocs" / "askdocs.db")
    storage_dir: Path = Field(default=Path.home() / ".askdocs" / "documents")
    max_upload_bytes: int = 10 * 1024 * 1024

    api_base_url: str = "https://api.groq.com/openai/v1"
    api_key: str | None = None
    request_timeout: float = 10.0

    embedding_model: str = "nomic-embed-text-v1.5"
    embedding_dim: int = 768
    embedding_batch_size: int = Field(default=10, ge=1)
    embedding_retry_delay: float = 2.0
    embedding_batch_delay: float = 0.5
    # rate-limit retries for a query embedding; ingestion retries without bound
    embedding_query_max_retries: int = Field(default=0, ge=0)

    chat_model: str = "llama-3.1-70b-versatile"
    chat_max_tokens: int = 1024
    chat_temperature: float = 0.1
    chat_top_p: float = 0.9
    synthesis_max_attempts: int = Field(default=3, ge=1)
    synthesis_backoff_base: float = 1.0
    synthesis_backoff_cap: float = 60.0

    chunk_size: int = 500
    chunk_overlap: int = 50
    chunk_overlap_divisor: int = Field(default=5, ge=1)
    chunk_min_chars: int = 10

    match_threshold: float = 0.1
    match_count: int = Field(default=5, ge=1)

    # bearer token -> owner id
    api_tokens: dict[str, str] = Field(default_factory=dict)

    model_config = {
        "validate_assignment": True,
        "extra": "ignore",
    }

    @field_validator("db_path", "storage_dir", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Path:
        if isinstance(value, Path):
            return value.expanduser()
        if isinstance(value, str):
            return Path(value).expanduser()
        raise TypeError("path settings must be a path or string")

    @field_validator("api_key", mode="before")
    @classmethod
    def _blank_key_is_missing(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("api_tokens", mode="before")
    @classmethod
    def _parse_tokens(cls, value: Any) -> Any:
        # env form: "token-a:alice,token-b:bob"
        if isinstance(value, str):
            parsed: dict[str, str] = {}
            for pair in value.split(","):
                token, sep, owner = pair.strip().partition(":")
                if sep and token and owner:
                    parsed[token.strip()] = owner.strip()
            return parsed
        return value

    @classmethod
    def from_yaml(cls, path: Path | None = None) -> "Settings":
        """Load YAML config and overlay env vars; fall back to defaults."""
        config_path = cls._resolve_config_path(path)
        data: dict[str, Any] = {}
        if config_path and config_path.exists():
            with config_path.open("r", encoding="utf-8") as fh:
                raw = yaml.safe_load(fh) or {}
            data.update(_flatten_yaml(raw))
        data.update(_load_env_overrides())
        return cls(**data)

    @staticmethod
    def _resolve_config_path(path: Path | None) -> Path | None:
        if path is not None:
            return path.expanduser()
        env_path = os.environ.get(f"{ENV_PREFIX}CONFIG")
        if env_path:
            return Path(env_path).expanduser()
        resolved_default = DEFAULT_CONFIG_PATH.expanduser()
        return resolved_default if resolved_default.exists() else None


def _flatten_yaml(raw: Mapping[str, Any], prefix: tuple[str, ...] = ()) -> dict[str, Any]:
    """Flatten nested YAML configuration to Settings field names."""
    flat: dict[str, Any] = {}
    for key, value in raw.items():
        next_prefix = prefix + (key,)
        mapped_key = _YAML_KEY_MAP.get(next_prefix)
        if mapped_key:
            # auth.tokens is itself a mapping
            flat[mapped_key] = value
        elif isinstance(value, Mapping):
            flat.update(_flatten_yaml(value, prefix=next_prefix))
        elif key in Settings.model_fields:
            flat[key] = value
    return flat


def _load_env_overrides() -> dict[str, Any]:
    """Map environment variables with ASKDOCS_ prefix into Settings fields."""
    overrides: dict[str, Any] = {}
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        field_name = key[len(ENV_PREFIX) :].lower()
        if field_name in Settings.model_fields:
            overrides[field_name] = value
    return overrides


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached settings accessor for dependency injection."""
    return Settings.from_yaml()


__all__ = ["Settings", "get_settings"]
