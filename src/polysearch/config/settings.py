"""Application settings: pydantic-based configuration with YAML and env var support.

Configuration is loaded from (in order of precedence):
  1. Environment variables (POLYSEARCH_ prefix)
  2. YAML config file (if specified)
  3. Default values
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings


class WhooshConnection(BaseModel):
    """Local on-disk index driver configuration."""

    path: str = Field(default="storage/search", description="Root directory holding one subdirectory per index")


class OpenSearchConnection(BaseModel):
    """Distributed search cluster driver configuration."""

    hosts: list[str] = Field(default_factory=lambda: ["localhost:9200"], description="Cluster node URLs")
    username: str | None = Field(default=None, description="HTTP basic-auth username")
    password: str | None = Field(default=None, description="HTTP basic-auth password")
    verify_certs: bool = Field(default=True, description="Whether to verify TLS certificates")
    extra: dict[str, Any] = Field(default_factory=dict, description="Extra keyword arguments for the client")

    @field_validator("hosts", mode="before")
    @classmethod
    def _parse_hosts(cls, v: Any) -> list[str]:
        """Parse hosts from JSON string (env var) or list."""
        if isinstance(v, str):
            import json

            try:
                parsed = json.loads(v)
                if isinstance(parsed, list):
                    return [str(h) for h in parsed]
            except (json.JSONDecodeError, TypeError):
                pass
            # Single host as plain string
            return [v] if v else []
        return list(v)


class AlgoliaConnection(BaseModel):
    """Managed search API driver configuration."""

    application_id: str = Field(default="", description="Algolia application ID")
    admin_api_key: str = Field(default="", description="Algolia admin API key")
    timeout: float = Field(default=30.0, gt=0, description="HTTP request timeout in seconds")
    task_wait_attempts: int = Field(default=50, ge=0, description="Polls of a write task before giving up")
    task_wait_interval: float = Field(default=0.1, ge=0, description="Seconds between task polls")


class ConnectionSettings(BaseModel):
    """Per-driver connection blocks."""

    whoosh: WhooshConnection = Field(default_factory=WhooshConnection)
    opensearch: OpenSearchConnection = Field(default_factory=OpenSearchConnection)
    algolia: AlgoliaConnection = Field(default_factory=AlgoliaConnection)


class ObservabilitySettings(BaseModel):
    """Observability configuration."""

    log_level: str = Field(default="info", description="Log level: debug, info, warning, error")
    log_format: str = Field(default="json", description="Log format: json, console")


class Settings(BaseSettings):
    """Root settings.

    Configuration is loaded from environment variables with the POLYSEARCH_ prefix.
    Nested settings use double underscores.

    Example:
        POLYSEARCH_DEFAULT=opensearch
        POLYSEARCH_DEFAULT_INDEX=products
        POLYSEARCH_CONNECTIONS__OPENSEARCH__HOSTS='["http://es1:9200","http://es2:9200"]'
        POLYSEARCH_CONNECTIONS__ALGOLIA__APPLICATION_ID=ABC123
    """

    model_config = {
        "env_prefix": "POLYSEARCH_",
        "env_nested_delimiter": "__",
        "case_sensitive": False,
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }

    default: str = Field(default="whoosh", description="Default search driver: whoosh, opensearch, algolia")
    default_index: str = Field(default="default", description="Index used when no name is given")
    connections: ConnectionSettings = Field(default_factory=ConnectionSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    @classmethod
    def from_yaml(cls, path: str | Path) -> Settings:
        """Load settings from a YAML configuration file.

        Values from the YAML file are used as defaults; environment variables
        still take precedence.

        Args:
            path: Path to the YAML config file.

        Returns:
            Populated Settings instance.
        """
        import yaml  # type: ignore[import-untyped]

        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path) as f:
            data = yaml.safe_load(f) or {}

        return cls(**data)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings, loaded once."""
    return Settings()
