"""LegIndex settings.

Values come from LEGINDEX_* environment variables (and a .env file) over the
defaults below. ``Settings.from_yaml()`` passes a YAML file's values as
explicit arguments, so those win over the environment.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ServerSettings(BaseModel):
    """Bind address and CORS policy of the HTTP API."""

    host: str = Field(default="0.0.0.0", description="Address uvicorn binds to")
    port: int = Field(default=8080, ge=1, le=65535, description="Port uvicorn listens on")
    cors_origins: list[str] = Field(default=["*"], description="Origins allowed by the CORS middleware")


class IndexSettings(BaseModel):
    """Which search backend holds the bill index, and how to reach it."""

    backend: Literal["opensearch", "memory"] = Field(default="opensearch", description="Index backend name")
    hosts: list[str] = Field(default_factory=list, description="OpenSearch node URLs")
    index_name: str = Field(default="bills", description="Name of the bill index")
    username: str | None = Field(default=None, description="Basic-auth user for the backend")
    password: str | None = Field(default=None, description="Basic-auth password for the backend")
    verify_certs: bool = Field(default=True, description="Verify TLS certificates")
    refresh: bool | Literal["wait_for"] = Field(default=False, description="Refresh policy for index writes")
    extra: dict[str, Any] = Field(default_factory=dict, description="Backend-specific client options")

    @field_validator("hosts", mode="before")
    @classmethod
    def _split_hosts(cls, v: Any) -> list[str]:
        """Accept a list, a JSON array string, or a single URL."""
        if not isinstance(v, str):
            return list(v)
        if v.lstrip().startswith("["):
            try:
                return [str(h) for h in json.loads(v)]
            except json.JSONDecodeError as e:
                raise ValueError(f"Invalid host list: {v!r}") from e
        return [v] if v else []


class StoreSettings(BaseModel):
    """Canonical bill store configuration."""

    base_url: str = Field(default="http://localhost:8081/api", description="Bill data service base URL")
    api_key: str | None = Field(default=None, description="Bearer token for the bill data service")
    timeout: float = Field(default=30.0, gt=0, description="HTTP request timeout in seconds")


class IndexingSettings(BaseModel):
    """Index synchronization behavior."""

    enabled: bool = Field(default=True, description="Administrative switch for index updates")
    rebuild_batch_size: int = Field(default=1000, ge=1, description="Bill ids fetched per rebuild batch")
    default_page_size: int = Field(default=10, ge=1, le=1000, description="Search page size when none is given")


class ObservabilitySettings(BaseModel):
    log_level: Literal["debug", "info", "warning", "error"] = Field(default="info", description="Root log level")
    log_format: Literal["json", "console"] = Field(default="json", description="Log line renderer")


class Settings(BaseSettings):
    """Root settings object.

    Nested sections map to environment variables with a double underscore::

        LEGINDEX_INDEX__BACKEND=memory
        LEGINDEX_INDEX__HOSTS='["https://search-1:9200", "https://search-2:9200"]'
        LEGINDEX_INDEXING__ENABLED=false
        LEGINDEX_STORE__BASE_URL=http://bills.internal/api
    """

    model_config = SettingsConfigDict(
        env_prefix="LEGINDEX_",
        env_nested_delimiter="__",
        env_file=".env",
        extra="ignore",
    )

    app_name: str = Field(default="LegIndex", description="Application name")
    debug: bool = Field(default=False, description="Debug mode")

    server: ServerSettings = Field(default_factory=ServerSettings)
    index: IndexSettings = Field(default_factory=IndexSettings)
    store: StoreSettings = Field(default_factory=StoreSettings)
    indexing: IndexingSettings = Field(default_factory=IndexingSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    @classmethod
    def from_yaml(cls, path: str | Path) -> Settings:
        """Build settings from a YAML file.

        Sections missing from the file still fall back to LEGINDEX_*
        environment variables and then to defaults.

        Raises:
            FileNotFoundError: If ``path`` does not exist.
        """
        import yaml  # type: ignore[import-untyped]

        config_path = Path(path)
        if not config_path.is_file():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        data = yaml.safe_load(config_path.read_text()) or {}
        return cls(**data)
