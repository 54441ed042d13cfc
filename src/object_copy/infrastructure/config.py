"""Configuration management for Object Copy using Pydantic Settings."""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class TransferConfig(BaseSettings):
    """Chunked transfer configuration."""

    model_config = SettingsConfigDict(env_prefix="OBJECT_COPY_TRANSFER_")

    chunk_size: int = Field(default=256 * 1024 * 1024, gt=0)  # 256MB, tune as needed
    concurrency: int = Field(default=5, gt=0)
    temp_dir: Optional[Path] = None  # None uses the system temp directory


class IdentityConfig(BaseSettings):
    """Identity service configuration."""

    model_config = SettingsConfigDict(env_prefix="OBJECT_COPY_IDENTITY_")

    auth_url: str = "https://identity.api.rackspacecloud.com/v2.0/tokens"
    username: str = ""
    api_key: SecretStr = SecretStr("")
    service_name: str = "cloudFiles"


class HttpConfig(BaseSettings):
    """HTTP client configuration."""

    model_config = SettingsConfigDict(env_prefix="OBJECT_COPY_HTTP_")

    connect_timeout: float = 10.0
    read_timeout: float = 300.0
    write_timeout: float = 300.0
    stream_block_size: int = 1024 * 1024


class ObservabilityConfig(BaseSettings):
    """Observability configuration."""

    model_config = SettingsConfigDict(env_prefix="OBJECT_COPY_OBSERVABILITY_")

    log_level: str = "info"
    log_format: Literal["json", "console"] = "json"
    metrics_enabled: bool = False
    metrics_port: int = Field(default=8010, ge=1, le=65535)
    otlp_endpoint: str = ""
    trace_exporter: Literal["console", "none"] = "console"  # used when no OTLP endpoint is set
    environment: str = "development"


class Config(BaseSettings):
    """Root configuration for Object Copy."""

    model_config = SettingsConfigDict(
        env_prefix="OBJECT_COPY_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    transfer: TransferConfig = Field(default_factory=TransferConfig)
    identity: IdentityConfig = Field(default_factory=IdentityConfig)
    http: HttpConfig = Field(default_factory=HttpConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)


@lru_cache
def get_config() -> Config:
    """Get cached configuration instance."""
    return Config()
