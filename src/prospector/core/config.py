"""Application configuration loaded from environment and config files."""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings


class SyncConfig(BaseSettings):
    """Edit synchronizer timing and policy."""

    model_config = {"env_prefix": "PROSPECTOR_SYNC_"}

    debounce_ms: int = 500
    geometry_debounce_ms: int = 500
    switch_policy: Literal["flush", "discard"] = "flush"

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000

    @property
    def geometry_debounce_seconds(self) -> float:
        return self.geometry_debounce_ms / 1000


class RemoteConfig(BaseSettings):
    """REST backend configuration."""

    model_config = {"env_prefix": "PROSPECTOR_REMOTE_"}

    base_url: str = "http://localhost:8080"
    timeout_seconds: int = 15
    max_retries: int = 1
    api_token: str | None = None


class LocalStoreConfig(BaseSettings):
    """Demo-mode key-value store configuration.

    ``path`` of ``None`` keeps the store in memory only.
    """

    model_config = {"env_prefix": "PROSPECTOR_LOCAL_"}

    path: str | None = "data/local_store.json"


class ServerConfig(BaseSettings):
    """Reference REST service configuration."""

    model_config = {"env_prefix": "PROSPECTOR_SERVER_"}

    data_path: str | None = None
    fixtures_path: str | None = None


class Settings(BaseSettings):
    """Root application settings."""

    model_config = {"env_prefix": "PROSPECTOR_"}

    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    mode: Literal["remote", "demo"] = "remote"
    user_id: str | None = None

    sync: SyncConfig = Field(default_factory=SyncConfig)
    remote: RemoteConfig = Field(default_factory=RemoteConfig)
    local: LocalStoreConfig = Field(default_factory=LocalStoreConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
