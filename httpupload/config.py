"""
Application configuration using Pydantic Settings.
All environment variables are loaded here with sensible defaults.

Every variable is prefixed with HTTPUP_, e.g. HTTPUP_SECRET.
"""
import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Address to bind, "host:port". An empty host listens on all interfaces.
    listen_address: str = ":8889"

    # Shared with the XMPP server issuing upload URLs
    secret: SecretStr

    # Directory uploads are written to (created on startup)
    storage_path: Path = Path("data")

    # Logging
    log_level: str = "INFO"

    # Environment
    environment: str = "dev"

    # Prometheus exporter port, disabled when unset
    metrics_port: Optional[int] = None

    model_config = SettingsConfigDict(
        env_prefix="HTTPUP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("listen_address")
    @classmethod
    def _check_listen_address(cls, value: str) -> str:
        if not value:
            raise ValueError(f"listen-address must be non empty, found '{value}'")
        _, sep, port = value.rpartition(":")
        if not sep or not port.isdigit():
            raise ValueError(f"listen-address must be host:port, found '{value}'")
        return value

    @field_validator("secret")
    @classmethod
    def _check_secret(cls, value: SecretStr) -> SecretStr:
        if not value.get_secret_value():
            raise ValueError("secret must be non empty")
        return value

    @property
    def host(self) -> str:
        """Host part of listen_address, all interfaces when empty."""
        host = self.listen_address.rpartition(":")[0]
        return host.strip("[]") or "0.0.0.0"

    @property
    def port(self) -> int:
        return int(self.listen_address.rpartition(":")[2])

    def check(self) -> None:
        """
        Create the storage directory if it does not exist yet.

        Raises:
            RuntimeError: If the directory cannot be created
        """
        try:
            os.makedirs(self.storage_path, mode=0o755, exist_ok=True)
        except OSError as e:
            raise RuntimeError(f"could not create storage path '{self.storage_path}': {e}") from e


@lru_cache
def get_settings() -> Settings:
    """Load settings once from the environment (used by the command line)."""
    return Settings()
