"""Configuration management for SealDB.

This module uses Pydantic Settings to load and validate configuration from
environment variables and .env files. Configuration is loaded once when a
client is constructed and is immutable afterwards.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def default_data_dir() -> Path:
    """Return the well-known per-user data directory."""
    return Path.home() / ".sealdb"


class Settings(BaseSettings):
    """SealDB configuration settings.

    Settings are loaded from environment variables (``SEALDB_`` prefix) and
    an optional ``.env`` file. Explicit keyword arguments take precedence.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="SEALDB_",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # Schema Settings
    schema_path: Path | None = Field(
        default=None,
        description="Path to the JSON schema file describing every model",
    )

    # Storage Settings
    data_dir: Path = Field(
        default_factory=default_data_dir,
        description="Directory holding one data file per model plus the key file",
    )
    file_extension: str = ".db"
    key_filename: str = ".sealdb.key"

    # Security Settings
    encryption_enabled: bool = Field(
        default=True,
        description="When disabled, collections persist as plain JSON",
    )
    encryption_key: SecretStr | None = Field(
        default=None,
        description="Caller-supplied key; generated and stored in data_dir when unset",
    )

    # Logging Settings
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_format: Literal["json", "console"] = "console"

    @field_validator("data_dir", "schema_path", mode="after")
    @classmethod
    def expand_user(cls, v: Path | None) -> Path | None:
        """Expand ``~`` so the same directory is reused across restarts."""
        if v is None:
            return v
        return v.expanduser()

    @field_validator("encryption_key")
    @classmethod
    def validate_encryption_key(cls, v: SecretStr | None) -> SecretStr | None:
        """Reject an empty key rather than silently generating one."""
        if v is not None and not v.get_secret_value():
            raise ValueError("encryption_key must not be empty")
        return v

    @field_validator("file_extension")
    @classmethod
    def validate_file_extension(cls, v: str) -> str:
        if not v.startswith(".") or len(v) < 2:
            raise ValueError("file_extension must start with '.', e.g. '.db'")
        return v

    @property
    def key_path(self) -> Path:
        """Location of the generated key file."""
        return self.data_dir / self.key_filename


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings: Cached settings loaded from the environment.
    """
    return Settings()
