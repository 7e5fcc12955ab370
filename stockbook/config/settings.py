"""
Application settings with Pydantic v2 validation.

Every section reads its own environment prefix (STORAGE_, RECONCILER_, LOG_,
API_). A `.env` file in the working directory is honoured.
"""

from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageSettings(BaseSettings):
    """SQLite storage configuration."""

    model_config = SettingsConfigDict(env_prefix="STORAGE_")

    data_dir: Path = Path("data")
    db_name: str = "stockbook.db"

    pool_size: int = Field(default=5, ge=1)
    busy_timeout: int = Field(default=30000, ge=0)  # ms

    # Copy the database file before applying migrations
    backup_before_migrate: bool = True

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.db_name

    @property
    def backup_dir(self) -> Path:
        return self.data_dir / "backups"


class ReconcilerSettings(BaseSettings):
    """Purchase reconciliation behaviour."""

    model_config = SettingsConfigDict(env_prefix="RECONCILER_")

    # Reject reversals that would drive stock below zero
    strict_stock: bool = False

    # Generated invoice numbers look like INV/PO/241231/001
    invoice_prefix: str = "INV/PO"

    @field_validator("invoice_prefix")
    @classmethod
    def strip_prefix(cls, v: str) -> str:
        v = v.strip().rstrip("/")
        if not v:
            raise ValueError("invoice_prefix must not be empty")
        return v


class LoggingSettings(BaseSettings):
    """Structured logging configuration."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # auto: console renderer in development, JSON elsewhere
    format: Literal["auto", "console", "json"] = "auto"

    # Third-party loggers capped at WARNING
    quiet_loggers: list[str] = ["aiosqlite", "uvicorn.access"]


class APISettings(BaseSettings):
    """API server configuration."""

    model_config = SettingsConfigDict(env_prefix="API_")

    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False
    cors_origins: list[str] = ["*"]

    # Header carrying the authenticated user id, set by the auth proxy
    user_header: str = "X-User-Id"


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "stockbook"
    environment: Literal["development", "staging", "production"] = "development"

    storage: StorageSettings = Field(default_factory=StorageSettings)
    reconciler: ReconcilerSettings = Field(default_factory=ReconcilerSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    api: APISettings = Field(default_factory=APISettings)

    @field_validator("storage", mode="before")
    @classmethod
    def ensure_data_dir(cls, v: Any) -> StorageSettings:
        if isinstance(v, dict):
            settings = StorageSettings(**v)
        else:
            settings = v or StorageSettings()
        settings.data_dir.mkdir(parents=True, exist_ok=True)
        return settings

    @property
    def use_json_logs(self) -> bool:
        if self.logging.format == "auto":
            return self.environment != "development"
        return self.logging.format == "json"


_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset settings (for testing)."""
    global _settings
    _settings = None
