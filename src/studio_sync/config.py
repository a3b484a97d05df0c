"""Configuration management for the studio sync engine."""

from pathlib import Path

import yaml  # type: ignore[import-untyped]
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CACHE_PATH = Path.home() / ".studio-sync" / "cache.db"


class RemoteConfig(BaseSettings):
    """Remote store (Supabase REST) configuration.

    Both ``url`` and ``anon_key`` must be set for the remote to be used;
    otherwise the engine runs in local-only mode.
    """

    model_config = SettingsConfigDict(env_prefix="SUPABASE_")

    url: str | None = Field(default=None, description="Project URL (e.g., https://xyz.supabase.co)")
    anon_key: str | None = Field(default=None, description="Anon or service API key")
    schema_name: str = Field(default="public", description="Postgres schema exposed over REST")
    timeout: float = Field(default=15.0, description="Request timeout in seconds")

    @property
    def is_configured(self) -> bool:
        """True when both the URL and the key are present."""
        return bool(self.url and self.anon_key)


class CacheConfig(BaseSettings):
    """Local durable cache configuration."""

    model_config = SettingsConfigDict(env_prefix="STUDIO_CACHE_")

    path: Path = Field(default=DEFAULT_CACHE_PATH, description="SQLite key/value database")
    snapshot_key: str = Field(
        default="studio_full_platform_data",
        description="Key holding the full SiteData snapshot",
    )
    activity_key: str = Field(
        default="studio_activity_log",
        description="Key holding the bounded activity log",
    )


class SyncConfig(BaseSettings):
    """Sync behavior configuration."""

    model_config = SettingsConfigDict(env_prefix="STUDIO_SYNC_")

    item_delay_ms: int = Field(default=50, description="Pause between seed upserts")
    grace_period_seconds: float = Field(
        default=1.5,
        description="How long the sync flag stays raised after a bulk push completes",
    )
    activity_limit: int = Field(default=50, description="Maximum activity entries kept")


class AppConfig(BaseSettings):
    """Main application configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    remote: RemoteConfig = Field(default_factory=RemoteConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)

    @classmethod
    def from_yaml(cls, path: Path) -> "AppConfig":
        """Load configuration from a YAML file."""
        if not path.exists():
            return cls()

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        return cls(**data)


def load_config(config_path: Path | None = None) -> AppConfig:
    """Load application configuration from environment and optional YAML file."""
    if config_path:
        return AppConfig.from_yaml(config_path)
    return AppConfig()
