"""HC Register configuration management.

Loads configuration from environment variables with sensible defaults.
Display formatting follows the Mauritian locale (MUR currency).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env file if present
load_dotenv()


@dataclass
class StorageConfig:
    """Local durable cache (the view's persisted mirror of the record store)."""

    url: str = "sqlite:///./hc_local_cache.db"
    records_key: str = "hc_framework_data"
    session_key: str = "hc_user_session"
    echo: bool = False  # SQL logging

    @property
    def activities_key(self) -> str:
        return f"{self.records_key}_logs"


@dataclass
class BackendConfig:
    """Remote shared-state endpoint used by sync-on-login and explicit save."""

    url: str | None = None
    timeout_seconds: float | None = None  # None: wait indefinitely
    database_url: str = "sqlite+aiosqlite:///./hc_backend.db"
    pool_size: int = 5
    pool_max_overflow: int = 10


@dataclass
class SyncConfig:
    """Multi-view synchronization timings."""

    channel_name: str = "hc_framework_sync"
    redis_url: str | None = None  # None: in-process bus only
    presence_interval_seconds: float = 5.0
    presence_ttl_seconds: float = 10.0  # 0 disables expiry
    receive_indicator_seconds: float = 0.5
    local_indicator_seconds: float = 0.8
    activity_log_limit: int = 100


@dataclass
class LocaleConfig:
    """Display-only currency formatting."""

    currency_symbol: str = "Rs"


@dataclass
class ExportConfig:
    """Spreadsheet and backup export settings."""

    sheet_name_max_length: int = 31
    master_sheet_name: str = "Master Register"
    backup_version: str = "2.5"


@dataclass
class AppConfig:
    """Root application configuration."""

    log_level: str = "INFO"
    json_logs: bool = False
    boq_master_path: Path | None = None

    storage: StorageConfig = field(default_factory=StorageConfig)
    backend: BackendConfig = field(default_factory=BackendConfig)
    sync: SyncConfig = field(default_factory=SyncConfig)
    locale: LocaleConfig = field(default_factory=LocaleConfig)
    export: ExportConfig = field(default_factory=ExportConfig)

    @classmethod
    def from_env(cls) -> AppConfig:
        """Load configuration from environment variables.

        All settings are optional. Notable ones:
        - BACKEND_URL: shared-state endpoint (sync-on-login is skipped when unset)
        - LOCAL_CACHE_URL: SQLAlchemy URL of the local durable cache
        - DATABASE_URL: async SQLAlchemy URL of the backend document store
        - REDIS_URL: enables the Redis pub/sub channel between processes
        - PRESENCE_TTL_SECONDS: presence liveness window (0 = never expire)

        Raises:
            ValueError: If a numeric variable cannot be parsed
        """
        timeout = os.getenv("BACKEND_TIMEOUT")
        master_path = os.getenv("BOQ_MASTER_PATH")

        return cls(
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            json_logs=os.getenv("JSON_LOGS", "false").lower() == "true",
            boq_master_path=Path(master_path) if master_path else None,
            storage=StorageConfig(
                url=os.getenv("LOCAL_CACHE_URL", "sqlite:///./hc_local_cache.db"),
                records_key=os.getenv("STORAGE_KEY", "hc_framework_data"),
                echo=os.getenv("DB_ECHO", "false").lower() == "true",
            ),
            backend=BackendConfig(
                url=os.getenv("BACKEND_URL") or None,
                timeout_seconds=float(timeout) if timeout else None,
                database_url=os.getenv(
                    "DATABASE_URL", "sqlite+aiosqlite:///./hc_backend.db"
                ),
                pool_size=int(os.getenv("DB_POOL_SIZE", "5")),
                pool_max_overflow=int(os.getenv("DB_POOL_MAX_OVERFLOW", "10")),
            ),
            sync=SyncConfig(
                channel_name=os.getenv("SYNC_CHANNEL", "hc_framework_sync"),
                redis_url=os.getenv("REDIS_URL") or None,
                presence_interval_seconds=float(
                    os.getenv("PRESENCE_INTERVAL_SECONDS", "5")
                ),
                presence_ttl_seconds=float(os.getenv("PRESENCE_TTL_SECONDS", "10")),
                activity_log_limit=int(os.getenv("ACTIVITY_LOG_LIMIT", "100")),
            ),
            locale=LocaleConfig(
                currency_symbol=os.getenv("CURRENCY_SYMBOL", "Rs"),
            ),
        )

    @property
    def data_root(self) -> Path:
        """Directory holding packaged reference data (BOQ master schedule)."""
        return Path(__file__).parent / "data"

    @property
    def master_schedule_path(self) -> Path:
        """Path to the BOQ master schedule YAML."""
        return self.boq_master_path or self.data_root / "boq_master.yaml"


# Singleton instance (lazy-loaded)
_config: AppConfig | None = None


def get_config() -> AppConfig:
    """Get or create singleton AppConfig instance from environment.

    Returns:
        AppConfig: Application configuration
    """
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config


def reset_config() -> None:
    """Drop the cached configuration so the next get_config() re-reads the env."""
    global _config
    _config = None
