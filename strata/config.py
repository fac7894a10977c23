"""Configuration management for Strata"""

import sys
from pathlib import Path
from typing import Optional

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


def get_data_dir() -> Path:
    """Return the per-user directory holding the database, stores and logs."""
    return Path.home() / ".strata"


def get_config_path() -> Path:
    """Return the path to config.yaml used for both loading and saving.
    When running as a frozen app, use a user-writable path so saves persist.
    When running from source, use the project root."""
    if getattr(sys, "frozen", False):
        return get_data_dir() / "config.yaml"
    return Path(__file__).resolve().parent.parent / "config.yaml"


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    # Application
    app_name: str = "Strata"
    debug: bool = Field(default=False, alias="STRATA_DEBUG")
    data_dir: str = Field(default=str(get_data_dir()), alias="STRATA_DATA_DIR")
    database_file: str = Field(default="strata.db", alias="STRATA_DATABASE_FILE")
    due_time_store_file: str = "task_due_times.json"

    # LLM provider
    openai_api_key: Optional[str] = Field(default=None, alias="OPENAI_API_KEY")
    openai_model: str = Field(default="gpt-4o-mini", alias="OPENAI_MODEL")
    openai_base_url: str = Field(
        default="https://api.openai.com/v1/chat/completions", alias="OPENAI_BASE_URL"
    )
    openai_timeout: float = 60.0

    # Usage guard
    daily_quota: Optional[int] = Field(default=None, alias="OPENAI_DAILY_QUOTA")
    transient_failure_threshold: int = 3
    transient_cooldown_seconds: float = 30.0
    rate_limit_cooldown_seconds: float = 2 * 60.0
    credential_cooldown_seconds: float = 10 * 60.0

    # Response cache
    cache_ttl_seconds: float = 5 * 60.0
    cache_max_entries: int = 50

    # Screen perception
    vision_min_interval_seconds: float = 60.0
    vision_force_min_interval_seconds: float = 5.0
    perception_stream_interval_seconds: float = 1.2

    # Logging & Observability
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_json: bool = Field(default=False, alias="LOG_JSON")
    log_pii_redact: bool = Field(default=True, alias="LOG_PII_REDACT")
    log_file: Optional[str] = Field(default=None, alias="LOG_FILE")
    tracing_enabled: bool = Field(default=False, alias="TRACING_ENABLED")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        populate_by_name = True
        extra = "ignore"

    @field_validator("daily_quota", mode="before")
    @classmethod
    def _blank_quota_is_unset(cls, value):
        # OPENAI_DAILY_QUOTA="", a non-number or a negative number disables quota blocking
        if value is None:
            return None
        if isinstance(value, str):
            value = value.strip()
            if not value.lstrip("-").isdigit():
                return None
        value = int(value)
        return value if value >= 0 else None

    @property
    def database_path(self) -> Path:
        return Path(self.data_dir).expanduser() / self.database_file

    @property
    def due_time_store_path(self) -> Path:
        return Path(self.data_dir).expanduser() / self.due_time_store_file

    @classmethod
    def from_file(cls, path: str) -> "Settings":
        """Load settings from YAML file"""
        with open(path, "r") as f:
            config = yaml.safe_load(f) or {}
        return cls(**config)

    @classmethod
    def load(cls, path: Optional[str] = None) -> "Settings":
        """Load from ``path`` (or the default config path) when it exists, else env/defaults."""
        config_file = Path(path) if path else get_config_path()
        if config_file.exists():
            return cls.from_file(str(config_file))
        return cls()

    def to_file(self, path: str):
        """Save settings to YAML file. Creates parent directory if needed."""
        p = Path(path)
        p.parent.mkdir(parents=True, exist_ok=True)
        with open(p, "w") as f:
            yaml.dump(self.model_dump(), f, default_flow_style=False)
