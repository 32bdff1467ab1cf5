"""Configuration management for usagetrail."""

from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, field_validator


class SessionsConfig(BaseModel):
    """Session validity thresholds."""

    min_duration_ms: int = 1000
    max_duration_ms: int = 4 * 60 * 60 * 1000


class SinkConfig(BaseModel):
    """Sink bucket configuration."""

    bucket_id: str = "aw-watcher-android-test"
    bucket_type: str = "currentwindow"
    client: str = "usagetrail"
    progress_every: int = 10


class StorageConfig(BaseModel):
    """Storage configuration."""

    sqlite_path: str = "./ut_data/sessions.db"
    journal_dir: str = "./ut_data/usage_events"
    log_dir: str = "./ut_data/logs"


class LabelsConfig(BaseModel):
    """Application display name overrides."""

    app_labels: dict[str, str] = Field(default_factory=dict)


class LoggingConfig(BaseModel):
    """Logging configuration."""

    console_level: str = "INFO"
    file_level: str = "DEBUG"


class Config(BaseModel):
    """Main configuration class."""

    sessions: SessionsConfig = Field(default_factory=SessionsConfig)
    sink: SinkConfig = Field(default_factory=SinkConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    labels: LabelsConfig = Field(default_factory=LabelsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("sessions")
    @classmethod
    def validate_sessions(cls, v):
        """Ensure the session duration window is non-empty."""
        if v.min_duration_ms < 0:
            raise ValueError("sessions.min_duration_ms must be >= 0")
        if v.min_duration_ms >= v.max_duration_ms:
            raise ValueError(
                "sessions.min_duration_ms must be less than sessions.max_duration_ms"
            )
        return v

    @field_validator("sink")
    @classmethod
    def validate_sink(cls, v):
        """Ensure the sink bucket is addressable."""
        if not v.bucket_id:
            raise ValueError("sink.bucket_id must not be empty")
        if v.progress_every < 1:
            raise ValueError("sink.progress_every must be >= 1")
        return v

    @classmethod
    def get_config_path(cls) -> Path:
        """Get the configuration file path."""
        return Path("./ut_data/config.yaml").resolve()

    def ensure_data_dirs(self) -> None:
        """Ensure all required data directories exist."""
        Path(self.storage.sqlite_path).parent.mkdir(parents=True, exist_ok=True)
        Path(self.storage.journal_dir).mkdir(parents=True, exist_ok=True)

    def to_dict(self) -> dict[str, Any]:
        """Convert config to dictionary for YAML serialization."""
        return self.model_dump()

    def to_yaml(self) -> str:
        """Convert config to YAML string."""
        return yaml.dump(self.to_dict(), default_flow_style=False, sort_keys=False)

    @classmethod
    def from_yaml_file(cls, config_path: Path) -> "Config":
        """Load configuration from YAML file."""
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        return cls(**data)

    def save_to_yaml_file(self, config_path: Path) -> None:
        """Save configuration to YAML file."""
        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, "w", encoding="utf-8") as f:
            f.write(self.to_yaml())


def load_config(config_path: Optional[Path] = None) -> Config:
    """Load configuration from file or create with defaults."""
    if config_path is None:
        config_path = Config.get_config_path()

    if config_path.exists():
        try:
            return Config.from_yaml_file(config_path)
        except Exception as e:
            # Corrupted config falls back to defaults
            print(f"Warning: Failed to load config from {config_path}: {e}")
            print("Using default configuration.")

    config = Config()
    config.save_to_yaml_file(config_path)

    return config


def get_effective_config() -> Config:
    """Get the effective configuration (load or create)."""
    return load_config()
