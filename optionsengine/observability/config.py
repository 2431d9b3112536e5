"""Configuration for logging and diagnostics."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
LOG_FORMATS = {"json", "text"}
LOG_OUTPUTS = {"stdout", "stderr", "file"}


class LoggingConfig(BaseModel):
    """Configuration for structured logging."""

    level: str = Field(default="WARNING", description="Log level")
    format: str = Field(default="text", description="Log format (json or text)")
    enable_correlation: bool = Field(default=True, description="Enable correlation IDs")
    output: str = Field(default="stderr", description="Log output (stdout, stderr or file)")
    file_path: str | None = Field(default=None, description="Log file path")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        level = str(v).strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Invalid log level '{v}'. Valid levels: {sorted(LOG_LEVELS)}")
        return level

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        fmt = str(v).strip().lower()
        if fmt not in LOG_FORMATS:
            raise ValueError(f"Invalid log format '{v}'. Valid formats: {sorted(LOG_FORMATS)}")
        return fmt

    @field_validator("output")
    @classmethod
    def validate_output(cls, v: str) -> str:
        output = str(v).strip().lower()
        if output not in LOG_OUTPUTS:
            raise ValueError(f"Invalid log output '{v}'. Valid outputs: {sorted(LOG_OUTPUTS)}")
        return output


class ObservabilityConfig(BaseModel):
    """Main configuration for observability."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_file(cls, config_path: Path | str) -> ObservabilityConfig:
        """Load configuration from a YAML file."""
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, encoding="utf-8") as f:
            config_data = yaml.safe_load(f) or {}

        observability_data = config_data.get("observability", {}) or {}
        return cls(**observability_data)

    @classmethod
    def from_env(cls) -> ObservabilityConfig:
        """Load configuration from environment variables."""
        defaults = LoggingConfig()
        return cls(
            logging=LoggingConfig(
                level=os.getenv("OPTIONSENGINE_LOG_LEVEL", defaults.level),
                format=os.getenv("OPTIONSENGINE_LOG_FORMAT", defaults.format),
                output=os.getenv("OPTIONSENGINE_LOG_OUTPUT", defaults.output),
                file_path=os.getenv("OPTIONSENGINE_LOG_FILE", defaults.file_path),
                enable_correlation=(
                    os.getenv("OPTIONSENGINE_LOG_CORRELATION", "true").lower() == "true"
                ),
            )
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary."""
        return self.model_dump()


_config: ObservabilityConfig | None = None


def get_config() -> ObservabilityConfig:
    """Get the global observability configuration."""
    global _config
    if _config is None:
        _config = ObservabilityConfig.from_env()
    return _config


def set_config(config: ObservabilityConfig) -> None:
    """Set the global observability configuration."""
    global _config
    _config = config


def load_config(config_path: Path | str | None = None) -> ObservabilityConfig:
    """Load and set the global configuration."""
    if config_path:
        config = ObservabilityConfig.from_file(config_path)
    else:
        config = ObservabilityConfig.from_env()
    set_config(config)
    return config


def reset_config() -> None:
    """Drop the global configuration so the next access reloads it."""
    global _config
    _config = None
