"""Runtime engine configuration from environment variables.

Centralizes the knobs that change how RegisterOptions treats defaults,
sanitizers and diagnostic text. Values are read tolerantly: invalid
environment values are logged and replaced by safe defaults.
"""

import logging
import os
from dataclasses import dataclass
from typing import Any, Optional

logger = logging.getLogger(__name__)

DEFAULT_MAX_VALUE_REPR_LENGTH = 120
MIN_MAX_VALUE_REPR_LENGTH = 16


@dataclass
class EngineConfig:
    """Runtime configuration for RegisterOptions instances.

    Attributes:
        autoload_on_create: Autoload hint used when a site record is first created
        validate_defaults: Run full validation (not just sanitizing) on seeded defaults
        check_sanitizer_idempotence: Apply each sanitizer twice and require equal results
        max_value_repr_length: Truncation length for values rendered in error text
    """

    autoload_on_create: bool = True
    validate_defaults: bool = False
    check_sanitizer_idempotence: bool = True
    max_value_repr_length: int = DEFAULT_MAX_VALUE_REPR_LENGTH

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        self._validate_max_value_repr_length()

        logger.debug(
            f"EngineConfig initialized: autoload_on_create={self.autoload_on_create}, "
            f"validate_defaults={self.validate_defaults}, "
            f"check_idempotence={self.check_sanitizer_idempotence}"
        )

    def _validate_max_value_repr_length(self) -> None:
        """Validate and normalize max_value_repr_length."""
        if (
            not isinstance(self.max_value_repr_length, int)
            or isinstance(self.max_value_repr_length, bool)
            or self.max_value_repr_length < MIN_MAX_VALUE_REPR_LENGTH
        ):
            logger.warning(
                f"max_value_repr_length must be an integer >= {MIN_MAX_VALUE_REPR_LENGTH}, "
                f"got {self.max_value_repr_length!r}, using {DEFAULT_MAX_VALUE_REPR_LENGTH}"
            )
            self.max_value_repr_length = DEFAULT_MAX_VALUE_REPR_LENGTH

    @classmethod
    def from_environment(cls) -> "EngineConfig":
        """Load configuration from environment variables.

        Environment Variables:
            OPTIONSENGINE_AUTOLOAD_ON_CREATE: Autoload hint for new site records (true|false)
            OPTIONSENGINE_VALIDATE_DEFAULTS: Validate seeded defaults (true|false)
            OPTIONSENGINE_CHECK_IDEMPOTENCE: Enforce idempotent sanitizers (true|false)
            OPTIONSENGINE_MAX_VALUE_REPR: Truncation length for error values (integer)

        Returns:
            EngineConfig instance with values from environment or defaults
        """
        config = cls(
            autoload_on_create=cls._get_env_bool("OPTIONSENGINE_AUTOLOAD_ON_CREATE", True),
            validate_defaults=cls._get_env_bool("OPTIONSENGINE_VALIDATE_DEFAULTS", False),
            check_sanitizer_idempotence=cls._get_env_bool(
                "OPTIONSENGINE_CHECK_IDEMPOTENCE", True
            ),
            max_value_repr_length=cls._get_env_int(
                "OPTIONSENGINE_MAX_VALUE_REPR", DEFAULT_MAX_VALUE_REPR_LENGTH
            ),
        )
        logger.debug(f"Loaded engine configuration from environment: {config}")
        return config

    @staticmethod
    def _get_env_bool(key: str, default: bool) -> bool:
        """Get boolean value from environment with default fallback.

        Only 'true' and 'false' (case insensitive) are recognized; anything
        else falls back to the provided default.
        """
        value = os.getenv(key)
        if value is None:
            return default

        cleaned_value = value.strip().lower()
        if cleaned_value == "true":
            return True
        elif cleaned_value == "false":
            return False
        else:
            logger.warning(f"Environment variable {key}={value} is not a boolean, using {default}")
            return default

    @staticmethod
    def _get_env_int(key: str, default: int) -> int:
        """Get integer value from environment with default fallback."""
        value = os.getenv(key)
        if value is None:
            return default

        try:
            return int(value.strip())
        except ValueError:
            logger.warning(
                f"Environment variable {key}={value} is not a valid integer, "
                f"using default {default}"
            )
            return default

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary for serialization."""
        return {
            "autoload_on_create": self.autoload_on_create,
            "validate_defaults": self.validate_defaults,
            "check_sanitizer_idempotence": self.check_sanitizer_idempotence,
            "max_value_repr_length": self.max_value_repr_length,
        }


_engine_config: Optional[EngineConfig] = None


def get_engine_config() -> EngineConfig:
    """Get the module-level engine configuration, creating it if needed."""
    global _engine_config
    if _engine_config is None:
        _engine_config = EngineConfig.from_environment()
    return _engine_config


def reset_engine_config() -> None:
    """Reset the module-level configuration for testing purposes."""
    global _engine_config
    _engine_config = None
