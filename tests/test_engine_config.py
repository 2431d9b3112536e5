"""Tests for environment-driven engine configuration."""

from unittest.mock import patch

from optionsengine.core.config import (
    DEFAULT_MAX_VALUE_REPR_LENGTH,
    EngineConfig,
    get_engine_config,
    reset_engine_config,
)


class TestEngineConfig:
    """Test EngineConfig defaults and validation."""

    def test_defaults(self):
        config = EngineConfig()

        assert config.autoload_on_create is True
        assert config.validate_defaults is False
        assert config.check_sanitizer_idempotence is True
        assert config.max_value_repr_length == DEFAULT_MAX_VALUE_REPR_LENGTH

    def test_invalid_repr_length_replaced(self, caplog):
        config = EngineConfig(max_value_repr_length=3)

        assert config.max_value_repr_length == DEFAULT_MAX_VALUE_REPR_LENGTH
        assert "max_value_repr_length" in caplog.text

    def test_to_dict(self):
        assert EngineConfig(validate_defaults=True).to_dict()["validate_defaults"] is True


class TestEngineConfigFromEnvironment:
    """Test loading EngineConfig from environment variables."""

    def test_no_environment(self):
        with patch.dict("os.environ", {}, clear=True):
            config = EngineConfig.from_environment()

        assert config == EngineConfig()

    @patch.dict(
        "os.environ",
        {
            "OPTIONSENGINE_AUTOLOAD_ON_CREATE": "false",
            "OPTIONSENGINE_VALIDATE_DEFAULTS": " TRUE ",
            "OPTIONSENGINE_CHECK_IDEMPOTENCE": "false",
            "OPTIONSENGINE_MAX_VALUE_REPR": "64",
        },
    )
    def test_values_read(self):
        config = EngineConfig.from_environment()

        assert config.autoload_on_create is False
        assert config.validate_defaults is True
        assert config.check_sanitizer_idempotence is False
        assert config.max_value_repr_length == 64

    @patch.dict(
        "os.environ",
        {"OPTIONSENGINE_VALIDATE_DEFAULTS": "sometimes", "OPTIONSENGINE_MAX_VALUE_REPR": "lots"},
    )
    def test_invalid_values_fall_back(self, caplog):
        config = EngineConfig.from_environment()

        assert config.validate_defaults is False
        assert config.max_value_repr_length == DEFAULT_MAX_VALUE_REPR_LENGTH
        assert "not a boolean" in caplog.text
        assert "not a valid integer" in caplog.text


class TestGlobalEngineConfig:
    """Test the module-level configuration accessor."""

    def test_cached_until_reset(self):
        first = get_engine_config()

        assert get_engine_config() is first
        reset_engine_config()
        assert get_engine_config() is not first
