"""Core schema, validation and canonicalization machinery."""

from .canonical import canonicalize, structures_match, values_identical
from .config import EngineConfig, get_engine_config, reset_engine_config
from .exceptions import (
    ConfigurationError,
    OptionsEngineError,
    SchemaError,
    StorageError,
    ValidationError,
    create_validation_error,
)
from .messages import MessageBuffer
from .pipeline import SanitizeValidatePipeline
from .schema import (
    BUCKET_COMPONENT,
    BUCKET_SCHEMA,
    SchemaEntry,
    SchemaRegistry,
    describe_callable,
    normalize_key,
    stringify_value,
)
from .schema_loader import load_schema_file, parse_schema
from .scope import OptionScope, StorageContext

__all__ = [
    "canonicalize",
    "structures_match",
    "values_identical",
    "EngineConfig",
    "get_engine_config",
    "reset_engine_config",
    "OptionsEngineError",
    "ConfigurationError",
    "SchemaError",
    "ValidationError",
    "StorageError",
    "create_validation_error",
    "MessageBuffer",
    "SanitizeValidatePipeline",
    "BUCKET_COMPONENT",
    "BUCKET_SCHEMA",
    "SchemaEntry",
    "SchemaRegistry",
    "describe_callable",
    "normalize_key",
    "stringify_value",
    "load_schema_file",
    "parse_schema",
    "OptionScope",
    "StorageContext",
]
