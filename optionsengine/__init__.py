"""optionsengine: schema-driven, policy-gated option storage.

Option values are grouped into named records, one per RegisterOptions
instance. Every write is sanitized and validated against a two-bucket
schema, checked by a write policy gate, and persisted as a whole record
through a scope-specific storage backend.
"""

__version__ = "0.1.0"

from .core import (
    ConfigurationError,
    EngineConfig,
    OptionScope,
    OptionsEngineError,
    SchemaError,
    SchemaRegistry,
    StorageContext,
    StorageError,
    ValidationError,
    canonicalize,
    load_schema_file,
    structures_match,
)
from .options import RegisterOptions
from .policy import (
    AbstractWritePolicy,
    KeyWhitelistPolicy,
    RestrictedDefaultWritePolicy,
    WriteContext,
    WritePolicy,
    WritePolicyGate,
)
from .storage import (
    HostPlatform,
    InMemoryHost,
    JsonFileHost,
    StorageBackend,
    StorageBackendFactory,
    StorageConfig,
)

__all__ = [
    "__version__",
    "RegisterOptions",
    "OptionsEngineError",
    "ConfigurationError",
    "SchemaError",
    "ValidationError",
    "StorageError",
    "EngineConfig",
    "OptionScope",
    "StorageContext",
    "SchemaRegistry",
    "canonicalize",
    "structures_match",
    "load_schema_file",
    "WriteContext",
    "WritePolicy",
    "AbstractWritePolicy",
    "RestrictedDefaultWritePolicy",
    "KeyWhitelistPolicy",
    "WritePolicyGate",
    "HostPlatform",
    "InMemoryHost",
    "JsonFileHost",
    "StorageBackend",
    "StorageBackendFactory",
    "StorageConfig",
]
