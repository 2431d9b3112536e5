"""Two-bucket schema model for option keys.

Every key carries sanitize and validate chains split into a ``component``
bucket (framework-level rules) and a ``schema`` bucket (application rules).
Registration only ever appends to a bucket; chains are concatenated in
component-then-schema order at evaluation time.
"""

import copy
import logging
import re
import types
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Optional

from . import rules
from .exceptions import SchemaError

logger = logging.getLogger(__name__)

BUCKET_COMPONENT = "component"
BUCKET_SCHEMA = "schema"
BUCKET_ORDER = (BUCKET_COMPONENT, BUCKET_SCHEMA)

CLOSURE_PLACEHOLDER_PREFIX = "@closure "

_KEY_INVALID_CHARS = re.compile(r"[^a-z0-9_\-]")
_MISSING = object()


def normalize_key(key: Any) -> str:
    """Lower-case ``key`` and strip everything except ``[a-z0-9_-]``."""
    normalized = _KEY_INVALID_CHARS.sub("", str(key).lower())
    if not normalized:
        raise SchemaError(f"Option key {key!r} is empty after normalization")
    return normalized


def describe_callable(fn: Any) -> str:
    """Human-readable descriptor for a sanitizer or validator.

    Plain functions and classes render as their qualified name, bound methods
    as ``Class::method``, lambdas as ``Closure#<id>`` and callable objects as
    ``Class::__invoke``.
    """
    if isinstance(fn, types.LambdaType) and fn.__name__ == "<lambda>":
        return f"Closure#{id(fn)}"
    if isinstance(fn, types.FunctionType):
        return fn.__qualname__
    if isinstance(fn, types.MethodType):
        owner = fn.__self__
        owner_name = owner.__name__ if isinstance(owner, type) else type(owner).__name__
        return f"{owner_name}::{fn.__func__.__name__}"
    if isinstance(fn, (types.BuiltinFunctionType, types.BuiltinMethodType)):
        owner = getattr(fn, "__self__", None)
        if owner is None or isinstance(owner, types.ModuleType):
            return fn.__name__
        owner_name = owner.__name__ if isinstance(owner, type) else type(owner).__name__
        return f"{owner_name}::{fn.__name__}"
    if isinstance(fn, types.MethodDescriptorType):
        return f"{fn.__objclass__.__name__}::{fn.__name__}"
    if isinstance(fn, type):
        return fn.__qualname__
    if callable(fn):
        return f"{type(fn).__name__}::__invoke"
    return "callable"


def stringify_value(value: Any, limit: int = 120) -> str:
    """Short representation of ``value`` for error and log text."""
    if value is None or isinstance(value, (str, bytes, int, float, bool)):
        text = repr(value)
    elif isinstance(value, (list, tuple, set, frozenset, Mapping)):
        text = f"Array({len(value)})"
    else:
        text = f"Object({type(value).__name__})"
    if len(text) > limit:
        text = text[: limit - 3] + "..."
    return text


def _is_placeholder(candidate: Any) -> bool:
    return isinstance(candidate, str) and candidate.startswith(CLOSURE_PLACEHOLDER_PREFIX)


def normalize_callables(callables: Any, field_name: str, key: str) -> list[Callable[..., Any]]:
    """Coerce a single callable or a sequence of callables into a list.

    Strings name rules from the rule library; exported closure placeholders
    are dropped so an exported schema view can be fed back into registration.
    """
    if callables is None or _is_placeholder(callables):
        return []
    if callable(callables):
        return [callables]
    if isinstance(callables, (str, bytes, Mapping)) or not hasattr(callables, "__iter__"):
        raise SchemaError(
            f"Schema for key '{key}' has non-list '{field_name}'",
            option_key=key,
        )

    normalized = []
    for index, candidate in enumerate(callables):
        if _is_placeholder(candidate):
            continue
        if isinstance(candidate, str):
            candidate = _named_rule(candidate, field_name, key)
        if not callable(candidate):
            raise SchemaError(
                f"Schema for key '{key}' has non-callable {field_name} at index {index}",
                option_key=key,
            )
        normalized.append(candidate)
    return normalized


def _named_rule(name: str, field_name: str, key: str) -> Callable[..., Any]:
    """Resolve a rule-library name, as produced by ``SchemaRegistry.export``."""
    library = rules.SANITIZERS if field_name == "sanitize" else rules.VALIDATORS
    if name not in library:
        raise SchemaError(
            f"Schema for key '{key}' names unknown {field_name} rule '{name}'",
            option_key=key,
        )
    return library[name]


def _append_unique(existing: list, incoming: list) -> list:
    merged = list(existing)
    for fn in incoming:
        if fn not in merged:
            merged.append(fn)
    return merged


@dataclass
class BucketMap:
    """Ordered rule lists for the component and schema buckets."""

    component: list[Callable[..., Any]] = field(default_factory=list)
    schema: list[Callable[..., Any]] = field(default_factory=list)

    def bucket(self, name: str) -> list[Callable[..., Any]]:
        if name not in BUCKET_ORDER:
            raise SchemaError(f"Unknown bucket '{name}', expected one of {BUCKET_ORDER}")
        return self.component if name == BUCKET_COMPONENT else self.schema

    def ordered(self) -> list[Callable[..., Any]]:
        """All rules, component bucket first."""
        return [*self.component, *self.schema]

    def merged(self, other: "BucketMap") -> "BucketMap":
        """Append rules from ``other``, skipping ones this bucket already holds."""
        return BucketMap(
            component=_append_unique(self.component, other.component),
            schema=_append_unique(self.schema, other.schema),
        )

    def __len__(self) -> int:
        return len(self.component) + len(self.schema)


@dataclass
class SchemaEntry:
    """Rules and default-value descriptor for one option key.

    ``default`` is either a literal or a zero-argument callable; use
    ``has_default`` to tell a ``None`` default apart from no default.
    """

    default: Any = None
    has_default: bool = False
    sanitize: BucketMap = field(default_factory=BucketMap)
    validate: BucketMap = field(default_factory=BucketMap)

    @classmethod
    def from_descriptor(
        cls, key: str, descriptor: Mapping[str, Any], bucket: str = BUCKET_SCHEMA
    ) -> "SchemaEntry":
        """Build an entry from ``{default?, sanitize?, validate?}`` for one bucket."""
        if not isinstance(descriptor, Mapping):
            raise SchemaError(
                f"Schema for key '{key}' must be a mapping, got {type(descriptor).__name__}",
                option_key=key,
            )

        unknown = set(descriptor) - {"default", "sanitize", "validate"}
        if unknown:
            raise SchemaError(
                f"Schema for key '{key}' has unknown fields: {sorted(unknown)}",
                option_key=key,
            )

        entry = cls()
        for field_name in ("sanitize", "validate"):
            if field_name not in descriptor:
                continue
            field_rules = descriptor[field_name]
            if isinstance(field_rules, Mapping) and set(field_rules) & set(BUCKET_ORDER):
                raise SchemaError(
                    f"Schema for key '{key}' must not provide bucketed {field_name} entries",
                    option_key=key,
                )
            target: BucketMap = getattr(entry, field_name)
            target.bucket(bucket).extend(normalize_callables(field_rules, field_name, key))

        if "default" in descriptor:
            entry.default = descriptor["default"]
            entry.has_default = True
        return entry

    @property
    def validator_count(self) -> int:
        return len(self.validate)

    def sanitizers(self) -> list[Callable[..., Any]]:
        return self.sanitize.ordered()

    def validators(self) -> list[Callable[..., Any]]:
        return self.validate.ordered()

    def merged(self, incoming: "SchemaEntry") -> "SchemaEntry":
        """Append ``incoming`` rules; an incoming default replaces ours."""
        return SchemaEntry(
            default=incoming.default if incoming.has_default else self.default,
            has_default=incoming.has_default or self.has_default,
            sanitize=self.sanitize.merged(incoming.sanitize),
            validate=self.validate.merged(incoming.validate),
        )

    def summary(self) -> dict[str, Any]:
        """Counts and descriptors for diagnostics."""
        return {
            "sanitize_component": [describe_callable(f) for f in self.sanitize.component],
            "sanitize_schema": [describe_callable(f) for f in self.sanitize.schema],
            "validate_component": [describe_callable(f) for f in self.validate.component],
            "validate_schema": [describe_callable(f) for f in self.validate.schema],
            "default_present": self.has_default,
        }


class SchemaRegistry:
    """Per-instance store of merged SchemaEntry objects keyed by option key.

    Examples:
        >>> registry = SchemaRegistry()
        >>> registry.register("retries", {"default": 3, "validate": [is_positive_int]})
        >>> registry.resolve_default("retries")
        3
    """

    def __init__(self) -> None:
        self._entries: dict[str, SchemaEntry] = {}
        self._default_cache: dict[str, Any] = {}

    def register(
        self,
        key: str,
        entry: Any,
        bucket: str = BUCKET_SCHEMA,
        require_validator: bool = True,
    ) -> SchemaEntry:
        """Merge ``entry`` into the schema for ``key`` and return the result.

        Args:
            key: Option key (normalized before use)
            entry: SchemaEntry or descriptor mapping
            bucket: Bucket that receives the descriptor's rules
            require_validator: Enforce at least one validator after merging

        Raises:
            SchemaError: If the descriptor is malformed or the merged entry
                has no validators in either bucket
        """
        normalized_key = normalize_key(key)
        if bucket not in BUCKET_ORDER:
            raise SchemaError(f"Unknown bucket '{bucket}', expected one of {BUCKET_ORDER}")

        incoming = (
            entry
            if isinstance(entry, SchemaEntry)
            else SchemaEntry.from_descriptor(normalized_key, entry, bucket)
        )
        existing = self._entries.get(normalized_key)
        merged = existing.merged(incoming) if existing is not None else incoming

        if require_validator and merged.validator_count == 0:
            logger.error(f"Validator required but missing for option '{normalized_key}'")
            raise SchemaError(
                f"Option '{normalized_key}' requires at least one validator",
                option_key=normalized_key,
                recovery_suggestions=["Add a 'validate' rule to the option's schema"],
            )

        if incoming.has_default:
            self._default_cache.pop(normalized_key, None)
        self._entries[normalized_key] = merged

        logger.debug(
            f"Registered schema for '{normalized_key}' in bucket '{bucket}'",
            extra={"option_key": normalized_key, "had_existing": existing is not None},
        )
        return merged

    def register_many(self, schema: Mapping[str, Any], bucket: str = BUCKET_SCHEMA) -> list[str]:
        """Register several keys atomically; returns the normalized keys.

        Nothing is changed if any entry fails.
        """
        staged = self.copy()
        keys = []
        for key, entry in schema.items():
            staged.register(key, entry, bucket)
            keys.append(normalize_key(key))
        self._entries = staged._entries
        self._default_cache = staged._default_cache
        return keys

    def get(self, key: str) -> Optional[SchemaEntry]:
        return self._entries.get(normalize_key(key))

    def __contains__(self, key: object) -> bool:
        try:
            return normalize_key(key) in self._entries
        except SchemaError:
            return False

    def __len__(self) -> int:
        return len(self._entries)

    def keys(self) -> list[str]:
        return list(self._entries)

    def items(self) -> list[tuple[str, SchemaEntry]]:
        return list(self._entries.items())

    def copy(self) -> "SchemaRegistry":
        """Copy with independent entry objects and rule lists."""
        clone = SchemaRegistry()
        clone._entries = {
            key: SchemaEntry(
                default=entry.default,
                has_default=entry.has_default,
                sanitize=BucketMap(list(entry.sanitize.component), list(entry.sanitize.schema)),
                validate=BucketMap(list(entry.validate.component), list(entry.validate.schema)),
            )
            for key, entry in self._entries.items()
        }
        clone._default_cache = dict(self._default_cache)
        return clone

    def restore(self, other: "SchemaRegistry") -> None:
        """Replace this registry's state with a copy of ``other``."""
        snapshot = other.copy()
        self._entries = snapshot._entries
        self._default_cache = snapshot._default_cache

    def resolve_default(self, key: str, fallback: Any = None) -> Any:
        """Resolve the default for ``key``; generator results are memoized."""
        normalized_key = normalize_key(key)
        entry = self._entries.get(normalized_key)
        if entry is None or not entry.has_default:
            return fallback

        cached = self._default_cache.get(normalized_key, _MISSING)
        if cached is not _MISSING:
            return copy.deepcopy(cached)

        if callable(entry.default):
            value = entry.default()
            logger.debug(f"Resolved generated default for '{normalized_key}'")
        else:
            value = entry.default
        self._default_cache[normalized_key] = value
        return copy.deepcopy(value)

    def export(self) -> dict[str, dict[str, Any]]:
        """Flat view of the schema bucket suitable for display or re-registration.

        Named functions export by name, class-bound methods as
        ``Class::method``; closures and callable objects export as
        ``@closure <descriptor>`` placeholders that registration skips.
        """
        view: dict[str, dict[str, Any]] = {}
        for key, entry in self._entries.items():
            exported: dict[str, Any] = {
                "sanitize": [_export_callable(fn) for fn in entry.sanitize.schema],
                "validate": [_export_callable(fn) for fn in entry.validate.schema],
            }
            if entry.has_default:
                exported["default"] = (
                    _export_callable(entry.default) if callable(entry.default) else entry.default
                )
            view[key] = exported
        return view


def _export_callable(fn: Callable[..., Any]) -> str:
    descriptor = describe_callable(fn)
    portable = isinstance(
        fn, (types.FunctionType, types.BuiltinFunctionType, types.MethodDescriptorType, type)
    ) or (
        isinstance(fn, types.MethodType) and isinstance(fn.__self__, type)
    )
    if getattr(fn, "__closure__", None) is not None:
        portable = False
    if portable and not descriptor.startswith("Closure#"):
        return descriptor
    logger.info(
        f"Exported closure placeholder for schema callable {descriptor}; "
        f"consider a named function or Class::method for portability"
    )
    return f"{CLOSURE_PLACEHOLDER_PREFIX}{descriptor}"
