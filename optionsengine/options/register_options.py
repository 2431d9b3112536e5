"""
RegisterOptions: schema-driven, policy-gated access to one persisted record.

One instance owns one named record in one storage scope. The record is read
once at construction; afterwards every read is served from the in-memory
overlay and every persist writes the whole record in a single backend call.

Raised errors (ConfigurationError, SchemaError, ValidationError) signal
programmer mistakes. Policy vetoes and backend refusals are expected runtime
outcomes and surface as a ``False`` return from the mutating call.
"""

import copy
import logging
from collections.abc import Callable, Mapping
from typing import Any, Optional

from ..core.canonical import structures_match, values_identical
from ..core.config import EngineConfig, get_engine_config
from ..core.exceptions import ConfigurationError
from ..core.messages import MessageBuffer
from ..core.pipeline import SanitizeValidatePipeline
from ..core.schema import BUCKET_ORDER, BUCKET_SCHEMA, SchemaRegistry, normalize_key
from ..core.scope import OptionScope, StorageContext
from ..policy.base import WritePolicy
from ..policy.context import WriteContext
from ..policy.gate import PersistHook, WritePolicyGate
from ..storage.backends.base import StorageBackend
from ..storage.backends.user import UserOptionStorage
from ..storage.host import HostPlatform
from ..storage.registry import StorageBackendFactory
from .staging import StagingBuffer

_log = logging.getLogger(__name__)


def _context_from_backend(storage: StorageBackend) -> StorageContext:
    scope = storage.scope()
    if scope is OptionScope.NETWORK:
        return StorageContext.for_network()
    if scope is OptionScope.BLOG:
        return StorageContext.for_blog(storage.blog_id())
    if scope is OptionScope.USER:
        return StorageContext.for_user_id(
            getattr(storage, "user_id", None),
            "option" if isinstance(storage, UserOptionStorage) else "meta",
            getattr(storage, "global_", False),
        )
    return StorageContext.for_site()


class RegisterOptions:
    """
    Validated, staged, policy-gated options bucket.

    Args:
        main_option: Name of the persisted record
        host: Host platform used to build the storage backend
        storage_context: Where the record lives, site scope when omitted
        autoload_on_create: Autoload hint used when the record is created;
            None uses the engine configuration
        storage: Ready-made backend (takes precedence over ``host``)
        policy: WritePolicy consulted before every persist
        logger: Logger-like object (debug/info/warning/error)
        config: Engine configuration, module default when omitted

    Raises:
        ConfigurationError: If the record name is empty or neither ``host``
            nor ``storage`` is given

    Examples:
        >>> opts = RegisterOptions.site("my_plugin", host)
        >>> opts.register_schema({"retries": {"default": 3, "validate": [is_positive_int]}})
        True
        >>> opts.get_option("retries")
        3
        >>> opts.set_option("retries", 5)
        True
    """

    def __init__(
        self,
        main_option: str,
        host: Optional[HostPlatform] = None,
        storage_context: Optional[StorageContext] = None,
        autoload_on_create: Optional[bool] = None,
        *,
        storage: Optional[StorageBackend] = None,
        policy: Optional[WritePolicy] = None,
        logger: Optional[Any] = None,
        config: Optional[EngineConfig] = None,
    ):
        name = str(main_option if main_option is not None else "").strip()
        if not name:
            raise ConfigurationError(
                "RegisterOptions requires a non-empty record name", config_section="main_option"
            )
        if storage is None and host is None:
            raise ConfigurationError(
                "RegisterOptions requires a host or a storage backend",
                config_section="storage",
                recovery_suggestions=["Pass host=InMemoryHost() or storage=<StorageBackend>"],
            )

        self.main_option = name
        self.config = config or get_engine_config()
        self.logger = logger or _log

        if storage is not None:
            self._storage = storage
            self._host = storage.host
            self._context = storage_context or _context_from_backend(storage)
        else:
            self._host = host
            self._context = storage_context or StorageContext.for_site()
            self._storage = StorageBackendFactory(host).make_for_context(self._context)

        self._autoload_on_create = autoload_on_create
        self._autoload = (
            self.config.autoload_on_create if autoload_on_create is None else bool(autoload_on_create)
        )

        self.registry = SchemaRegistry()
        self.messages = MessageBuffer()
        self.pipeline = SanitizeValidatePipeline(self.registry, self.messages, self.config, self.logger)
        self._gate = WritePolicyGate(policy, self.logger)
        self._staging = StagingBuffer()

        raw = self._storage.read(self.main_option)
        self._record_exists = raw is not None
        self._staging.load(self._coerce_record(raw))

        self.logger.debug(
            f"RegisterOptions initialized for '{self.main_option}' "
            f"({self._context.get_cache_key()}, exists={self._record_exists})"
        )

    # Named constructors -------------------------------------------------

    @classmethod
    def site(
        cls, main_option: str, host: HostPlatform, autoload_on_create: Optional[bool] = None, **kwargs: Any
    ) -> "RegisterOptions":
        return cls(main_option, host, StorageContext.for_site(), autoload_on_create, **kwargs)

    @classmethod
    def network(cls, main_option: str, host: HostPlatform, **kwargs: Any) -> "RegisterOptions":
        return cls(main_option, host, StorageContext.for_network(), False, **kwargs)

    @classmethod
    def blog(
        cls,
        main_option: str,
        host: HostPlatform,
        blog_id: int,
        autoload_on_create: Optional[bool] = None,
        **kwargs: Any,
    ) -> "RegisterOptions":
        """Bind to one blog; autoload is forced off unless it is the current blog."""
        context = StorageContext.for_blog(blog_id)
        if blog_id != host.current_blog_id():
            autoload_on_create = False
        return cls(main_option, host, context, autoload_on_create, **kwargs)

    @classmethod
    def user(
        cls,
        main_option: str,
        host: HostPlatform,
        user_id: int,
        global_: bool = False,
        user_storage: str = "meta",
        **kwargs: Any,
    ) -> "RegisterOptions":
        context = StorageContext.for_user_id(user_id, user_storage, global_)
        return cls(main_option, host, context, False, **kwargs)

    def with_context(self, context: StorageContext) -> "RegisterOptions":
        """New instance for the same record in another scope, sharing policy, hooks and schema."""
        clone = RegisterOptions(
            self.main_option,
            self._host,
            context,
            self._autoload_on_create,
            logger=self.logger,
            config=self.config,
        )
        clone._gate = self._gate.copy()
        clone.registry = self.registry.copy()
        clone.pipeline = SanitizeValidatePipeline(clone.registry, clone.messages, clone.config, clone.logger)
        clone._seed_defaults(clone.registry.keys(), self.config.validate_defaults)
        return clone

    # Schema ---------------------------------------------------------------

    def register_schema(
        self,
        schema: Mapping[str, Any],
        *,
        bucket: str = BUCKET_SCHEMA,
        validate_defaults: Optional[bool] = None,
    ) -> bool:
        """
        Register schema descriptors and seed defaults for keys without a value.

        Seeding only touches the overlay; nothing is written.

        Args:
            schema: ``{key: {default?, sanitize?, validate?}}``
            bucket: ``schema`` for application rules, ``component`` for framework rules
            validate_defaults: Run full validation on seeded defaults instead
                of sanitizing only; engine configuration when None

        Returns:
            True if at least one default was seeded

        Raises:
            SchemaError: If a descriptor is invalid or a key ends up without
                validators; the registry is left unchanged
        """
        if not schema:
            self.logger.error(f"register_schema called with an empty schema for '{self.main_option}'")
            return False
        if bucket not in BUCKET_ORDER:
            raise ConfigurationError(
                f"Unknown schema bucket '{bucket}', expected one of {BUCKET_ORDER}",
                config_section="bucket",
            )

        validate = self.config.validate_defaults if validate_defaults is None else validate_defaults
        previous = self.registry.copy()
        keys = self.registry.register_many(schema, bucket)
        try:
            seeded = self._seed_defaults(keys, validate)
        except Exception:
            self.registry.restore(previous)
            raise

        self.logger.debug(
            f"Registered schema for {len(keys)} key(s) on '{self.main_option}', seeded {len(seeded)}",
            extra={"bucket": bucket, "keys": keys, "seeded": seeded},
        )
        return bool(seeded)

    def with_schema(self, schema: Mapping[str, Any], **kwargs: Any) -> "RegisterOptions":
        self.register_schema(schema, **kwargs)
        return self

    def _seed_defaults(self, keys: list[str], validate: bool) -> list[str]:
        """Seed defaults for ``keys`` that have none in the overlay; all-or-nothing."""
        pending: dict[str, Any] = {}
        for key in keys:
            entry = self.registry.get(key)
            if key in self._staging or key in pending or entry is None or not entry.has_default:
                continue
            default = self.registry.resolve_default(key)
            pending[key] = (
                self.pipeline.process(key, default) if validate else self.pipeline.sanitize(key, default)
            )
        for key, value in pending.items():
            self._staging.seed(key, value)
        return list(pending)

    def get_schema(self) -> dict[str, dict[str, Any]]:
        return self.registry.export()

    def has_schema_key(self, key: str) -> bool:
        return key in self.registry

    @staticmethod
    def normalize_schema_key(key: str) -> str:
        return normalize_key(key)

    # Reads ----------------------------------------------------------------

    def get_option(self, key: str, default: Any = None) -> Any:
        """Overlay value for ``key``; falls back to the registered default, then ``default``."""
        normalized_key = normalize_key(key)
        if normalized_key in self._staging:
            return self._staging.get(normalized_key)
        return self.registry.resolve_default(normalized_key, default)

    def get_options(self) -> dict[str, Any]:
        return self._staging.as_dict()

    def has_option(self, key: str) -> bool:
        return normalize_key(key) in self._staging

    def refresh_options(self) -> None:
        """Re-read the record and merge backend values over keys not locally dirtied."""
        raw = self._storage.read(self.main_option)
        self._record_exists = raw is not None
        self._staging.refresh(self._coerce_record(raw))
        self.logger.debug(f"Refreshed options for '{self.main_option}' (exists={self._record_exists})")

    # Staging --------------------------------------------------------------

    def stage_option(self, key: str, value: Any) -> "RegisterOptions":
        """Sanitize, validate and stage one value without persisting it."""
        normalized_key = normalize_key(key)
        self.messages.remove([normalized_key])
        sanitized = self.pipeline.process(normalized_key, value)
        self._staging.stage(normalized_key, sanitized)
        return self

    def stage_options(self, values: Mapping[str, Any]) -> "RegisterOptions":
        """Stage several values; nothing is staged unless every value validates."""
        prepared = [(normalize_key(key), value) for key, value in values.items()]
        self.messages.remove([key for key, _ in prepared])
        sanitized = [(key, self.pipeline.process(key, value)) for key, value in prepared]
        for key, value in sanitized:
            self._staging.stage(key, value)
        return self

    # Persisting -----------------------------------------------------------

    def set_option(self, key: str, value: Any) -> bool:
        """
        Validate one value and persist the whole record immediately.

        Returns:
            True if persisted or unchanged, False on policy veto or backend refusal

        Raises:
            ConfigurationError: If ``key`` has no registered schema
            ValidationError: If the value is rejected; the overlay is untouched
        """
        normalized_key = normalize_key(key)
        self.messages.remove([normalized_key])
        sanitized = self.pipeline.process(normalized_key, value)

        if normalized_key in self._staging and values_identical(
            self._staging.get(normalized_key), sanitized
        ):
            self.logger.debug(f"set_option('{normalized_key}') unchanged, skipping write")
            return True

        payload = self._staging.as_dict()
        payload[normalized_key] = sanitized
        context = WriteContext.for_set_option(
            self.main_option, self._context, normalized_key, record_exists=self._record_exists
        )
        if not self._gate.allow("set_option", context):
            return False

        if not self._write(payload, "set_option"):
            return False
        self._staging.mark_persisted(payload)
        return True

    def commit_replace(self) -> bool:
        """
        Persist the overlay as the whole record.

        Zero backend calls when the overlay matches the last-read snapshot.
        """
        payload = self._staging.as_dict()
        if self._is_noop(payload, self._staging.snapshot(), self._record_exists):
            self.logger.debug(f"commit_replace no-op for '{self.main_option}'")
            self.messages.clear()
            return True

        context = WriteContext.for_save_all(
            self.main_option,
            self._context,
            payload,
            merge_from_db=False,
            record_exists=self._record_exists,
        )
        if not self._gate.allow("save_all", context):
            return False

        if not self._write(payload, "commit_replace"):
            return False
        self._staging.mark_persisted(payload)
        self.messages.clear()
        return True

    def commit_merge(self) -> bool:
        """
        Re-read the record and persist pending keys on top of it (top level only).

        Aborts with False while validation warnings are pending.
        """
        if self.messages.has_warnings():
            self.logger.info(
                f"commit_merge aborted for '{self.main_option}' due to validation warnings",
                extra={"warning_count": self.messages.warning_count()},
            )
            return False

        raw = self._storage.read(self.main_option)
        fresh = self._coerce_record(raw)
        exists_now = raw is not None

        payload = dict(fresh or {})
        for key in self._staging.pending_keys():
            payload[key] = self._staging.get(key)

        if self._is_noop(payload, fresh, exists_now):
            self.logger.debug(f"commit_merge no-op for '{self.main_option}'")
            if exists_now:
                self._record_exists = True
                self._staging.mark_persisted(payload)
            self.messages.clear()
            return True

        context = WriteContext.for_save_all(
            self.main_option, self._context, payload, merge_from_db=True, record_exists=exists_now
        )
        if not self._gate.allow("save_all", context):
            return False

        self._record_exists = exists_now
        if not self._write(payload, "commit_merge"):
            return False
        self._staging.mark_persisted(payload)
        self.messages.clear()
        return True

    def delete_option(self, key: str) -> bool:
        """Remove one key and persist the record; False if the key isn't present."""
        normalized_key = normalize_key(key)
        if normalized_key not in self._staging:
            return False

        context = WriteContext.for_delete_option(self.main_option, self._context, normalized_key)
        if not self._gate.allow("delete_option", context):
            return False

        payload = self._staging.as_dict()
        del payload[normalized_key]
        if not self._write(payload, "delete_option"):
            return False
        self._staging.mark_persisted(payload)
        self.messages.remove([normalized_key])
        return True

    def clear(self) -> bool:
        """Persist an empty record."""
        context = WriteContext.for_clear(self.main_option, self._context)
        if not self._gate.allow("clear", context):
            return False

        if not self._write({}, "clear"):
            return False
        self._staging.mark_persisted({})
        self.messages.clear()
        return True

    def seed_if_missing(self, defaults: Mapping[str, Any]) -> bool:
        """
        Create the record from ``defaults`` if it doesn't exist yet.

        Returns:
            True if the record already existed or was created, False on
            policy veto or backend refusal
        """
        if self._storage.exists(self.main_option):
            self._record_exists = True
            self.logger.debug(f"seed_if_missing no-op; '{self.main_option}' already exists")
            return True

        normalized = {}
        for key, value in defaults.items():
            normalized_key = normalize_key(key)
            normalized[normalized_key] = self.pipeline.process(normalized_key, value)

        context = WriteContext.for_seed_if_missing(self.main_option, self._context, list(normalized))
        if not self._gate.allow("seed_if_missing", context):
            return False

        if not self._storage.add(self.main_option, normalized, self._autoload):
            self.logger.warning(
                f"Backend refused to create '{self.main_option}' while seeding",
                extra={"backend": self._storage.backend_type},
            )
            return False

        self._record_exists = True
        self._staging.refresh(normalized)
        self.logger.debug(f"seed_if_missing created '{self.main_option}' with {len(normalized)} default(s)")
        return True

    def migrate(self, migration: Callable[[Any, "RegisterOptions"], Any]) -> bool:
        """
        Transform the stored record with ``migration(current, self)``.

        No-op when the record is missing or the migration returns it
        unchanged. Non-mapping results are stored under the key ``value``.
        Exceptions raised by ``migration`` propagate.
        """
        current = self._storage.read(self.main_option)
        if current is None:
            self.logger.debug(f"migrate no-op; '{self.main_option}' is missing")
            return True

        result = migration(copy.deepcopy(current), self)
        if structures_match(result, current):
            return True

        items = result.items() if isinstance(result, Mapping) else [("value", result)]
        normalized = {}
        for key, value in items:
            normalized_key = normalize_key(key)
            normalized[normalized_key] = self.pipeline.process(normalized_key, value)

        context = WriteContext.for_migrate(self.main_option, self._context, list(normalized))
        if not self._gate.allow("migrate", context):
            return False

        if not self._storage.update(self.main_option, normalized):
            self.logger.warning(
                f"Backend refused migration write for '{self.main_option}'",
                extra={"backend": self._storage.backend_type},
            )
            return False

        self._record_exists = True
        self._staging.refresh(normalized)
        self.logger.debug(f"Migrated '{self.main_option}' ({len(normalized)} key(s))")
        return True

    def _is_noop(self, payload: dict[str, Any], snapshot: Optional[dict[str, Any]], exists: bool) -> bool:
        if exists:
            return structures_match(payload, snapshot)
        return not payload

    def _write(self, payload: dict[str, Any], op: str) -> bool:
        """Exactly one backend call: update when the record exists, add otherwise."""
        if self._record_exists:
            result = self._storage.update(self.main_option, payload)
        else:
            result = self._storage.add(self.main_option, payload, self._autoload)

        if not result:
            self.logger.warning(
                f"Backend refused {op} write for '{self.main_option}'",
                extra={"backend": self._storage.backend_type, "existed": self._record_exists},
            )
            return False

        self._record_exists = True
        self.logger.debug(f"{op} persisted '{self.main_option}' ({len(payload)} key(s))")
        return True

    def _coerce_record(self, raw: Any) -> Optional[dict[str, Any]]:
        if raw is None:
            return None
        if isinstance(raw, Mapping):
            return dict(raw)
        self.logger.warning(
            f"Record '{self.main_option}' holds a {type(raw).__name__}, reading it under key 'value'"
        )
        return {"value": raw}

    # Messages -------------------------------------------------------------

    def take_messages(self) -> dict[str, dict[str, list[str]]]:
        return self.messages.take()

    def take_warnings(self) -> dict[str, list[str]]:
        return self.messages.take_warnings()

    def take_notices(self) -> dict[str, list[str]]:
        return self.messages.take_notices()

    # Policy ---------------------------------------------------------------

    def with_policy(self, policy: Optional[WritePolicy]) -> "RegisterOptions":
        self._gate.set_policy(policy)
        return self

    def add_persist_hook(self, callback: PersistHook, scope: Any = None) -> "RegisterOptions":
        self._gate.add_hook(callback, scope)
        return self

    def get_write_policy(self) -> Optional[WritePolicy]:
        return self._gate.policy

    @property
    def gate(self) -> WritePolicyGate:
        return self._gate

    # Introspection --------------------------------------------------------

    def supports_autoload(self) -> bool:
        return self._storage.supports_autoload()

    def get_main_option_name(self) -> str:
        return self.main_option

    def get_storage_context(self) -> StorageContext:
        return self._context

    @property
    def storage(self) -> StorageBackend:
        return self._storage

    def __repr__(self) -> str:
        return (
            f"RegisterOptions(main_option='{self.main_option}', "
            f"context='{self._context.get_cache_key()}', keys={len(self._staging)})"
        )
