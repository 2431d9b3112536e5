"""Typed, immutable context handed to write policies and persist hooks."""

from dataclasses import dataclass
from typing import Any, Optional

from ..core.exceptions import ConfigurationError
from ..core.scope import OptionScope, StorageContext, normalize_user_storage

OPERATION_CATEGORIES = {
    "save_all": "update",
    "set_option": "update",
    "migrate": "update",
    "delete_option": "delete",
    "clear": "delete",
    "seed_if_missing": "seed",
}


def _require_non_empty(value: Any, name: str) -> str:
    text = str(value if value is not None else "").strip()
    if not text:
        raise ConfigurationError(f"WriteContext requires a non-empty {name}", config_section=name)
    return text


def _require_keys(keys: Any, name: str) -> tuple[str, ...]:
    normalized = tuple(str(k) for k in (keys or ()))
    if not normalized:
        raise ConfigurationError(f"WriteContext requires a non-empty {name} list", config_section=name)
    return normalized


def _scope_fields(
    scope: Any,
    blog_id: Optional[int],
    user_id: Optional[int],
    user_storage: Optional[str],
) -> tuple[OptionScope, Optional[int], Optional[int], Optional[str]]:
    resolved = OptionScope.from_value(scope)
    if resolved is OptionScope.BLOG:
        if isinstance(blog_id, bool) or not isinstance(blog_id, int):
            raise ConfigurationError("Blog scope WriteContext requires an integer blog_id", config_section="blog_id")
        return resolved, blog_id, None, None
    if resolved is OptionScope.USER:
        if isinstance(user_id, bool) or not isinstance(user_id, int):
            raise ConfigurationError("User scope WriteContext requires an integer user_id", config_section="user_id")
        return resolved, None, user_id, normalize_user_storage(user_storage)
    return resolved, None, None, None


@dataclass(frozen=True)
class WriteContext:
    """Everything a policy may need to decide on one persist.

    Build instances through the ``for_*`` factories, which validate the scope
    triplet (scope, blog_id, user_id) and the op-specific fields.
    """

    op: str
    main_option: str
    scope: OptionScope
    blog_id: Optional[int] = None
    user_id: Optional[int] = None
    user_storage: Optional[str] = None
    user_global: bool = False
    merge_from_db: bool = False
    key: Optional[str] = None
    keys: Optional[tuple[str, ...]] = None
    options: Optional[dict[str, Any]] = None
    changed_keys: Optional[tuple[str, ...]] = None
    record_exists: bool = True

    @property
    def operation(self) -> str:
        """Coarse category of the op: add, update, delete or seed.

        Update-type ops that create the record report ``add``.
        """
        category = OPERATION_CATEGORIES.get(self.op, "update")
        if category == "update" and not self.record_exists:
            return "add"
        return category

    @property
    def entity_id(self) -> Optional[int]:
        return self.blog_id if self.scope is OptionScope.BLOG else self.user_id

    @classmethod
    def _build(cls, op: str, main_option: str, storage: StorageContext, **fields: Any) -> "WriteContext":
        scope, blog_id, user_id, user_storage = _scope_fields(
            storage.scope, storage.blog_id, storage.user_id, storage.user_storage
        )
        return cls(
            op=op,
            main_option=_require_non_empty(main_option, "main_option"),
            scope=scope,
            blog_id=blog_id,
            user_id=user_id,
            user_storage=user_storage,
            user_global=bool(storage.user_global) if scope is OptionScope.USER else False,
            **fields,
        )

    @classmethod
    def for_save_all(
        cls,
        main_option: str,
        storage: StorageContext,
        options: dict[str, Any],
        merge_from_db: bool = False,
        record_exists: bool = True,
    ) -> "WriteContext":
        return cls._build(
            "save_all",
            main_option,
            storage,
            options=dict(options),
            merge_from_db=bool(merge_from_db),
            record_exists=bool(record_exists),
        )

    @classmethod
    def for_set_option(
        cls, main_option: str, storage: StorageContext, key: str, record_exists: bool = True
    ) -> "WriteContext":
        return cls._build(
            "set_option",
            main_option,
            storage,
            key=_require_non_empty(key, "key"),
            record_exists=bool(record_exists),
        )

    @classmethod
    def for_delete_option(cls, main_option: str, storage: StorageContext, key: str) -> "WriteContext":
        return cls._build("delete_option", main_option, storage, key=_require_non_empty(key, "key"))

    @classmethod
    def for_clear(cls, main_option: str, storage: StorageContext) -> "WriteContext":
        return cls._build("clear", main_option, storage)

    @classmethod
    def for_seed_if_missing(cls, main_option: str, storage: StorageContext, keys: Any) -> "WriteContext":
        return cls._build("seed_if_missing", main_option, storage, keys=_require_keys(keys, "keys"))

    @classmethod
    def for_migrate(cls, main_option: str, storage: StorageContext, changed_keys: Any) -> "WriteContext":
        return cls._build(
            "migrate", main_option, storage, changed_keys=tuple(str(k) for k in (changed_keys or ()))
        )

    def to_dict(self) -> dict[str, Any]:
        """Payload passed to persist hooks and diagnostic records."""
        return {
            "op": self.op,
            "operation": self.operation,
            "main_option": self.main_option,
            "scope": self.scope.value,
            "blog_id": self.blog_id,
            "user_id": self.user_id,
            "user_storage": self.user_storage,
            "user_global": self.user_global,
            "merge_from_db": self.merge_from_db,
            "key": self.key,
            "keys": list(self.keys) if self.keys is not None else None,
            "options": self.options,
            "changed_keys": list(self.changed_keys) if self.changed_keys is not None else None,
            "record_exists": self.record_exists,
        }
