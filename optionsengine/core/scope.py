"""Ownership scopes and the immutable StorageContext bound to each record."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from .exceptions import ConfigurationError

USER_STORAGE_KINDS = ("meta", "option")


class OptionScope(str, Enum):
    """Ownership domain of a persisted option record."""

    SITE = "site"
    NETWORK = "network"
    BLOG = "blog"
    USER = "user"

    @classmethod
    def from_value(cls, value: Any) -> "OptionScope":
        """Normalize a scope name or enum member, rejecting unknown scopes."""
        if isinstance(value, cls):
            return value
        name = str(value or "").strip().lower()
        try:
            return cls(name)
        except ValueError:
            raise ConfigurationError(
                f"Unknown scope '{value}'",
                config_section="scope",
                recovery_suggestions=[f"Use one of: {[s.value for s in cls]}"],
            ) from None


def normalize_user_storage(kind: Optional[str]) -> str:
    """Return a lower-cased user storage kind, rejecting anything but meta/option."""
    normalized = str(kind if kind is not None else "meta").strip().lower()
    if normalized not in USER_STORAGE_KINDS:
        raise ConfigurationError(
            f"user_storage must be 'meta' or 'option', got '{kind}'",
            config_section="user_storage",
        )
    return normalized


def _require_positive_id(value: Any, name: str, factory: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ConfigurationError(
            f"StorageContext.{factory} requires a positive integer {name}, got {value!r}",
            config_section=name,
        )
    return value


@dataclass(frozen=True)
class StorageContext:
    """Typed, immutable description of where a record lives.

    Build instances with the ``for_*`` factories; the constructor performs no
    validation of its own.
    """

    scope: OptionScope = OptionScope.SITE
    blog_id: Optional[int] = None
    user_id: Optional[int] = None
    user_storage: str = "meta"
    user_global: bool = False

    @classmethod
    def for_site(cls) -> "StorageContext":
        return cls(OptionScope.SITE)

    @classmethod
    def for_network(cls) -> "StorageContext":
        return cls(OptionScope.NETWORK)

    @classmethod
    def for_blog(cls, blog_id: int) -> "StorageContext":
        return cls(OptionScope.BLOG, blog_id=_require_positive_id(blog_id, "blog_id", "for_blog"))

    @classmethod
    def for_user_id(
        cls, user_id: int, user_storage: str = "meta", user_global: bool = False
    ) -> "StorageContext":
        return cls(
            OptionScope.USER,
            user_id=_require_positive_id(user_id, "user_id", "for_user_id"),
            user_storage=normalize_user_storage(user_storage),
            user_global=bool(user_global),
        )

    @property
    def entity_id(self) -> Optional[int]:
        """Blog id for blog scope, user id for user scope, otherwise None."""
        if self.scope is OptionScope.BLOG:
            return self.blog_id
        if self.scope is OptionScope.USER:
            return self.user_id
        return None

    def get_cache_key(self) -> str:
        """Stable string identifying this context, e.g. ``user|user:7|storage:option``."""
        parts = [self.scope.value]
        if self.blog_id is not None:
            parts.append(f"blog:{self.blog_id}")
        if self.user_id is not None:
            parts.append(f"user:{self.user_id}")
        if self.user_storage != "meta":
            parts.append(f"storage:{self.user_storage}")
        if self.user_global:
            parts.append("global")
        return "|".join(parts)

    def to_storage_args(self) -> dict[str, Any]:
        """Keyword arguments understood by ``StorageBackendFactory.make``."""
        if self.scope is OptionScope.BLOG:
            return {"blog_id": self.blog_id}
        if self.scope is OptionScope.USER:
            return {
                "user_id": self.user_id,
                "user_storage": self.user_storage,
                "user_global": self.user_global,
            }
        return {}
