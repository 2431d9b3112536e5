"""
Storage backend factory for option records.

Resolves a requested scope plus entity descriptor into a concrete
StorageBackend bound to the injected host platform.
"""

import logging
from typing import Any, Optional

from ..core.exceptions import ConfigurationError
from ..core.scope import OptionScope, StorageContext, normalize_user_storage
from .backends.base import StorageBackend
from .host import HostPlatform

logger = logging.getLogger(__name__)

SCOPE_ALIASES = {
    "single": "site",
    "option": "site",
    "multisite": "network",
    "site_network": "network",
    "subsite": "blog",
    "usermeta": "user",
}


def _require_int(value: Any, name: str, scope: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(
            f"Scope '{scope}' requires an integer {name}, got {value!r}",
            config_section=name,
            recovery_suggestions=[f"Pass {name}=<int> when requesting '{scope}' storage"],
        )
    return value


class StorageBackendFactory:
    """
    Registry of scope → backend class and factory for backend instances.

    Blog and user scopes need an entity id; everything else is resolved from
    the scope name alone. Aliases let configuration files use the names the
    host platform commonly uses for each scope.

    Examples:
        >>> factory = StorageBackendFactory(host)
        >>> factory.make("site")
        SiteOptionStorage(backend_type='site', scope='site', blog_id=None)
        >>> factory.make("blog", blog_id=2).supports_autoload()
        False
    """

    def __init__(self, host: HostPlatform):
        """Initialize the factory with built-in backends."""
        if not isinstance(host, HostPlatform):
            raise ConfigurationError("StorageBackendFactory requires a HostPlatform instance")
        self.host = host
        self._backends: dict[str, type[StorageBackend]] = {}
        self._aliases: dict[str, str] = {}

        self._register_builtin_backends()

    def _register_builtin_backends(self) -> None:
        """Register all built-in storage backends."""
        from .backends.blog import BlogOptionStorage
        from .backends.network import NetworkOptionStorage
        from .backends.site import SiteOptionStorage
        from .backends.user import UserMetaStorage

        self._backends[OptionScope.SITE.value] = SiteOptionStorage
        self._backends[OptionScope.NETWORK.value] = NetworkOptionStorage
        self._backends[OptionScope.BLOG.value] = BlogOptionStorage
        self._backends[OptionScope.USER.value] = UserMetaStorage

        self._aliases.update(SCOPE_ALIASES)

    def register_backend(
        self,
        scope: str,
        backend_class: type[StorageBackend],
        aliases: Optional[list[str]] = None,
    ) -> None:
        """
        Register a backend class for a scope name.

        Raises:
            ValueError: If the scope or an alias is already registered, or the
                class is not a StorageBackend
        """
        if not scope or not isinstance(scope, str):
            raise ValueError("scope must be a non-empty string")

        if scope in self._backends:
            raise ValueError(f"Scope '{scope}' is already registered")

        if not isinstance(backend_class, type) or not issubclass(backend_class, StorageBackend):
            raise ValueError("backend_class must inherit from StorageBackend")

        self._backends[scope] = backend_class

        for alias in aliases or []:
            if alias in self._aliases:
                raise ValueError(f"Alias '{alias}' is already registered")
            self._aliases[alias] = scope

    def unregister_backend(self, scope: str) -> None:
        """
        Unregister a scope and every alias pointing at it.

        Raises:
            KeyError: If the scope is not registered
        """
        if scope not in self._backends:
            raise KeyError(f"Scope '{scope}' is not registered")

        del self._backends[scope]
        for alias in [a for a, target in self._aliases.items() if target == scope]:
            del self._aliases[alias]

    def resolve_scope(self, scope: Any) -> str:
        """
        Resolve a scope name or alias (case-insensitive).

        Raises:
            ConfigurationError: If the scope is unknown
        """
        name = scope.value if isinstance(scope, OptionScope) else str(scope or "").strip().lower()
        if name in self._aliases:
            return self._aliases[name]
        if name in self._backends:
            return name
        raise ConfigurationError(
            f"Unsupported storage scope '{scope}'",
            config_section="scope",
            recovery_suggestions=[f"Use one of: {self.list_scopes()}"],
        )

    def list_scopes(self) -> list[str]:
        """List registered scope names (aliases excluded)."""
        return sorted(self._backends)

    def list_aliases(self) -> dict[str, str]:
        """Alias → scope mapping."""
        return dict(self._aliases)

    def make(self, scope: Any = "site", **args: Any) -> StorageBackend:
        """
        Create a backend for a scope.

        Args:
            scope: Scope name, alias or OptionScope
            **args: Entity descriptor. Blog scope needs ``blog_id``; user scope
                needs ``user_id`` and accepts ``user_storage`` (meta|option) and
                ``user_global``.

        Returns:
            Configured storage backend instance

        Raises:
            ConfigurationError: If the scope is unknown or an entity id is
                missing or not an int
        """
        resolved = self.resolve_scope(scope)
        backend_class = self._backends[resolved]

        if resolved == OptionScope.BLOG.value:
            blog_id = _require_int(args.get("blog_id"), "blog_id", resolved)
            backend = self._construct(backend_class, blog_id)
        elif resolved == OptionScope.USER.value:
            user_id = _require_int(args.get("user_id"), "user_id", resolved)
            kind = normalize_user_storage(args.get("user_storage"))
            if kind == "option":
                from .backends.user import UserOptionStorage

                backend = self._construct(
                    UserOptionStorage, user_id, bool(args.get("user_global", False))
                )
            else:
                backend = self._construct(backend_class, user_id)
        else:
            backend = self._construct(backend_class)

        logger.debug(f"Created storage backend {backend!r} for scope '{scope}'")
        return backend

    def make_for_context(self, context: StorageContext) -> StorageBackend:
        """Create the backend described by a StorageContext."""
        return self.make(context.scope, **context.to_storage_args())

    def _construct(self, backend_class: type[StorageBackend], *args: Any) -> StorageBackend:
        try:
            return backend_class(self.host, *args)
        except ValueError as e:
            raise ConfigurationError(
                f"Invalid configuration for {backend_class.__name__}: {e}",
                config_section="storage",
            ) from e

    def __repr__(self) -> str:
        return f"StorageBackendFactory(host={self.host.__class__.__name__}, scopes={self.list_scopes()})"
