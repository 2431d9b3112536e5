"""
Storage configuration for option records.

Selects the host platform and the scope a record lives in, with support for
environment variables and YAML configuration files.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

import yaml

from ..core.exceptions import ConfigurationError
from ..core.scope import OptionScope, StorageContext, normalize_user_storage
from .host import HostPlatform, InMemoryHost, JsonFileHost
from .registry import SCOPE_ALIASES

logger = logging.getLogger(__name__)

SUPPORTED_HOSTS = {"memory", "json_file"}
DEFAULT_ENVIRONMENT_PREFIX = "OPTIONSENGINE_STORAGE"


@dataclass
class StorageConfig:
    """
    Configuration for where option records are stored.

    Attributes:
        host: Host platform type (``memory`` or ``json_file``)
        host_config: Host parameters (``path``, ``current_blog_id``, ``current_user_id``)
        scope: Scope name or alias understood by StorageBackendFactory
        blog_id: Target blog for blog scope
        user_id: Target user for user scope
        user_storage: User storage kind (``meta`` or ``option``)
        user_global: Store user options network-wide
        autoload_on_create: Autoload hint for newly created records, None for engine default
        environment_prefix: Prefix for environment variable lookup

    Examples:
        >>> config = StorageConfig(
        ...     host="json_file",
        ...     host_config={"path": "options.json"},
        ...     scope="blog",
        ...     blog_id=2,
        ... )
        >>> config.create_context().get_cache_key()
        'blog|blog:2'
    """

    host: str = "memory"
    host_config: dict[str, Any] = field(default_factory=dict)
    scope: str = "site"
    blog_id: Optional[int] = None
    user_id: Optional[int] = None
    user_storage: str = "meta"
    user_global: bool = False
    autoload_on_create: Optional[bool] = None
    environment_prefix: str = DEFAULT_ENVIRONMENT_PREFIX

    def __post_init__(self) -> None:
        """Apply environment overrides, then validate."""
        self._apply_environment_overrides()
        self._validate_host()
        self.user_storage = normalize_user_storage(self.user_storage)

    def _validate_host(self) -> None:
        """Validate that the host type is supported."""
        if self.host not in SUPPORTED_HOSTS:
            raise ConfigurationError(
                f"Unsupported host '{self.host}'. Supported hosts: {sorted(SUPPORTED_HOSTS)}",
                config_section="host",
            )
        if self.host == "json_file" and not self.host_config.get("path"):
            raise ConfigurationError(
                "json_file host requires host_config.path",
                config_section="host_config",
                recovery_suggestions=[f"Set {self.environment_prefix}_PATH or host_config.path"],
            )

    def _apply_environment_overrides(self) -> None:
        """Apply configuration overrides from environment variables."""
        prefix = self.environment_prefix

        host_env = os.getenv(f"{prefix}_HOST")
        if host_env:
            self.host = host_env.strip().lower()

        path_env = os.getenv(f"{prefix}_PATH")
        if path_env:
            self.host_config["path"] = path_env

        scope_env = os.getenv(f"{prefix}_SCOPE")
        if scope_env:
            self.scope = scope_env.strip().lower()

        for attr in ("blog_id", "user_id"):
            env_var = f"{prefix}_{attr.upper()}"
            value = os.getenv(env_var)
            if value is None:
                continue
            try:
                setattr(self, attr, int(value.strip()))
            except ValueError:
                logger.warning(f"Environment variable {env_var}={value} is not a valid integer, ignoring")

        storage_env = os.getenv(f"{prefix}_USER_STORAGE")
        if storage_env:
            self.user_storage = storage_env

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StorageConfig":
        """Create StorageConfig from dictionary."""
        return cls(
            host=data.get("host", "memory"),
            host_config=dict(data.get("host_config") or {}),
            scope=data.get("scope", "site"),
            blog_id=data.get("blog_id"),
            user_id=data.get("user_id"),
            user_storage=data.get("user_storage", "meta"),
            user_global=bool(data.get("user_global", False)),
            autoload_on_create=data.get("autoload_on_create"),
            environment_prefix=data.get("environment_prefix", DEFAULT_ENVIRONMENT_PREFIX),
        )

    @classmethod
    def from_yaml_file(cls, file_path: Union[str, Path]) -> "StorageConfig":
        """Load StorageConfig from YAML file.

        Raises:
            FileNotFoundError: If the file doesn't exist
            ConfigurationError: If the file can't be parsed
        """
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"Storage config file not found: {file_path}")

        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Failed to load storage config from {file_path}: {e}",
                config_section="storage",
            ) from e

        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Storage config {file_path} must contain a mapping",
                config_section="storage",
            )

        if "storage" in data:
            data = data["storage"] or {}

        return cls.from_dict(data)

    def to_dict(self) -> dict[str, Any]:
        """Convert StorageConfig to dictionary."""
        return {
            "host": self.host,
            "host_config": self.host_config,
            "scope": self.scope,
            "blog_id": self.blog_id,
            "user_id": self.user_id,
            "user_storage": self.user_storage,
            "user_global": self.user_global,
            "autoload_on_create": self.autoload_on_create,
            "environment_prefix": self.environment_prefix,
        }

    def to_yaml(self) -> str:
        """Convert StorageConfig to YAML string."""
        return yaml.dump(self.to_dict(), default_flow_style=False)

    def create_host(self) -> HostPlatform:
        """Create the configured host platform."""
        current_blog_id = int(self.host_config.get("current_blog_id", 1))
        current_user_id = int(self.host_config.get("current_user_id", 0))

        if self.host == "json_file":
            host: HostPlatform = JsonFileHost(
                self.host_config["path"],
                current_blog_id=current_blog_id,
                current_user_id=current_user_id,
            )
        else:
            host = InMemoryHost(current_blog_id=current_blog_id, current_user_id=current_user_id)

        logger.debug(f"Created {self.host} host (blog={current_blog_id}, user={current_user_id})")
        return host

    def create_context(self) -> StorageContext:
        """Build the StorageContext described by this configuration."""
        name = str(self.scope or "").strip().lower()
        scope = OptionScope.from_value(SCOPE_ALIASES.get(name, name))
        if scope is OptionScope.NETWORK:
            return StorageContext.for_network()
        if scope is OptionScope.BLOG:
            return StorageContext.for_blog(self.blog_id)
        if scope is OptionScope.USER:
            return StorageContext.for_user_id(self.user_id, self.user_storage, self.user_global)
        return StorageContext.for_site()
