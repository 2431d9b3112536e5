"""
Base storage backend interface for option records.

Defines the contract every scope-specific backend implements so that
RegisterOptions behaves the same regardless of where a record lives.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Optional

from ...core.scope import OptionScope
from ..host import HostPlatform

logger = logging.getLogger(__name__)


class StorageBackend(ABC):
    """
    Abstract base class for option storage backends.

    One backend instance serves one ownership scope (and one entity for blog
    and user scopes). Records are whole values: RegisterOptions always reads
    and writes the entire named bucket.

    Key Operations:
    - read: Fetch a record, None when missing
    - update: Store a record (creates it when missing)
    - add: Create a record with an optional autoload hint
    - delete: Remove a record

    Backends return booleans for write outcomes; they do not retry.
    """

    def __init__(self, host: HostPlatform, config: Optional[dict[str, Any]] = None):
        """
        Initialize storage backend.

        Args:
            host: Host platform providing the raw primitives
            config: Backend-specific configuration parameters
        """
        self.host = host
        self.config = config or {}
        self._validate_config()

    @property
    @abstractmethod
    def backend_type(self) -> str:
        """Return the backend type identifier."""
        pass

    @abstractmethod
    def scope(self) -> OptionScope:
        """Ownership scope served by this backend."""
        pass

    @abstractmethod
    def _table(self) -> str:
        """Host table holding this backend's records."""
        pass

    def _validate_config(self) -> None:
        """Validate backend-specific configuration."""
        if not isinstance(self.host, HostPlatform):
            raise ValueError(f"{self.__class__.__name__} requires a HostPlatform instance")

    def blog_id(self) -> Optional[int]:
        """Blog the backend targets, None when the scope is not blog-bound."""
        return None

    def supports_autoload(self) -> bool:
        """Whether ``add`` honours an autoload hint right now."""
        return False

    def read(self, key: str) -> Any:
        """
        Read a record.

        Args:
            key: Record name

        Returns:
            Stored value, or None if the record doesn't exist
        """
        self.validate_key(key)
        value = self.host.read(self._table(), key)
        logger.debug(
            f"{self.backend_type}: read '{key}' ({'hit' if value is not None else 'miss'})"
        )
        return value

    def exists(self, key: str) -> bool:
        """Check whether a record exists."""
        self.validate_key(key)
        return self.host.exists(self._table(), key)

    def update(self, key: str, value: Any, autoload: bool = False) -> bool:
        """
        Store a record, creating it if needed.

        Args:
            key: Record name
            value: Whole record value
            autoload: Autoload hint, only forwarded when supported

        Returns:
            True if the host stored the value
        """
        self.validate_key(key)
        hint = autoload if autoload and self.supports_autoload() else None
        result = bool(self.host.update(self._table(), key, value, hint))
        logger.debug(f"{self.backend_type}: update '{key}' -> {result}")
        return result

    def add(self, key: str, value: Any, autoload: Optional[bool] = None) -> bool:
        """
        Create a record.

        Args:
            key: Record name
            value: Whole record value
            autoload: Autoload hint; dropped when the backend can't honour it

        Returns:
            True if created, False if the record already existed or the host refused
        """
        self.validate_key(key)
        hint = autoload if self.supports_autoload() else None
        result = bool(self.host.add(self._table(), key, value, hint))
        logger.debug(f"{self.backend_type}: add '{key}' (autoload={hint}) -> {result}")
        return result

    def delete(self, key: str) -> bool:
        """
        Delete a record.

        Returns:
            True if deleted, False if it didn't exist
        """
        self.validate_key(key)
        result = bool(self.host.delete(self._table(), key))
        logger.debug(f"{self.backend_type}: delete '{key}' -> {result}")
        return result

    def validate_key(self, key: str) -> None:
        """
        Validate that a record name is acceptable.

        Raises:
            ValueError: If the key is empty, too long or contains control characters
        """
        if not isinstance(key, str) or not key.strip():
            raise ValueError("Key cannot be empty")

        if len(key) > 191:
            raise ValueError("Key too long (max 191 characters)")

        invalid_chars = set("\x00\r\n")
        if any(c in invalid_chars for c in key):
            raise ValueError("Key contains invalid characters")

    def health_check(self) -> dict[str, Any]:
        """
        Perform a health check of the backend.

        Returns:
            Dictionary with health status and diagnostic information
        """
        try:
            self.host.exists(self._table(), "__health_check__")
            return {
                "status": "healthy",
                "backend_type": self.backend_type,
                "scope": self.scope().value,
                "supports_autoload": self.supports_autoload(),
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
        except Exception as e:
            return {
                "status": "unhealthy",
                "backend_type": self.backend_type,
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "error": str(e),
                "error_type": type(e).__name__,
            }

    def __str__(self) -> str:
        """String representation of the storage backend."""
        return f"{self.__class__.__name__}({self.backend_type})"

    def __repr__(self) -> str:
        """Detailed string representation."""
        return (
            f"{self.__class__.__name__}(backend_type='{self.backend_type}', "
            f"scope='{self.scope().value}', blog_id={self.blog_id()})"
        )
