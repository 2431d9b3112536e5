"""
User-scope storage backends.

Two storage kinds are available: user meta (one row per user and key) and
user options (a single consolidated row, optionally network-global). Neither
supports autoload.
"""

from typing import Any, Optional

from ...core.scope import OptionScope
from ..host import HostPlatform, usermeta_table, useroption_table
from .base import StorageBackend


class _UserStorage(StorageBackend):
    """Shared validation and scope for per-user backends."""

    def __init__(self, host: HostPlatform, user_id: int, config: Optional[dict[str, Any]] = None):
        self.user_id = user_id
        super().__init__(host, config)

    def _validate_config(self) -> None:
        """Validate user storage configuration."""
        super()._validate_config()
        if isinstance(self.user_id, bool) or not isinstance(self.user_id, int):
            raise ValueError(f"user_id must be an int, got {type(self.user_id).__name__}")
        if self.user_id <= 0:
            raise ValueError(f"user_id must be positive, got {self.user_id}")

    def scope(self) -> OptionScope:
        return OptionScope.USER

    def supports_autoload(self) -> bool:
        return False


class UserMetaStorage(_UserStorage):
    """Per-user meta storage (the default user storage kind)."""

    @property
    def backend_type(self) -> str:
        """Return the backend type identifier."""
        return "user_meta"

    def _table(self) -> str:
        return usermeta_table(self.user_id)


class UserOptionStorage(_UserStorage):
    """
    Per-user option storage.

    Configuration:
        global_: Store the row network-wide instead of per blog
    """

    def __init__(
        self,
        host: HostPlatform,
        user_id: int,
        global_: bool = False,
        config: Optional[dict[str, Any]] = None,
    ):
        self.global_ = bool(global_)
        super().__init__(host, user_id, config)

    @property
    def backend_type(self) -> str:
        """Return the backend type identifier."""
        return "user_option"

    def _table(self) -> str:
        return useroption_table(self.user_id, self.global_)
