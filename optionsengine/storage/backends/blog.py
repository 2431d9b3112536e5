"""Blog (sub-site) scope storage."""

from typing import Any, Optional

from ...core.scope import OptionScope
from ..host import HostPlatform, blog_table
from .base import StorageBackend


class BlogOptionStorage(StorageBackend):
    """
    Storage for one specific blog's options.

    Autoload only means something for the blog serving the current request,
    so ``supports_autoload()`` is evaluated at call time: it is True only
    while ``blog_id`` is the host's current blog. Cross-blog writes drop the
    autoload hint.

    Configuration:
        blog_id: Target blog id (required, positive int)
    """

    def __init__(self, host: HostPlatform, blog_id: int, config: Optional[dict[str, Any]] = None):
        """
        Initialize blog storage backend.

        Args:
            host: Host platform providing the raw primitives
            blog_id: Target blog id
            config: Additional configuration options
        """
        self._blog_id = blog_id
        super().__init__(host, config)

    @property
    def backend_type(self) -> str:
        """Return the backend type identifier."""
        return "blog"

    def _validate_config(self) -> None:
        """Validate blog storage configuration."""
        super()._validate_config()
        if isinstance(self._blog_id, bool) or not isinstance(self._blog_id, int):
            raise ValueError(f"blog_id must be an int, got {type(self._blog_id).__name__}")
        if self._blog_id <= 0:
            raise ValueError(f"blog_id must be positive, got {self._blog_id}")

    def scope(self) -> OptionScope:
        return OptionScope.BLOG

    def blog_id(self) -> Optional[int]:
        return self._blog_id

    def _table(self) -> str:
        return blog_table(self._blog_id)

    def supports_autoload(self) -> bool:
        return self._blog_id == self.host.current_blog_id()
