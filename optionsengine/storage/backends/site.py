"""Site-scope storage: the options table of the current blog."""

from ...core.scope import OptionScope
from ..host import blog_table
from .base import StorageBackend


class SiteOptionStorage(StorageBackend):
    """
    Storage for site-wide options.

    Records live in the current blog's table, so a site record and a blog
    record for the current blog are the same row. Autoload is supported.

    Examples:
        >>> storage = SiteOptionStorage(host)
        >>> storage.add("my_plugin", {"enabled": True}, autoload=True)
        True
    """

    @property
    def backend_type(self) -> str:
        """Return the backend type identifier."""
        return "site"

    def scope(self) -> OptionScope:
        return OptionScope.SITE

    def _table(self) -> str:
        return blog_table(self.host.current_blog_id())

    def supports_autoload(self) -> bool:
        return True
