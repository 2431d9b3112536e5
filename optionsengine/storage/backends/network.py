"""Network-scope storage shared by every blog."""

from ...core.scope import OptionScope
from ..host import NETWORK_TABLE
from .base import StorageBackend


class NetworkOptionStorage(StorageBackend):
    """
    Storage for network-wide options.

    Network records have no autoload concept; any hint passed to ``add`` is
    dropped.
    """

    @property
    def backend_type(self) -> str:
        """Return the backend type identifier."""
        return "network"

    def scope(self) -> OptionScope:
        return OptionScope.NETWORK

    def _table(self) -> str:
        return NETWORK_TABLE

    def supports_autoload(self) -> bool:
        return False
