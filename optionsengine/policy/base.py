"""Write policy interface and a convenience base with capability helpers."""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Any

from .context import WriteContext

_SINGLE_KEY_OPS = {"set_option", "delete_option"}
_MULTI_KEY_OPS = {"seed_if_missing"}
_PAYLOAD_OPS = {"save_all"}


class WritePolicy(ABC):
    """Programmatic authority consulted before every persist."""

    @abstractmethod
    def allow(self, op: str, context: WriteContext) -> bool:
        """Return True to let the write through."""


class AbstractWritePolicy(WritePolicy):
    """
    Base class for policies that consult the acting user's capabilities.

    Args:
        capabilities: Object answering ``current_user_can(capability, *args)``
            and ``current_user_id()``; a HostPlatform fits.
    """

    def __init__(self, capabilities: Any):
        self.capabilities = capabilities

    def can_manage_network(self) -> bool:
        return bool(self.capabilities.current_user_can("manage_network_options"))

    def can_manage_options(self) -> bool:
        return bool(self.capabilities.current_user_can("manage_options"))

    def can_edit_user(self, user_id: int) -> bool:
        return bool(self.capabilities.current_user_can("edit_user", user_id))

    def is_same_user(self, context: WriteContext) -> bool:
        """True when the context targets the acting user."""
        target = int(context.user_id or 0)
        current = int(self.capabilities.current_user_id() or 0)
        return target > 0 and current > 0 and target == current

    @staticmethod
    def scope_is(context: WriteContext, scope: str) -> bool:
        return context.scope.value == str(scope).lower()

    @staticmethod
    def scope_in(context: WriteContext, scopes: Iterable[str]) -> bool:
        return any(context.scope.value == str(s).lower() for s in scopes)

    @staticmethod
    def keys_whitelisted(op: str, context: WriteContext, whitelist: Iterable[str]) -> bool:
        """
        Check that every key touched by the operation is whitelisted.

        Single-key ops check ``key``, seeding checks ``keys`` and save_all
        checks the keys of ``options``. Any other op is not covered and
        returns False.
        """
        allowed = {str(k) for k in whitelist}
        if op in _SINGLE_KEY_OPS:
            return bool(context.key) and context.key in allowed
        if op in _MULTI_KEY_OPS:
            keys = context.keys or ()
            return bool(keys) and all(k in allowed for k in keys)
        if op in _PAYLOAD_OPS:
            return all(str(k) in allowed for k in (context.options or {}))
        return False
