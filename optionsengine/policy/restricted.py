"""Ready-made write policies."""

import logging
from collections.abc import Iterable
from typing import Any

from ..core.scope import OptionScope
from .base import AbstractWritePolicy, WritePolicy
from .context import WriteContext

logger = logging.getLogger(__name__)


class RestrictedDefaultWritePolicy(AbstractWritePolicy):
    """
    Capability-based default policy.

    - network scope: requires ``manage_network_options``
    - user scope: requires ``edit_user`` for the target user
    - site and blog scope: requires ``manage_options``
    """

    def allow(self, op: str, context: WriteContext) -> bool:
        if context.scope is OptionScope.NETWORK:
            allowed = self.can_manage_network()
        elif context.scope is OptionScope.USER:
            allowed = context.user_id is not None and self.can_edit_user(context.user_id)
        else:
            allowed = self.can_manage_options()

        logger.debug(
            f"RestrictedDefaultWritePolicy {'allowed' if allowed else 'denied'} {op}",
            extra={"op": op, "scope": context.scope.value},
        )
        return allowed


class KeyWhitelistPolicy(WritePolicy):
    """Allow only writes whose keys are all in ``whitelist``."""

    def __init__(self, whitelist: Iterable[Any]):
        self.whitelist = frozenset(str(k) for k in whitelist)

    def allow(self, op: str, context: WriteContext) -> bool:
        return AbstractWritePolicy.keys_whitelisted(op, context, self.whitelist)

    def __repr__(self) -> str:
        return f"KeyWhitelistPolicy({sorted(self.whitelist)})"
