"""
Write policy gate.

Combines an optional WritePolicy with two ordered hook chains: a general
chain (``options/allow_persist``) and a per-scope chain
(``options/allow_persist/scope/<scope>``). Each hook receives the decision
so far and the WriteContext and returns the new decision.

Steps run in a fixed order and never short-circuit; each one is logged so
the final decision can be traced:

1. policy decision (no policy attached means allow)
2. general hook input
3. general hook output
4. scoped hook input
5. scoped hook output
6. final decision
"""

import logging
from collections.abc import Callable
from dataclasses import asdict, dataclass
from typing import Any, Optional

from ..core.scope import OptionScope
from .base import WritePolicy
from .context import WriteContext

logger = logging.getLogger(__name__)

GENERAL_HOOK = "options/allow_persist"
SCOPED_HOOK_PREFIX = "options/allow_persist/scope/"

PersistHook = Callable[[bool, WriteContext], bool]


def scoped_hook_name(scope: Any) -> str:
    return f"{SCOPED_HOOK_PREFIX}{OptionScope.from_value(scope).value}"


@dataclass(frozen=True)
class GateTrace:
    """Inputs and outputs of every gate step for one evaluation."""

    op: str
    scope: str
    policy: Optional[str]
    policy_allowed: bool
    general_input: bool
    general_output: bool
    scoped_hook: str
    scoped_input: bool
    scoped_output: bool
    allowed: bool

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class WritePolicyGate:
    """
    Decides whether a persist may proceed.

    Examples:
        >>> gate = WritePolicyGate(RestrictedDefaultWritePolicy(host))
        >>> gate.add_hook(lambda allowed, ctx: allowed and ctx.key != "locked")
        >>> gate.allow("set_option", WriteContext.for_set_option("app", ctx, "locked"))
        False
    """

    def __init__(self, policy: Optional[WritePolicy] = None, log: Optional[Any] = None):
        self.policy = policy
        self.logger = log or logger
        self._hooks: dict[str, list[PersistHook]] = {}

    def set_policy(self, policy: Optional[WritePolicy]) -> None:
        self.policy = policy

    def add_hook(self, callback: PersistHook, scope: Any = None) -> None:
        """
        Register a persist hook.

        Args:
            callback: ``(current_decision, context) -> bool``
            scope: Register on the scope-specific chain instead of the general one
        """
        if not callable(callback):
            raise TypeError("Persist hook must be callable")
        name = GENERAL_HOOK if scope is None else scoped_hook_name(scope)
        self._hooks.setdefault(name, []).append(callback)

    def remove_hooks(self, scope: Any = None) -> None:
        """Drop every hook on the general chain, or on one scope's chain."""
        self._hooks.pop(GENERAL_HOOK if scope is None else scoped_hook_name(scope), None)

    def hooks(self) -> dict[str, list[PersistHook]]:
        return {name: list(chain) for name, chain in self._hooks.items()}

    def copy(self) -> "WritePolicyGate":
        clone = WritePolicyGate(self.policy, self.logger)
        clone._hooks = self.hooks()
        return clone

    def _apply_hooks(self, name: str, allowed: bool, context: WriteContext) -> bool:
        for hook in self._hooks.get(name, []):
            allowed = bool(hook(allowed, context))
        return allowed

    def evaluate(self, op: str, context: WriteContext) -> GateTrace:
        """Run every gate step and return the full trace."""
        scope = context.scope.value
        base = {"op": op, "main_option": context.main_option, "scope": scope}
        policy_name = type(self.policy).__name__ if self.policy is not None else None

        policy_allowed = True if self.policy is None else bool(self.policy.allow(op, context))
        self.logger.debug(
            "Write gate policy decision",
            extra={**base, "gate_step": "policy", "policy": policy_name, "allowed": policy_allowed},
        )

        self.logger.debug(
            "Write gate applying general hook",
            extra={**base, "gate_step": "general_input", "hook": GENERAL_HOOK, "allowed": policy_allowed},
        )
        general_output = self._apply_hooks(GENERAL_HOOK, policy_allowed, context)
        self.logger.debug(
            "Write gate general hook result",
            extra={**base, "gate_step": "general_output", "hook": GENERAL_HOOK, "allowed": general_output},
        )

        scoped = scoped_hook_name(scope)
        self.logger.debug(
            "Write gate applying scoped hook",
            extra={**base, "gate_step": "scoped_input", "hook": scoped, "allowed": general_output},
        )
        scoped_output = self._apply_hooks(scoped, general_output, context)
        self.logger.debug(
            "Write gate scoped hook result",
            extra={**base, "gate_step": "scoped_output", "hook": scoped, "allowed": scoped_output},
        )

        if not scoped_output:
            self.logger.info(
                f"Write vetoed: {op} on '{context.main_option}' ({scope})",
                extra={**base, "policy": policy_name, "policy_allowed": policy_allowed},
            )
        self.logger.debug(
            "Write gate final decision",
            extra={**base, "gate_step": "final", "allowed": scoped_output},
        )

        return GateTrace(
            op=op,
            scope=scope,
            policy=policy_name,
            policy_allowed=policy_allowed,
            general_input=policy_allowed,
            general_output=general_output,
            scoped_hook=scoped,
            scoped_input=general_output,
            scoped_output=scoped_output,
            allowed=scoped_output,
        )

    def allow(self, op: str, context: WriteContext) -> bool:
        return self.evaluate(op, context).allowed
