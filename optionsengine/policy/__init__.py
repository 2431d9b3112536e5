"""Write policies and the gate that consults them before every persist."""

from .base import AbstractWritePolicy, WritePolicy
from .context import WriteContext
from .gate import GENERAL_HOOK, SCOPED_HOOK_PREFIX, GateTrace, WritePolicyGate, scoped_hook_name
from .restricted import KeyWhitelistPolicy, RestrictedDefaultWritePolicy

__all__ = [
    "WriteContext",
    "WritePolicy",
    "AbstractWritePolicy",
    "RestrictedDefaultWritePolicy",
    "KeyWhitelistPolicy",
    "WritePolicyGate",
    "GateTrace",
    "GENERAL_HOOK",
    "SCOPED_HOOK_PREFIX",
    "scoped_hook_name",
]
