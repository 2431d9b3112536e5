"""Change detection for option values.

Whole-record commits use the order-insensitive canonical form; canonical
forms are only ever compared with each other and never returned to callers
of RegisterOptions. Single-key writes use strict, order-sensitive equality.
"""

import dataclasses
import json
from collections.abc import Mapping
from enum import Enum
from typing import Any


def _to_plain(value: Any) -> Any:
    """Convert structured objects into plain mappings before normalizing."""
    if isinstance(value, Enum):
        return value.value
    if hasattr(value, "model_dump") and callable(value.model_dump):
        return value.model_dump()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, (set, frozenset)):
        return list(value)
    if hasattr(value, "__dict__") and not callable(value):
        return {k: v for k, v in vars(value).items() if not k.startswith("_")}
    return value


def _sort_key(value: Any) -> str:
    return json.dumps(value, sort_keys=True, default=repr, ensure_ascii=False)


def canonicalize(value: Any, deep: bool = True) -> Any:
    """Return the canonical form of ``value``.

    Mappings are rebuilt with sorted keys and sequences are sorted by their
    JSON text. In deep mode nested containers are normalized first; shallow
    mode only reorders the top-level container.
    """
    value = _to_plain(value)

    if isinstance(value, Mapping):
        items = sorted(value.items(), key=lambda item: str(item[0]))
        if deep:
            return {str(k): canonicalize(v, deep=True) for k, v in items}
        return {str(k): v for k, v in items}

    if isinstance(value, (list, tuple)):
        elements = [canonicalize(v, deep=True) for v in value] if deep else list(value)
        return sorted(elements, key=_sort_key)

    return value


def structures_match(left: Any, right: Any) -> bool:
    """True when both values share the same deep canonical form.

    Forms are compared as JSON text so that ``True`` and ``1`` stay distinct.
    """
    return _sort_key(canonicalize(left)) == _sort_key(canonicalize(right))


def values_identical(left: Any, right: Any) -> bool:
    """Strict equality: same types at every level and sequences in the same order.

    Used for per-key change detection, where ``["a", "b"]`` and ``["b", "a"]``
    or ``1`` and ``1.0`` are different values.
    """
    if type(left) is not type(right):
        return False
    if isinstance(left, Mapping):
        if left.keys() != right.keys():
            return False
        return all(values_identical(left[k], right[k]) for k in left)
    if isinstance(left, (list, tuple)):
        if len(left) != len(right):
            return False
        return all(values_identical(a, b) for a, b in zip(left, right))
    return bool(left == right)
