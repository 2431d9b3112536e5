"""Reusable named sanitizers and validators.

Schema files refer to rules by name; Python callers can use the functions
directly in ``register_schema`` descriptors.
"""

from collections.abc import Callable, Mapping
from typing import Any

from .exceptions import SchemaError

_TRUE_STRINGS = {"1", "true", "yes", "on"}
_FALSE_STRINGS = {"0", "false", "no", "off", ""}


# Sanitizers -----------------------------------------------------------------


def strip(value: Any) -> Any:
    return value.strip() if isinstance(value, str) else value


def lower(value: Any) -> Any:
    return value.lower() if isinstance(value, str) else value


def to_int(value: Any) -> Any:
    """Coerce numeric strings and floats without a fraction to int."""
    if isinstance(value, bool):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return value
    return value


def to_bool(value: Any) -> Any:
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
        return value
    if isinstance(value, int) and not isinstance(value, bool) and value in (0, 1):
        return bool(value)
    return value


def to_list(value: Any) -> Any:
    if value is None:
        return []
    if isinstance(value, (tuple, set, frozenset)):
        return list(value)
    if isinstance(value, list):
        return value
    return [value]


# Validators -----------------------------------------------------------------


def is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def is_positive_int(value: Any) -> bool:
    return is_int(value) and value > 0


def is_non_negative_int(value: Any) -> bool:
    return is_int(value) and value >= 0


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_bool(value: Any) -> bool:
    return isinstance(value, bool)


def is_string(value: Any) -> bool:
    return isinstance(value, str)


def is_non_empty_string(value: Any) -> bool:
    return isinstance(value, str) and value.strip() != ""


def is_list(value: Any) -> bool:
    return isinstance(value, list)


def is_mapping(value: Any) -> bool:
    return isinstance(value, Mapping)


def any_value(value: Any) -> bool:
    return True


def one_of(*choices: Any) -> Callable[[Any, Callable[[str], None]], bool]:
    """Validator accepting only ``choices``; emits a warning naming them."""

    def validate_choice(value: Any, emit_warning: Callable[[str], None]) -> bool:
        if value in choices:
            return True
        emit_warning(f"Value must be one of {list(choices)}")
        return False

    validate_choice.__qualname__ = f"one_of({', '.join(repr(c) for c in choices)})"
    return validate_choice


def max_length(limit: int) -> Callable[[Any], bool]:
    """Validator for strings and lists no longer than ``limit``."""

    def validate_length(value: Any) -> bool:
        return hasattr(value, "__len__") and len(value) <= limit

    validate_length.__qualname__ = f"max_length({limit})"
    return validate_length


SANITIZERS: dict[str, Callable[[Any], Any]] = {
    "strip": strip,
    "lower": lower,
    "to_int": to_int,
    "to_bool": to_bool,
    "to_list": to_list,
}

VALIDATORS: dict[str, Callable[..., bool]] = {
    "is_int": is_int,
    "is_positive_int": is_positive_int,
    "is_non_negative_int": is_non_negative_int,
    "is_number": is_number,
    "is_bool": is_bool,
    "is_string": is_string,
    "is_non_empty_string": is_non_empty_string,
    "is_list": is_list,
    "is_mapping": is_mapping,
    "any_value": any_value,
}


def get_sanitizer(name: str) -> Callable[[Any], Any]:
    try:
        return SANITIZERS[name]
    except KeyError:
        raise SchemaError(
            f"Unknown sanitizer '{name}'. Available: {sorted(SANITIZERS)}"
        ) from None


def get_validator(name: str) -> Callable[..., bool]:
    try:
        return VALIDATORS[name]
    except KeyError:
        raise SchemaError(
            f"Unknown validator '{name}'. Available: {sorted(VALIDATORS)}"
        ) from None
