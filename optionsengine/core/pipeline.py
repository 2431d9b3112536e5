"""Sanitize-then-validate pipeline for a single option key."""

import inspect
import logging
from collections.abc import Callable
from typing import Any, Optional

from .config import EngineConfig, get_engine_config
from .exceptions import ConfigurationError, create_validation_error
from .messages import NOTICE, WARNING, MessageBuffer
from .schema import SchemaEntry, SchemaRegistry, describe_callable, normalize_key, stringify_value

logger = logging.getLogger(__name__)

_POSITIONAL = (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)


def accepts_emitter(fn: Callable[..., Any]) -> bool:
    """True when ``fn`` takes a second required positional argument.

    Rules are either unary or ``(value, emit)``; builtins without an
    inspectable signature are treated as unary.
    """
    try:
        signature = inspect.signature(fn)
    except (TypeError, ValueError):
        return False
    required = 0
    for param in signature.parameters.values():
        if param.kind is inspect.Parameter.VAR_POSITIONAL:
            return True
        if param.kind in _POSITIONAL and param.default is inspect.Parameter.empty:
            required += 1
    return required >= 2


def _discard(message: str) -> None:
    pass


class SanitizeValidatePipeline:
    """Runs a key's sanitize chain then its validate chain.

    Sanitizers run component bucket first, each receiving the previous
    output. Validators run in the same bucket order against the sanitized
    value and stop at the first ``False``. Warnings emitted by validators are
    recorded in the shared MessageBuffer whether or not validation passes.
    """

    def __init__(
        self,
        registry: SchemaRegistry,
        messages: MessageBuffer,
        config: Optional[EngineConfig] = None,
        log: Optional[Any] = None,
    ):
        self.registry = registry
        self.messages = messages
        self.config = config or get_engine_config()
        self.logger = log or logger

    def _entry(self, key: str) -> SchemaEntry:
        entry = self.registry.get(key)
        if entry is None:
            self.logger.warning(f"No schema defined for option '{key}'")
            raise ConfigurationError(
                f"No schema defined for option '{key}'",
                option_key=key,
                recovery_suggestions=["Register the key with register_schema() before writing it"],
            )
        return entry

    def _describe_value(self, value: Any) -> str:
        return stringify_value(value, self.config.max_value_repr_length)

    def process(self, key: str, candidate: Any) -> Any:
        """Return the sanitized value or raise ValidationError.

        Raises:
            ConfigurationError: If the key has no schema or a rule breaks its contract
            ValidationError: If a validator rejects the sanitized value
        """
        normalized_key = normalize_key(key)
        entry = self._entry(normalized_key)
        value = self._run_sanitizers(normalized_key, entry, candidate)
        self._run_validators(normalized_key, entry, value)
        self.logger.debug(f"Sanitize/validate completed for '{normalized_key}'")
        return value

    def sanitize(self, key: str, candidate: Any) -> Any:
        """Run only the sanitize chains (used when seeding defaults)."""
        normalized_key = normalize_key(key)
        return self._run_sanitizers(normalized_key, self._entry(normalized_key), candidate)

    def _run_sanitizers(self, key: str, entry: SchemaEntry, value: Any) -> Any:
        def emit_notice(message: str) -> None:
            self.messages.add(key, str(message), NOTICE)

        for index, sanitizer in enumerate(entry.sanitizers()):
            description = describe_callable(sanitizer)
            self.logger.debug(
                f"Running sanitizer {description} for '{key}'",
                extra={"option_key": key, "rule_index": index},
            )
            with_emitter = accepts_emitter(sanitizer)
            first = sanitizer(value, emit_notice) if with_emitter else sanitizer(value)

            if self.config.check_sanitizer_idempotence:
                second = sanitizer(first, _discard) if with_emitter else sanitizer(first)
                if type(second) is not type(first) or second != first:
                    first_repr = self._describe_value(first)
                    second_repr = self._describe_value(second)
                    self.logger.warning(
                        f"Sanitizer {description} for '{key}' is not idempotent",
                        extra={"option_key": key, "first": first_repr, "second": second_repr},
                    )
                    raise ConfigurationError(
                        f"Sanitizer for option '{key}' at index {index} must be idempotent. "
                        f"First result {first_repr} differs from second {second_repr}. "
                        f"Sanitizer {description}.",
                        option_key=key,
                    )
            value = first
        return value

    def _run_validators(self, key: str, entry: SchemaEntry, value: Any) -> None:
        for index, validator in enumerate(entry.validators()):
            description = describe_callable(validator)
            self.logger.debug(
                f"Running validator {description} for '{key}'",
                extra={"option_key": key, "rule_index": index},
            )

            emitted = []

            def emit_warning(message: str) -> None:
                self.messages.add(key, str(message), WARNING)
                emitted.append(message)

            result = validator(value, emit_warning) if accepts_emitter(validator) else validator(value)

            if not isinstance(result, bool):
                self.logger.warning(
                    f"Validator {description} for '{key}' returned {type(result).__name__}"
                )
                raise ConfigurationError(
                    f"Validator for option '{key}' at index {index} must return a bool; "
                    f"got {type(result).__name__}. Value {self._describe_value(value)}; "
                    f"validator {description}.",
                    option_key=key,
                )

            if not result:
                value_repr = self._describe_value(value)
                if not emitted:
                    self.messages.add(key, f"Validation failed for value {value_repr}", WARNING)
                self.logger.debug(
                    f"Validation failed for '{key}', stopping validator chain",
                    extra={"option_key": key, "validator": description},
                )
                raise create_validation_error(key, value_repr, description)
