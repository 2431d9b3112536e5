"""Options engine exception hierarchy.

Errors that signal programmer misconfiguration (bad schema, bad scope, bad
candidate values) are raised. Expected runtime decisions such as a write
policy veto or a backend refusing a write are never raised; they surface as a
``False`` return from the mutating call.
"""

from typing import Any, Dict, List, Optional


class OptionsEngineError(Exception):
    """Base exception for all options engine errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable error identifier
        context: Additional error context and metadata
        recovery_suggestions: List of suggested recovery actions
        component: Component where the error originated
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        recovery_suggestions: Optional[List[str]] = None,
        component: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self._default_error_code()
        self.context = context or {}
        self.recovery_suggestions = recovery_suggestions or []
        self.component = component or self._infer_component()

    def _default_error_code(self) -> str:
        """Generate default error code based on exception class name."""
        return self.__class__.__name__.upper().replace("ERROR", "_ERROR")

    def _infer_component(self) -> str:
        """Infer component name from exception class."""
        name = self.__class__.__name__.lower()
        if "schema" in name:
            return "schema"
        elif "validation" in name:
            return "validation"
        elif "storage" in name:
            return "storage"
        elif "policy" in name:
            return "policy"
        else:
            return "core"

    def add_context(self, key: str, value: Any) -> None:
        """Add additional context to the error."""
        self.context[key] = value

    def add_recovery_suggestion(self, suggestion: str) -> None:
        """Add a recovery suggestion to help callers resolve the error."""
        if suggestion not in self.recovery_suggestions:
            self.recovery_suggestions.append(suggestion)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to structured dictionary for logging/reporting."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "component": self.component,
            "context": self.context,
            "recovery_suggestions": self.recovery_suggestions,
        }


class ConfigurationError(OptionsEngineError):
    """Raised when the engine is wired or called incorrectly.

    Covers unsupported scope/entity combinations, writes to keys that have no
    registered schema, and rules that break their contract at runtime
    (non-bool validator results, non-idempotent sanitizers).
    """

    def __init__(
        self,
        message: str,
        config_section: Optional[str] = None,
        option_key: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        if config_section:
            self.add_context("config_section", config_section)
        if option_key:
            self.add_context("option_key", option_key)


class SchemaError(ConfigurationError):
    """Raised when a schema descriptor cannot be registered.

    The most common cause is a key that ends up with zero validators across
    both the component and schema buckets.
    """


class ValidationError(OptionsEngineError):
    """Raised when a sanitized candidate value is rejected by a validator.

    The overlay is never mutated when this is raised.
    """

    def __init__(
        self,
        message: str,
        option_key: Optional[str] = None,
        value_repr: Optional[str] = None,
        validator: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.option_key = option_key
        if option_key:
            self.add_context("option_key", option_key)
        if value_repr is not None:
            self.add_context("value", value_repr)
        if validator:
            self.add_context("validator", validator)


class StorageError(OptionsEngineError):
    """Raised when host storage cannot be read or written at all.

    A backend that simply refuses a write returns ``False`` instead.
    """

    def __init__(
        self,
        message: str,
        backend_type: Optional[str] = None,
        record: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        if backend_type:
            self.add_context("backend_type", backend_type)
        if record:
            self.add_context("record", record)


def create_validation_error(
    option_key: str,
    value_repr: str,
    validator_desc: str,
) -> ValidationError:
    """Create a validation error with the standard message and context."""
    error = ValidationError(
        message=(
            f"Validation failed for option '{option_key}' with value {value_repr}; "
            f"rejected by {validator_desc}."
        ),
        option_key=option_key,
        value_repr=value_repr,
        validator=validator_desc,
    )
    error.add_recovery_suggestion(
        f"Check the value passed for '{option_key}' against its registered validators"
    )
    return error
