"""Load option schema descriptors from YAML files.

Schema files name their rules instead of embedding code::

    version: "1.0"
    options:
      retries:
        default: 3
        sanitize: [to_int]
        validate: [is_positive_int]
      mode:
        default: fast
        validate: [is_string]
        choices: [fast, safe]
"""

from pathlib import Path
from typing import Any, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from . import rules
from .exceptions import SchemaError
from .schema import normalize_key

SUPPORTED_VERSIONS = {"1.0"}


class OptionRuleModel(BaseModel):
    """Pydantic model for one option's rules."""

    default: Any = Field(None, description="Literal default value")
    sanitize: list[str] = Field(default_factory=list, description="Sanitizer names")
    validate_: list[str] = Field(
        default_factory=list, alias="validate", description="Validator names"
    )
    choices: Optional[list[Any]] = Field(None, description="Allowed values")
    max_length: Optional[int] = Field(None, description="Maximum string/list length")

    model_config = {"populate_by_name": True, "extra": "forbid"}

    @field_validator("sanitize")
    @classmethod
    def validate_sanitizers(cls, v: list[str]) -> list[str]:
        """Validate sanitizer names are known."""
        unknown = [name for name in v if name not in rules.SANITIZERS]
        if unknown:
            raise ValueError(
                f"Unknown sanitizers {unknown}. Available: {sorted(rules.SANITIZERS)}"
            )
        return v

    @field_validator("validate_")
    @classmethod
    def validate_validators(cls, v: list[str]) -> list[str]:
        """Validate validator names are known."""
        unknown = [name for name in v if name not in rules.VALIDATORS]
        if unknown:
            raise ValueError(
                f"Unknown validators {unknown}. Available: {sorted(rules.VALIDATORS)}"
            )
        return v

    @field_validator("max_length")
    @classmethod
    def validate_max_length(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 0:
            raise ValueError("max_length must be non-negative")
        return v


class SchemaFileModel(BaseModel):
    """Pydantic model for a whole schema file."""

    version: str = Field("1.0", description="Schema file version")
    description: Optional[str] = Field(None, description="Free-form description")
    options: dict[str, OptionRuleModel] = Field(
        default_factory=dict, description="Rules per option key"
    )

    @field_validator("version", mode="before")
    @classmethod
    def validate_version(cls, v: Any) -> str:
        v = str(v)
        if v not in SUPPORTED_VERSIONS:
            raise ValueError(f"Unsupported schema version '{v}'. Supported: {sorted(SUPPORTED_VERSIONS)}")
        return v


def _to_descriptor(model: OptionRuleModel) -> dict[str, Any]:
    validators = [rules.get_validator(name) for name in model.validate_]
    if model.choices is not None:
        validators.append(rules.one_of(*model.choices))
    if model.max_length is not None:
        validators.append(rules.max_length(model.max_length))

    descriptor: dict[str, Any] = {
        "sanitize": [rules.get_sanitizer(name) for name in model.sanitize],
        "validate": validators,
    }
    if "default" in model.model_fields_set:
        descriptor["default"] = model.default
    return descriptor


def parse_schema(data: Any, source: str = "<memory>") -> dict[str, dict[str, Any]]:
    """Turn parsed YAML data into a descriptor mapping for register_schema."""
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise SchemaError(f"Schema file {source} must contain a mapping at the top level")

    try:
        model = SchemaFileModel.model_validate(data)
    except ValidationError as e:
        raise SchemaError(f"Schema validation failed for {source}: {e}") from e

    return {normalize_key(key): _to_descriptor(rule) for key, rule in model.options.items()}


def load_schema_file(path: Union[str, Path]) -> dict[str, dict[str, Any]]:
    """Load a YAML schema file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        SchemaError: If the YAML is malformed or fails schema validation
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Schema file not found: {path}")

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise SchemaError(f"Invalid YAML in schema file {path}: {e}") from e

    return parse_schema(data, source=str(path))
