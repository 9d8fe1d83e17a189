"""Field validation for versions and parameters, and checking of parameter values."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any

import structlog

from prompt_studio.core.errors import ValidationError
from prompt_studio.db.models import ParameterType, PromptParameter

logger = structlog.get_logger()

BOOLEAN_VALUES = {"true": True, "false": False}


def _compile(pattern: str) -> re.Pattern[str] | None:
    try:
        return re.compile(pattern)
    except re.error:
        return None


def coerce_value(parameter_type: ParameterType, raw: Any) -> Any:
    """Convert a raw (usually string) value to the parameter's type.

    Raises ValueError when the value does not fit the type.
    """
    if parameter_type == ParameterType.STRING:
        return str(raw)
    if parameter_type == ParameterType.NUMBER:
        if isinstance(raw, bool):
            raise ValueError("Value is not a valid number")
        if isinstance(raw, (int, float)):
            return raw
        text = str(raw).strip()
        try:
            return float(text) if any(c in text for c in ".eE") else int(text)
        except ValueError:
            raise ValueError("Value is not a valid number") from None
    if parameter_type == ParameterType.BOOLEAN:
        if isinstance(raw, bool):
            return raw
        value = BOOLEAN_VALUES.get(str(raw).strip().lower())
        if value is None:
            raise ValueError("Value must be true or false")
        return value

    expected = list if parameter_type == ParameterType.ARRAY else dict
    value = raw
    if isinstance(raw, str):
        try:
            value = json.loads(raw)
        except json.JSONDecodeError:
            raise ValueError(f"Value is not valid JSON for {parameter_type.value}") from None
    if not isinstance(value, expected):
        raise ValueError(f"Value is not a JSON {'array' if expected is list else 'object'}")
    return value


def parameter_errors(param: PromptParameter) -> dict[str, str]:
    """Validate a single parameter definition; returns field → message."""
    errors: dict[str, str] = {}

    if not param.name or not param.name.strip():
        errors["name"] = "Name is required"

    if (
        param.required
        and not param.default_value
        and param.parameter_type != ParameterType.BOOLEAN
    ):
        errors["default_value"] = "Default value is required for required parameters"

    pattern = None
    if param.validation_pattern:
        pattern = _compile(param.validation_pattern)
        if pattern is None:
            errors["validation_pattern"] = "Validation pattern is not a valid regular expression"

    if param.default_value and "default_value" not in errors:
        try:
            coerce_value(param.parameter_type, param.default_value)
        except ValueError as e:
            errors["default_value"] = str(e)
        else:
            if pattern is not None and not pattern.fullmatch(param.default_value):
                errors["default_value"] = "Default value does not match the validation pattern"

    return errors


def parameters_errors(params: list[PromptParameter]) -> dict[str, str]:
    """Validate a version's parameter list, including name uniqueness."""
    errors: dict[str, str] = {}
    seen: set[str] = set()
    for index, param in enumerate(params):
        for key, message in parameter_errors(param).items():
            errors[f"parameters[{index}].{key}"] = message
        if param.name in seen:
            errors[f"parameters[{index}].name"] = "Parameter name must be unique"
        seen.add(param.name)
    return errors


def validate_version_fields(
    template_id: str | None,
    version_number: str | None,
    content: str | None,
    parameters: list[PromptParameter],
) -> None:
    """Raise ValidationError listing every problem with a version submission."""
    errors: dict[str, str] = {}
    if not template_id:
        errors["template_id"] = "Template is required"
    if not version_number or not version_number.strip():
        errors["version_number"] = "Version number is required"
    if not content or not content.strip():
        errors["content"] = "Prompt content is required"
    errors.update(parameters_errors(parameters))

    if errors:
        logger.debug("validation.version_rejected", fields=sorted(errors))
        raise ValidationError("Version validation failed", errors)


@dataclass
class ValidationIssue:
    parameter: str
    message: str
    severity: str = "ERROR"


@dataclass
class ParameterValidationResult:
    valid: bool
    issues: list[ValidationIssue] = field(default_factory=list)
    missing_required: list[str] = field(default_factory=list)
    unknown_parameters: list[str] = field(default_factory=list)
    validated_values: dict[str, Any] = field(default_factory=dict)


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def validate_parameter_values(
    parameters: list[PromptParameter],
    values: dict[str, Any],
) -> ParameterValidationResult:
    """Check caller-supplied values against a version's parameter definitions.

    Missing required values and type or pattern mismatches are errors;
    unknown names are warnings. Omitted optional values take their default.
    """
    result = ParameterValidationResult(valid=True)
    defined = {p.name for p in parameters}
    result.unknown_parameters = [name for name in values if name not in defined]

    for param in parameters:
        raw = values.get(param.name)

        if _blank(raw):
            if param.required:
                result.missing_required.append(param.name)
                result.issues.append(ValidationIssue(param.name, "Required parameter is missing"))
            elif param.default_value:
                result.validated_values[param.name] = coerce_value(
                    param.parameter_type, param.default_value
                )
            continue

        try:
            value = coerce_value(param.parameter_type, raw)
        except ValueError as e:
            result.issues.append(ValidationIssue(param.name, str(e)))
            continue

        if param.validation_pattern:
            pattern = _compile(param.validation_pattern)
            if pattern is not None and not pattern.fullmatch(str(raw)):
                result.issues.append(ValidationIssue(
                    param.name,
                    f"Value does not match required pattern: {param.validation_pattern}",
                ))
                continue

        result.validated_values[param.name] = value

    for name in result.unknown_parameters:
        result.issues.append(ValidationIssue(
            name, "Parameter is not defined in the prompt version", severity="WARNING"
        ))

    result.valid = not any(i.severity == "ERROR" for i in result.issues)
    return result
