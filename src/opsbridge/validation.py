"""
Argument validation for tool calls.

This module checks raw call arguments against a tool's FieldSchema before
any handler runs. Validation is synchronous, deterministic and free of side
effects: it never raises for bad input, it reports issues instead.

Rules:
    - A required field that is absent is a missing_field issue
    - A present field of the wrong kind is a type_mismatch issue
    - JSON null counts as a present value of the wrong kind
    - Fields not declared in the schema are dropped
    - Optional fields appear in the result only when supplied, unless the
      field declares a default
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from opsbridge.schema import FieldKind, FieldSchema, FieldSpec


MISSING_FIELD = "missing_field"
TYPE_MISMATCH = "type_mismatch"


@dataclass(frozen=True)
class ValidationIssue:
    """
    A single problem found while validating arguments.

    Attributes:
        field: Name of the offending field
        code: missing_field or type_mismatch
        message: Human-readable description
    """

    field: str
    code: str
    message: str

    def __str__(self) -> str:
        return f"{self.field}: {self.message} ({self.code})"


@dataclass
class ValidationResult:
    """
    Outcome of validating arguments against a schema.

    Exactly one of value/issues is meaningful: when issues is empty, value
    holds the normalized arguments.

    Attributes:
        value: Normalized arguments with undeclared fields stripped
        issues: Every problem found, in schema order
    """

    value: dict[str, Any] = field(default_factory=dict)
    issues: list[ValidationIssue] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        """Whether the arguments passed validation."""
        return not self.issues


def _describe(value: Any) -> str:
    if value is None:
        return "null"
    return type(value).__name__


def check_field(name: str, spec: FieldSpec, value: Any) -> ValidationIssue | None:
    """
    Check a single present value against its field spec.

    Args:
        name: Field name, used in the issue
        spec: The declared field
        value: The supplied value

    Returns:
        A type_mismatch issue, or None if the value fits
    """
    if spec.kind == FieldKind.STRING:
        if isinstance(value, str):
            return None
        expected = "a string"
    elif spec.kind == FieldKind.NUMBER:
        # bool is an int subclass but never a number on the wire
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return None
        expected = "a number"
    elif spec.kind == FieldKind.BOOLEAN:
        if isinstance(value, bool):
            return None
        expected = "a boolean"
    else:
        if isinstance(value, str) and value in spec.choices:
            return None
        expected = f"one of {', '.join(spec.choices)}"
        if isinstance(value, str):
            return ValidationIssue(name, TYPE_MISMATCH, f"expected {expected}, got '{value}'")

    return ValidationIssue(name, TYPE_MISMATCH, f"expected {expected}, got {_describe(value)}")


def validate(schema: FieldSchema, arguments: Any) -> ValidationResult:
    """
    Validate raw arguments against a field schema.

    Args:
        schema: The tool's declared fields
        arguments: Raw arguments from the client (normally a dict)

    Returns:
        ValidationResult with normalized value or the list of issues
    """
    result = ValidationResult()

    if arguments is None:
        arguments = {}
    if not isinstance(arguments, Mapping):
        result.issues.append(
            ValidationIssue("arguments", TYPE_MISMATCH, f"expected an object, got {_describe(arguments)}")
        )
        return result

    for name, spec in schema.items():
        if name not in arguments:
            if not spec.optional:
                result.issues.append(ValidationIssue(name, MISSING_FIELD, "missing required field"))
            elif spec.has_default:
                result.value[name] = spec.default
            continue

        value = arguments[name]
        issue = check_field(name, spec, value)
        if issue:
            result.issues.append(issue)
        else:
            result.value[name] = value

    if result.issues:
        result.value = {}
    return result
