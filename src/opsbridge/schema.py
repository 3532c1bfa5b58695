"""
Schema definitions for opsbridge.

This module defines the Pydantic models that describe a tool's calling
convention and a single tool invocation:
- FieldKind/FieldSpec: What a single input field looks like
- FieldSchema: The ordered set of fields a tool accepts
- ToolCall: One invocation of a tool by name with raw arguments

A FieldSchema serves two purposes. The validator checks incoming arguments
against it, and to_json_schema() renders it as the JSON Schema advertised to
clients in tools/list.

Design Decisions:
    - Field specs are immutable (frozen=True)
    - Enum fields carry their choices; other kinds must not
    - Defaults are explicit and opt-in per field
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


# =============================================================================
# Enums
# =============================================================================


class FieldKind(str, Enum):
    """Primitive kinds a tool input field can have."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ENUM = "enum"


# =============================================================================
# Field Models
# =============================================================================


class FieldSpec(BaseModel):
    """
    Declaration of a single tool input field.

    Attributes:
        kind: The primitive kind of the field
        description: Human-readable description advertised to clients
        optional: Whether the field may be omitted
        choices: Allowed values for enum fields
        default: Value filled in when an optional field is omitted
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: FieldKind
    description: str = ""
    optional: bool = False
    choices: tuple[str, ...] = ()
    default: Any = None

    @model_validator(mode="after")
    def check_choices(self) -> "FieldSpec":
        """Enum fields need choices; no other kind may declare them."""
        if self.kind == FieldKind.ENUM and not self.choices:
            msg = "Enum fields must declare at least one choice"
            raise ValueError(msg)
        if self.kind != FieldKind.ENUM and self.choices:
            msg = f"Only enum fields may declare choices, not {self.kind.value}"
            raise ValueError(msg)
        return self

    @property
    def has_default(self) -> bool:
        """Whether this field fills in a value when omitted."""
        return self.default is not None

    def to_json_schema(self) -> dict[str, Any]:
        """Render this field as a JSON Schema property."""
        if self.kind == FieldKind.ENUM:
            prop: dict[str, Any] = {"type": "string", "enum": list(self.choices)}
        else:
            prop = {"type": self.kind.value}
        if self.description:
            prop["description"] = self.description
        if self.has_default:
            prop["default"] = self.default
        return prop


# Ordered mapping of field name to field spec
FieldSchema = dict[str, FieldSpec]


def string(description: str = "", optional: bool = False) -> FieldSpec:
    """Declare a string field."""
    return FieldSpec(kind=FieldKind.STRING, description=description, optional=optional)


def number(description: str = "", optional: bool = False, default: float | None = None) -> FieldSpec:
    """Declare a numeric field."""
    return FieldSpec(kind=FieldKind.NUMBER, description=description, optional=optional, default=default)


def boolean(description: str = "", optional: bool = False) -> FieldSpec:
    """Declare a boolean field."""
    return FieldSpec(kind=FieldKind.BOOLEAN, description=description, optional=optional)


def enum(choices: list[str] | tuple[str, ...], description: str = "", optional: bool = False) -> FieldSpec:
    """Declare a string field restricted to a fixed set of choices."""
    return FieldSpec(
        kind=FieldKind.ENUM,
        description=description,
        optional=optional,
        choices=tuple(choices),
    )


def to_json_schema(schema: FieldSchema) -> dict[str, Any]:
    """
    Render a field schema as a JSON Schema object.

    Args:
        schema: The tool's field schema

    Returns:
        JSON Schema with properties in declaration order and a required
        list holding every non-optional field
    """
    return {
        "type": "object",
        "properties": {name: spec.to_json_schema() for name, spec in schema.items()},
        "required": [name for name, spec in schema.items() if not spec.optional],
    }


# =============================================================================
# Call Models
# =============================================================================


class ToolCall(BaseModel):
    """
    A single tool invocation as received from a client.

    Arguments are kept untyped here; the dispatcher validates them against
    the tool's schema before the handler sees them.

    Attributes:
        name: The tool to invoke
        arguments: Raw arguments supplied by the client
    """

    model_config = ConfigDict(frozen=True)

    name: str
    arguments: Any = Field(default_factory=dict)
