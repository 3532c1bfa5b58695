"""
Base types for the tool interface.

This module defines the core abstractions shared by every tool:
- ContentBlock/ResultEnvelope: The uniform result shape of a tool call
- ToolHandler: The async callable that implements a tool
- ToolDefinition: A registered tool (name, description, schema, handler)

Design Principles:
    - Every call returns a ResultEnvelope, success or failure
    - Failure is carried in-band: the text starts with the error marker
    - Handlers receive validated arguments; validation happens before
    - Handlers report expected failures as envelopes and do not raise
"""

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict

from opsbridge.schema import FieldSchema, to_json_schema


ERROR_MARKER = "Error"


class ContentBlock(BaseModel):
    """A single piece of text content in a result envelope."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    type: Literal["text"] = "text"
    text: str


class ResultEnvelope(BaseModel):
    """
    Result of a tool call.

    This is the only result shape on the wire. There is no status field:
    a failed call is one whose text starts with the error marker.

    Attributes:
        content: Ordered text blocks
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    content: tuple[ContentBlock, ...]

    @classmethod
    def ok(cls, text: str) -> "ResultEnvelope":
        """Create a successful envelope."""
        return cls(content=(ContentBlock(text=text),))

    @classmethod
    def fail(cls, message: str, prefix: str = ERROR_MARKER) -> "ResultEnvelope":
        """
        Create a failure envelope.

        Args:
            message: What went wrong
            prefix: Leading phrase; must start with the error marker

        Returns:
            Envelope whose text reads "<prefix>: <message>"
        """
        if not prefix.startswith(ERROR_MARKER):
            prefix = f"{ERROR_MARKER} {prefix}"
        return cls(content=(ContentBlock(text=f"{prefix}: {message}"),))

    @property
    def text(self) -> str:
        """All text blocks joined by newlines."""
        return "\n".join(block.text for block in self.content)

    @property
    def is_error(self) -> bool:
        """Whether the envelope reports a failure."""
        return bool(self.content) and self.content[0].text.startswith(ERROR_MARKER)

    def to_wire(self) -> dict[str, Any]:
        """Serialize to the JSON-RPC result payload."""
        return {"content": [block.model_dump() for block in self.content]}


ToolHandler = Callable[[Mapping[str, Any]], Awaitable[ResultEnvelope]]


@dataclass(frozen=True)
class ToolDefinition:
    """
    A registered tool.

    Attributes:
        name: Unique tool name
        schema: Declared input fields
        handler: Async callable invoked with validated arguments
        description: Human-readable description advertised to clients
    """

    name: str
    schema: FieldSchema = field(hash=False)
    handler: ToolHandler = field(hash=False)
    description: str = ""

    def describe(self) -> dict[str, Any]:
        """Return the tools/list entry for this tool."""
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": to_json_schema(self.schema),
        }

    def __repr__(self) -> str:
        return f"<Tool: {self.name}>"
