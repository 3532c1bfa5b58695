"""
Tool registry for opsbridge.

The registry maps tool names to their definitions. It is filled once at
startup by the discovery pass and read by the dispatcher afterwards.

Design:
    - One registry per ServerState, no module-level global
    - Names are unique: a second registration of a name fails and the first
      one is kept
    - Registration order is preserved for capability advertisement

Usage:
    registry = ToolRegistry()
    registry.register("echo", {"msg": string()}, echo_handler)
    tool = registry.get("echo")
"""

import inspect
import logging
from collections.abc import Iterator
from typing import Any

from opsbridge.errors import DuplicateToolError, ToolNotFoundError
from opsbridge.schema import FieldSchema
from opsbridge.tools.base import ToolDefinition, ToolHandler

logger = logging.getLogger(__name__)


class ToolRegistry:
    """
    Registry for looking up tools by name.

    Attributes:
        _tools: Internal mapping of tool names to definitions, in
            registration order
    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._tools: dict[str, ToolDefinition] = {}

    def register(
        self,
        name: str,
        schema: FieldSchema,
        handler: ToolHandler,
        description: str = "",
    ) -> ToolDefinition:
        """
        Register a tool.

        Args:
            name: The tool's unique name
            schema: Declared input fields
            handler: Async callable implementing the tool
            description: Human-readable description for clients

        Returns:
            The stored ToolDefinition

        Raises:
            ValueError: If the name is empty or the handler is not async
            DuplicateToolError: If a tool with that name already exists
        """
        if not name:
            msg = "Tool must have a non-empty name"
            raise ValueError(msg)

        if not inspect.iscoroutinefunction(handler):
            msg = f"Handler for tool '{name}' must be an async function"
            raise ValueError(msg)

        if name in self._tools:
            raise DuplicateToolError(tool=name)

        definition = ToolDefinition(
            name=name,
            schema=dict(schema),
            handler=handler,
            description=description,
        )
        self._tools[name] = definition
        logger.debug("Registered tool: %s", name)
        return definition

    def get(self, name: str) -> ToolDefinition:
        """
        Look up a tool by name.

        Raises:
            ToolNotFoundError: If no tool with that name is registered
        """
        definition = self._tools.get(name)
        if definition is None:
            raise ToolNotFoundError(tool=name, available=self.list_tools())
        return definition

    def get_optional(self, name: str) -> ToolDefinition | None:
        """Look up a tool by name, returning None if not found."""
        return self._tools.get(name)

    def has(self, name: str) -> bool:
        """Check if a tool is registered."""
        return name in self._tools

    def list_tools(self) -> list[str]:
        """List registered tool names in registration order."""
        return list(self._tools)

    def describe(self) -> list[dict[str, Any]]:
        """
        Describe every tool for capability advertisement.

        Returns:
            tools/list entries (name, description, inputSchema) in
            registration order
        """
        return [definition.describe() for definition in self._tools.values()]

    def __len__(self) -> int:
        """Return the number of registered tools."""
        return len(self._tools)

    def __iter__(self) -> Iterator[ToolDefinition]:
        """Iterate over all registered tools."""
        return iter(self._tools.values())

    def __contains__(self, name: object) -> bool:
        """Check if a tool is registered using 'in' operator."""
        return name in self._tools

    def __repr__(self) -> str:
        """String representation of the registry."""
        tools = ", ".join(self.list_tools())
        return f"<ToolRegistry: [{tools}]>"
