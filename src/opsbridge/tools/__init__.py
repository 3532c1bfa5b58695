"""
Tools module for opsbridge.

This module provides the tool interface and the built-in tools.

Built-in tools:
    - getAzureContainerAppLogs: Container App logs through the Azure CLI
    - getDiscordChannelMessageList: Recent messages of a Discord channel
    - getDiscordChannelMessage: One Discord message by id

Architecture:
    - ToolDefinition: A registered tool (name, schema, handler)
    - ToolRegistry: Name-to-definition mapping filled at startup
    - ResultEnvelope: Uniform result of every tool call
    - discover(): Loads the tool modules listed in TOOL_MODULES

Tool modules are not imported here. discover() imports them so that a
module failing at import time is reported as a startup error.
"""

from opsbridge.tools.base import ContentBlock, ResultEnvelope, ToolDefinition, ToolHandler
from opsbridge.tools.discovery import TOOL_MODULES, discover
from opsbridge.tools.registry import ToolRegistry

__all__ = [
    "ContentBlock",
    "ResultEnvelope",
    "ToolDefinition",
    "ToolHandler",
    "ToolRegistry",
    "TOOL_MODULES",
    "discover",
]
