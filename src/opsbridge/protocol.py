"""
Protocol handler shared by both transports.

A transport hands every decoded message to ProtocolHandler.handle() and
sends back whatever it returns. This keeps the result envelope identical no
matter which transport carried the request.

Supported methods:
    - initialize            -> server info and capabilities
    - ping                  -> empty result
    - tools/list            -> registered tools with their input schemas
    - tools/call            -> result envelope of one tool call
    - notifications/*       -> no response

Messages without an id are notifications and never get a response.
"""

import json
import logging
from typing import Any

from opsbridge import __version__
from opsbridge.dispatcher import Dispatcher
from opsbridge.jsonrpc import (
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    jsonrpc_error,
    jsonrpc_response,
)
from opsbridge.schema import ToolCall
from opsbridge.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

SERVER_NAME = "opsbridge"
DEFAULT_PROTOCOL_VERSION = "2024-11-05"


class ProtocolHandler:
    """
    Maps JSON-RPC messages onto registry and dispatcher operations.

    Attributes:
        registry: Source of capability advertisement
        dispatcher: Executes tools/call requests
    """

    def __init__(self, registry: ToolRegistry, dispatcher: Dispatcher) -> None:
        self.registry = registry
        self.dispatcher = dispatcher

    async def handle_line(self, line: str) -> dict | None:
        """
        Decode one line of JSON and handle it.

        Args:
            line: Raw JSON text of a single message

        Returns:
            The response dict, or None for notifications
        """
        try:
            message = json.loads(line)
        except json.JSONDecodeError as e:
            return jsonrpc_error(None, PARSE_ERROR, f"Parse error: {e}")
        return await self.handle(message)

    async def handle(self, message: Any) -> dict | None:
        """
        Handle one decoded JSON-RPC message.

        Args:
            message: The decoded message

        Returns:
            The response dict, or None for notifications
        """
        if not isinstance(message, dict) or not isinstance(message.get("method"), str):
            request_id = message.get("id") if isinstance(message, dict) else None
            return jsonrpc_error(request_id, INVALID_REQUEST, "Invalid request")

        method = message["method"]
        if "id" not in message:
            logger.debug("Notification: %s", method)
            return None

        request_id = message["id"]
        params = message.get("params") or {}

        if method == "initialize":
            return jsonrpc_response(request_id, self._initialize(params))
        if method == "ping":
            return jsonrpc_response(request_id, {})
        if method == "tools/list":
            return jsonrpc_response(request_id, {"tools": self.registry.describe()})
        if method == "tools/call":
            return await self._call_tool(request_id, params)

        return jsonrpc_error(request_id, METHOD_NOT_FOUND, f"Method not found: {method}")

    def _initialize(self, params: Any) -> dict:
        requested = params.get("protocolVersion") if isinstance(params, dict) else None
        return {
            "protocolVersion": requested or DEFAULT_PROTOCOL_VERSION,
            "serverInfo": {"name": SERVER_NAME, "version": __version__},
            "capabilities": {"tools": {"listChanged": False}},
        }

    async def _call_tool(self, request_id: Any, params: Any) -> dict:
        if not isinstance(params, dict) or not isinstance(params.get("name"), str):
            return jsonrpc_error(request_id, INVALID_PARAMS, "tools/call requires a string 'name'")

        arguments = params.get("arguments")
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            return jsonrpc_error(request_id, INVALID_PARAMS, "tools/call 'arguments' must be an object")

        envelope = await self.dispatcher.dispatch(ToolCall(name=params["name"], arguments=arguments))
        return jsonrpc_response(request_id, envelope.to_wire())
