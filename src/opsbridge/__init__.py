"""
opsbridge - Operations tools for agents over a JSON-RPC tool protocol.

opsbridge exposes a small set of tools to tool-calling agents:
- Azure Container App logs, fetched through the Azure CLI
- Discord deployment-channel messages, fetched through the Discord API

Every tool declares an input schema, every call is validated against it,
and every result comes back as a uniform text envelope. The same tools are
reachable over two transports: stdio (one JSON message per line) and
HTTP with Server-Sent Events.

Example usage:
    $ opsbridge serve
    $ opsbridge serve sse --port 8765
    $ opsbridge tools
"""

__version__ = "0.1.0"

__all__ = [
    "__version__",
]
