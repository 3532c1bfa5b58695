"""
Transports for opsbridge.

Both transports feed the same ProtocolHandler:
    - stdio: one JSON-RPC message per line over stdin/stdout
    - sse: GET /sse event stream plus POST /messages (FastAPI)

The SSE transport is not imported here so that the stdio transport works
without loading the web stack.
"""

from opsbridge.transports.stdio import StdioTransport

__all__ = [
    "StdioTransport",
]
