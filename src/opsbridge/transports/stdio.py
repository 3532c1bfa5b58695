"""
Line-oriented stdio transport.

Protocol:
    - One JSON-RPC message per line on stdin
    - One JSON-RPC response per line on stdout
    - Notifications (no id) get no response line

Requests are handled strictly one at a time: the next line is not read
until the response to the current one has been written and flushed, so
responses come out in the order requests went in.
"""

import asyncio
import json
import logging
import sys
from typing import TextIO

from opsbridge.jsonrpc import PARSE_ERROR, jsonrpc_error
from opsbridge.protocol import ProtocolHandler

logger = logging.getLogger(__name__)


class StdioTransport:
    """
    Serves a ProtocolHandler over a pair of text streams.

    Attributes:
        protocol: Handles each decoded message
        stdin: Stream requests are read from
        stdout: Stream responses are written to
    """

    def __init__(
        self,
        protocol: ProtocolHandler,
        stdin: TextIO | None = None,
        stdout: TextIO | None = None,
    ) -> None:
        self.protocol = protocol
        self.stdin = stdin or sys.stdin
        self.stdout = stdout or sys.stdout

    async def serve(self) -> int:
        """
        Read requests until stdin is closed.

        Returns:
            Number of responses written
        """
        logger.info("Serving over stdio")
        written = 0

        while True:
            # Blocking read off the event loop so handlers keep running
            raw = await asyncio.to_thread(self._readline)
            if not raw:
                break

            try:
                line = raw.decode("utf-8") if isinstance(raw, bytes) else raw
            except UnicodeDecodeError as e:
                logger.warning("Dropping undecodable stdin line: %s", e)
                self._write(jsonrpc_error(None, PARSE_ERROR, f"Parse error: {e}"))
                written += 1
                continue

            line = line.strip()
            if not line:
                continue

            response = await self.protocol.handle_line(line)
            if response is None:
                continue

            self._write(response)
            written += 1

        logger.info("stdin closed, stopping after %d responses", written)
        return written

    def _readline(self) -> str | bytes:
        # Raw bytes when available, so one bad line cannot break the text decoder
        stream = getattr(self.stdin, "buffer", self.stdin)
        return stream.readline()

    def _write(self, response: dict) -> None:
        self.stdout.write(json.dumps(response) + "\n")
        self.stdout.flush()
