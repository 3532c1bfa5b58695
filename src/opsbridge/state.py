"""
Server state shared by the transports.

ServerState owns everything a running server needs: the tool registry, the
dispatcher, the protocol handler, and the single event-stream session of
the HTTP transport. It is built once at startup and handed to whichever
transport serves the process.

Session model:
    At most one SSE session is tracked. Opening a stream replaces the
    current session; the displaced client keeps its connection but no
    longer receives pushes. This is a single-client server.
"""

import asyncio
import logging
import uuid
from collections.abc import Sequence
from typing import Any

from opsbridge.config import Settings
from opsbridge.dispatcher import Dispatcher
from opsbridge.errors import NoActiveSessionError, UnknownSessionError
from opsbridge.protocol import ProtocolHandler
from opsbridge.tools.discovery import TOOL_MODULES, discover
from opsbridge.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


class SseSession:
    """
    One open event stream.

    Attributes:
        session_id: Identity the client tags its POSTs with
        queue: Outbound messages waiting to be pushed
    """

    def __init__(self, session_id: str | None = None) -> None:
        self.session_id = session_id or uuid.uuid4().hex
        self.queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue()

    def send(self, message: dict[str, Any]) -> None:
        """Queue a message for the stream."""
        self.queue.put_nowait(message)

    def __repr__(self) -> str:
        return f"<SseSession: {self.session_id}>"


class ServerState:
    """
    Registry, dispatcher, protocol handler and current session.

    Usage:
        state = ServerState.from_settings(Settings())
        response = await state.protocol.handle(message)

    Attributes:
        settings: Application settings
        registry: Registered tools
        dispatcher: Executes tool calls
        protocol: Handles JSON-RPC messages
        session: The current SSE session, if any
    """

    def __init__(self, settings: Settings, registry: ToolRegistry) -> None:
        self.settings = settings
        self.registry = registry
        self.dispatcher = Dispatcher(registry)
        self.protocol = ProtocolHandler(registry, self.dispatcher)
        self.session: SseSession | None = None

    @classmethod
    def from_settings(cls, settings: Settings, modules: Sequence[str] = TOOL_MODULES) -> "ServerState":
        """
        Build the state and run tool discovery.

        Raises:
            ToolDiscoveryError: If any tool module fails to load
        """
        registry = discover(ToolRegistry(), settings, modules)
        return cls(settings, registry)

    def open_session(self) -> SseSession:
        """Start a new session, replacing the current one."""
        session = SseSession()
        if self.session is not None:
            logger.warning(
                "New event stream %s replaces session %s",
                session.session_id,
                self.session.session_id,
            )
        self.session = session
        return session

    def close_session(self, session: SseSession) -> None:
        """Forget a session, unless it has already been replaced."""
        if self.session is session:
            self.session = None
            logger.info("Event stream %s closed", session.session_id)

    def require_session(self, session_id: str | None = None) -> SseSession:
        """
        Return the session a client message belongs to.

        Args:
            session_id: Session the client tagged its message with

        Raises:
            NoActiveSessionError: If no stream is open
            UnknownSessionError: If the tag names another session
        """
        if self.session is None:
            raise NoActiveSessionError()
        if session_id is not None and session_id != self.session.session_id:
            raise UnknownSessionError(session_id=session_id)
        return self.session
