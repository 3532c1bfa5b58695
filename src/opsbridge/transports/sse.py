"""
HTTP transport with Server-Sent Events.

Endpoints:
    GET  /sse                       Open the event stream. The first event
                                    ("endpoint") tells the client where to
                                    POST; responses follow as "message"
                                    events.
    POST /messages?session_id=<id>  Send one JSON-RPC message. Answered with
                                    202 right away; the JSON-RPC response is
                                    pushed onto the event stream.
    GET  /health                    Liveness and tool count.

Only one stream is tracked at a time (see ServerState). A POST while no
stream is open is rejected with 409 instead of being dropped.
"""

import asyncio
import json
import logging
from collections.abc import AsyncIterator
from typing import Any

from fastapi import BackgroundTasks, FastAPI, HTTPException, Request
from fastapi.responses import PlainTextResponse, StreamingResponse

from opsbridge import __version__
from opsbridge.errors import NoActiveSessionError, UnknownSessionError
from opsbridge.state import ServerState, SseSession

logger = logging.getLogger(__name__)

MESSAGES_PATH = "/messages"

# Idle time before a keepalive comment is sent
KEEPALIVE_SECONDS = 15.0

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # Disable nginx buffering
}


def format_event(event: str, data: str) -> str:
    """Format one SSE event."""
    return f"event: {event}\ndata: {data}\n\n"


async def event_stream(
    state: ServerState,
    session: SseSession,
    keepalive: float = KEEPALIVE_SECONDS,
) -> AsyncIterator[str]:
    """
    Generate the SSE frames of one session.

    Args:
        state: Server state the session belongs to
        session: The session whose queue is drained
        keepalive: Seconds of silence before a keepalive comment

    Yields:
        SSE formatted event strings
    """
    try:
        yield format_event("endpoint", f"{MESSAGES_PATH}?session_id={session.session_id}")

        while True:
            try:
                message = await asyncio.wait_for(session.queue.get(), timeout=keepalive)
            except asyncio.TimeoutError:
                yield ": keepalive\n\n"
                continue
            yield format_event("message", json.dumps(message))
    finally:
        state.close_session(session)


async def handle_and_push(state: ServerState, session: SseSession, message: Any) -> None:
    """Handle one client message and push the response onto the stream."""
    response = await state.protocol.handle(message)
    if response is not None:
        session.send(response)


def create_app(state: ServerState) -> FastAPI:
    """
    Create the FastAPI application for a server state.

    Args:
        state: Server state shared with every request

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title="opsbridge",
        description="Tool server over Server-Sent Events",
        version=__version__,
    )
    app.state.server = state

    @app.get("/sse")
    async def open_stream() -> StreamingResponse:
        session = state.open_session()
        logger.info("Event stream opened: %s", session.session_id)
        return StreamingResponse(
            event_stream(state, session),
            media_type="text/event-stream",
            headers=SSE_HEADERS,
        )

    @app.post(MESSAGES_PATH, status_code=202)
    async def post_message(
        request: Request,
        background_tasks: BackgroundTasks,
        session_id: str | None = None,
    ) -> PlainTextResponse:
        try:
            session = state.require_session(session_id)
        except NoActiveSessionError as e:
            logger.warning("Message rejected: %s", e.message)
            raise HTTPException(status_code=409, detail=e.message) from e
        except UnknownSessionError as e:
            logger.warning("Message rejected: %s", e.message)
            raise HTTPException(status_code=404, detail=e.message) from e

        try:
            message = await request.json()
        except ValueError as e:
            # JSONDecodeError and UnicodeDecodeError are both ValueErrors
            raise HTTPException(status_code=400, detail="Invalid JSON body") from e

        background_tasks.add_task(handle_and_push, state, session, message)
        return PlainTextResponse("Accepted", status_code=202)

    @app.get("/health")
    async def health() -> dict[str, Any]:
        return {
            "status": "ok",
            "version": __version__,
            "tools": len(state.registry),
        }

    return app
