"""
Tool dispatcher for opsbridge.

The dispatcher turns a ToolCall into a ResultEnvelope. It is the single
place where lookup, validation and invocation meet, and it never raises for
anything a client sends or a handler does.

Dispatch Flow:
    1. Look up the tool; unknown names produce an error envelope
    2. Validate arguments; issues produce an error envelope listing them
    3. Invoke the handler once with the validated arguments
    4. Return the handler's envelope, or a generic error envelope if the
       handler raised or returned something else

Each call is independent: the dispatcher holds no per-call state and does
not retry, time out or cancel handlers.
"""

import logging

from opsbridge.errors import HandlerFaultError, ToolNotFoundError, ToolValidationError
from opsbridge.schema import ToolCall
from opsbridge.tools.base import ResultEnvelope
from opsbridge.tools.registry import ToolRegistry
from opsbridge.validation import validate

logger = logging.getLogger(__name__)


def format_unknown_tool(error: ToolNotFoundError) -> str:
    """Render an unknown-tool error as envelope text."""
    available = ", ".join(error.available) or "none"
    return f"{error.message}. Available tools: {available}"


def format_validation_error(error: ToolValidationError) -> str:
    """Render a validation error as envelope text, one issue per line."""
    lines = [error.message]
    lines.extend(f"  - {issue}" for issue in error.issues)
    return "\n".join(lines)


class Dispatcher:
    """
    Routes tool calls to registered handlers.

    Usage:
        dispatcher = Dispatcher(registry)
        envelope = await dispatcher.dispatch(ToolCall(name="echo", arguments={"msg": "hi"}))

    Attributes:
        registry: The registry tools are looked up in
    """

    def __init__(self, registry: ToolRegistry) -> None:
        self.registry = registry

    async def dispatch(self, call: ToolCall) -> ResultEnvelope:
        """
        Execute a single tool call.

        Args:
            call: Tool name and raw arguments

        Returns:
            The handler's envelope, or an error envelope for unknown tools,
            invalid arguments and handler faults
        """
        try:
            definition = self.registry.get(call.name)
        except ToolNotFoundError as e:
            logger.warning("Call to unknown tool: %s", call.name)
            return ResultEnvelope.fail(format_unknown_tool(e))

        result = validate(definition.schema, call.arguments)
        if not result.ok:
            error = ToolValidationError(
                tool=call.name,
                issues=[str(issue) for issue in result.issues],
            )
            logger.info("Rejected call to %s: %d invalid argument(s)", call.name, len(result.issues))
            return ResultEnvelope.fail(format_validation_error(error))

        logger.debug("Invoking tool %s", call.name)
        try:
            envelope = await definition.handler(result.value)
        except Exception as e:
            fault = HandlerFaultError(tool=call.name, underlying_error=f"{type(e).__name__}: {e}")
            logger.exception("Tool %s raised an unexpected error", call.name)
            return ResultEnvelope.fail(fault.message)

        if not isinstance(envelope, ResultEnvelope):
            fault = HandlerFaultError(
                tool=call.name,
                underlying_error=f"handler returned {type(envelope).__name__}, not a result envelope",
            )
            logger.error(fault.message)
            return ResultEnvelope.fail(fault.message)

        logger.debug("Tool %s completed (error=%s)", call.name, envelope.is_error)
        return envelope
