"""
Exception hierarchy for opsbridge.

All opsbridge exceptions inherit from OpsBridgeError, allowing callers to
catch every opsbridge-specific exception with a single except clause.

Exception Categories:
    - Tool errors: unknown tools, invalid arguments, handler faults,
      duplicate registrations
    - Startup errors: missing configuration, failed tool discovery
    - External errors: cloud CLI and chat platform failures
    - Transport errors: SSE session bookkeeping

Tool errors and external errors never reach a client as exceptions. The
dispatcher and the tool handlers turn them into text envelopes. Startup
errors are fatal and stop the process before any transport is served.
"""

from dataclasses import dataclass, field
from typing import Any


# =============================================================================
# Error Codes
# =============================================================================

# Tool errors: 2xxx
ERROR_TOOL_NOT_FOUND = 2001
ERROR_TOOL_INVALID_ARGS = 2002
ERROR_TOOL_HANDLER_FAULT = 2003
ERROR_TOOL_DUPLICATE = 2004

# Startup errors: 3xxx
ERROR_CONFIG_MISSING = 3001
ERROR_DISCOVERY_FAILED = 3002

# External errors: 4xxx
ERROR_COMMAND_FAILED = 4001
ERROR_CHAT_PLATFORM = 4002

# Transport errors: 5xxx
ERROR_NO_ACTIVE_SESSION = 5001
ERROR_UNKNOWN_SESSION = 5002


# =============================================================================
# Base Exception
# =============================================================================


@dataclass
class OpsBridgeError(Exception):
    """
    Base exception for all opsbridge errors.

    Attributes:
        message: Human-readable error description
        code: Numeric error code for programmatic handling
        suggestion: Optional hint for how to resolve the error
        context: Optional dict with additional debugging info
    """

    message: str = ""
    code: int = 0
    suggestion: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        """Format error for display."""
        parts = [f"[E{self.code}] {self.message}"]
        if self.suggestion:
            parts.append(f"\nSuggestion: {self.suggestion}")
        return "".join(parts)

    def __repr__(self) -> str:
        """Format error for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code}, "
            f"context={self.context!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "suggestion": self.suggestion,
            "context": self.context,
        }


# =============================================================================
# Tool Errors
# =============================================================================


@dataclass
class ToolError(OpsBridgeError):
    """
    Base class for tool registration and dispatch errors.

    Attributes:
        tool: Name of the tool involved
    """

    tool: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        self.context["tool"] = self.tool


@dataclass
class ToolNotFoundError(ToolError):
    """Raised when a tool is not registered."""

    available: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Unknown tool '{self.tool}'"
        if self.code == 0:
            self.code = ERROR_TOOL_NOT_FOUND
        if not self.suggestion:
            self.suggestion = "Call tools/list to see the registered tools"
        super().__post_init__()
        self.context["available"] = self.available


@dataclass
class ToolValidationError(ToolError):
    """
    Raised when tool arguments do not match the tool's schema.

    Attributes:
        issues: Readable descriptions of every validation issue
    """

    issues: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Invalid arguments for tool '{self.tool}'"
        if self.code == 0:
            self.code = ERROR_TOOL_INVALID_ARGS
        super().__post_init__()
        self.context["issues"] = self.issues


@dataclass
class HandlerFaultError(ToolError):
    """Raised when a tool handler fails in a way it did not report itself."""

    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Tool '{self.tool}' failed unexpectedly: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_TOOL_HANDLER_FAULT
        super().__post_init__()
        self.context["underlying_error"] = self.underlying_error


@dataclass
class DuplicateToolError(ToolError):
    """Raised when a tool name is registered twice."""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Tool already registered: {self.tool}"
        if self.code == 0:
            self.code = ERROR_TOOL_DUPLICATE
        if not self.suggestion:
            self.suggestion = "Tool names must be unique across all tool modules"
        super().__post_init__()


# =============================================================================
# Startup Errors
# =============================================================================


@dataclass
class ConfigError(OpsBridgeError):
    """
    Raised when required configuration is missing.

    Attributes:
        missing: Names of the environment variables that are not set
    """

    missing: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Missing required environment variables: {', '.join(self.missing)}"
        if self.code == 0:
            self.code = ERROR_CONFIG_MISSING
        if not self.suggestion:
            self.suggestion = "Set the variables in the environment or in a .env file"
        self.context["missing"] = self.missing


@dataclass
class ToolDiscoveryError(OpsBridgeError):
    """Raised when a tool module fails to load or register its tools."""

    module: str = ""
    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Failed to load tool module {self.module}: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_DISCOVERY_FAILED
        self.context.update({
            "module": self.module,
            "underlying_error": self.underlying_error,
        })


# =============================================================================
# External Errors
# =============================================================================


@dataclass
class CommandError(OpsBridgeError):
    """Raised when an external command fails."""

    command: list[str] = field(default_factory=list)
    stderr: str = ""
    return_code: int | None = None

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = self.stderr.strip() or f"Command failed: {' '.join(self.command)}"
        if self.code == 0:
            self.code = ERROR_COMMAND_FAILED
        self.context.update({
            "command": self.command,
            "return_code": self.return_code,
        })

    def __str__(self) -> str:
        return self.message


@dataclass
class ChatPlatformError(OpsBridgeError):
    """Raised when the chat platform API rejects or fails a request."""

    status_code: int | None = None

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if self.code == 0:
            self.code = ERROR_CHAT_PLATFORM
        self.context["status_code"] = self.status_code

    def __str__(self) -> str:
        return self.message


# =============================================================================
# Transport Errors
# =============================================================================


@dataclass
class NoActiveSessionError(OpsBridgeError):
    """Raised when a client message arrives while no event stream is open."""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = "No active session"
        if self.code == 0:
            self.code = ERROR_NO_ACTIVE_SESSION
        if not self.suggestion:
            self.suggestion = "Open the event stream with GET /sse before posting messages"


@dataclass
class UnknownSessionError(OpsBridgeError):
    """Raised when a client message names a session that is not the current one."""

    session_id: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Unknown session: {self.session_id}"
        if self.code == 0:
            self.code = ERROR_UNKNOWN_SESSION
        self.context["session_id"] = self.session_id
