"""
Logging setup for opsbridge.

Log records go to stderr through a Rich handler. stdout belongs to the stdio
transport and must only ever carry protocol messages.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler

# Rich console bound to stderr for log output
stderr_console = Console(stderr=True)


def configure_logging(level: str | int = "INFO", console: Console | None = None) -> None:
    """
    Install a Rich handler on the root logger.

    Calling this again replaces the previous handler, so the level can be
    changed after startup.

    Args:
        level: Logging level name or number
        console: Console to write to (defaults to the stderr console)
    """
    if isinstance(level, str):
        level = level.upper()

    handler = RichHandler(
        console=console or stderr_console,
        show_path=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))

    root = logging.getLogger()
    for existing in list(root.handlers):
        if isinstance(existing, RichHandler):
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
