"""
Command execution for tools that shell out.

This module provides the async command runner used by CLI-backed tools
such as the Azure log tool.

Security Note:
    Commands are always passed as a list of arguments and executed
    without a shell. Tool arguments end up inside command lines (app
    names, search strings, revisions), so they must never go through shell
    parsing:
        ["az", "containerapp", "list", "--query", "[?name=='x; rm -rf /']"]
    is one harmless --query value, not two commands.
"""

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass

from opsbridge.errors import CommandError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandResult:
    """
    Outcome of a finished command.

    Attributes:
        stdout: Decoded standard output
        stderr: Decoded standard error
        return_code: Process exit status
    """

    stdout: str
    stderr: str
    return_code: int

    @property
    def success(self) -> bool:
        """Whether the command exited with status 0."""
        return self.return_code == 0


def _decode(data: bytes) -> str:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        return data.decode("utf-8", errors="replace")


class CommandRunner:
    """
    Runs external commands without a shell.

    Tools take a runner in their constructor so tests can substitute a fake
    that records commands and returns canned output.
    """

    async def run(self, cmd: Sequence[str]) -> CommandResult:
        """
        Run a command to completion.

        Args:
            cmd: Executable followed by its arguments

        Returns:
            CommandResult with decoded output and exit status

        Raises:
            CommandError: If the executable cannot be started
        """
        cmd = list(cmd)
        if not cmd:
            msg = "Command cannot be empty"
            raise ValueError(msg)

        logger.debug("Running command: %s", cmd)
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError:
            raise CommandError(command=cmd, message=f"Executable not found: {cmd[0]}") from None
        except PermissionError:
            raise CommandError(command=cmd, message=f"Permission denied executing: {cmd[0]}") from None

        stdout, stderr = await process.communicate()
        return CommandResult(
            stdout=_decode(stdout),
            stderr=_decode(stderr),
            return_code=process.returncode if process.returncode is not None else -1,
        )
