"""
Azure Container Apps tools.

This module provides tools backed by the Azure CLI (az):
- getAzureContainerAppLogs: Fetch the console logs of every replica of a
  Container App

The CLI must be installed and logged in; the tool only drives it. Name
lookups are fuzzy: the app name given by the caller is matched as a
case-insensitive substring of the real app name, and so is the
subscription name.
"""

import json
import logging
from collections.abc import Mapping
from typing import Any

from opsbridge.config import Settings
from opsbridge.errors import CommandError
from opsbridge.schema import FieldSchema, boolean, number, string
from opsbridge.tools.base import ResultEnvelope
from opsbridge.tools.registry import ToolRegistry
from opsbridge.tools.shell import CommandRunner

logger = logging.getLogger(__name__)


LOGS_SCHEMA: FieldSchema = {
    "containerAppName": string("Name of the Container App (case-insensitive, partial match)"),
    "revision": string("Specific Container App revision", optional=True),
    "tail": number("Number of log lines to return per replica", optional=True),
    "follow": boolean("Stream logs in real time", optional=True),
    "search": string("Only keep log lines containing this text", optional=True),
    "subscription": string("Azure subscription name to switch to first (partial match)", optional=True),
}


def _quote_jmespath(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")


def _format_tail(tail: float) -> str:
    if isinstance(tail, float) and tail.is_integer():
        return str(int(tail))
    return str(tail)


def build_logs_command(
    az: str,
    resource_group: str,
    container_app_name: str,
    replica: str | None = None,
    revision: str | None = None,
    tail: float | None = None,
    follow: bool | None = None,
) -> list[str]:
    """
    Build the 'az containerapp logs show' command line.

    Args:
        az: Path or name of the az executable
        resource_group: Resource group of the app
        container_app_name: Exact app name
        replica: Replica to read logs from
        revision: Revision to read logs from
        tail: Number of lines to return
        follow: Keep streaming

    Returns:
        Command as a list of arguments
    """
    cmd = [
        az, "containerapp", "logs", "show",
        "--name", container_app_name,
        "--resource-group", resource_group,
    ]
    if replica:
        cmd += ["--replica", replica]
    if revision:
        cmd += ["--revision", revision]
    if tail:
        cmd += ["--tail", _format_tail(tail)]
    if follow:
        cmd.append("--follow")
    return cmd


class AzureCli:
    """
    Thin async wrapper around the az commands the log tool needs.

    Every lookup fails with CommandError when az exits non-zero or writes
    anything to stderr.
    """

    def __init__(self, runner: CommandRunner, az: str = "az") -> None:
        self.runner = runner
        self.az = az

    async def _checked(self, args: list[str], step: str, prefix: str | None = None) -> str:
        cmd = [self.az, *args]
        result = await self.runner.run(cmd)
        if not result.success or result.stderr:
            stderr = result.stderr.strip() or f"exit status {result.return_code}"
            label = prefix or f"Error on {step}"
            raise CommandError(
                command=cmd,
                stderr=result.stderr,
                return_code=result.return_code,
                message=f"{label}: {stderr}",
            )
        return result.stdout

    async def change_subscription(self, subscription: str) -> str:
        """
        Switch the active subscription to the first whose name contains
        the given text.

        Returns:
            The id of the selected subscription
        """
        stdout = await self._checked(["account", "list", "--output", "json"], "list subscriptions")
        accounts = json.loads(stdout)

        wanted = subscription.lower()
        match = next(
            (account for account in accounts if wanted in str(account.get("name", "")).lower()),
            None,
        )
        if match is None:
            raise CommandError(message=f"Subscription {subscription} not found")

        await self._checked(["account", "set", "--subscription", match["id"]], "change subscription")
        logger.info("Switched Azure subscription to %s", match.get("name"))
        return match["id"]

    async def get_container_app_name(self, container_app_name: str) -> str:
        """Resolve a partial app name to the first matching real name."""
        query = f"[?contains(name, '{_quote_jmespath(container_app_name.lower())}')].name"
        stdout = await self._checked(
            ["containerapp", "list", "--query", query, "-o", "tsv"],
            "get container app name",
        )
        names = [line.strip() for line in stdout.splitlines() if line.strip()]
        if not names:
            raise CommandError(message=f"Container App {container_app_name} not found")
        if len(names) > 1:
            logger.info("Several Container Apps match %s, using %s", container_app_name, names[0])
        return names[0]

    async def get_resource_group(self, container_app_name: str) -> str:
        """Return the resource group that holds the app."""
        query = f"[?name=='{_quote_jmespath(container_app_name)}'].resourceGroup"
        stdout = await self._checked(
            ["containerapp", "list", "--query", query, "-o", "tsv"],
            "get resource group",
        )
        return stdout.strip()

    async def get_replica_names(
        self,
        resource_group: str,
        container_app_name: str,
        revision: str | None = None,
    ) -> list[str]:
        """List the replica names of the app, optionally for one revision."""
        args = [
            "containerapp", "replica", "list",
            "--name", container_app_name,
            "--resource-group", resource_group,
        ]
        if revision:
            args += ["--revision", revision]
        args += ["--output", "json"]

        stdout = await self._checked(args, "list replicas", prefix="Error executing the command")
        return [replica["name"] for replica in json.loads(stdout)]


class AzureLogsTool:
    """
    Fetch Container App logs across all replicas.

    Returns:
        On success: "Logs of the Container App <app>:" followed by one
        section per replica
        On failure: "Error executing the command: <reason>"
    """

    name = "getAzureContainerAppLogs"
    description = "Fetch the console logs of every replica of an Azure Container App"

    def __init__(self, cli: AzureCli) -> None:
        self.cli = cli

    async def __call__(self, args: Mapping[str, Any]) -> ResultEnvelope:
        try:
            text = await self.collect_logs(**args)
        except CommandError as e:
            return ResultEnvelope.fail(e.message, prefix="Error executing the command")
        except (json.JSONDecodeError, KeyError, TypeError) as e:
            return ResultEnvelope.fail(f"Unexpected az output: {e}", prefix="Error executing the command")
        return ResultEnvelope.ok(text)

    async def collect_logs(
        self,
        containerAppName: str,
        revision: str | None = None,
        tail: float | None = None,
        follow: bool | None = None,
        search: str | None = None,
        subscription: str | None = None,
    ) -> str:
        """Run the lookup chain and gather the logs of every replica."""
        if subscription:
            await self.cli.change_subscription(subscription)

        app_name = await self.cli.get_container_app_name(containerAppName)
        resource_group = await self.cli.get_resource_group(app_name)
        replicas = await self.cli.get_replica_names(resource_group, app_name, revision)

        sections = []
        for replica in replicas:
            cmd = build_logs_command(
                self.cli.az,
                resource_group,
                app_name,
                replica=replica,
                revision=revision,
                tail=tail,
                follow=follow,
            )
            result = await self.cli.runner.run(cmd)
            if not result.success:
                raise CommandError(
                    command=cmd,
                    stderr=result.stderr,
                    return_code=result.return_code,
                )

            logs = f"\n{result.stderr or result.stdout}\n"
            if search:
                logs = "\n".join(line for line in logs.split("\n") if search in line)

            sections.append(f"\n=== Logs of replica: {replica} ===\n{logs}")

        return f"Logs of the Container App {app_name}:\n{''.join(sections)}"


def register_tools(registry: ToolRegistry, settings: Settings, runner: CommandRunner | None = None) -> None:
    """Register the Azure tools."""
    tool = AzureLogsTool(AzureCli(runner or CommandRunner(), az=settings.az_executable))
    registry.register(tool.name, LOGS_SCHEMA, tool.__call__, description=tool.description)
