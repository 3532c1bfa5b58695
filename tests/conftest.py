"""
Pytest configuration and fixtures for opsbridge tests.

This module provides shared fixtures used across unit and integration
tests: settings that never read the developer's .env file, and a registry
holding a small set of in-memory tools.
"""

import asyncio
from collections.abc import Mapping
from typing import Any

import pytest

from opsbridge.config import Settings
from opsbridge.dispatcher import Dispatcher
from opsbridge.protocol import ProtocolHandler
from opsbridge.schema import FieldSchema, enum, number, string
from opsbridge.state import ServerState
from opsbridge.tools.base import ResultEnvelope
from opsbridge.tools.registry import ToolRegistry


ECHO_SCHEMA: FieldSchema = {"msg": string("Message to echo back")}

SLEEP_SCHEMA: FieldSchema = {
    "seconds": number("How long to sleep"),
    "label": string("Text to return once done"),
}

COLOR_SCHEMA: FieldSchema = {
    "color": enum(["red", "green"], "A color"),
    "shade": number("Shade", optional=True),
}


async def echo(args: Mapping[str, Any]) -> ResultEnvelope:
    return ResultEnvelope.ok(f"echo: {args['msg']}")


async def sleep_then_answer(args: Mapping[str, Any]) -> ResultEnvelope:
    await asyncio.sleep(args["seconds"])
    return ResultEnvelope.ok(args["label"])


async def explode(args: Mapping[str, Any]) -> ResultEnvelope:
    raise RuntimeError("boom")


async def pick_color(args: Mapping[str, Any]) -> ResultEnvelope:
    return ResultEnvelope.ok(f"{args['color']} {args.get('shade', 'plain')}")


@pytest.fixture
def settings() -> Settings:
    """Settings with every Discord variable set and no .env lookup."""
    return Settings(
        _env_file=None,
        discord_token="test-token",
        discord_development_channel_id="100",
        discord_staging_channel_id="200",
        discord_production_channel_id="300",
        discord_api_url="https://discord.test/api/v10",
    )


@pytest.fixture
def registry() -> ToolRegistry:
    """Registry with echo, sleep, explode and color tools."""
    reg = ToolRegistry()
    reg.register("echo", ECHO_SCHEMA, echo, description="Echo a message")
    reg.register("sleep", SLEEP_SCHEMA, sleep_then_answer, description="Sleep, then answer")
    reg.register("explode", {}, explode, description="Always raises")
    reg.register("color", COLOR_SCHEMA, pick_color, description="Pick a color")
    return reg


@pytest.fixture
def dispatcher(registry: ToolRegistry) -> Dispatcher:
    """Dispatcher over the test registry."""
    return Dispatcher(registry)


@pytest.fixture
def protocol(registry: ToolRegistry, dispatcher: Dispatcher) -> ProtocolHandler:
    """Protocol handler over the test registry."""
    return ProtocolHandler(registry, dispatcher)


@pytest.fixture
def state(settings: Settings, registry: ToolRegistry) -> ServerState:
    """Server state over the test registry."""
    return ServerState(settings, registry)
