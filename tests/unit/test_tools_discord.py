"""
Unit tests for the Discord tools.

Tests cover:
- Message formatting
- Lazy login and authentication
- Channel checks and message lookups
- Error envelopes for API failures

HTTP traffic goes to an in-memory fake of the Discord API mounted with
httpx.MockTransport.
"""

import json
from typing import Any

import httpx
import pytest

from opsbridge.config import Settings
from opsbridge.dispatcher import Dispatcher
from opsbridge.errors import ChatPlatformError, ConfigError
from opsbridge.schema import ToolCall
from opsbridge.tools.discord import (
    DEFAULT_MESSAGE_LIMIT,
    DiscordClient,
    format_message,
    register_tools,
)
from opsbridge.tools.registry import ToolRegistry


API_URL = "https://discord.test/api/v10"

MESSAGE = {
    "id": "1235000000000000001",
    "content": "Deployed v1.2.3",
    "timestamp": "2024-05-01T10:00:00+00:00",
    "author": {"id": "u1", "username": "deploy-bot", "discriminator": "0"},
    "embeds": [
        {
            "title": "Release",
            "description": "All green",
            "color": 5763719,
            "type": "rich",
            "provider": {"name": "ci"},
        }
    ],
    "pinned": False,
}


class FakeDiscord:
    """In-memory Discord API answering a handful of endpoints."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.token = "test-token"
        self.channels: dict[str, dict[str, Any]] = {
            "100": {"id": "100", "name": "dev-deploys", "type": 0},
            "200": {"id": "200", "name": "staging-deploys", "type": 0},
            "300": {"id": "300", "name": "prod-deploys", "type": 0},
        }
        self.messages: dict[str, list[dict[str, Any]]] = {"200": [MESSAGE]}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.headers.get("Authorization") != f"Bot {self.token}":
            return httpx.Response(401, json={"message": "401: Unauthorized", "code": 0})

        parts = request.url.path.removeprefix("/api/v10/").split("/")
        if parts == ["users", "@me"]:
            return httpx.Response(200, json={"id": "bot", "username": "opsbridge"})
        if parts[0] == "channels" and parts[1] in self.channels:
            channel_id = parts[1]
            if len(parts) == 2:
                return httpx.Response(200, json=self.channels[channel_id])
            messages = self.messages.get(channel_id, [])
            if len(parts) == 3:
                limit = int(request.url.params.get("limit", DEFAULT_MESSAGE_LIMIT))
                return httpx.Response(200, json=messages[:limit])
            for message in messages:
                if message["id"] == parts[3]:
                    return httpx.Response(200, json=message)
        return httpx.Response(404, json={"message": "Unknown Channel", "code": 10003})

    def paths(self) -> list[str]:
        return [request.url.path.removeprefix("/api/v10") for request in self.requests]


@pytest.fixture
def discord_api() -> FakeDiscord:
    return FakeDiscord()


@pytest.fixture
def discord_registry(settings: Settings, discord_api: FakeDiscord) -> ToolRegistry:
    registry = ToolRegistry()
    register_tools(registry, settings, transport=httpx.MockTransport(discord_api))
    return registry


async def call(registry: ToolRegistry, name: str, **arguments: Any) -> str:
    env = await Dispatcher(registry).dispatch(ToolCall(name=name, arguments=arguments))
    return env.text


# =============================================================================
# Formatting Tests
# =============================================================================


class TestFormatMessage:
    """Tests for format_message()."""

    def test_reduces_message(self) -> None:
        formatted = format_message(MESSAGE)
        assert formatted["content"] == "Deployed v1.2.3"
        assert formatted["author"] == "deploy-bot"
        assert formatted["timestamp"] == MESSAGE["timestamp"]
        assert formatted["id"] == "1235000000000000001"
        assert "pinned" not in formatted

    def test_embeds_are_trimmed(self) -> None:
        embed = format_message(MESSAGE)["embeds"][0]
        assert embed["title"] == "Release"
        assert embed["description"] == "All green"
        assert embed["footer"] is None
        assert "provider" not in embed

    def test_missing_author_and_embeds(self) -> None:
        formatted = format_message({"id": "m2", "content": "hi"})
        assert formatted["author"] is None
        assert formatted["embeds"] == []


# =============================================================================
# Client Tests
# =============================================================================


class TestDiscordClient:
    """Tests for DiscordClient."""

    @pytest.mark.asyncio
    async def test_login_is_lazy_and_once(self, discord_api: FakeDiscord) -> None:
        client = DiscordClient("test-token", API_URL, transport=httpx.MockTransport(discord_api))
        assert client.logged_in is False
        assert discord_api.requests == []

        await client.get_text_channel("100")
        await client.get_text_channel("200")
        assert client.logged_in is True
        assert discord_api.paths().count("/users/@me") == 1
        await client.aclose()
        assert client.logged_in is False

    @pytest.mark.asyncio
    async def test_bad_token(self, discord_api: FakeDiscord) -> None:
        client = DiscordClient("wrong", API_URL, transport=httpx.MockTransport(discord_api))
        with pytest.raises(ChatPlatformError) as exc_info:
            await client.login()
        assert exc_info.value.message == "Error logging in to Discord: 401 401: Unauthorized"
        assert exc_info.value.status_code == 401
        assert client.logged_in is False

    @pytest.mark.asyncio
    async def test_unreachable(self) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = DiscordClient("test-token", API_URL, transport=httpx.MockTransport(refuse))
        with pytest.raises(ChatPlatformError, match="Request to Discord failed"):
            await client.login()

    @pytest.mark.asyncio
    async def test_non_json_error_body(self) -> None:
        def bad_gateway(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="<html>bad gateway</html>")

        client = DiscordClient("test-token", API_URL, transport=httpx.MockTransport(bad_gateway))
        with pytest.raises(ChatPlatformError) as exc_info:
            await client.login()
        assert exc_info.value.message == "Error logging in to Discord: 502 Bad Gateway"

    @pytest.mark.asyncio
    async def test_voice_channel_rejected(self, discord_api: FakeDiscord) -> None:
        discord_api.channels["100"]["type"] = 2
        client = DiscordClient("test-token", API_URL, transport=httpx.MockTransport(discord_api))
        with pytest.raises(ChatPlatformError, match="not a text channel"):
            await client.get_text_channel("100")
        await client.aclose()


# =============================================================================
# Tool Tests
# =============================================================================


class TestMessageListTool:
    """Tests for getDiscordChannelMessageList."""

    @pytest.mark.asyncio
    async def test_lists_messages(self, discord_registry: ToolRegistry, discord_api: FakeDiscord) -> None:
        text = await call(discord_registry, "getDiscordChannelMessageList", channelType="staging")
        header, body = text.split("\n", 1)
        assert header == "Messages from staging-deploys:"
        assert json.loads(body) == [format_message(MESSAGE)]

    @pytest.mark.asyncio
    async def test_default_limit_sent(self, discord_registry: ToolRegistry, discord_api: FakeDiscord) -> None:
        await call(discord_registry, "getDiscordChannelMessageList", channelType="staging")
        last = discord_api.requests[-1]
        assert last.url.params["limit"] == str(DEFAULT_MESSAGE_LIMIT)

    @pytest.mark.asyncio
    async def test_explicit_limit(self, discord_registry: ToolRegistry, discord_api: FakeDiscord) -> None:
        await call(discord_registry, "getDiscordChannelMessageList", channelType="staging", limit=5)
        assert discord_api.requests[-1].url.params["limit"] == "5"

    @pytest.mark.asyncio
    async def test_channel_mapping(self, discord_registry: ToolRegistry, discord_api: FakeDiscord) -> None:
        """Each stage reads its configured channel."""
        await call(discord_registry, "getDiscordChannelMessageList", channelType="production")
        assert "/channels/300/messages" in discord_api.paths()

    @pytest.mark.asyncio
    async def test_empty_channel(self, discord_registry: ToolRegistry) -> None:
        text = await call(discord_registry, "getDiscordChannelMessageList", channelType="development")
        assert text == "Messages from dev-deploys:\n[]"

    @pytest.mark.asyncio
    async def test_unknown_stage_rejected(self, discord_registry: ToolRegistry, discord_api: FakeDiscord) -> None:
        text = await call(discord_registry, "getDiscordChannelMessageList", channelType="qa")
        assert text.startswith("Error: Invalid arguments")
        assert discord_api.requests == []

    @pytest.mark.asyncio
    async def test_missing_channel(self, discord_registry: ToolRegistry, discord_api: FakeDiscord) -> None:
        del discord_api.channels["200"]
        text = await call(discord_registry, "getDiscordChannelMessageList", channelType="staging")
        assert text == "Error getting messages from Discord: Channel not found or is not a text channel"

    @pytest.mark.asyncio
    async def test_login_failure(self, discord_registry: ToolRegistry, discord_api: FakeDiscord) -> None:
        discord_api.token = "rotated"
        text = await call(discord_registry, "getDiscordChannelMessageList", channelType="staging")
        assert text.startswith("Error getting messages from Discord: Error logging in to Discord")


class TestMessageTool:
    """Tests for getDiscordChannelMessage."""

    @pytest.mark.asyncio
    async def test_gets_message(self, discord_registry: ToolRegistry) -> None:
        text = await call(discord_registry, "getDiscordChannelMessage", channelType="staging", messageId=MESSAGE["id"])
        header, body = text.split("\n", 1)
        assert header == "Messages from staging-deploys:"
        assert json.loads(body) == [format_message(MESSAGE)]

    @pytest.mark.asyncio
    async def test_message_not_found(self, discord_registry: ToolRegistry) -> None:
        text = await call(
            discord_registry, "getDiscordChannelMessage", channelType="staging", messageId="1235000000000000999"
        )
        assert text == "Error getting messages from Discord: Message not found"

    @pytest.mark.asyncio
    async def test_non_numeric_id_not_requested(
        self, discord_registry: ToolRegistry, discord_api: FakeDiscord
    ) -> None:
        """Ids that are not Discord snowflakes never reach the API."""
        text = await call(discord_registry, "getDiscordChannelMessage", channelType="staging", messageId="zz")
        assert text == "Error getting messages from Discord: Message not found"
        assert all("/messages" not in path for path in discord_api.paths())

    @pytest.mark.asyncio
    async def test_non_ascii_content_kept(self, discord_registry: ToolRegistry, discord_api: FakeDiscord) -> None:
        """Accented text is rendered as is, not as \\u escapes."""
        discord_api.messages["200"] = [{**MESSAGE, "content": "Implantação concluída"}]
        text = await call(discord_registry, "getDiscordChannelMessage", channelType="staging", messageId=MESSAGE["id"])
        assert "Implantação concluída" in text
        assert "\\u00e7" not in text

    @pytest.mark.asyncio
    async def test_message_id_required(self, discord_registry: ToolRegistry) -> None:
        text = await call(discord_registry, "getDiscordChannelMessage", channelType="staging")
        assert "messageId: missing required field" in text


class TestRegistration:
    """Tests for register_tools()."""

    def test_registers_both_tools(self, discord_registry: ToolRegistry) -> None:
        assert discord_registry.list_tools() == ["getDiscordChannelMessageList", "getDiscordChannelMessage"]

    def test_limit_default_advertised(self, discord_registry: ToolRegistry) -> None:
        schema = discord_registry.get("getDiscordChannelMessageList").describe()["inputSchema"]
        assert schema["properties"]["limit"]["default"] == DEFAULT_MESSAGE_LIMIT
        assert schema["required"] == ["channelType"]

    def test_requires_every_variable(self, settings: Settings) -> None:
        partial = settings.model_copy(update={"discord_staging_channel_id": None})
        with pytest.raises(ConfigError) as exc_info:
            register_tools(ToolRegistry(), partial)
        assert exc_info.value.missing == ["DISCORD_STAGING_CHANNEL_ID"]
