"""
Discord tools.

This module provides read-only tools over the Discord REST API:
- getDiscordChannelMessageList: Recent messages of a deployment channel
- getDiscordChannelMessage: One message of a deployment channel by id

Channels are addressed by deployment stage (development, staging,
production); the stage-to-channel mapping comes from the environment.

The client logs in lazily on first use. Two calls racing on the first
login may both log in; the loser's HTTP client is closed and the winner's
is kept.
"""

import json
import logging
from collections.abc import Mapping
from typing import Any

import httpx

from opsbridge.config import Settings
from opsbridge.errors import ChatPlatformError
from opsbridge.schema import FieldSchema, enum, number, string
from opsbridge.tools.base import ResultEnvelope
from opsbridge.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


CHANNEL_TYPES = ("development", "staging", "production")

# Discord channel type id of a guild text channel
GUILD_TEXT = 0

DEFAULT_MESSAGE_LIMIT = 50

EMBED_KEYS = (
    "title",
    "description",
    "url",
    "color",
    "fields",
    "author",
    "footer",
    "image",
    "thumbnail",
    "timestamp",
)

_channel_field = enum(
    CHANNEL_TYPES,
    "Discord channel to read, one of: development, staging, production",
)

MESSAGE_LIST_SCHEMA: FieldSchema = {
    "limit": number(
        f"Number of messages to return (optional, default: {DEFAULT_MESSAGE_LIMIT})",
        optional=True,
        default=DEFAULT_MESSAGE_LIMIT,
    ),
    "channelType": _channel_field,
}

MESSAGE_SCHEMA: FieldSchema = {
    "messageId": string("ID of the message to return"),
    "channelType": _channel_field,
}


def is_snowflake(value: str) -> bool:
    """Whether a value is a Discord id (ASCII digits only)."""
    return value.isascii() and value.isdigit()


def format_message(message: dict[str, Any]) -> dict[str, Any]:
    """
    Reduce a Discord message object to the fields the tools report.

    Args:
        message: Message object as returned by the Discord API

    Returns:
        Dict with content, author, timestamp, id and trimmed embeds
    """
    return {
        "content": message.get("content", ""),
        "author": (message.get("author") or {}).get("username"),
        "timestamp": message.get("timestamp"),
        "id": message.get("id"),
        "embeds": [
            {key: embed.get(key) for key in EMBED_KEYS}
            for embed in message.get("embeds") or []
        ],
    }


class DiscordClient:
    """
    Minimal async Discord REST client authenticated as a bot.

    Attributes:
        token: Bot token
        api_url: Base URL of the Discord API
    """

    def __init__(
        self,
        token: str,
        api_url: str = "https://discord.com/api/v10",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.token = token
        self.api_url = api_url
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def logged_in(self) -> bool:
        """Whether the client has completed its login."""
        return self._client is not None

    async def login(self) -> httpx.AsyncClient:
        """
        Verify the token and keep an authenticated HTTP client.

        Returns:
            The logged-in HTTP client

        Raises:
            ChatPlatformError: If the token is rejected or Discord is
                unreachable
        """
        if self._client is not None:
            return self._client

        client = httpx.AsyncClient(
            base_url=self.api_url,
            headers={"Authorization": f"Bot {self.token}"},
            transport=self._transport,
        )
        try:
            user = await self._request(client, "GET", "/users/@me")
        except ChatPlatformError as e:
            await client.aclose()
            raise ChatPlatformError(
                message=f"Error logging in to Discord: {e.message}",
                status_code=e.status_code,
            ) from e

        if self._client is None:
            self._client = client
            logger.info("Logged in to Discord as %s", user.get("username"))
        else:
            await client.aclose()
        return self._client

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _request(self, client: httpx.AsyncClient, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = await client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise ChatPlatformError(message=f"Request to Discord failed: {e}") from e

        if response.is_error:
            try:
                detail = response.json().get("message", response.reason_phrase)
            except (json.JSONDecodeError, AttributeError):
                detail = response.reason_phrase
            raise ChatPlatformError(
                message=f"{response.status_code} {detail}",
                status_code=response.status_code,
            )
        return response.json()

    async def get(self, path: str, **kwargs: Any) -> Any:
        """Perform an authenticated GET, logging in first if needed."""
        client = await self.login()
        return await self._request(client, "GET", path, **kwargs)

    async def get_text_channel(self, channel_id: str) -> dict[str, Any]:
        """
        Fetch a channel and make sure it is a guild text channel.

        Raises:
            ChatPlatformError: If the channel is missing or not a text
                channel
        """
        if not is_snowflake(channel_id):
            raise ChatPlatformError(message="Channel not found or is not a text channel")
        try:
            channel = await self.get(f"/channels/{channel_id}")
        except ChatPlatformError as e:
            if e.status_code == 404:
                raise ChatPlatformError(
                    message="Channel not found or is not a text channel",
                    status_code=404,
                ) from e
            raise

        if channel.get("type") != GUILD_TEXT:
            raise ChatPlatformError(message="Channel not found or is not a text channel")
        return channel

    async def get_messages(self, channel_id: str, limit: int) -> list[dict[str, Any]]:
        """Fetch the most recent messages of a channel, newest first."""
        if not is_snowflake(channel_id):
            raise ChatPlatformError(message="Channel not found or is not a text channel")
        return await self.get(f"/channels/{channel_id}/messages", params={"limit": limit})

    async def get_message(self, channel_id: str, message_id: str) -> dict[str, Any]:
        """Fetch a single message of a channel."""
        if not is_snowflake(channel_id) or not is_snowflake(message_id):
            raise ChatPlatformError(message="Message not found", status_code=404)
        try:
            return await self.get(f"/channels/{channel_id}/messages/{message_id}")
        except ChatPlatformError as e:
            if e.status_code == 404:
                raise ChatPlatformError(message="Message not found", status_code=404) from e
            raise


class DiscordMessageTools:
    """
    Handlers for the Discord message tools.

    Both tools return "Messages from <channel>:" followed by a JSON list of
    formatted messages, or "Error getting messages from Discord: <reason>".
    """

    error_prefix = "Error getting messages from Discord"

    def __init__(self, client: DiscordClient, channels: Mapping[str, str]) -> None:
        self.client = client
        self.channels = dict(channels)

    async def _channel(self, channel_type: str) -> dict[str, Any]:
        return await self.client.get_text_channel(self.channels[channel_type])

    @staticmethod
    def _render(channel: dict[str, Any], messages: list[dict[str, Any]]) -> ResultEnvelope:
        formatted = [format_message(message) for message in messages]
        return ResultEnvelope.ok(
            f"Messages from {channel.get('name')}:\n{json.dumps(formatted, indent=2, ensure_ascii=False)}"
        )

    async def list_messages(self, args: Mapping[str, Any]) -> ResultEnvelope:
        """Handler for getDiscordChannelMessageList."""
        limit = args.get("limit", DEFAULT_MESSAGE_LIMIT)
        try:
            channel = await self._channel(args["channelType"])
            messages = await self.client.get_messages(channel["id"], int(limit))
        except ChatPlatformError as e:
            return ResultEnvelope.fail(e.message, prefix=self.error_prefix)
        return self._render(channel, messages)

    async def get_message(self, args: Mapping[str, Any]) -> ResultEnvelope:
        """Handler for getDiscordChannelMessage."""
        try:
            channel = await self._channel(args["channelType"])
            message = await self.client.get_message(channel["id"], args["messageId"])
        except ChatPlatformError as e:
            return ResultEnvelope.fail(e.message, prefix=self.error_prefix)
        return self._render(channel, [message])


def register_tools(
    registry: ToolRegistry,
    settings: Settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> None:
    """
    Register the Discord tools.

    Raises:
        ConfigError: If the token or any channel id is not configured
    """
    settings.require(
        "discord_token",
        "discord_development_channel_id",
        "discord_staging_channel_id",
        "discord_production_channel_id",
    )

    client = DiscordClient(settings.discord_token, settings.discord_api_url, transport=transport)
    tools = DiscordMessageTools(
        client,
        {
            "development": settings.discord_development_channel_id,
            "staging": settings.discord_staging_channel_id,
            "production": settings.discord_production_channel_id,
        },
    )

    registry.register(
        "getDiscordChannelMessageList",
        MESSAGE_LIST_SCHEMA,
        tools.list_messages,
        description="List recent messages of a Discord deployment channel",
    )
    registry.register(
        "getDiscordChannelMessage",
        MESSAGE_SCHEMA,
        tools.get_message,
        description="Get one message of a Discord deployment channel by id",
    )
