"""Notification delivery to a subscriber's Discord channel."""

from __future__ import annotations

import logging
from typing import Protocol

import discord

log = logging.getLogger(__name__)


class DeliveryError(Exception):
    """The message could not be delivered to the subscriber."""


class Dispatcher(Protocol):
    async def send(self, subscriber_id: int, message: str) -> None: ...


class DiscordDispatcher:
    """Sends plain text to a channel id (DM or guild text channel)."""

    def __init__(self, client: discord.Client) -> None:
        self._client = client

    async def send(self, subscriber_id: int, message: str) -> None:
        await self._client.wait_until_ready()
        try:
            channel = self._client.get_channel(
                subscriber_id
            ) or await self._client.fetch_channel(subscriber_id)
            if not isinstance(channel, discord.abc.Messageable):
                raise DeliveryError(f"channel {subscriber_id} cannot receive messages")
            await channel.send(message)
        except discord.DiscordException as e:
            raise DeliveryError(f"send to {subscriber_id} failed: {e}") from e
        log.info("delivered reminder to %d", subscriber_id)
