"""Recognise ticket channels and read the metadata stored in their topic.

A ticket has no database row: the channel *is* the ticket. Its topic carries
``<marker>|<owner id>|<category name>`` and is written once, at creation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import discord

from utils.constants import DEFAULT_CATEGORY_NAME, TICKET_NAME_PREFIX, TICKET_TOPIC_MARKER, TOPIC_DELIMITER

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class TicketTopic:
    owner_id: int | None
    category_name: str


@dataclass(slots=True)
class TicketDetails:
    owner: discord.User | None
    category_name: str


def build_channel_name(number: int) -> str:
    return f"{TICKET_NAME_PREFIX}{number}"


def build_topic(owner_id: int, category_name: str | None) -> str:
    return TOPIC_DELIMITER.join([TICKET_TOPIC_MARKER, str(owner_id), category_name or DEFAULT_CATEGORY_NAME])


def parse_topic(topic: str | None) -> TicketTopic | None:
    if not topic:
        return None
    parts = topic.split(TOPIC_DELIMITER, 2)
    owner_id: int | None = None
    if len(parts) > 1:
        try:
            owner_id = int(parts[1])
        except ValueError:
            owner_id = None
    category_name = parts[2] if len(parts) > 2 and parts[2] else DEFAULT_CATEGORY_NAME
    return TicketTopic(owner_id=owner_id, category_name=category_name)


def is_ticket_channel(channel: Any) -> bool:
    topic = getattr(channel, "topic", None)
    return (
        getattr(channel, "type", None) == discord.ChannelType.text
        and str(getattr(channel, "name", "")).startswith(TICKET_NAME_PREFIX)
        and bool(topic)
        and topic.startswith(TICKET_TOPIC_MARKER + TOPIC_DELIMITER)
    )


def list_ticket_channels(guild: discord.Guild) -> list[discord.TextChannel]:
    return [channel for channel in guild.channels if is_ticket_channel(channel)]


def find_ticket_by_owner(guild: discord.Guild, user_id: int) -> discord.TextChannel | None:
    wanted = str(user_id)
    for channel in list_ticket_channels(guild):
        parts = channel.topic.split(TOPIC_DELIMITER)
        if len(parts) > 1 and parts[1] == wanted:
            return channel
    return None


async def parse_ticket_details(client: discord.Client, channel: discord.TextChannel) -> TicketDetails | None:
    parsed = parse_topic(channel.topic)
    if parsed is None:
        return None
    owner: discord.User | None = None
    if parsed.owner_id is not None:
        try:
            owner = await client.fetch_user(parsed.owner_id)
        except discord.HTTPException:
            LOGGER.debug("Could not resolve ticket owner %s for channel %s", parsed.owner_id, channel.id)
    return TicketDetails(owner=owner, category_name=parsed.category_name)
