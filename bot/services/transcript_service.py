from __future__ import annotations

import io
from collections.abc import Iterable

import discord

from core.config import TranscriptConfig
from utils.time import format_locale_timestamp


class TranscriptService:
    def __init__(self, config: TranscriptConfig) -> None:
        self.config = config

    async def fetch_messages(self, channel: discord.TextChannel) -> list[discord.Message]:
        # history() walks newest first; only the latest page is kept, then replayed oldest first.
        messages = [message async for message in channel.history(limit=self.config.history_limit)]
        messages.reverse()
        return messages

    async def generate(self, channel: discord.TextChannel) -> str:
        return self.build_text(await self.fetch_messages(channel))

    @staticmethod
    def build_text(messages: Iterable[discord.Message]) -> str:
        content = ""
        for msg in messages:
            content += f"[{format_locale_timestamp(msg.created_at)}] - {msg.author.name}\n"
            if msg.clean_content:
                content += f"{msg.clean_content}\n"
            if msg.attachments:
                content += ", ".join(attachment.proxy_url for attachment in msg.attachments) + "\n"
            content += "\n"
        return content

    @staticmethod
    def as_file(text: str, channel_name: str) -> discord.File:
        return discord.File(io.BytesIO(text.encode("utf-8")), filename=f"{channel_name}.txt")
