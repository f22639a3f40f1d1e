from __future__ import annotations

import logging

import discord
from discord.ext import commands

from core.bot import TicketBot

LOGGER = logging.getLogger(__name__)


class EventsCog(commands.Cog):
    def __init__(self, bot: TicketBot) -> None:
        self.bot = bot

    @commands.Cog.listener()
    async def on_ready(self) -> None:
        for guild in self.bot.guilds:
            await self.bot.settings_service.ensure_guild(guild.id)
        LOGGER.info("Ticket settings ready for %s guilds", len(self.bot.guilds))

    @commands.Cog.listener()
    async def on_guild_join(self, guild: discord.Guild) -> None:
        await self.bot.settings_service.ensure_guild(guild.id)
        LOGGER.info("Bootstrapped ticket settings for new guild %s", guild.id)

    @commands.Cog.listener()
    async def on_guild_remove(self, guild: discord.Guild) -> None:
        await self.bot.settings_service.invalidate(guild.id)


async def setup(bot: TicketBot) -> None:
    await bot.add_cog(EventsCog(bot))
