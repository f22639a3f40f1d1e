from __future__ import annotations

import logging

from discord.ext import commands

LOGGER = logging.getLogger(__name__)


async def load_extensions(bot: commands.Bot, extension_names: list[str]) -> list[str]:
    loaded: list[str] = []
    for ext in extension_names:
        try:
            await bot.load_extension(ext)
            loaded.append(ext)
            LOGGER.info("Loaded extension: %s", ext)
        except commands.ExtensionAlreadyLoaded:
            LOGGER.warning("Extension already loaded: %s", ext)
        except commands.ExtensionError:
            LOGGER.exception("Failed to load extension: %s", ext)
    return loaded
