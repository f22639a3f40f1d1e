from __future__ import annotations

import discord

from core.config import EmbedColors
from utils.time import utc_now


def parse_color(value: str, fallback: discord.Color | None = None) -> discord.Color:
    try:
        return discord.Color.from_str(value)
    except (TypeError, ValueError):
        return fallback if fallback is not None else discord.Color.blurple()


def make_embed(
    title: str | None,
    description: str | None,
    color: discord.Color | None = None,
    footer: str | None = None,
    footer_icon_url: str | None = None,
    timestamp: bool = True,
) -> discord.Embed:
    resolved_color = color if color is not None else discord.Color.blurple()
    embed = discord.Embed(
        title=title,
        description=description,
        color=resolved_color,
        timestamp=utc_now() if timestamp else None,
    )
    if footer:
        embed.set_footer(text=footer, icon_url=footer_icon_url)
    return embed


def status_embed(
    title: str,
    description: str | None,
    colors: EmbedColors,
    kind: str = "bot_embed",
    footer: str | None = None,
    footer_icon_url: str | None = None,
) -> discord.Embed:
    """Build a title/description embed coloured by one of the configured ``kind`` slots."""
    color = parse_color(getattr(colors, kind, colors.bot_embed))
    return make_embed(
        title=title,
        description=description,
        color=color,
        footer=footer,
        footer_icon_url=footer_icon_url,
    )


def success_embed(message: str) -> discord.Embed:
    return make_embed(title="Success", description=message, color=discord.Color.green())
