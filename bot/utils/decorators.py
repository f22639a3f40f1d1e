from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeVar

import discord
from discord.ext import commands

F = TypeVar("F", bound=Callable[..., Any])


def _guild_permission_check(**perms: bool) -> Callable[[F], F]:
    async def predicate(ctx: commands.Context[commands.Bot]) -> bool:
        if ctx.guild is None or not isinstance(ctx.author, discord.Member):
            raise commands.NoPrivateMessage()
        permissions = ctx.author.guild_permissions
        if permissions.administrator:
            return True
        missing = [name for name, value in perms.items() if getattr(permissions, name) != value]
        if missing:
            raise commands.MissingPermissions(missing)
        return True

    return commands.check(predicate)


def manage_guild_only() -> Callable[[F], F]:
    return _guild_permission_check(manage_guild=True)


def manage_channels_only() -> Callable[[F], F]:
    return _guild_permission_check(manage_channels=True)


def hybrid_guild_only() -> Callable[[F], F]:
    return commands.guild_only()
