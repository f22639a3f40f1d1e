from __future__ import annotations

import logging
from dataclasses import dataclass, field

import discord
from discord import app_commands
from discord.ext import commands

from utils.constants import (
    OPEN_ALREADY_EXISTS,
    OPEN_CREATION_ERROR,
    OPEN_INVALID_CONTEXT,
    OPEN_LIMIT_REACHED,
    OPEN_MISSING_PERMISSION,
    OPEN_TIMEOUT,
)

LOGGER = logging.getLogger(__name__)


class BotError(RuntimeError):
    user_message: str = "An unexpected error occurred."
    message_key: str = "error.generic"
    outcome: str = OPEN_CREATION_ERROR


@dataclass(slots=True)
class ValidationError(BotError):
    user_message: str = "The provided input is not valid."
    message_key: str = "error.validation"
    params: dict[str, object] = field(default_factory=dict)


@dataclass(slots=True)
class InvalidContextError(BotError):
    user_message: str = "This action can only be used inside a server."
    message_key: str = "error.guild_only"
    outcome: str = OPEN_INVALID_CONTEXT


@dataclass(slots=True)
class MissingPermissionError(BotError):
    user_message: str = (
        "Cannot create ticket channel, missing `Manage Channels` permission. "
        "Contact server manager for help!"
    )
    message_key: str = "ticket.open.missing_permission"
    outcome: str = OPEN_MISSING_PERMISSION


@dataclass(slots=True)
class TicketAlreadyExistsError(BotError):
    user_message: str = "You already have an open ticket!"
    message_key: str = "ticket.open.already_exists"
    outcome: str = OPEN_ALREADY_EXISTS


@dataclass(slots=True)
class TicketLimitReachedError(BotError):
    user_message: str = "There are too many open tickets, try again later!"
    message_key: str = "ticket.open.limit_reached"
    outcome: str = OPEN_LIMIT_REACHED


@dataclass(slots=True)
class CategorySelectionTimeoutError(BotError):
    user_message: str = "Request timed out, try again!"
    message_key: str = "ticket.open.timeout"
    outcome: str = OPEN_TIMEOUT


@dataclass(slots=True)
class TicketCreationError(BotError):
    user_message: str = "An error has occurred while creating your ticket!"
    message_key: str = "ticket.open.creation_error"
    outcome: str = OPEN_CREATION_ERROR


def _translate(client: object, error: BotError) -> str:
    i18n = getattr(client, "i18n", None)
    if i18n is None:
        return error.user_message
    message = i18n.t(error.message_key, **getattr(error, "params", {}))
    return error.user_message if message == error.message_key else message


async def send_error_response(
    target: commands.Context[commands.Bot] | discord.Interaction[commands.Bot], message: str
) -> None:
    embed = discord.Embed(title="Error", description=message, color=discord.Color.red())
    if isinstance(target, commands.Context):
        await target.reply(embed=embed, mention_author=False)
        return
    if target.response.is_done():
        await target.followup.send(embed=embed, ephemeral=True)
    else:
        await target.response.send_message(embed=embed, ephemeral=True)


def _unwrap(error: Exception) -> Exception:
    while isinstance(
        error, (commands.HybridCommandError, commands.CommandInvokeError, app_commands.CommandInvokeError)
    ):
        error = error.original
    return error


def _humanize_command_error(client: object, error: Exception) -> str:
    error = _unwrap(error)
    if isinstance(error, BotError):
        return _translate(client, error)
    if isinstance(error, commands.CommandOnCooldown):
        return f"Cooldown active. Retry in {error.retry_after:.1f} seconds."
    if isinstance(error, commands.MissingPermissions):
        return "You are missing required Discord permissions."
    if isinstance(error, commands.NoPrivateMessage):
        return "This command can only be used inside a server."
    if isinstance(error, commands.CheckFailure):
        return "You are not authorized for this command."
    if isinstance(error, (commands.BadArgument, commands.MissingRequiredArgument)):
        return "Command argument was invalid."
    return "An unexpected command error occurred."


async def handle_prefix_command_error(
    ctx: commands.Context[commands.Bot], error: commands.CommandError
) -> None:
    if isinstance(error, commands.CommandNotFound):
        return
    message = _humanize_command_error(ctx.bot, error)
    if isinstance(error, (commands.CheckFailure, commands.UserInputError)) or isinstance(_unwrap(error), BotError):
        LOGGER.info(
            "Prefix command rejected. command=%s guild=%s user=%s reason=%s",
            getattr(ctx.command, "qualified_name", None),
            getattr(ctx.guild, "id", None),
            ctx.author.id,
            message,
        )
    else:
        LOGGER.exception(
            "Prefix command failed. command=%s guild=%s user=%s",
            getattr(ctx.command, "qualified_name", None),
            getattr(ctx.guild, "id", None),
            ctx.author.id,
            exc_info=error,
        )
    await send_error_response(ctx, message)


async def handle_app_command_error(
    interaction: discord.Interaction[commands.Bot], error: app_commands.AppCommandError
) -> None:
    message = "An unexpected slash-command error occurred."
    original = _unwrap(error)
    if isinstance(error, commands.HybridCommandError):
        message = _humanize_command_error(interaction.client, error)
    elif isinstance(original, BotError):
        message = _translate(interaction.client, original)
    elif isinstance(error, app_commands.CheckFailure):
        message = "You are not authorized for this command."
    elif isinstance(error, app_commands.CommandOnCooldown):
        message = f"Cooldown active. Retry in {error.retry_after:.1f} seconds."

    if isinstance(original, (BotError, commands.CheckFailure)) or isinstance(error, app_commands.CheckFailure):
        LOGGER.info(
            "Slash command rejected. command=%s guild=%s reason=%s",
            getattr(interaction.command, "qualified_name", None),
            getattr(interaction.guild, "id", None),
            message,
        )
    else:
        LOGGER.exception(
            "Slash command failed. command=%s guild=%s user=%s",
            getattr(interaction.command, "qualified_name", None),
            getattr(interaction.guild, "id", None),
            interaction.user.id if interaction.user else None,
            exc_info=error,
        )
    await send_error_response(interaction, message)
