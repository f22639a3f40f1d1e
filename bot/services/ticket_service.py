from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

import discord

from core.config import AppConfig
from core.errors import (
    BotError,
    CategorySelectionTimeoutError,
    InvalidContextError,
    MissingPermissionError,
    TicketAlreadyExistsError,
    TicketCreationError,
    TicketLimitReachedError,
)
from database.models import GuildTicketSettings, TicketCategory
from services.diagnostics import DiagnosticSink
from services.paste_service import PasteResult, PasteService
from services.settings_service import GuildSettingsService
from services.ticket_channels import (
    TicketDetails,
    build_channel_name,
    build_topic,
    find_ticket_by_owner,
    is_ticket_channel,
    list_ticket_channels,
    parse_ticket_details,
)
from services.transcript_service import TranscriptService
from utils.constants import (
    CLOSE_ALL_REASON,
    CLOSE_ERROR,
    CLOSE_MISSING_PERMISSIONS,
    CLOSE_NOT_A_TICKET,
    CLOSE_SUCCESS,
    OPEN_CREATION_ERROR,
    OPEN_SUCCESS,
    UNKNOWN_USER,
)
from utils.embeds import make_embed, parse_color, status_embed
from utils.i18n import I18N
from views.category_select import CategorySelectView
from views.ticket_controls import TicketControlsView

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class TicketServiceDeps:
    settings: GuildSettingsService
    transcripts: TranscriptService
    paste: PasteService
    diagnostics: DiagnosticSink
    i18n: I18N


def _ticket_access() -> discord.PermissionOverwrite:
    return discord.PermissionOverwrite(view_channel=True, send_messages=True, read_message_history=True)


class TicketService:
    """Opens and closes ticket channels.

    Public entry points never raise: every failure is turned into one of the
    outcome strings from ``utils.constants`` and, where the user is waiting on
    an interaction, reported back through it.
    """

    def __init__(self, client: discord.Client, config: AppConfig, deps: TicketServiceDeps) -> None:
        self.client = client
        self.config = config
        self.deps = deps
        self._guild_locks: dict[int, asyncio.Lock] = {}

    # -- presentation helpers -------------------------------------------------

    def _t(self, key: str, **kwargs: object) -> str:
        return self.deps.i18n.t(key, **kwargs)

    def _optional_t(self, key: str, **kwargs: object) -> str | None:
        text = self._t(key, **kwargs)
        return None if text == key else text

    def _footer_icon(self) -> str | None:
        user = self.client.user
        return user.display_avatar.url if user else None

    def _status_embed(self, key: str, kind: str, **kwargs: object) -> discord.Embed:
        return status_embed(
            title=self._t(key, **kwargs),
            description=self._optional_t(f"{key}.description", **kwargs),
            colors=self.config.tickets.colors,
            kind=kind,
            footer=self.config.tickets.footer_text or None,
            footer_icon_url=self._footer_icon(),
        )

    async def _edit_response(
        self,
        interaction: discord.Interaction,
        embed: discord.Embed,
        view: discord.ui.View | None = None,
    ) -> None:
        try:
            await interaction.edit_original_response(embed=embed, view=view)
        except discord.HTTPException:
            LOGGER.warning("Could not update ticket response for interaction %s", interaction.id, exc_info=True)

    async def _send_followup(self, interaction: discord.Interaction, message: str) -> None:
        try:
            await interaction.followup.send(message, ephemeral=True)
        except discord.HTTPException:
            LOGGER.warning("Could not send ticket follow-up for interaction %s", interaction.id, exc_info=True)

    async def _defer(self, interaction: discord.Interaction, **kwargs: bool) -> bool:
        try:
            await interaction.response.defer(**kwargs)
        except discord.HTTPException:
            LOGGER.warning("Could not acknowledge ticket interaction %s", interaction.id, exc_info=True)
            return False
        return True

    def _guild_lock(self, guild_id: int) -> asyncio.Lock:
        return self._guild_locks.setdefault(guild_id, asyncio.Lock())

    # -- open ----------------------------------------------------------------

    @staticmethod
    def _check_duplicate(guild: discord.Guild, user_id: int) -> None:
        if find_ticket_by_owner(guild, user_id) is not None:
            raise TicketAlreadyExistsError()

    @staticmethod
    def _check_limit(guild: discord.Guild, settings: GuildTicketSettings) -> int:
        open_count = len(list_ticket_channels(guild))
        if open_count >= settings.limit:
            raise TicketLimitReachedError()
        return open_count

    @staticmethod
    def build_overwrites(
        guild: discord.Guild,
        opener: discord.abc.Snowflake,
        staff_roles: list[int],
    ) -> dict[discord.abc.Snowflake, discord.PermissionOverwrite]:
        overwrites: dict[discord.abc.Snowflake, discord.PermissionOverwrite] = {
            guild.default_role: discord.PermissionOverwrite(view_channel=False),
            opener: _ticket_access(),
        }
        top_role = guild.me.top_role
        if top_role == guild.default_role:
            overwrites[guild.me] = _ticket_access()
        else:
            overwrites[top_role] = _ticket_access()
        for role_id in staff_roles:
            role = guild.get_role(int(role_id))
            if role is None:
                continue
            overwrites[role] = _ticket_access()
        return overwrites

    async def _prompt_category(
        self, interaction: discord.Interaction, categories: list[TicketCategory]
    ) -> str | None:
        view = CategorySelectView(
            owner_id=interaction.user.id,
            categories=categories,
            placeholder=self._t("ticket.open.menu_placeholder"),
            timeout=self.config.tickets.category_timeout_seconds,
        )
        await self._edit_response(interaction, self._status_embed("ticket.open.choose_category", "bot_embed"), view)
        return await view.wait_for_selection()

    async def create_ticket_channel(
        self,
        guild: discord.Guild,
        opener: discord.abc.User,
        number: int,
        category_name: str | None,
        staff_roles: list[int],
    ) -> discord.TextChannel:
        return await guild.create_text_channel(
            name=build_channel_name(number),
            topic=build_topic(opener.id, category_name),
            overwrites=self.build_overwrites(guild, opener, staff_roles),
            reason=f"Ticket opened by {opener} ({opener.id})",
        )

    async def post_welcome(
        self,
        channel: discord.TextChannel,
        opener: discord.abc.User,
        number: int,
        category_name: str | None,
    ) -> discord.Message:
        color = parse_color(self.config.tickets.colors.bot_embed)
        intro = make_embed(title=None, description=self._t("ticket.welcome.description"), color=color, timestamp=False)
        intro.set_author(
            name=self._t("ticket.welcome.author", user=str(opener), number=number),
            icon_url=opener.display_avatar.url,
        )
        if channel.guild.icon:
            intro.set_thumbnail(url=channel.guild.icon.url)
        if category_name:
            intro.add_field(name=self._t("ticket.welcome.category"), value=category_name, inline=True)

        notice = make_embed(
            title=None,
            description=self._t("ticket.welcome.staff_notice.description"),
            color=color,
            footer=self.config.tickets.footer_text or None,
            footer_icon_url=self._footer_icon(),
        )
        notice.set_author(
            name=self._t("ticket.welcome.staff_notice"),
            icon_url=self.config.tickets.staff_notice_icon_url or None,
        )
        return await channel.send(
            content=opener.mention,
            embeds=[intro, notice],
            view=TicketControlsView(self._t("ticket.button.close")),
        )

    async def open_ticket(self, interaction: discord.Interaction) -> discord.TextChannel:
        guild = interaction.guild
        opener = interaction.user
        if guild is None:
            raise InvalidContextError()
        if not guild.me.guild_permissions.manage_channels:
            raise MissingPermissionError()

        self._check_duplicate(guild, opener.id)
        settings = await self.deps.settings.get_settings(guild.id)
        self._check_limit(guild, settings)

        category_name: str | None = None
        staff_roles: list[int] = []
        if settings.categories:
            category_name = await self._prompt_category(interaction, settings.categories)
            if category_name is None:
                raise CategorySelectionTimeoutError()
            await self._edit_response(interaction, self._status_embed("ticket.open.processing", "bot_embed"))
            category = settings.get_category(category_name)
            staff_roles = list(category.staff_roles) if category else []

        # Re-checked under the guild lock: the category prompt may have waited a minute.
        async with self._guild_lock(guild.id):
            self._check_duplicate(guild, opener.id)
            open_count = self._check_limit(guild, settings)
            number = open_count + 1
            try:
                channel = await self.create_ticket_channel(guild, opener, number, category_name, staff_roles)
                await self.post_welcome(channel, opener, number, category_name)
            except Exception as exc:
                self.deps.diagnostics.error("handleTicketOpen", exc)
                raise TicketCreationError() from exc

        LOGGER.info(
            "Opened ticket %s for user %s in guild %s (category=%s)",
            channel.id,
            opener.id,
            guild.id,
            category_name,
            extra={"guild_id": guild.id, "channel_id": channel.id, "user_id": opener.id},
        )
        return channel

    async def handle_ticket_open(self, interaction: discord.Interaction) -> str:
        if not await self._defer(interaction, ephemeral=True, thinking=True):
            return OPEN_CREATION_ERROR
        try:
            channel = await self.open_ticket(interaction)
        except BotError as exc:
            await self._edit_response(interaction, self._status_embed(exc.message_key, "error"))
            return exc.outcome
        except Exception as exc:
            self.deps.diagnostics.error("handleTicketOpen", exc)
            await self._edit_response(interaction, self._status_embed("ticket.open.creation_error", "error"))
            return OPEN_CREATION_ERROR

        await self._edit_response(
            interaction,
            self._status_embed("ticket.open.success", "success", channel=channel.mention),
        )
        return OPEN_SUCCESS

    # -- close ---------------------------------------------------------------

    def _build_close_embed(
        self,
        details: TicketDetails | None,
        closed_by: discord.abc.User | None,
        reason: str | None,
    ) -> discord.Embed:
        embed = make_embed(
            title=None,
            description=None,
            color=parse_color(self.config.tickets.colors.bot_embed),
        )
        embed.set_author(name=self._t("ticket.close.title"))
        if reason:
            embed.add_field(name=self._t("ticket.close.reason"), value=reason[:1024], inline=False)
        owner = details.owner if details else None
        embed.add_field(name=self._t("ticket.close.opened_by"), value=owner.name if owner else UNKNOWN_USER, inline=True)
        embed.add_field(
            name=self._t("ticket.close.closed_by"),
            value=closed_by.name if closed_by else UNKNOWN_USER,
            inline=True,
        )
        if details:
            embed.add_field(name=self._t("ticket.close.category"), value=details.category_name, inline=True)
        return embed

    async def _send_close_log(
        self,
        guild: discord.Guild,
        settings: GuildTicketSettings,
        channel_name: str,
        embed: discord.Embed,
        paste: PasteResult | None,
        transcript: str,
    ) -> None:
        if not settings.log_channel_id:
            return
        log_channel = guild.get_channel(settings.log_channel_id)
        if log_channel is None:
            LOGGER.warning("Ticket log channel %s not found in guild %s", settings.log_channel_id, guild.id)
            return

        view: discord.ui.View | None = None
        file: discord.File | None = None
        if paste:
            view = discord.ui.View()
            view.add_item(discord.ui.Button(label=self._t("ticket.close.transcript"), url=paste.short))
        elif self.config.transcripts.attach_on_paste_failure:
            file = TranscriptService.as_file(transcript, channel_name)

        try:
            await log_channel.send(embed=embed, view=view, file=file)
        except Exception as exc:
            self.deps.diagnostics.error("closeTicketLog", exc)

    async def close_ticket(
        self,
        channel: discord.TextChannel,
        closed_by: discord.abc.User | None,
        reason: str | None = None,
    ) -> str:
        guild = channel.guild
        permissions = channel.permissions_for(guild.me)
        if not (permissions.manage_channels and permissions.read_message_history):
            return CLOSE_MISSING_PERMISSIONS

        try:
            settings = await self.deps.settings.get_settings(guild.id)
            transcript = await self.deps.transcripts.generate(channel)
            paste = await self.deps.paste.post_to_bin(transcript, f"Ticket Logs for {channel.name}")
            details = await parse_ticket_details(self.client, channel)
            await channel.delete(reason=f"Ticket closed by {closed_by}" if closed_by else "Ticket closed")
        except Exception as exc:
            self.deps.diagnostics.error("closeTicket", exc)
            return CLOSE_ERROR

        LOGGER.info(
            "Closed ticket %s (%s) in guild %s",
            channel.id,
            channel.name,
            guild.id,
            extra={"guild_id": guild.id, "channel_id": channel.id},
        )
        embed = self._build_close_embed(details, closed_by, reason)
        await self._send_close_log(guild, settings, channel.name, embed, paste, transcript)
        return CLOSE_SUCCESS

    async def close_all_tickets(self, guild: discord.Guild, actor: discord.abc.User | None) -> tuple[int, int]:
        success = 0
        failed = 0
        for channel in list_ticket_channels(guild):
            status = await self.close_ticket(channel, actor, CLOSE_ALL_REASON)
            if status == CLOSE_SUCCESS:
                success += 1
            else:
                failed += 1
        LOGGER.info("Close-all in guild %s finished: success=%s failed=%s", guild.id, success, failed)
        return success, failed

    async def handle_ticket_close(self, interaction: discord.Interaction) -> str:
        if not await self._defer(interaction, ephemeral=True):
            return CLOSE_ERROR
        channel = interaction.channel
        if not is_ticket_channel(channel):
            await self._send_followup(interaction, self._t("ticket.close.not_a_ticket"))
            return CLOSE_NOT_A_TICKET

        status = await self.close_ticket(channel, interaction.user)
        if status == CLOSE_MISSING_PERMISSIONS:
            await self._send_followup(interaction, self._t("ticket.close.missing_permissions"))
        elif status == CLOSE_ERROR:
            await self._send_followup(interaction, self._t("ticket.close.error"))
        return status
