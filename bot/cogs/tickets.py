from __future__ import annotations

import logging

import discord
from discord.ext import commands

from core.bot import TicketBot
from core.errors import InvalidContextError, ValidationError
from services.ticket_channels import is_ticket_channel
from utils.constants import CLOSE_ERROR, CLOSE_MISSING_PERMISSIONS, CLOSE_SUCCESS
from utils.decorators import hybrid_guild_only, manage_channels_only, manage_guild_only
from utils.embeds import make_embed, parse_color, success_embed
from views.ticket_controls import TicketControlsView
from views.ticket_panel import TicketPanelView

LOGGER = logging.getLogger(__name__)


class TicketsCog(commands.Cog):
    def __init__(self, bot: TicketBot) -> None:
        self.bot = bot

    async def cog_load(self) -> None:
        # Registered once with timeout=None so buttons keep working across restarts.
        self.bot.add_view(TicketPanelView(self.bot.i18n.t("ticket.button.open")))
        self.bot.add_view(TicketControlsView(self.bot.i18n.t("ticket.button.close")))

    def _guild(self, ctx: commands.Context[TicketBot]) -> discord.Guild:
        if ctx.guild is None:
            raise InvalidContextError()
        return ctx.guild

    def _current_ticket(self, ctx: commands.Context[TicketBot]) -> discord.TextChannel:
        self._guild(ctx)
        if not is_ticket_channel(ctx.channel):
            raise ValidationError(
                "This command can only be used in ticket channels.",
                message_key="ticket.close.not_a_ticket",
            )
        return ctx.channel

    async def _reply(self, ctx: commands.Context[TicketBot], message: str) -> None:
        await ctx.reply(embed=success_embed(message), mention_author=False, ephemeral=True)

    @commands.hybrid_group(name="ticket", with_app_command=True, description="Ticket command group.")
    @hybrid_guild_only()
    async def ticket(self, ctx: commands.Context[TicketBot]) -> None:
        if ctx.invoked_subcommand is None:
            await ctx.reply(
                embed=make_embed(
                    "Ticket Commands",
                    "`/ticket setup [channel]` to post the ticket panel\n"
                    "`/ticket close [reason]` to close the current ticket\n"
                    "`/ticket closeall` to close every open ticket\n"
                    "`/ticket limit <amount>` to cap open tickets\n"
                    "`/ticket log <channel>` to choose the log channel\n"
                    "`/ticket add|remove <member>` to manage ticket access\n"
                    "`/ticket category list|add|remove` to manage categories",
                ),
                mention_author=False,
            )

    @ticket.command(name="setup", description="Post the ticket panel.")
    @manage_guild_only()
    async def ticket_setup(
        self, ctx: commands.Context[TicketBot], channel: discord.TextChannel | None = None
    ) -> None:
        self._guild(ctx)
        target = channel or ctx.channel
        tickets = self.bot.config.tickets
        embed = make_embed(
            title=tickets.panel_title,
            description=tickets.panel_description,
            color=parse_color(tickets.colors.bot_embed),
            footer=tickets.footer_text or None,
            footer_icon_url=self.bot.user.display_avatar.url if self.bot.user else None,
        )
        await target.send(embed=embed, view=TicketPanelView(self.bot.i18n.t("ticket.button.open")))
        await self._reply(ctx, self.bot.i18n.t("ticket.panel.deployed", channel=target.mention))

    @ticket.command(name="close", description="Close the current ticket.")
    async def ticket_close(self, ctx: commands.Context[TicketBot], *, reason: str | None = None) -> None:
        channel = self._current_ticket(ctx)
        await ctx.defer(ephemeral=True)
        status = await self.bot.ticket_service.close_ticket(channel, ctx.author, reason)
        # On success the channel is gone, so there is nothing left to reply in.
        if status == CLOSE_SUCCESS:
            return
        if status == CLOSE_MISSING_PERMISSIONS:
            await ctx.send(self.bot.i18n.t("ticket.close.missing_permissions"), ephemeral=True)
        elif status == CLOSE_ERROR:
            await ctx.send(self.bot.i18n.t("ticket.close.error"), ephemeral=True)

    @ticket.command(name="closeall", description="Close every open ticket in this server.")
    @manage_guild_only()
    async def ticket_close_all(self, ctx: commands.Context[TicketBot]) -> None:
        guild = self._guild(ctx)
        in_ticket = is_ticket_channel(ctx.channel)
        await ctx.defer(ephemeral=True)
        success, failed = await self.bot.ticket_service.close_all_tickets(guild, ctx.author)
        if in_ticket and success:
            return
        try:
            await self._reply(ctx, self.bot.i18n.t("ticket.close_all.result", success=success, failed=failed))
        except discord.HTTPException:
            LOGGER.warning("Could not report close-all result in guild %s", guild.id, exc_info=True)

    @ticket.command(name="limit", description="Set the maximum number of open tickets.")
    @manage_guild_only()
    async def ticket_limit(self, ctx: commands.Context[TicketBot], amount: int) -> None:
        guild = self._guild(ctx)
        await self.bot.settings_service.set_limit(guild.id, amount)
        await self._reply(ctx, self.bot.i18n.t("ticket.limit.updated", limit=amount))

    @ticket.command(name="log", description="Set the channel that receives ticket logs.")
    @manage_guild_only()
    async def ticket_log(self, ctx: commands.Context[TicketBot], channel: discord.TextChannel) -> None:
        guild = self._guild(ctx)
        await self.bot.settings_service.set_log_channel(guild.id, channel.id)
        await self._reply(ctx, self.bot.i18n.t("ticket.log.updated", channel=channel.mention))

    @ticket.command(name="add", description="Give a member access to this ticket.")
    @manage_channels_only()
    async def ticket_add_member(self, ctx: commands.Context[TicketBot], member: discord.Member) -> None:
        channel = self._current_ticket(ctx)
        await channel.set_permissions(
            member,
            view_channel=True,
            send_messages=True,
            read_message_history=True,
            reason=f"Added to ticket by {ctx.author} ({ctx.author.id})",
        )
        await self._reply(ctx, self.bot.i18n.t("ticket.member.added", member=member.mention))

    @ticket.command(name="remove", description="Remove a member from this ticket.")
    @manage_channels_only()
    async def ticket_remove_member(self, ctx: commands.Context[TicketBot], member: discord.Member) -> None:
        channel = self._current_ticket(ctx)
        await channel.set_permissions(
            member,
            overwrite=None,
            reason=f"Removed from ticket by {ctx.author} ({ctx.author.id})",
        )
        await self._reply(ctx, self.bot.i18n.t("ticket.member.removed", member=member.mention))

    @ticket.group(name="category", description="Manage ticket categories.")
    @manage_guild_only()
    async def ticket_category(self, ctx: commands.Context[TicketBot]) -> None:
        if ctx.invoked_subcommand is None:
            await self.ticket_category_list(ctx)

    @ticket_category.command(name="list", description="List ticket categories.")
    @manage_guild_only()
    async def ticket_category_list(self, ctx: commands.Context[TicketBot]) -> None:
        guild = self._guild(ctx)
        settings = await self.bot.settings_service.get_settings(guild.id)
        i18n = self.bot.i18n
        embed = make_embed(
            title=i18n.t("ticket.category.list.title"),
            description=None if settings.categories else i18n.t("ticket.category.list.empty"),
            color=parse_color(self.bot.config.tickets.colors.bot_embed),
        )
        for category in settings.categories:
            roles = " ".join(f"<@&{role_id}>" for role_id in category.staff_roles)
            embed.add_field(
                name=category.name,
                value=roles or i18n.t("ticket.category.no_staff_roles"),
                inline=False,
            )
        await ctx.reply(embed=embed, mention_author=False, ephemeral=True)

    @ticket_category.command(name="add", description="Add a ticket category.")
    @manage_guild_only()
    async def ticket_category_add(
        self,
        ctx: commands.Context[TicketBot],
        name: str,
        staff_role: discord.Role | None = None,
        second_role: discord.Role | None = None,
        third_role: discord.Role | None = None,
    ) -> None:
        guild = self._guild(ctx)
        roles = [role.id for role in (staff_role, second_role, third_role) if role is not None]
        category = await self.bot.settings_service.add_category(guild.id, name, roles)
        await self._reply(ctx, self.bot.i18n.t("ticket.category.added", name=category.name))

    @ticket_category.command(name="remove", description="Remove a ticket category.")
    @manage_guild_only()
    async def ticket_category_remove(self, ctx: commands.Context[TicketBot], *, name: str) -> None:
        guild = self._guild(ctx)
        await self.bot.settings_service.remove_category(guild.id, name)
        await self._reply(ctx, self.bot.i18n.t("ticket.category.removed", name=name))


async def setup(bot: TicketBot) -> None:
    await bot.add_cog(TicketsCog(bot))
