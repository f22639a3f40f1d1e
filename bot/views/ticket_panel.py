from __future__ import annotations

from typing import TYPE_CHECKING, cast

import discord

from utils.constants import CUSTOM_ID_TICKET_CREATE

if TYPE_CHECKING:
    from core.bot import TicketBot


class TicketCreateButton(discord.ui.Button["TicketPanelView"]):
    def __init__(self, label: str) -> None:
        super().__init__(
            label=label,
            emoji="🎫",
            style=discord.ButtonStyle.primary,
            custom_id=CUSTOM_ID_TICKET_CREATE,
        )

    async def callback(self, interaction: discord.Interaction) -> None:
        bot = cast("TicketBot", interaction.client)
        await bot.ticket_service.handle_ticket_open(interaction)


class TicketPanelView(discord.ui.View):
    def __init__(self, open_label: str = "Open a ticket") -> None:
        super().__init__(timeout=None)
        self.add_item(TicketCreateButton(open_label))
