from __future__ import annotations

from typing import TYPE_CHECKING, cast

import discord

from utils.constants import CUSTOM_ID_TICKET_CLOSE

if TYPE_CHECKING:
    from core.bot import TicketBot


class TicketCloseButton(discord.ui.Button["TicketControlsView"]):
    def __init__(self, label: str) -> None:
        super().__init__(
            label=label,
            emoji="🔒",
            style=discord.ButtonStyle.danger,
            custom_id=CUSTOM_ID_TICKET_CLOSE,
        )

    async def callback(self, interaction: discord.Interaction) -> None:
        bot = cast("TicketBot", interaction.client)
        await bot.ticket_service.handle_ticket_close(interaction)


class TicketControlsView(discord.ui.View):
    def __init__(self, close_label: str = "Close Ticket") -> None:
        super().__init__(timeout=None)
        self.add_item(TicketCloseButton(close_label))
