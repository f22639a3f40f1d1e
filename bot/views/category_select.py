from __future__ import annotations

import discord

from database.models import TicketCategory
from utils.constants import CUSTOM_ID_CATEGORY_MENU, MAX_CATEGORIES


class TicketCategorySelect(discord.ui.Select["CategorySelectView"]):
    def __init__(self, categories: list[TicketCategory], placeholder: str) -> None:
        options = [
            discord.SelectOption(label=category.name[:100], value=category.name[:100])
            for category in categories[:MAX_CATEGORIES]
        ]
        super().__init__(
            placeholder=placeholder[:150],
            options=options,
            min_values=1,
            max_values=1,
            custom_id=CUSTOM_ID_CATEGORY_MENU,
        )

    async def callback(self, interaction: discord.Interaction) -> None:
        await interaction.response.defer()
        if self.view is not None:
            self.view.selected = self.values[0]
            self.view.stop()


class CategorySelectView(discord.ui.View):
    """One-shot category picker; only the user who opened the ticket may answer it."""

    def __init__(
        self,
        owner_id: int,
        categories: list[TicketCategory],
        placeholder: str,
        timeout: float,
    ) -> None:
        super().__init__(timeout=timeout)
        self.owner_id = owner_id
        self.selected: str | None = None
        self.add_item(TicketCategorySelect(categories, placeholder))

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        return interaction.user.id == self.owner_id

    async def wait_for_selection(self) -> str | None:
        timed_out = await self.wait()
        if timed_out:
            return None
        return self.selected
