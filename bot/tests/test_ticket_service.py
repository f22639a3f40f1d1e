from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from core.config import AppConfig, DiscordConfig
from database.models import GuildTicketSettings, TicketCategory
from services.paste_service import PasteResult
from services.ticket_service import TicketService, TicketServiceDeps
from utils.constants import (
    CLOSE_ALL_REASON,
    CLOSE_ERROR,
    CLOSE_MISSING_PERMISSIONS,
    CLOSE_NOT_A_TICKET,
    CLOSE_SUCCESS,
    OPEN_ALREADY_EXISTS,
    OPEN_CREATION_ERROR,
    OPEN_LIMIT_REACHED,
    OPEN_MISSING_PERMISSION,
    OPEN_SUCCESS,
    OPEN_TIMEOUT,
)
from utils.i18n import I18N

LOCALES_DIR = Path(__file__).resolve().parents[1] / "config" / "locales"


def _ticket_channel(number: int, owner_id: int, category: str = "Default", guild: MagicMock | None = None) -> MagicMock:
    channel = MagicMock()
    channel.id = 1000 + number
    channel.name = f"tіcket-{number}"
    channel.topic = f"tіcket|{owner_id}|{category}"
    channel.type = discord.ChannelType.text
    channel.mention = f"<#{channel.id}>"
    channel.guild = guild
    channel.permissions_for = MagicMock(
        return_value=SimpleNamespace(manage_channels=True, read_message_history=True)
    )
    channel.delete = AsyncMock()
    channel.send = AsyncMock()
    return channel


def _guild(channels: list[MagicMock] | None = None, roles: dict[int, MagicMock] | None = None) -> MagicMock:
    guild = MagicMock()
    guild.id = 1
    guild.icon = None
    guild.default_role = MagicMock(name="everyone")
    guild.me = MagicMock(name="bot-member")
    guild.me.guild_permissions = SimpleNamespace(manage_channels=True)
    guild.me.top_role = MagicMock(name="bot-role")
    guild.channels = channels or []
    known_roles = roles or {}
    guild.get_role = MagicMock(side_effect=known_roles.get)
    guild.get_channel = MagicMock(return_value=None)
    guild.create_text_channel = AsyncMock()
    return guild


def _user(user_id: int = 99, name: str = "alice") -> MagicMock:
    user = MagicMock()
    user.id = user_id
    user.name = name
    user.mention = f"<@{user_id}>"
    user.display_avatar.url = "https://cdn.example/avatar.png"
    return user


def _interaction(guild: MagicMock | None, user: MagicMock, channel: MagicMock | None = None) -> MagicMock:
    interaction = MagicMock()
    interaction.id = 42
    interaction.guild = guild
    interaction.user = user
    interaction.channel = channel
    interaction.response.defer = AsyncMock()
    interaction.edit_original_response = AsyncMock()
    interaction.followup.send = AsyncMock()
    return interaction


def _service(settings: GuildTicketSettings, paste: PasteResult | None = None) -> TicketService:
    client = MagicMock()
    client.user.display_avatar.url = "https://cdn.example/bot.png"
    client.fetch_user = AsyncMock(return_value=SimpleNamespace(id=99, name="alice"))

    deps = TicketServiceDeps(
        settings=MagicMock(),
        transcripts=MagicMock(),
        paste=MagicMock(),
        diagnostics=MagicMock(),
        i18n=I18N(LOCALES_DIR, "en-US"),
    )
    deps.settings.get_settings = AsyncMock(return_value=settings)
    deps.transcripts.generate = AsyncMock(return_value="[1/2/2024, 3:04:05 PM] - alice\nhi\n\n")
    deps.paste.post_to_bin = AsyncMock(return_value=paste)
    return TicketService(client, AppConfig(discord=DiscordConfig(token="x")), deps)


def _last_embed(interaction: MagicMock) -> discord.Embed:
    return interaction.edit_original_response.await_args.kwargs["embed"]


@pytest.mark.asyncio
async def test_open_rejects_duplicate_ticket() -> None:
    guild = _guild([_ticket_channel(1, owner_id=99)])
    interaction = _interaction(guild, _user())
    service = _service(GuildTicketSettings(guild_id=1, limit=10))

    outcome = await service.handle_ticket_open(interaction)

    assert outcome == OPEN_ALREADY_EXISTS
    interaction.response.defer.assert_awaited_once_with(ephemeral=True, thinking=True)
    guild.create_text_channel.assert_not_awaited()
    assert _last_embed(interaction).title == "You already have an open ticket!"


@pytest.mark.asyncio
async def test_open_rejects_when_limit_reached() -> None:
    guild = _guild([_ticket_channel(n, owner_id=n) for n in range(1, 6)])
    interaction = _interaction(guild, _user())
    service = _service(GuildTicketSettings(guild_id=1, limit=5))

    outcome = await service.handle_ticket_open(interaction)

    assert outcome == OPEN_LIMIT_REACHED
    guild.create_text_channel.assert_not_awaited()
    service.deps.diagnostics.error.assert_not_called()


@pytest.mark.asyncio
async def test_open_requires_manage_channels() -> None:
    guild = _guild()
    guild.me.guild_permissions = SimpleNamespace(manage_channels=False)
    interaction = _interaction(guild, _user())
    service = _service(GuildTicketSettings(guild_id=1, limit=10))

    assert await service.handle_ticket_open(interaction) == OPEN_MISSING_PERMISSION
    guild.create_text_channel.assert_not_awaited()


@pytest.mark.asyncio
async def test_open_times_out_without_category_selection() -> None:
    guild = _guild()
    interaction = _interaction(guild, _user())
    settings = GuildTicketSettings(guild_id=1, limit=10, categories=[TicketCategory("Billing", [7])])
    service = _service(settings)
    service._prompt_category = AsyncMock(return_value=None)

    outcome = await service.handle_ticket_open(interaction)

    assert outcome == OPEN_TIMEOUT
    guild.create_text_channel.assert_not_awaited()
    assert _last_embed(interaction).title == "Request timed out, try again!"


@pytest.mark.asyncio
async def test_open_creates_channel_with_category_and_overwrites() -> None:
    staff_role = MagicMock(name="staff")
    guild = _guild([_ticket_channel(1, owner_id=5)], roles={7: staff_role})
    opener = _user()
    interaction = _interaction(guild, opener)
    created = _ticket_channel(2, owner_id=99, category="Billing", guild=guild)
    guild.create_text_channel.return_value = created
    settings = GuildTicketSettings(
        guild_id=1, limit=10, categories=[TicketCategory("Billing", [7, 8]), TicketCategory("Sales")]
    )
    service = _service(settings)
    service._prompt_category = AsyncMock(return_value="Billing")

    outcome = await service.handle_ticket_open(interaction)

    assert outcome == OPEN_SUCCESS
    kwargs = guild.create_text_channel.await_args.kwargs
    assert kwargs["name"] == "tіcket-2"
    assert kwargs["topic"] == "tіcket|99|Billing"
    overwrites = kwargs["overwrites"]
    assert overwrites[guild.default_role].view_channel is False
    for target in (opener, guild.me.top_role, staff_role):
        assert overwrites[target].view_channel is True
        assert overwrites[target].send_messages is True
        assert overwrites[target].read_message_history is True
    assert len(overwrites) == 4

    welcome = created.send.await_args.kwargs
    assert welcome["content"] == "<@99>"
    assert welcome["embeds"][0].author.name == f"Ticket for: {opener} #2"
    assert welcome["embeds"][0].fields[0].value == "Billing"
    assert welcome["view"].children[0].custom_id == "TICKET_CLOSE"
    assert _last_embed(interaction).title == "Successfully created your ticket!"


@pytest.mark.asyncio
async def test_open_without_categories_uses_default_topic() -> None:
    guild = _guild()
    guild.me.top_role = guild.default_role
    opener = _user()
    interaction = _interaction(guild, opener)
    guild.create_text_channel.return_value = _ticket_channel(1, owner_id=99, guild=guild)
    service = _service(GuildTicketSettings(guild_id=1, limit=10))

    assert await service.handle_ticket_open(interaction) == OPEN_SUCCESS

    kwargs = guild.create_text_channel.await_args.kwargs
    assert kwargs["name"] == "tіcket-1"
    assert kwargs["topic"] == "tіcket|99|Default"
    assert kwargs["overwrites"][guild.me].view_channel is True
    assert kwargs["overwrites"][guild.default_role].view_channel is False


@pytest.mark.asyncio
async def test_open_reports_creation_error() -> None:
    guild = _guild()
    guild.create_text_channel.side_effect = discord.HTTPException(MagicMock(status=500), "boom")
    interaction = _interaction(guild, _user())
    service = _service(GuildTicketSettings(guild_id=1, limit=10))

    outcome = await service.handle_ticket_open(interaction)

    assert outcome == OPEN_CREATION_ERROR
    label, _ = service.deps.diagnostics.error.call_args.args
    assert label == "handleTicketOpen"
    assert _last_embed(interaction).title == "An error has occurred while creating your ticket!"


@pytest.mark.asyncio
async def test_close_requires_bot_permissions() -> None:
    guild = _guild()
    channel = _ticket_channel(1, owner_id=99, guild=guild)
    channel.permissions_for.return_value = SimpleNamespace(manage_channels=True, read_message_history=False)
    service = _service(GuildTicketSettings(guild_id=1, limit=10))

    assert await service.close_ticket(channel, _user(5, "mod")) == CLOSE_MISSING_PERMISSIONS
    service.deps.transcripts.generate.assert_not_awaited()
    channel.delete.assert_not_awaited()


@pytest.mark.asyncio
async def test_close_deletes_channel_and_logs_summary() -> None:
    guild = _guild()
    log_channel = MagicMock()
    log_channel.send = AsyncMock()
    guild.get_channel.return_value = log_channel
    channel = _ticket_channel(3, owner_id=99, category="Billing", guild=guild)
    paste = PasteResult(key="k", url="https://sourceb.in/k", short="https://srcb.in/k", raw="https://cdn.sourceb.in/bins/k/0")
    service = _service(GuildTicketSettings(guild_id=1, limit=10, log_channel_id=555), paste=paste)

    status = await service.close_ticket(channel, _user(5, "mod"), "resolved")

    assert status == CLOSE_SUCCESS
    channel.delete.assert_awaited_once()
    service.deps.paste.post_to_bin.assert_awaited_once()
    assert service.deps.paste.post_to_bin.await_args.args[1] == "Ticket Logs for tіcket-3"
    guild.get_channel.assert_called_with(555)

    sent = log_channel.send.await_args.kwargs
    fields = {field.name: field.value for field in sent["embed"].fields}
    assert fields == {"Reason": "resolved", "Opened By": "alice", "Closed By": "mod", "Category": "Billing"}
    assert sent["view"].children[0].url == "https://srcb.in/k"
    assert sent["file"] is None


@pytest.mark.asyncio
async def test_close_attaches_transcript_when_paste_fails() -> None:
    guild = _guild()
    log_channel = MagicMock()
    log_channel.send = AsyncMock()
    guild.get_channel.return_value = log_channel
    channel = _ticket_channel(3, owner_id=99, guild=guild)
    service = _service(GuildTicketSettings(guild_id=1, limit=10, log_channel_id=555), paste=None)

    assert await service.close_ticket(channel, _user(5, "mod")) == CLOSE_SUCCESS

    sent = log_channel.send.await_args.kwargs
    assert sent["view"] is None
    assert sent["file"].filename == "tіcket-3.txt"
    assert "Reason" not in {field.name for field in sent["embed"].fields}


@pytest.mark.asyncio
async def test_close_delete_failure_is_an_error() -> None:
    guild = _guild()
    log_channel = MagicMock()
    log_channel.send = AsyncMock()
    guild.get_channel.return_value = log_channel
    channel = _ticket_channel(3, owner_id=99, guild=guild)
    channel.delete.side_effect = discord.HTTPException(MagicMock(status=500), "boom")
    service = _service(GuildTicketSettings(guild_id=1, limit=10, log_channel_id=555))

    assert await service.close_ticket(channel, _user(5, "mod")) == CLOSE_ERROR
    log_channel.send.assert_not_awaited()
    assert service.deps.diagnostics.error.call_args.args[0] == "closeTicket"


@pytest.mark.asyncio
async def test_close_log_failure_keeps_success() -> None:
    guild = _guild()
    log_channel = MagicMock()
    log_channel.send = AsyncMock(side_effect=discord.HTTPException(MagicMock(status=403), "forbidden"))
    guild.get_channel.return_value = log_channel
    channel = _ticket_channel(3, owner_id=99, guild=guild)
    service = _service(GuildTicketSettings(guild_id=1, limit=10, log_channel_id=555))

    assert await service.close_ticket(channel, _user(5, "mod")) == CLOSE_SUCCESS
    channel.delete.assert_awaited_once()
    assert service.deps.diagnostics.error.call_args.args[0] == "closeTicketLog"


@pytest.mark.asyncio
async def test_close_all_counts_outcomes() -> None:
    guild = _guild()
    healthy = _ticket_channel(1, owner_id=10, guild=guild)
    broken = _ticket_channel(2, owner_id=20, guild=guild)
    broken.delete.side_effect = discord.HTTPException(MagicMock(status=500), "boom")
    guild.channels = [healthy, MagicMock(type=discord.ChannelType.text, topic="general", name="general"), broken]
    service = _service(GuildTicketSettings(guild_id=1, limit=10))

    assert await service.close_all_tickets(guild, _user(5, "mod")) == (1, 1)
    healthy.delete.assert_awaited_once()
    broken.delete.assert_awaited_once()


@pytest.mark.asyncio
async def test_close_all_without_tickets() -> None:
    service = _service(GuildTicketSettings(guild_id=1, limit=10))
    assert await service.close_all_tickets(_guild(), _user(5, "mod")) == (0, 0)


@pytest.mark.asyncio
async def test_close_all_passes_reason_to_log() -> None:
    guild = _guild()
    log_channel = MagicMock()
    log_channel.send = AsyncMock()
    guild.get_channel.return_value = log_channel
    guild.channels = [_ticket_channel(1, owner_id=10, guild=guild)]
    service = _service(GuildTicketSettings(guild_id=1, limit=10, log_channel_id=555))

    await service.close_all_tickets(guild, _user(5, "mod"))

    fields = {field.name: field.value for field in log_channel.send.await_args.kwargs["embed"].fields}
    assert fields["Reason"] == CLOSE_ALL_REASON


@pytest.mark.asyncio
async def test_close_button_outside_ticket_channel() -> None:
    channel = MagicMock(type=discord.ChannelType.text, topic="general chat")
    channel.name = "general"
    interaction = _interaction(_guild(), _user(), channel=channel)
    service = _service(GuildTicketSettings(guild_id=1, limit=10))

    assert await service.handle_ticket_close(interaction) == CLOSE_NOT_A_TICKET
    interaction.followup.send.assert_awaited_once_with(
        "This command can only be used in ticket channels.", ephemeral=True
    )


@pytest.mark.asyncio
async def test_open_rechecks_duplicate_after_category_prompt() -> None:
    guild = _guild()
    interaction = _interaction(guild, _user())
    settings = GuildTicketSettings(guild_id=1, limit=10, categories=[TicketCategory("Billing")])
    service = _service(settings)

    async def choose_after_other_open(*_args) -> str:
        guild.channels.append(_ticket_channel(7, owner_id=99))
        return "Billing"

    service._prompt_category = AsyncMock(side_effect=choose_after_other_open)

    assert await service.handle_ticket_open(interaction) == OPEN_ALREADY_EXISTS
    guild.create_text_channel.assert_not_awaited()


@pytest.mark.asyncio
async def test_open_rechecks_limit_after_category_prompt() -> None:
    guild = _guild([_ticket_channel(1, owner_id=1)])
    interaction = _interaction(guild, _user())
    settings = GuildTicketSettings(guild_id=1, limit=2, categories=[TicketCategory("Billing")])
    service = _service(settings)

    async def choose_after_guild_fills(*_args) -> str:
        guild.channels.append(_ticket_channel(2, owner_id=2))
        return "Billing"

    service._prompt_category = AsyncMock(side_effect=choose_after_guild_fills)

    assert await service.handle_ticket_open(interaction) == OPEN_LIMIT_REACHED
    guild.create_text_channel.assert_not_awaited()


@pytest.mark.asyncio
async def test_open_stops_when_interaction_expired() -> None:
    guild = _guild()
    interaction = _interaction(guild, _user())
    interaction.response.defer.side_effect = discord.NotFound(MagicMock(status=404), "Unknown interaction")
    service = _service(GuildTicketSettings(guild_id=1, limit=10))

    assert await service.handle_ticket_open(interaction) == OPEN_CREATION_ERROR
    guild.create_text_channel.assert_not_awaited()
    interaction.edit_original_response.assert_not_awaited()


@pytest.mark.asyncio
async def test_close_button_stops_when_interaction_expired() -> None:
    guild = _guild()
    channel = _ticket_channel(1, owner_id=99, guild=guild)
    interaction = _interaction(guild, _user(), channel=channel)
    interaction.response.defer.side_effect = discord.NotFound(MagicMock(status=404), "Unknown interaction")
    service = _service(GuildTicketSettings(guild_id=1, limit=10))

    assert await service.handle_ticket_close(interaction) == CLOSE_ERROR
    channel.delete.assert_not_awaited()
    interaction.followup.send.assert_not_awaited()
