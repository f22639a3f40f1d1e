from __future__ import annotations

import logging
from pathlib import Path

import discord
from discord.ext import commands

from core.config import AppConfig
from core.errors import handle_app_command_error, handle_prefix_command_error
from core.extensions import load_extensions
from database.base import Database
from database.migrations.runner import run_migrations
from database.repositories import GuildSettingsRepository
from services.cache import CacheBackend, build_cache
from services.diagnostics import DiagnosticSink
from services.paste_service import PasteService
from services.settings_service import GuildSettingsService
from services.ticket_service import TicketService, TicketServiceDeps
from services.transcript_service import TranscriptService
from utils.i18n import I18N

LOGGER = logging.getLogger(__name__)


class TicketBot(commands.Bot):
    def __init__(self, config: AppConfig) -> None:
        intents = discord.Intents.default()
        intents.guilds = True
        intents.members = True
        intents.messages = True
        intents.message_content = True

        super().__init__(
            command_prefix=config.discord.prefix,
            intents=intents,
            application_id=config.discord.application_id,
            allowed_mentions=discord.AllowedMentions(
                everyone=config.discord.allowed_mentions_everyone,
                roles=True,
                users=True,
                replied_user=False,
            ),
            help_command=None,
        )
        self.config = config
        self.root_dir = Path(__file__).resolve().parent.parent
        self.database = Database(
            url=config.database.url,
            timeout_seconds=config.database.timeout_seconds,
            pool_min_size=config.database.pool_min_size,
            pool_max_size=config.database.pool_max_size,
        )
        self.cache: CacheBackend | None = None
        self.i18n = I18N(self.root_dir / "config" / "locales", config.i18n.default_locale)
        self.diagnostics = DiagnosticSink(config.webhook_log)
        self.paste_service = PasteService(config.paste)
        self.transcript_service = TranscriptService(config.transcripts)

        # Repositories and services backed by storage are initialized during setup_hook.
        self.settings_repo: GuildSettingsRepository
        self.settings_service: GuildSettingsService
        self.ticket_service: TicketService

    async def setup_hook(self) -> None:
        await self.database.connect()
        await run_migrations(self.database, self.root_dir / "database" / "migrations")
        self.cache = await build_cache(self.config.redis)

        self.settings_repo = GuildSettingsRepository(self.database, self.config.tickets.default_limit)
        self.settings_service = GuildSettingsService(
            self.settings_repo, self.cache, self.config.redis.default_ttl
        )

        deps = TicketServiceDeps(
            settings=self.settings_service,
            transcripts=self.transcript_service,
            paste=self.paste_service,
            diagnostics=self.diagnostics,
            i18n=self.i18n,
        )
        self.ticket_service = TicketService(self, self.config, deps)

        await load_extensions(self, self.config.enabled_extensions)

        if self.config.discord.sync_commands_on_start:
            synced = await self.tree.sync()
            LOGGER.info("Synced %s application commands", len(synced))

        self.tree.on_error = handle_app_command_error  # type: ignore[assignment]

    async def on_ready(self) -> None:
        LOGGER.info("Bot ready as %s (%s)", self.user, self.user.id if self.user else "n/a")
        activity_type = self.config.discord.activity_type.lower()
        if activity_type == "playing":
            activity = discord.Game(name=self.config.discord.status_text)
        elif activity_type == "listening":
            activity = discord.Activity(
                type=discord.ActivityType.listening, name=self.config.discord.status_text
            )
        else:
            activity = discord.Activity(
                type=discord.ActivityType.watching, name=self.config.discord.status_text
            )
        await self.change_presence(status=discord.Status.online, activity=activity)

    async def on_command_error(self, ctx: commands.Context[commands.Bot], error: commands.CommandError) -> None:
        if ctx.command and ctx.command.has_error_handler():
            return
        await handle_prefix_command_error(ctx, error)

    async def close(self) -> None:
        await super().close()
        await self.diagnostics.drain()
        await self.database.close()
        if self.cache:
            await self.cache.close()
