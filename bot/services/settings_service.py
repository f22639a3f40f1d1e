from __future__ import annotations

import json
import logging

from core.errors import ValidationError
from database.models import GuildTicketSettings, TicketCategory
from database.repositories import GuildSettingsRepository
from services.cache import CacheBackend
from utils.constants import MAX_CATEGORIES, MAX_TICKET_LIMIT, TOPIC_DELIMITER

LOGGER = logging.getLogger(__name__)


class GuildSettingsService:
    """Read-through cache in front of the per-guild ticket settings tables."""

    def __init__(self, repo: GuildSettingsRepository, cache: CacheBackend, ttl_seconds: int) -> None:
        self.repo = repo
        self.cache = cache
        self.ttl_seconds = ttl_seconds

    @staticmethod
    def _cache_key(guild_id: int) -> str:
        return f"ticket:settings:{guild_id}"

    async def get_settings(self, guild_id: int) -> GuildTicketSettings:
        cached = await self.cache.get(self._cache_key(guild_id))
        if cached:
            try:
                return GuildTicketSettings.from_dict(json.loads(cached))
            except (json.JSONDecodeError, KeyError, TypeError, ValueError):
                LOGGER.warning("Discarding malformed cached settings for guild %s", guild_id)
                await self.cache.delete(self._cache_key(guild_id))

        settings = await self.repo.get(guild_id)
        await self.cache.set(
            self._cache_key(guild_id),
            json.dumps(settings.to_dict(), separators=(",", ":")),
            ttl=self.ttl_seconds,
        )
        return settings

    async def invalidate(self, guild_id: int) -> None:
        await self.cache.delete(self._cache_key(guild_id))

    async def ensure_guild(self, guild_id: int) -> None:
        await self.repo.ensure_guild(guild_id)

    async def set_limit(self, guild_id: int, limit: int) -> None:
        if limit < 1 or limit > MAX_TICKET_LIMIT:
            raise ValidationError(
                f"The ticket limit must be between 1 and {MAX_TICKET_LIMIT}.",
                message_key="ticket.limit.invalid",
                params={"maximum": MAX_TICKET_LIMIT},
            )
        await self.repo.set_limit(guild_id, limit)
        await self.invalidate(guild_id)
        LOGGER.info("Ticket limit for guild %s set to %s", guild_id, limit)

    async def set_log_channel(self, guild_id: int, channel_id: int | None) -> None:
        await self.repo.set_log_channel(guild_id, channel_id)
        await self.invalidate(guild_id)
        LOGGER.info("Ticket log channel for guild %s set to %s", guild_id, channel_id)

    async def add_category(self, guild_id: int, name: str, staff_roles: list[int]) -> TicketCategory:
        clean_name = name.strip()[:100]
        if not clean_name:
            raise ValidationError("Category name cannot be empty.")
        if TOPIC_DELIMITER in clean_name:
            raise ValidationError(
                f"Category names cannot contain `{TOPIC_DELIMITER}`.",
                message_key="ticket.category.invalid_name",
                params={"name": clean_name, "delimiter": TOPIC_DELIMITER},
            )
        settings = await self.get_settings(guild_id)
        if settings.get_category(clean_name):
            raise ValidationError(
                f"Category `{clean_name}` already exists.",
                message_key="ticket.category.exists",
                params={"name": clean_name},
            )
        if len(settings.categories) >= MAX_CATEGORIES:
            raise ValidationError(
                f"A server can have at most {MAX_CATEGORIES} ticket categories.",
                message_key="ticket.category.too_many",
                params={"maximum": MAX_CATEGORIES},
            )
        # dict.fromkeys keeps the first occurrence order while dropping duplicates.
        category = TicketCategory(name=clean_name, staff_roles=list(dict.fromkeys(staff_roles)))
        await self.repo.add_category(guild_id, category)
        await self.invalidate(guild_id)
        return category

    async def remove_category(self, guild_id: int, name: str) -> None:
        if not await self.repo.remove_category(guild_id, name):
            raise ValidationError(
                f"Category `{name}` does not exist.",
                message_key="ticket.category.not_found",
                params={"name": name},
            )
        await self.invalidate(guild_id)
