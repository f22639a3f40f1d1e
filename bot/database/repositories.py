from __future__ import annotations

import json
from typing import Any

from database.base import Database
from database.models import GuildTicketSettings, TicketCategory


def _json_load(value: str | None, default: Any) -> Any:
    if value is None:
        return default
    try:
        return json.loads(value)
    except json.JSONDecodeError:
        return default


def _json_dump(value: Any) -> str:
    return json.dumps(value, ensure_ascii=True, separators=(",", ":"))


class GuildSettingsRepository:
    def __init__(self, db: Database, default_limit: int) -> None:
        self.db = db
        self.default_limit = default_limit

    async def ensure_guild(self, guild_id: int) -> None:
        await self.db.execute(
            """
            INSERT INTO guild_ticket_settings(guild_id, ticket_limit)
            VALUES (?, ?)
            ON CONFLICT(guild_id) DO NOTHING;
            """,
            [guild_id, self.default_limit],
        )

    async def get(self, guild_id: int) -> GuildTicketSettings:
        await self.ensure_guild(guild_id)
        row = await self.db.fetchone(
            "SELECT ticket_limit, log_channel_id FROM guild_ticket_settings WHERE guild_id = ?;",
            [guild_id],
        )
        categories = await self.list_categories(guild_id)
        if row is None:
            return GuildTicketSettings(guild_id=guild_id, limit=self.default_limit, categories=categories)
        log_channel_id = row.get("log_channel_id")
        return GuildTicketSettings(
            guild_id=guild_id,
            limit=int(row["ticket_limit"]),
            categories=categories,
            log_channel_id=int(log_channel_id) if log_channel_id is not None else None,
        )

    async def set_limit(self, guild_id: int, limit: int) -> None:
        await self.ensure_guild(guild_id)
        await self.db.execute(
            """
            UPDATE guild_ticket_settings
            SET ticket_limit = ?, updated_at = CURRENT_TIMESTAMP
            WHERE guild_id = ?;
            """,
            [limit, guild_id],
        )

    async def set_log_channel(self, guild_id: int, channel_id: int | None) -> None:
        await self.ensure_guild(guild_id)
        await self.db.execute(
            """
            UPDATE guild_ticket_settings
            SET log_channel_id = ?, updated_at = CURRENT_TIMESTAMP
            WHERE guild_id = ?;
            """,
            [channel_id, guild_id],
        )

    async def list_categories(self, guild_id: int) -> list[TicketCategory]:
        rows = await self.db.fetchall(
            """
            SELECT name, staff_roles_json
            FROM ticket_categories
            WHERE guild_id = ?
            ORDER BY position ASC, name ASC;
            """,
            [guild_id],
        )
        return [
            TicketCategory(
                name=str(row["name"]),
                staff_roles=[int(role_id) for role_id in _json_load(row.get("staff_roles_json"), [])],
            )
            for row in rows
        ]

    async def add_category(self, guild_id: int, category: TicketCategory) -> None:
        last_position = await self.db.fetchval(
            "SELECT MAX(position) FROM ticket_categories WHERE guild_id = ?;",
            [guild_id],
            default=-1,
        )
        position = int(last_position) + 1
        await self.db.execute(
            """
            INSERT INTO ticket_categories(guild_id, name, staff_roles_json, position)
            VALUES (?, ?, ?, ?);
            """,
            [guild_id, category.name, _json_dump(category.staff_roles), position],
        )

    async def remove_category(self, guild_id: int, name: str) -> bool:
        removed = await self.db.execute(
            "DELETE FROM ticket_categories WHERE guild_id = ? AND name = ?;",
            [guild_id, name],
        )
        return removed > 0
