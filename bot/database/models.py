from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(slots=True)
class TicketCategory:
    name: str
    staff_roles: list[int] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "staff_roles": list(self.staff_roles)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TicketCategory:
        return cls(
            name=str(data["name"]),
            staff_roles=[int(role_id) for role_id in data.get("staff_roles", [])],
        )


@dataclass(slots=True)
class GuildTicketSettings:
    guild_id: int
    limit: int
    categories: list[TicketCategory] = field(default_factory=list)
    log_channel_id: int | None = None

    def get_category(self, name: str) -> TicketCategory | None:
        for category in self.categories:
            if category.name == name:
                return category
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "guild_id": self.guild_id,
            "limit": self.limit,
            "categories": [category.to_dict() for category in self.categories],
            "log_channel_id": self.log_channel_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GuildTicketSettings:
        log_channel_id = data.get("log_channel_id")
        return cls(
            guild_id=int(data["guild_id"]),
            limit=int(data["limit"]),
            categories=[TicketCategory.from_dict(row) for row in data.get("categories", [])],
            log_channel_id=int(log_channel_id) if log_channel_id is not None else None,
        )
