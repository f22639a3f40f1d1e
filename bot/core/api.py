from __future__ import annotations

from fastapi import FastAPI, Header, HTTPException

from core.bot import TicketBot
from services.ticket_channels import list_ticket_channels, parse_topic


def _auth(x_api_key: str | None, expected: str) -> None:
    if not expected:
        return
    if x_api_key != expected:
        raise HTTPException(status_code=401, detail="Unauthorized")


def create_api_app(bot: TicketBot) -> FastAPI:
    app = FastAPI(title="Ticket Bot API", version="1.0.0")

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok" if bot.is_ready() else "starting"}

    @app.get("/guilds/{guild_id}/tickets")
    async def open_tickets(guild_id: int, x_api_key: str | None = Header(default=None)) -> dict[str, object]:
        _auth(x_api_key, bot.config.fastapi.api_key)
        guild = bot.get_guild(guild_id)
        if guild is None:
            raise HTTPException(status_code=404, detail="Guild not found")
        items: list[dict[str, object]] = []
        for channel in list_ticket_channels(guild):
            topic = parse_topic(channel.topic)
            items.append(
                {
                    "channel_id": channel.id,
                    "name": channel.name,
                    "owner_id": topic.owner_id if topic else None,
                    "category": topic.category_name if topic else None,
                }
            )
        return {"items": items}

    return app
