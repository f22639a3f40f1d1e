from __future__ import annotations

import asyncio
import logging
import traceback
from datetime import UTC, datetime

import aiohttp

from core.config import WebhookLogConfig

LOGGER = logging.getLogger(__name__)


class DiagnosticSink:
    """Fire-and-forget error reporting: always logged, optionally mirrored to a Discord webhook."""

    def __init__(self, config: WebhookLogConfig) -> None:
        self.config = config
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def webhook_enabled(self) -> bool:
        return self.config.enabled and bool(self.config.url)

    def error(self, label: str, exc: BaseException) -> None:
        LOGGER.error("%s failed", label, exc_info=exc, extra={"label": label})
        if not self.webhook_enabled:
            return
        try:
            task = asyncio.get_running_loop().create_task(self._send_webhook(label, exc))
        except RuntimeError:
            return
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _send_webhook(self, label: str, exc: BaseException) -> None:
        trace = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        try:
            async with aiohttp.ClientSession() as session:
                await session.post(
                    self.config.url,
                    json={
                        "content": None,
                        "embeds": [
                            {
                                "title": label,
                                "description": f"```py\n{trace[-3500:]}\n```",
                                "timestamp": datetime.now(UTC).isoformat(),
                            }
                        ],
                    },
                    timeout=aiohttp.ClientTimeout(total=10),
                )
        except Exception:
            LOGGER.exception("Failed to send diagnostic webhook for %s", label)

    async def drain(self) -> None:
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
