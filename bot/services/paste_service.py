from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

import aiohttp

from core.config import PasteConfig

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class PasteResult:
    key: str
    url: str
    short: str
    raw: str


class PasteService:
    """Uploads plain text to a sourcebin-compatible paste API."""

    def __init__(self, config: PasteConfig) -> None:
        self.config = config

    def _build_payload(self, content: str, title: str) -> dict[str, Any]:
        return {
            "title": title[:100],
            "description": "",
            "files": [{"name": f"{title[:90]}.txt", "content": content}],
        }

    def _result_for_key(self, key: str) -> PasteResult:
        return PasteResult(
            key=key,
            url=f"{self.config.site_url.rstrip('/')}/{key}",
            short=f"{self.config.short_url.rstrip('/')}/{key}",
            raw=f"{self.config.raw_url.rstrip('/')}/{key}/0",
        )

    async def post_to_bin(self, content: str, title: str) -> PasteResult | None:
        if not self.config.enabled:
            return None
        timeout = aiohttp.ClientTimeout(total=self.config.timeout_seconds)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(self.config.api_url, json=self._build_payload(content, title)) as response:
                    if response.status >= 400:
                        LOGGER.warning("Paste upload rejected with HTTP %s for %r", response.status, title)
                        return None
                    payload = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError):
            LOGGER.warning("Paste upload failed for %r", title, exc_info=True)
            return None

        key = payload.get("key") if isinstance(payload, dict) else None
        if not key:
            LOGGER.warning("Paste API response had no key for %r", title)
            return None
        return self._result_for_key(str(key))
