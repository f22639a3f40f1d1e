from __future__ import annotations

from typing import Any

import aiohttp
import pytest

from core.config import PasteConfig
from services.paste_service import PasteService


class _FakeResponse:
    def __init__(self, status: int, payload: Any) -> None:
        self.status = status
        self._payload = payload

    async def json(self, content_type: str | None = None) -> Any:
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload

    async def __aenter__(self) -> _FakeResponse:
        return self

    async def __aexit__(self, *exc: object) -> None:
        return None


class _FakeSession:
    calls: list[tuple[str, dict[str, Any]]] = []
    response: _FakeResponse | Exception = _FakeResponse(200, {"key": "abc123"})

    def __init__(self, timeout: aiohttp.ClientTimeout | None = None) -> None:
        self.timeout = timeout

    def post(self, url: str, json: dict[str, Any]) -> _FakeResponse:
        _FakeSession.calls.append((url, json))
        if isinstance(self.response, Exception):
            raise self.response
        return self.response

    async def __aenter__(self) -> _FakeSession:
        return self

    async def __aexit__(self, *exc: object) -> None:
        return None


@pytest.fixture
def fake_session(monkeypatch):
    _FakeSession.calls = []
    _FakeSession.response = _FakeResponse(200, {"key": "abc123"})
    monkeypatch.setattr("services.paste_service.aiohttp.ClientSession", _FakeSession)
    return _FakeSession


@pytest.mark.asyncio
async def test_post_to_bin_builds_urls(fake_session) -> None:
    service = PasteService(PasteConfig())

    result = await service.post_to_bin("transcript body", "Ticket Logs for tіcket-1")

    assert result is not None
    assert result.key == "abc123"
    assert result.url == "https://sourceb.in/abc123"
    assert result.short == "https://srcb.in/abc123"
    assert result.raw == "https://cdn.sourceb.in/bins/abc123/0"
    url, payload = fake_session.calls[0]
    assert url == "https://sourceb.in/api/bins"
    assert payload["title"] == "Ticket Logs for tіcket-1"
    assert payload["files"][0]["content"] == "transcript body"


@pytest.mark.asyncio
async def test_post_to_bin_http_error_returns_none(fake_session) -> None:
    fake_session.response = _FakeResponse(500, {"error": "boom"})
    assert await PasteService(PasteConfig()).post_to_bin("x", "t") is None


@pytest.mark.asyncio
async def test_post_to_bin_network_error_returns_none(fake_session) -> None:
    fake_session.response = aiohttp.ClientConnectionError("offline")
    assert await PasteService(PasteConfig()).post_to_bin("x", "t") is None


@pytest.mark.asyncio
async def test_post_to_bin_without_key_returns_none(fake_session) -> None:
    fake_session.response = _FakeResponse(200, {"unexpected": True})
    assert await PasteService(PasteConfig()).post_to_bin("x", "t") is None


@pytest.mark.asyncio
async def test_disabled_paste_skips_upload(fake_session) -> None:
    assert await PasteService(PasteConfig(enabled=False)).post_to_bin("x", "t") is None
    assert fake_session.calls == []
