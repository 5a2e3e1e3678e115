"""
Security headers on every response, with a stricter CSP in production.
"""
from __future__ import annotations

import httpx
import pytest
from httpx import ASGITransport


pytestmark = pytest.mark.anyio("asyncio")


def _client(web_app) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=ASGITransport(app=web_app.app), base_url="http://test")


async def test_baseline_headers_present(web_app):
    async with _client(web_app) as client:
        r = await client.get("/health")
    assert r.headers["X-Frame-Options"] == "SAMEORIGIN"
    assert r.headers["X-Content-Type-Options"] == "nosniff"
    assert r.headers["Referrer-Policy"] == "strict-origin-when-cross-origin"
    assert "max-age=31536000" in r.headers["Strict-Transport-Security"]
    assert "'unsafe-inline'" in r.headers["Content-Security-Policy"]


async def test_prod_csp_is_strict(web_app):
    web_app.main.SETTINGS.override_environment("prod")
    try:
        async with _client(web_app) as client:
            r = await client.get("/index.html")
    finally:
        web_app.main.SETTINGS.override_environment(None)
    csp = r.headers["Content-Security-Policy"]
    assert "'unsafe-inline'" not in csp
    assert r.headers["Cross-Origin-Opener-Policy"] == "same-origin"


async def test_connect_src_includes_collaborators(web_app, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("CATALYST_API_BASE_URL", "https://crud.example.com/api")
    monkeypatch.setenv("CATALYST_GAMIFICATION_URL", "https://game.example.com/v1")
    async with _client(web_app) as client:
        r = await client.get("/health")
    csp = r.headers["Content-Security-Policy"]
    assert "connect-src 'self' https://crud.example.com https://game.example.com;" in csp
