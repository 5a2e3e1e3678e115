"""
Job board API and job listing page.
"""
from __future__ import annotations

import httpx
import pytest
from httpx import ASGITransport

from identity_access.errors import CollaboratorError


pytestmark = pytest.mark.anyio("asyncio")


def _client(web_app) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=ASGITransport(app=web_app.app), base_url="http://test")


async def _login(client: httpx.AsyncClient, email: str = "demo@catalyst.com") -> None:
    r = await client.post("/auth/login", data={"email": email, "password": "123456"})
    assert r.status_code == 302


class _BrokenCrud:
    def list_jobs(self, *, query=None, featured=False):
        raise CollaboratorError("down")

    def get_job(self, job_id):
        raise CollaboratorError("down")


async def test_list_jobs_with_filters(web_app):
    async with _client(web_app) as client:
        all_jobs = (await client.get("/api/jobs")).json()
        featured = (await client.get("/api/jobs?featured=true")).json()
        searched = (await client.get("/api/jobs?q=analyst")).json()
    assert [j["id"] for j in all_jobs["items"]] == ["1", "2", "3"]
    assert all_jobs["degraded"] is False
    assert [j["id"] for j in featured["items"]] == ["1", "3"]
    assert [j["title"] for j in searched["items"]] == ["Data Analyst"]


async def test_list_jobs_degrades_when_backend_fails(web_app, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(web_app.services, "crud", _BrokenCrud())
    async with _client(web_app) as client:
        r = await client.get("/api/jobs")
        page = await client.get("/pages/empleos.html")
        home = await client.get("/")
    assert r.status_code == 200
    assert r.json() == {"items": [], "degraded": True}
    assert page.status_code == 200
    assert home.status_code == 200


async def test_apply_requires_session(web_app):
    async with _client(web_app) as client:
        r = await client.post("/api/jobs/1/apply")
    assert r.status_code == 401
    assert r.json()["error"] == "unauthenticated"


async def test_user_applies_once(web_app):
    async with _client(web_app) as client:
        await _login(client)
        first = await client.post("/api/jobs/1/apply")
        second = await client.post("/api/jobs/1/apply")
    assert first.status_code == 201
    body = first.json()
    assert body["success"] is True
    assert body["application"]["job_id"] == "1"
    assert body["application"]["user_id"] == "999"
    assert second.status_code == 409
    assert second.json() == {"error": "already_applied", "detail": "Ya has aplicado a este empleo"}


async def test_apply_to_unknown_job_is_404(web_app):
    async with _client(web_app) as client:
        await _login(client)
        r = await client.post("/api/jobs/999/apply")
    assert r.status_code == 404


async def test_recruiter_cannot_apply(web_app):
    async with _client(web_app) as client:
        await _login(client, "th@catalyst.com")
        r = await client.post("/api/jobs/1/apply")
    assert r.status_code == 403
    assert r.json()["error"] == "forbidden"


async def test_apply_backend_failure_is_503(web_app, monkeypatch: pytest.MonkeyPatch):
    async with _client(web_app) as client:
        await _login(client)
        monkeypatch.setattr(web_app.services, "crud", _BrokenCrud())
        r = await client.post("/api/jobs/1/apply")
    assert r.status_code == 503


async def test_apply_rejects_cross_origin(web_app):
    async with _client(web_app) as client:
        await _login(client)
        r = await client.post("/api/jobs/1/apply", headers={"Origin": "http://evil.example"})
    assert r.status_code == 403
    assert r.json()["error"] == "csrf_violation"


async def test_job_page_shows_apply_buttons_only_for_applicants(web_app):
    async with _client(web_app) as client:
        anonymous = await client.get("/pages/empleos.html?q=developer")
        await _login(client)
        user = await client.get("/pages/empleos.html")
    assert "Backend Developer" in anonymous.text
    assert "Data Analyst" not in anonymous.text
    assert 'data-action="apply"' not in anonymous.text
    assert 'data-action="apply"' in user.text


async def test_home_lists_featured_jobs(web_app):
    async with _client(web_app) as client:
        r = await client.get("/")
    assert "Empleos destacados" in r.text
    assert "Frontend Developer" in r.text
    assert "Data Analyst" not in r.text
