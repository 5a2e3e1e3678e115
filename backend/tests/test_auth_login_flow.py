"""
Login, persona selection, registration and logout through the HTTP surface.

Uses the in-memory wiring from the `web_app` fixture; the cookie jar of the
httpx client carries the opaque client cookie between requests.
"""
from __future__ import annotations

import re
import threading

import httpx
import pytest
from httpx import ASGITransport

from auth_utils import CLIENT_COOKIE_NAME
from identity_access.auth_flow import INVALID_CREDENTIALS_MESSAGE


pytestmark = pytest.mark.anyio("asyncio")


def _client(web_app) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=ASGITransport(app=web_app.app), base_url="http://test")


async def _login(client: httpx.AsyncClient, email: str = "demo@catalyst.com", password: str = "123456", **extra):
    return await client.post("/auth/login", data={"email": email, "password": password, **extra})


async def test_login_page_renders_form(web_app):
    async with _client(web_app) as client:
        r = await client.get("/pages/login.html?returnUrl=%2Fpages%2Fperfil.html")
    assert r.status_code == 200
    assert 'action="/auth/login"' in r.text
    assert 'name="returnUrl" value="/pages/perfil.html"' in r.text
    assert r.headers.get("Cache-Control") == "private, no-store"


async def test_login_page_drops_external_return_url(web_app):
    async with _client(web_app) as client:
        r = await client.get("/pages/login.html?returnUrl=https%3A%2F%2Fevil.example")
    assert 'name="returnUrl"' not in r.text


async def test_demo_login_sets_cookie_and_redirects_home(web_app):
    async with _client(web_app) as client:
        r = await _login(client)
        assert r.status_code == 302
        assert r.headers["location"] == "/index.html"
        assert CLIENT_COOKIE_NAME in r.cookies
        set_cookie = r.headers.get("set-cookie", "").lower()
        assert "httponly" in set_cookie
        assert "samesite=lax" in set_cookie

        me = await client.get("/api/me")
        assert me.status_code == 200
        assert me.json()["id"] == "999"
        assert me.json()["role"] == "usuario"

        home = await client.get("/index.html")
    assert "Welcome Demo! Login successful." in home.text
    assert "userDropdown" in home.text
    assert len(web_app.services.monitors) == 1


@pytest.mark.parametrize(
    "email,location",
    [
        ("admin@catalyst.com", "/pages/admin-dashboard.html"),
        ("th@catalyst.com", "/pages/hiring-dashboard.html"),
        ("manager@catalyst.com", "/index.html"),
    ],
)
async def test_login_redirects_to_role_home(web_app, email: str, location: str):
    async with _client(web_app) as client:
        r = await _login(client, email)
    assert r.status_code == 302
    assert r.headers["location"] == location


async def test_login_honours_safe_return_url(web_app):
    async with _client(web_app) as client:
        r = await _login(client, returnUrl="/pages/perfil.html")
        assert r.headers["location"] == "/pages/perfil.html"
        r = await _login(client, returnUrl="//evil.example/x")
    assert r.headers["location"] == "/index.html"


async def test_htmx_login_uses_hx_redirect(web_app):
    async with _client(web_app) as client:
        r = await client.post(
            "/auth/login",
            data={"email": "demo@catalyst.com", "password": "123456"},
            headers={"HX-Request": "true"},
        )
    assert r.status_code == 204
    assert r.headers["HX-Redirect"] == "/index.html"


async def test_invalid_login_is_401_and_sets_no_cookie(web_app):
    async with _client(web_app) as client:
        r = await _login(client, "unknown@x.com", "wrong")
        assert r.status_code == 401
        assert INVALID_CREDENTIALS_MESSAGE in r.text
        assert CLIENT_COOKIE_NAME not in r.cookies
        me = await client.get("/api/me")
    assert me.status_code == 401


async def test_directory_user_can_log_in(web_app):
    async with _client(web_app) as client:
        r = await _login(client, "ana@example.com", "secreto123")
        assert r.status_code == 302
        me = await client.get("/api/me")
    assert me.json()["role"] == "candidato"


async def test_directory_calls_run_off_the_event_loop(web_app, monkeypatch: pytest.MonkeyPatch):
    crud = web_app.services.crud
    seen = []

    def _spy(original):
        def wrapper(*args, **kwargs):
            seen.append(threading.get_ident())
            return original(*args, **kwargs)

        return wrapper

    monkeypatch.setattr(crud, "list_users", _spy(crud.list_users))
    monkeypatch.setattr(crud, "create_user", _spy(crud.create_user))
    loop_thread = threading.get_ident()
    async with _client(web_app) as client:
        r = await _login(client, "ana@example.com", "secreto123")
        assert r.status_code == 302
        r = await client.post(
            "/auth/register",
            data={
                "email": "hilo@example.com",
                "password": "password1",
                "confirm_password": "password1",
                "first_name": "Hilo",
                "last_name": "Usuario",
            },
        )
        assert r.status_code == 302
    assert len(seen) >= 3
    assert loop_thread not in seen


async def test_cross_origin_login_is_rejected(web_app):
    async with _client(web_app) as client:
        r = await client.post(
            "/auth/login",
            data={"email": "demo@catalyst.com", "password": "123456"},
            headers={"Origin": "http://evil.example"},
        )
    assert r.status_code == 403
    assert r.json() == {"error": "csrf_violation"}


async def test_multi_persona_login_requires_role_selection(web_app):
    async with _client(web_app) as client:
        r = await _login(client, "juan@catalyst.com")
        assert r.status_code == 200
        assert 'action="/auth/select-role"' in r.text
        assert 'value="juan-hr"' in r.text
        challenge = re.search(r'name="challenge" value="([^"]+)"', r.text).group(1)
        pre_login_cookie = r.cookies.get(CLIENT_COOKIE_NAME)
        assert pre_login_cookie

        done = await client.post("/auth/select-role", data={"challenge": challenge, "persona": "juan-hr"})
        assert done.status_code == 302
        assert done.headers["location"] == "/pages/hiring-dashboard.html"
        assert done.cookies.get(CLIENT_COOKIE_NAME) != pre_login_cookie

        me = await client.get("/api/me")
    assert me.json()["id"] == "992"
    assert me.json()["role"] == "talentos_humanos"


async def test_role_selection_with_stale_challenge_is_401(web_app):
    async with _client(web_app) as client:
        r = await client.post("/auth/select-role", data={"challenge": "nope", "persona": "juan-admin"})
    assert r.status_code == 401
    assert "Role selection expired" in r.text


async def test_register_creates_account_and_logs_in(web_app):
    async with _client(web_app) as client:
        page = await client.get("/pages/register.html")
        assert 'action="/auth/register"' in page.text
        r = await client.post(
            "/auth/register",
            data={
                "email": "nuevo@example.com",
                "password": "password1",
                "confirm_password": "password1",
                "first_name": "Nuevo",
                "last_name": "Usuario",
            },
        )
        assert r.status_code == 302
        me = await client.get("/api/me")
    assert me.json()["email"] == "nuevo@example.com"


@pytest.mark.parametrize(
    "email,password,confirm,status",
    [
        ("bad-email", "password1", "password1", 400),
        ("nuevo@example.com", "password1", "password2", 400),
        ("ana@example.com", "password1", "password1", 409),
    ],
)
async def test_register_rejections(web_app, email, password, confirm, status):
    async with _client(web_app) as client:
        r = await client.post(
            "/auth/register",
            data={
                "email": email,
                "password": password,
                "confirm_password": confirm,
                "first_name": "Nuevo",
                "last_name": "Usuario",
            },
        )
    assert r.status_code == status
    assert 'action="/auth/register"' in r.text
    assert "password1" not in r.text


async def test_registered_name_shaped_like_placeholder_renders(web_app):
    async with _client(web_app) as client:
        r = await client.post(
            "/auth/register",
            data={
                "email": "raro@example.com",
                "password": "password1",
                "confirm_password": "password1",
                "first_name": "__EVIL_PATH__",
                "last_name": "Usuario",
            },
        )
        assert r.status_code == 302
        home = await client.get("/index.html")
    assert home.status_code == 200
    assert "__EVIL_PATH__" in home.text


async def test_logout_clears_session_and_shows_notice(web_app):
    async with _client(web_app) as client:
        await _login(client)
        r = await client.get("/auth/logout")
        assert r.status_code == 302
        assert r.headers["location"] == "/index.html"
        assert r.headers.get("Cache-Control") == "private, no-store"

        me = await client.get("/api/me")
        assert me.status_code == 401
        home = await client.get("/index.html")
    assert "You have been logged out successfully." in home.text
    assert "Iniciar Sesión" in home.text
