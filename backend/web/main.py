"Catalyst HR web"
from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional
from urllib.parse import quote, urlparse
import asyncio
import logging
import os
import re
import sys as _sys

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse, Response
from fastapi.staticfiles import StaticFiles

# Ensure legacy imports consistently reference the same module instance.
if __name__ == "main":
    _sys.modules.setdefault("backend.web.main", _sys.modules[__name__])
elif __name__ == "backend.web.main":
    _sys.modules["main"] = _sys.modules[__name__]


def _should_load_dotenv() -> bool:
    """Decide if we should load a local .env file.

    - Never load under pytest to avoid contaminating test env.
    - Allow explicit opt-out/opt-in via CATALYST_ENABLE_DOTENV (default true
      outside pytest).
    """
    if "pytest" in _sys.modules or os.getenv("PYTEST_CURRENT_TEST"):
        return False
    flag = (os.getenv("CATALYST_ENABLE_DOTENV", "true") or "").strip().lower()
    return flag in ("1", "true", "yes")


if _should_load_dotenv():
    load_dotenv()

import config as _cfg  # noqa: E402

# Minimal production safety checks (fail-fast on insecure config)
_cfg.ensure_secure_config_on_startup()

from components import HomePage, JobList, Layout, PlaceholderPage  # noqa: E402
from components.pages import PAGE_TITLES, page_title  # noqa: E402
from identity_access.errors import CollaboratorError  # noqa: E402
from identity_access.guard import AccessDecision  # noqa: E402
from rendering import (  # noqa: E402
    access_denied_response,
    get_context,
    get_services,
    layout_for,
    layout_response,
    private_no_store,
)
from services import ClientContext, Services, build_services_from_env  # noqa: E402

try:
    from .auth_utils import CLIENT_COOKIE_NAME
except ImportError:
    from auth_utils import CLIENT_COOKIE_NAME


# --- App & Settings Setup -------------------------------------------------------

class AppSettings:
    def __init__(self) -> None:
        self._env_override: Optional[str] = None

    @property
    def environment(self) -> str:
        if self._env_override is not None:
            return self._env_override
        return _cfg.current_environment()

    def override_environment(self, env: Optional[str]) -> None:
        """Override environment for tests (e.g., "prod"), or reset with None."""
        self._env_override = env


logger = logging.getLogger("catalyst.web")
SETTINGS = AppSettings()

PAGE_NAME_PATTERN = re.compile(r"^[a-z0-9-]+\.html$")


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # Poll tasks must not outlive the loop.
    await app.state.services.monitors.stop_all()


app = FastAPI(title="Catalyst HR", description="Portal de empleo y gestión de talento", version="0.1.0", lifespan=lifespan)
app.state.services = build_services_from_env()

static_dir = Path(__file__).parent / "static"
app.mount("/static", StaticFiles(directory=str(static_dir)), name="static")

from routes.auth import auth_router  # noqa: E402
from routes.jobs import jobs_router  # noqa: E402
from routes.session import session_router  # noqa: E402


# --- Client Context & Guard Middleware --------------------------------------------

def _is_asset_path(path: str) -> bool:
    return path.startswith("/static/") or path in ("/health", "/favicon.ico")


def _is_page_path(path: str) -> bool:
    if path in ("/", "/index.html"):
        return True
    if not path.startswith("/pages/"):
        return False
    return bool(PAGE_NAME_PATTERN.match(path[len("/pages/"):]))


def _client_context(services: Services, client_id: Optional[str]) -> ClientContext:
    """Resolve store and monitor for the caller.

    A cookie that points at neither a stored session nor a live monitor gets an
    unregistered monitor so stray cookies never grow the registry.
    """
    store = services.store_for(client_id)
    monitor = None
    if client_id:
        monitor = services.monitors.lookup(client_id)
        if monitor is not None or store.load() is not None:
            monitor = services.monitors.get(client_id, store)
    if monitor is None:
        monitor = services.monitors.ephemeral(store)
    return ClientContext(client_id=client_id, store=store, monitor=monitor)


def _login_redirect(request: Request) -> Response:
    target = request.url.path
    if request.url.query:
        target = f"{target}?{request.url.query}"
    login_url = f"/pages/login.html?returnUrl={quote(target, safe='')}"
    if "HX-Request" in request.headers:
        # Security: prevent intermediaries from caching unauthenticated HTMX responses
        return Response(
            status_code=401,
            headers={"HX-Redirect": login_url, "Cache-Control": "private, no-store", "Vary": "HX-Request"},
        )
    return RedirectResponse(url=login_url, status_code=302)


@app.middleware("http")
async def client_state(request: Request, call_next):
    path = request.url.path
    if _is_asset_path(path):
        return await call_next(request)

    services = get_services(request)
    ctx = _client_context(services, request.cookies.get(CLIENT_COOKIE_NAME))
    is_page = _is_page_path(path)
    if is_page:
        ctx.monitor.initialize(path)
    else:
        ctx.monitor.check(request.query_params.get("page"))
    ctx.session = ctx.store.load()
    if ctx.session is not None and ctx.client_id and not ctx.monitor.polling:
        # Sessions restored from a shared store after a restart get a poller too.
        ctx.monitor.start()

    # Expose minimal, read-only user context for downstream handlers.
    request.state.ctx = ctx
    request.state.user = ctx.session.user_blob() if ctx.session is not None else None

    if is_page:
        decision = services.guard.check_access(path, ctx.session)
        if decision is AccessDecision.REDIRECT_TO_LOGIN:
            logger.info("Anonymous request for %s redirected to login", path)
            return _login_redirect(request)
        if decision is AccessDecision.DENY:
            logger.info("Role %s denied for %s", ctx.session.role.value if ctx.session else "-", path)
            return access_denied_response(request)
    response = await call_next(request)
    if ctx.client_id:
        services.monitors.release(ctx.client_id)
    return response


# --- Security Headers Middleware ----------------------------------------------

def _collaborator_origins() -> list:
    origins = []
    for var_name in ("CATALYST_API_BASE_URL", "CATALYST_GAMIFICATION_URL"):
        p = urlparse((os.getenv(var_name) or "").strip())
        if p.scheme and p.netloc:
            origins.append(f"{p.scheme}://{p.netloc}")
    return list(dict.fromkeys(origins))


@app.middleware("http")
async def security_headers(request: Request, call_next):
    response = await call_next(request)
    extra_connect = _collaborator_origins()
    connect_src = "'self'" + (" " + " ".join(extra_connect) if extra_connect else "")

    if SETTINGS.environment == "prod":
        # Harden CSP in production: avoid 'unsafe-inline' to reduce XSS surface.
        csp = (
            "default-src 'self'; script-src 'self'; style-src 'self'; "
            f"img-src 'self' data:; font-src 'self' data:; connect-src {connect_src};"
        )
    else:
        # Developer experience: allow inline styles/scripts for local tweaks.
        csp = (
            "default-src 'self'; script-src 'self' 'unsafe-inline'; style-src 'self' 'unsafe-inline'; "
            f"img-src 'self' data:; font-src 'self' data:; connect-src {connect_src};"
        )
    response.headers.setdefault("Content-Security-Policy", csp)
    response.headers.setdefault("X-Frame-Options", "SAMEORIGIN")
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
    if SETTINGS.environment == "prod":
        response.headers.setdefault("Cross-Origin-Opener-Policy", "same-origin")
    response.headers.setdefault("Permissions-Policy", "geolocation=(), microphone=(), camera=()")
    # HSTS: always on (dev = prod)
    response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
    return response


# --- Helpers ----------------------------------------------------------------------

async def _load_jobs(services: Services, *, query: Optional[str] = None, featured: bool = False):
    """Return (jobs, degraded); an unreachable backend yields an empty list."""
    if services.crud is None:
        return [], True
    try:
        jobs = await asyncio.to_thread(services.crud.list_jobs, query=query, featured=featured)
    except CollaboratorError as exc:
        logger.warning("Job listing unavailable: %s", exc.code)
        return [], True
    return jobs, False


# --- Route Handlers -------------------------------------------------------------

@app.get("/", response_class=HTMLResponse)
@app.get("/index.html", response_class=HTMLResponse)
async def home(request: Request):
    featured, _ = await _load_jobs(get_services(request), featured=True)
    content = HomePage(get_context(request).session, featured_jobs=featured[:6]).render()
    return layout_response(request, layout_for(request, page_title("index.html"), content))


@app.get("/health")
async def health_check():
    # Minimal health endpoint used by orchestrators and tests.
    # Security: include no-store to avoid caching any runtime status.
    return JSONResponse({"status": "healthy"}, headers=private_no_store())


@app.get("/api/me")
async def get_me(request: Request):
    session = get_context(request).session
    if session is None:
        return JSONResponse({"error": "unauthenticated"}, status_code=401, headers=private_no_store())
    return JSONResponse(session.user_blob(), headers=private_no_store())


# Login/register pages come from the auth router and must be registered
# before the generic page route.
app.include_router(auth_router)
app.include_router(session_router)
app.include_router(jobs_router)


@app.get("/pages/{page_name}", response_class=HTMLResponse)
async def page(request: Request, page_name: str, q: Optional[str] = None):
    page_id = f"pages/{page_name}"
    services = get_services(request)
    if not PAGE_NAME_PATTERN.match(page_name) or (
        page_id not in PAGE_TITLES and services.registry.permission_for(page_id) is None
    ):
        return JSONResponse({"error": "not_found"}, status_code=404)

    title = page_title(page_id)
    if page_name == "empleos.html":
        jobs, degraded = await _load_jobs(services, query=q)
        session = get_context(request).session
        content = f"<h1>{Layout.escape(title)}</h1>" + JobList(
            jobs,
            query=q or "",
            can_apply=services.guard.can_use_feature("apply_jobs", session),
            degraded=degraded,
        ).render()
    else:
        content = PlaceholderPage(title, page_id).render()
    return layout_response(request, layout_for(request, title, content))
