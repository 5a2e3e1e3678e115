"""
Authentication-related FastAPI routes (router-only module).

Why:
    Keep login, persona selection, registration and logout in a dedicated
    router. The guard middleware in `main` has already resolved the caller's
    client context; these routes only read it from `request.state`.

Notes:
    - A successful login rotates the opaque client id so a pre-login cookie
      can never be promoted to an authenticated one.
    - Form posts are CSRF-checked with the shared same-origin helper.
"""

from __future__ import annotations

from typing import Optional, Union
import asyncio
import logging

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse, Response

from components import LoginForm, RegisterForm, RoleSelectionForm
from identity_access.auth_flow import (
    AmbiguousIdentity,
    Authenticated,
    CollaboratorFailure,
    InvalidCredentials,
)
from identity_access.errors import CollaboratorError, EmailAlreadyRegistered, RegistrationInvalid
from rendering import get_context, get_services, layout_for, layout_response, private_no_store

try:
    from ..auth_utils import safe_return_url, set_client_cookie  # type: ignore
except ImportError:
    from auth_utils import safe_return_url, set_client_cookie  # type: ignore

from routes.security import _is_same_origin


auth_router = APIRouter(tags=["Auth"])  # explicit paths, no prefix
logger = logging.getLogger("catalyst.web.auth")

LOGIN_PATH = "/pages/login.html"
REGISTER_PATH = "/pages/register.html"


def _environment(request: Request) -> str:
    import main as mod  # late import: main includes this router

    return mod.SETTINGS.environment


def _csrf_rejected() -> JSONResponse:
    return JSONResponse({"error": "csrf_violation"}, status_code=403, headers=private_no_store())


def _redirect(request: Request, url: str) -> Response:
    headers = {"Cache-Control": "private, no-store", "Vary": "HX-Request"}
    if request.headers.get("HX-Request"):
        headers["HX-Redirect"] = url
        return Response(status_code=204, headers=headers)
    return RedirectResponse(url=url, status_code=302, headers=headers)


def _render(request: Request, title: str, content: str, page: str, *, status_code: int = 200) -> HTMLResponse:
    # Form posts land on /auth/*; relative nav links resolve like on /pages/.
    layout = layout_for(request, title, content, keep_redirects=False, current_path=page)
    return layout_response(request, layout, status_code=status_code, headers=private_no_store())


async def _complete_login(request: Request, result: Authenticated, return_url: Optional[str]) -> Response:
    """Persist the session under a fresh client id and send the user on.

    The old client id (if any) is forgotten together with its monitor.
    """
    services = get_services(request)
    old = get_context(request)
    new_id = services.clients.new_client_id()
    store = services.store_for(new_id)
    store.save(result.session)
    if old.client_id:
        old.store.clear()
        services.clients.forget(old.client_id)
        await services.monitors.discard(old.client_id)
    monitor = services.monitors.start(new_id, store)
    if result.message:
        monitor.notify(result.message, "success")

    dest = safe_return_url(return_url) or "/" + services.guard.home_for(result.session.role)
    resp = _redirect(request, dest)
    set_client_cookie(resp, new_id, _environment(request))
    return resp


# --- Pages ------------------------------------------------------------------------

@auth_router.get("/pages/login.html", response_class=HTMLResponse)
async def login_page(request: Request, returnUrl: Optional[str] = None):
    """Render the login form; `returnUrl` survives only if it is an in-app path."""
    content = LoginForm(return_url=safe_return_url(returnUrl)).render()
    return _render(request, "Iniciar Sesión", content, LOGIN_PATH)


@auth_router.get("/pages/register.html", response_class=HTMLResponse)
async def register_page(request: Request):
    return _render(request, "Registrarse", RegisterForm().render(), REGISTER_PATH)


# --- Form posts -------------------------------------------------------------------

@auth_router.post("/auth/login")
async def auth_login(request: Request):
    """
    Check credentials and start a session.

    Behavior:
        - Demo accounts are matched before the user directory is consulted.
        - A multi-persona email renders the role selection form (200).
        - Wrong credentials re-render the login form with 401.
        - A failing directory re-renders with 503 and a retry hint.
        - Success rotates the client cookie and redirects (302, or 204 with
          `HX-Redirect` for HTMX) to `returnUrl` or the role's home page.
    Permissions:
        Public.
    """
    if not _is_same_origin(request):
        return _csrf_rejected()
    form = await request.form()
    email = str(form.get("email") or "")
    password = str(form.get("password") or "")
    return_url = safe_return_url(str(form.get("returnUrl") or "") or None)

    services = get_services(request)
    ctx = get_context(request)
    client_id = ctx.client_id or services.clients.new_client_id()
    # Directory lookups may block on the CRUD backend; keep them off the loop.
    result = await asyncio.to_thread(services.auth.check_credentials, email, password, client_id=client_id)

    if isinstance(result, AmbiguousIdentity):
        content = RoleSelectionForm(result.challenge, result.email, result.candidates, return_url).render()
        resp = _render(request, "Seleccionar Rol", content, LOGIN_PATH)
        if client_id != ctx.client_id:
            set_client_cookie(resp, client_id, _environment(request))
        return resp
    if client_id != ctx.client_id:
        services.clients.forget(client_id)
    if isinstance(result, Authenticated):
        services.auth.establish(result)
        return await _complete_login(request, result, return_url)

    status = 503 if isinstance(result, CollaboratorFailure) else 401
    logger.info("Login rejected (%s)", "collaborator" if status == 503 else "credentials")
    content = LoginForm(error=result.message, email=email, return_url=return_url).render()
    return _render(request, "Iniciar Sesión", content, LOGIN_PATH, status_code=status)


@auth_router.post("/auth/select-role")
async def auth_select_role(request: Request):
    """Finish a multi-persona login with the chosen persona key."""
    if not _is_same_origin(request):
        return _csrf_rejected()
    form = await request.form()
    return_url = safe_return_url(str(form.get("returnUrl") or "") or None)
    services = get_services(request)
    result: Union[Authenticated, InvalidCredentials] = services.auth.resolve(
        str(form.get("challenge") or ""),
        str(form.get("persona") or ""),
        client_id=get_context(request).client_id,
    )
    if isinstance(result, Authenticated):
        return await _complete_login(request, result, return_url)
    content = LoginForm(error=result.message, return_url=return_url).render()
    return _render(request, "Iniciar Sesión", content, LOGIN_PATH, status_code=401)


@auth_router.post("/auth/register")
async def auth_register(request: Request):
    """
    Create an account and log it in.

    Behavior:
        - 400 with the form re-rendered when a field is invalid.
        - 409 when the email is already taken (demo or stored user).
        - 503 when the user backend cannot be reached.
        - Otherwise behaves like a successful login (redirect home).
    """
    if not _is_same_origin(request):
        return _csrf_rejected()
    form = await request.form()
    fields = {key: str(form.get(key) or "") for key in ("email", "password", "confirm_password", "first_name", "last_name")}
    values = {k: v for k, v in fields.items() if "password" not in k}
    services = get_services(request)
    try:
        result = await asyncio.to_thread(services.auth.create_account, fields)
    except RegistrationInvalid as exc:
        content = RegisterForm(error=exc.detail, error_field=exc.field, values=values).render()
        return _render(request, "Registrarse", content, REGISTER_PATH, status_code=400)
    except EmailAlreadyRegistered as exc:
        content = RegisterForm(error=exc.detail, error_field="email", values=values).render()
        return _render(request, "Registrarse", content, REGISTER_PATH, status_code=409)
    except CollaboratorError as exc:
        logger.warning("Registration failed: %s", exc.code)
        content = RegisterForm(error="Registration failed. Please try again.", values=values).render()
        return _render(request, "Registrarse", content, REGISTER_PATH, status_code=503)
    services.auth.establish(result)
    return await _complete_login(request, result, None)


@auth_router.get("/auth/logout")
@auth_router.post("/auth/logout")
async def auth_logout(request: Request):
    """
    Clear the session and return to the home page.

    Behavior:
        - Cancels the poller and removes all session keys for this client.
        - Keeps the client cookie so the logout notice shows on the next page.
        - 302 to `/index.html` with `Cache-Control: private, no-store`.
    Permissions:
        Public; logging out without a session is a no-op plus the notice.
    """
    if request.method == "POST" and not _is_same_origin(request):
        return _csrf_rejected()
    ctx = get_context(request)
    had_session = ctx.session is not None
    ctx.monitor.perform_logout()
    if had_session:
        logger.info("User %s logged out", ctx.session.user_id)
    return _redirect(request, "/index.html")
