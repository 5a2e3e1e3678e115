"""
Response helpers shared by `main` and the routers.

Why:
    Every HTML route renders through the same Layout with the caller's
    session, the drained notices and the session policy; keeping that in one
    module lets routers render pages without importing `main`.
"""
from __future__ import annotations

from dataclasses import replace
from typing import Optional

from fastapi import Request
from fastapi.responses import HTMLResponse

from components import AccessDenied, Layout
from identity_access.guard import AccessGuard
from services import ClientContext, Services


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_context(request: Request) -> ClientContext:
    return request.state.ctx


def private_no_store() -> dict:
    return {"Cache-Control": "private, no-store"}


def layout_for(
    request: Request,
    title: str,
    content: str,
    *,
    show_nav: bool = True,
    keep_redirects: bool = True,
    current_path: Optional[str] = None,
) -> Layout:
    """Layout bound to the caller's session; drains the pending notices.

    `keep_redirects=False` strips redirect hints, e.g. on the login page where
    an expiry notice must not bounce the user away again. `current_path`
    overrides the request path for pages served from `/auth/*` form posts.
    """
    ctx = get_context(request)
    services = get_services(request)
    notices = ctx.monitor.drain_notices()
    if not keep_redirects:
        notices = [replace(n, redirect=None, delay_ms=0) for n in notices]
    return Layout(
        title=title,
        content=content,
        session=ctx.session,
        registry=services.registry,
        notices=notices,
        policy=services.policy,
        current_path=current_path or request.url.path,
        show_nav=show_nav,
    )


def layout_response(
    request: Request,
    layout: Layout,
    *,
    status_code: int = 200,
    headers: Optional[dict] = None,
) -> HTMLResponse:
    """Render Layout with HTMX-aware semantics and return an HTMLResponse.

    Behavior:
        - Returns only the main fragment when `HX-Request` is present.
        - Otherwise renders the complete document including `<head>` and
          navigation.
        - Personalized pages default to `Cache-Control: private, no-store`.
        - Merges caller-provided headers onto the response.
    Permissions:
        None. The guard middleware has already decided page access.
    """
    if request.headers.get("HX-Request"):
        body = layout.render_fragment()
    else:
        body = layout.render()
    response = HTMLResponse(content=body, status_code=status_code)
    is_personalized = bool(getattr(request.state, "user", None))
    if is_personalized and not (headers and "Cache-Control" in headers):
        response.headers["Cache-Control"] = "private, no-store"
    if headers:
        for key, value in headers.items():
            response.headers[key] = value
    return response


def access_denied_response(request: Request) -> HTMLResponse:
    session = get_context(request).session
    role = session.role if session is not None else None
    content = AccessDenied(role=role, home_href="/" + AccessGuard.home_for(role)).render()
    layout = layout_for(request, "Acceso Denegado", content)
    return layout_response(request, layout, status_code=403, headers=private_no_store())
