"""
Session lifecycle API used by `static/js/session.js`.

Endpoints:
    GET  /api/session             poll: state, timing info and pending notices
    POST /api/session/extend      restart the 24h window
    POST /api/session/activity    throttled last-activity refresh
    POST /api/session/visibility  tab became visible again

The middleware has already run one expiry check for the caller (using the
`page` query parameter as the current page), so these handlers only report
or mutate.
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from identity_access.lifecycle import MonitorState
from rendering import get_context, get_services, private_no_store
from routes.security import _is_same_origin


session_router = APIRouter(tags=["Session"])
logger = logging.getLogger("catalyst.web.session")


def _payload(request: Request, state: MonitorState) -> dict:
    ctx = get_context(request)
    policy = get_services(request).policy
    session = ctx.store.load()
    info = ctx.monitor.session_info()
    return {
        "authenticated": session is not None,
        "state": state.value,
        "info": info.to_dict() if info is not None else None,
        "user": session.user_blob() if session is not None else None,
        "notices": [n.to_dict() for n in ctx.monitor.drain_notices()],
        "policy": {
            "check_interval_ms": policy.check_interval_ms,
            "activity_throttle_ms": policy.activity_throttle_ms,
            "warning_ms": policy.warning_ms,
        },
    }


def _respond(payload: dict, status_code: int = 200) -> JSONResponse:
    return JSONResponse(payload, status_code=status_code, headers=private_no_store())


def _unauthenticated() -> JSONResponse:
    return _respond({"error": "unauthenticated", "detail": "No active session"}, 401)


@session_router.get("/api/session")
async def session_status(request: Request):
    """Poll endpoint; always 200 so the browser can show expiry notices."""
    return _respond(_payload(request, get_context(request).monitor.state))


@session_router.post("/api/session/extend")
async def session_extend(request: Request):
    if not _is_same_origin(request):
        return _respond({"error": "csrf_violation"}, 403)
    monitor = get_context(request).monitor
    if not monitor.extend_session():
        return _unauthenticated()
    logger.info("Session extended")
    return _respond(_payload(request, monitor.state))


@session_router.post("/api/session/activity")
async def session_activity(request: Request):
    if not _is_same_origin(request):
        return _respond({"error": "csrf_violation"}, 403)
    ctx = get_context(request)
    if ctx.store.load() is None:
        return _unauthenticated()
    written = ctx.monitor.record_activity()
    return _respond({"recorded": written, "state": ctx.monitor.state.value})


@session_router.post("/api/session/visibility")
async def session_visibility(request: Request):
    """Re-validate on tab focus; expiry is reported through the notices."""
    if not _is_same_origin(request):
        return _respond({"error": "csrf_violation"}, 403)
    monitor = get_context(request).monitor
    state = monitor.on_visibility_regained(request.query_params.get("page"))
    return _respond(_payload(request, state))
