"""
Job listing and application API.

Why:
    The job board reads through the configured CRUD backend (JSON file or
    remote API). Listing degrades to an empty result when the backend is down;
    applying reports the failure so the user can retry.
"""
from __future__ import annotations

from typing import Optional
import asyncio
import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from identity_access.errors import CollaboratorError, DuplicateApplication
from identity_access.gamification import track_safely
from rendering import get_context, get_services, private_no_store
from routes.security import _is_same_origin


jobs_router = APIRouter(tags=["Jobs"])
logger = logging.getLogger("catalyst.web.jobs")


def _error(code: str, detail: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": code, "detail": detail}, status_code=status_code, headers=private_no_store())


@jobs_router.get("/api/jobs")
async def list_jobs(request: Request, q: Optional[str] = None, featured: bool = False):
    """List jobs, optionally filtered by `q` and `featured`.

    A failing backend yields `{"items": [], "degraded": true}` with 200.
    """
    crud = get_services(request).crud
    if crud is None:
        return JSONResponse({"items": [], "degraded": True})
    try:
        jobs = await asyncio.to_thread(crud.list_jobs, query=q, featured=featured)
    except CollaboratorError as exc:
        logger.warning("Job listing unavailable: %s", exc.code)
        return JSONResponse({"items": [], "degraded": True})
    return JSONResponse({"items": jobs, "degraded": False})


@jobs_router.post("/api/jobs/{job_id}/apply")
async def apply_to_job(request: Request, job_id: str):
    """
    Record an application for the current user.

    Permissions:
        Roles with the `apply_jobs` feature (usuario, candidato).
    Responses:
        201 on success; 401 without session; 403 wrong role; 404 unknown job;
        409 duplicate; 503 backend failure.
    """
    if not _is_same_origin(request):
        return _error("csrf_violation", "Cross-origin request rejected", 403)
    services = get_services(request)
    session = get_context(request).session
    if session is None:
        return _error("unauthenticated", "Debes iniciar sesión para aplicar", 401)
    if not services.guard.can_use_feature("apply_jobs", session):
        return _error("forbidden", "Tu rol no puede aplicar a empleos", 403)
    crud = services.crud
    if crud is None:
        return _error(CollaboratorError.code, "Servicio no disponible", 503)
    try:
        job = await asyncio.to_thread(crud.get_job, job_id)
        if job is None:
            return _error("not_found", "Empleo no encontrado", 404)
        application = await asyncio.to_thread(crud.create_application, job_id=job_id, user_id=session.user_id)
    except DuplicateApplication as exc:
        return _error(exc.code, exc.detail, 409)
    except CollaboratorError as exc:
        logger.warning("Application failed: %s", exc.code)
        return _error(exc.code, "Error al aplicar. Inténtalo de nuevo.", 503)

    logger.info("User %s applied to job %s", session.user_id, job_id)
    track_safely(services.auth.tracker, "job-application", {"jobId": job_id}, user_id=session.user_id)
    return JSONResponse(
        {"success": True, "message": "Aplicación enviada correctamente", "application": application},
        status_code=201,
        headers=private_no_store(),
    )
