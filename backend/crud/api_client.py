"""
HTTP CRUD API adapter.

Why:
    Deployments that run the CRUD server separately point
    `CATALYST_API_BASE_URL` at it. Every call uses a bounded timeout
    (`CATALYST_HTTP_TIMEOUT`, default 5 seconds) and maps transport failures to
    `CollaboratorError` / `CollaboratorTimeout`.

Endpoints:
    GET /users, POST /users, GET /jobs (q, featured), GET /jobs/{id},
    GET /applications, POST /applications
"""
from __future__ import annotations

from typing import Any, List, Optional
import logging
import os

import requests

from identity_access.errors import (
    CollaboratorError,
    CollaboratorTimeout,
    DuplicateApplication,
    EmailAlreadyRegistered,
)

from .ports import filter_jobs


logger = logging.getLogger("catalyst.crud.api_client")


def http_timeout_from_env(default: float = 5.0) -> float:
    raw = (os.getenv("CATALYST_HTTP_TIMEOUT") or "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value > 0 else default


class CrudApiClient:
    def __init__(self, base_url: str, *, timeout: float = 5.0, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._http = session or requests.Session()

    @classmethod
    def from_env(cls) -> "CrudApiClient":
        base = os.getenv("CATALYST_API_BASE_URL", "http://localhost:3001/api")
        return cls(base, timeout=http_timeout_from_env())

    def list_users(self) -> List[dict]:
        return _as_list(self._request("GET", "/users"))

    def create_user(self, record: dict) -> dict:
        try:
            body = self._request("POST", "/users", json=record)
        except _Conflict as exc:
            raise EmailAlreadyRegistered("This email is already registered") from exc
        return body if isinstance(body, dict) else dict(record)

    def list_jobs(self, *, query: Optional[str] = None, featured: bool = False) -> List[dict]:
        params = {}
        if query:
            params["q"] = query
        if featured:
            params["featured"] = "true"
        jobs = _as_list(self._request("GET", "/jobs", params=params or None))
        # Servers that ignore the query parameters still get filtered here.
        return filter_jobs(jobs, query=query, featured=featured)

    def get_job(self, job_id: str) -> Optional[dict]:
        try:
            body = self._request("GET", f"/jobs/{job_id}")
        except _NotFound:
            return None
        return body if isinstance(body, dict) else None

    def list_applications(self) -> List[dict]:
        return _as_list(self._request("GET", "/applications"))

    def create_application(self, *, job_id: str, user_id: str) -> dict:
        payload = {"job_id": job_id, "user_id": user_id, "status": "applied"}
        try:
            body = self._request("POST", "/applications", json=payload)
        except _Conflict as exc:
            raise DuplicateApplication("Ya has aplicado a este empleo") from exc
        return body if isinstance(body, dict) else payload

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        url = f"{self.base_url}{path}"
        try:
            r = self._http.request(method, url, timeout=self.timeout, **kwargs)
        except requests.Timeout as exc:
            logger.warning("CRUD API timeout: %s %s", method, path)
            raise CollaboratorTimeout(f"{method} {path} timed out") from exc
        except requests.RequestException as exc:
            logger.warning("CRUD API unreachable: %s %s (%s)", method, path, type(exc).__name__)
            raise CollaboratorError(f"{method} {path} failed") from exc
        if r.status_code == 404:
            raise _NotFound(path)
        if r.status_code == 409:
            raise _Conflict(path)
        if r.status_code >= 400:
            logger.warning("CRUD API error: %s %s -> %s", method, path, r.status_code)
            raise CollaboratorError(f"{method} {path} returned {r.status_code}")
        if not r.content:
            return None
        try:
            return r.json()
        except ValueError as exc:
            raise CollaboratorError(f"{method} {path} returned invalid JSON") from exc


class _NotFound(CollaboratorError):
    code = "not_found"


class _Conflict(CollaboratorError):
    code = "conflict"


def _as_list(body: Any) -> List[dict]:
    if isinstance(body, list):
        return [item for item in body if isinstance(item, dict)]
    if isinstance(body, dict):
        for key in ("items", "data", "users", "jobs", "applications"):
            value = body.get(key)
            if isinstance(value, list):
                return [item for item in value if isinstance(item, dict)]
    raise CollaboratorError("unexpected response shape")
