"""CRUD collaborator adapters.

Intent:
    The application never owns user, job or application records; it reads and
    writes them through a CRUD collaborator. Two adapters implement the same
    `CrudBackend` protocol:

    - `json_file.JsonFileCrud`: local `db.json` file (development default).
    - `api_client.CrudApiClient`: HTTP CRUD API via `requests`.

`build_crud_from_env()` picks one based on `CATALYST_USERS_BACKEND`.
"""
from __future__ import annotations

import os

from .ports import CrudBackend


def build_crud_from_env() -> CrudBackend:
    backend = (os.getenv("CATALYST_USERS_BACKEND", "json") or "json").strip().lower()
    if backend == "api":
        from .api_client import CrudApiClient

        return CrudApiClient.from_env()
    if backend != "json":
        raise RuntimeError(f"Unsupported CATALYST_USERS_BACKEND: {backend}")
    from .json_file import JsonFileCrud

    return JsonFileCrud.from_env()


__all__ = ["CrudBackend", "build_crud_from_env"]
