"""
Local `db.json` backend.

The file holds top-level lists `users`, `jobs`, `applications` and
`categories`. A missing file is treated as an empty database (with a warning);
an unreadable or malformed file raises `CollaboratorError`. Writes go to a
temporary file that then replaces the original.
"""
from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Union
import json
import logging
import os
import threading
import time

from identity_access.errors import CollaboratorError, DuplicateApplication, EmailAlreadyRegistered

from .ports import filter_jobs


logger = logging.getLogger("catalyst.crud.json_file")

_COLLECTIONS = ("jobs", "users", "applications", "categories")


def _empty() -> dict:
    return {name: [] for name in _COLLECTIONS}


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class JsonFileCrud:
    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._data: Optional[dict] = None
        self._lock = threading.Lock()

    @classmethod
    def from_env(cls) -> "JsonFileCrud":
        return cls(os.getenv("CATALYST_DB_JSON", "db.json"))

    # -- reads ---------------------------------------------------------------

    def list_users(self) -> List[dict]:
        return list(self._load()["users"])

    def list_jobs(self, *, query: Optional[str] = None, featured: bool = False) -> List[dict]:
        return filter_jobs(self._load()["jobs"], query=query, featured=featured)

    def get_job(self, job_id: str) -> Optional[dict]:
        for job in self._load()["jobs"]:
            if str(job.get("id")) == str(job_id):
                return job
        return None

    def list_applications(self) -> List[dict]:
        return list(self._load()["applications"])

    # -- writes --------------------------------------------------------------

    def create_user(self, record: dict) -> dict:
        with self._lock:
            data = self._load()
            email = str(record.get("email") or "").strip().lower()
            if any(str(u.get("email") or "").strip().lower() == email for u in data["users"]):
                raise EmailAlreadyRegistered("This email is already registered")
            user = {
                "id": str(int(time.time() * 1000)),
                **record,
                "role": record.get("role") or "usuario",
                "registrationDate": _now_iso(),
            }
            self._commit(data, "users", user)
        return user

    def create_application(self, *, job_id: str, user_id: str) -> dict:
        with self._lock:
            data = self._load()
            for app in data["applications"]:
                if str(app.get("job_id")) == str(job_id) and str(app.get("user_id")) == str(user_id):
                    raise DuplicateApplication("Ya has aplicado a este empleo")
            application = {
                "id": int(time.time() * 1000),
                "job_id": job_id,
                "user_id": user_id,
                "status": "applied",
                "applied_date": _now_iso(),
            }
            self._commit(data, "applications", application)
        return application

    # -- storage -------------------------------------------------------------

    def _load(self) -> dict:
        if self._data is not None:
            return self._data
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.warning("Data file %s not found; using empty data", self.path)
            self._data = _empty()
            return self._data
        except OSError as exc:
            raise CollaboratorError(f"cannot read {self.path.name}") from exc
        try:
            parsed = json.loads(raw)
        except ValueError as exc:
            raise CollaboratorError(f"{self.path.name} is not valid JSON") from exc
        if not isinstance(parsed, dict):
            raise CollaboratorError(f"{self.path.name} must contain an object")
        data = _empty()
        for name in _COLLECTIONS:
            value = parsed.get(name)
            if isinstance(value, list):
                data[name] = value
        for key, value in parsed.items():
            data.setdefault(key, value)
        self._data = data
        return data

    def _commit(self, data: dict, collection: str, record: dict) -> None:
        """Write `data` plus `record`; the cache only changes once the file is replaced."""
        updated = dict(data)
        updated[collection] = [*data[collection], record]
        self._flush(updated)
        self._data = updated

    def _flush(self, data: dict) -> None:
        tmp = self.path.with_name(self.path.name + ".tmp")
        try:
            if self.path.parent and not self.path.parent.exists():
                self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
            os.replace(tmp, self.path)
        except OSError as exc:
            raise CollaboratorError(f"cannot write {self.path.name}") from exc
