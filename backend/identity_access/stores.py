"""
Session persistence: the Session record, the key-value SessionStore and the
in-memory stores used in development.

Why: The session lives in a flat key-value storage (string keys, string
values) that mirrors what the browser kept in localStorage. The SessionStore
is the only component that knows the key schema; everything else works with
the typed `Session` record.

Security: Cookies carry only an opaque client id. The session blob stays
server-side in the ClientStateRegistry (or the DB-backed variant).
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Dict, Iterator, MutableMapping, Optional, Tuple
import json
import logging
import secrets
import threading
import time

from .domain import Role, parse_role


logger = logging.getLogger("catalyst.identity_access.stores")

USER_DATA_KEY = "userData"
AUTH_FLAG_KEY = "isAuthenticated"
SESSION_START_KEY = "sessionStart"
LAST_ACTIVITY_KEY = "lastActivity"
TOKEN_KEY = "sessionToken"

SESSION_KEYS: Tuple[str, ...] = (USER_DATA_KEY, AUTH_FLAG_KEY, SESSION_START_KEY, LAST_ACTIVITY_KEY, TOKEN_KEY)


def _now() -> int:
    return int(time.time())


def now_millis() -> int:
    return int(time.time() * 1000)


def new_session_token(now_ms: Optional[int] = None) -> str:
    stamp = now_ms if now_ms is not None else now_millis()
    return f"session_{stamp}_{secrets.token_urlsafe(9)}"


@dataclass(frozen=True)
class Session:
    user_id: str
    role: Role
    session_start: int
    last_activity: int
    token: str
    department: Optional[str] = None
    email: str = ""
    first_name: str = ""
    last_name: str = ""
    title: str = ""

    @property
    def display_name(self) -> str:
        return self.first_name or self.email or "Usuario"

    def touched(self, at_ms: int) -> "Session":
        return replace(self, last_activity=at_ms)

    def restarted(self, at_ms: int) -> "Session":
        return replace(self, session_start=at_ms, last_activity=at_ms)

    def user_blob(self) -> dict:
        """Serialized user record without token-only fields."""
        return {
            "id": self.user_id,
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "title": self.title,
            "role": self.role.value,
            "department": self.department,
        }


class MalformedPersistedState(ValueError):
    """Stored session fields exist but cannot be parsed."""


class SessionStore:
    """Typed view over one client's key-value storage.

    `load()` fails closed: malformed state is cleared and reported as absent.
    `save()` hands all fields to the storage in a single `update()` call.
    """

    def __init__(self, storage: Optional[MutableMapping[str, str]] = None):
        self._storage: MutableMapping[str, str] = storage if storage is not None else {}

    @property
    def storage(self) -> MutableMapping[str, str]:
        return self._storage

    def load(self) -> Optional[Session]:
        if self._storage.get(AUTH_FLAG_KEY) != "true":
            return None
        try:
            return self._parse()
        except MalformedPersistedState as exc:
            logger.debug("Discarding malformed session state: %s", exc)
            self.clear()
            return None

    def save(self, session: Session) -> None:
        if not session.user_id:
            raise ValueError("session requires a user id")
        fields = {
            USER_DATA_KEY: json.dumps(session.user_blob(), ensure_ascii=False),
            AUTH_FLAG_KEY: "true",
            SESSION_START_KEY: str(int(session.session_start)),
            LAST_ACTIVITY_KEY: str(int(session.last_activity)),
            TOKEN_KEY: session.token,
        }
        self._storage.update(fields)

    def clear(self) -> None:
        for key in SESSION_KEYS:
            self._storage.pop(key, None)

    def _parse(self) -> Session:
        raw = self._storage.get(USER_DATA_KEY)
        if not raw:
            raise MalformedPersistedState("missing user data")
        try:
            data = json.loads(raw)
        except ValueError as exc:
            raise MalformedPersistedState("user data is not JSON") from exc
        if not isinstance(data, dict):
            raise MalformedPersistedState("user data is not an object")
        user_id = str(data.get("id") or "").strip()
        if not user_id:
            raise MalformedPersistedState("user data has no id")
        start = _parse_millis(self._storage.get(SESSION_START_KEY))
        if start is None:
            raise MalformedPersistedState("session start missing or not numeric")
        last = _parse_millis(self._storage.get(LAST_ACTIVITY_KEY))
        department = data.get("department")
        return Session(
            user_id=user_id,
            role=parse_role(data.get("role")),
            session_start=start,
            last_activity=last if last is not None else start,
            token=str(self._storage.get(TOKEN_KEY) or data.get("sessionId") or ""),
            department=str(department) if department is not None else None,
            email=str(data.get("email") or ""),
            first_name=str(data.get("firstName") or ""),
            last_name=str(data.get("lastName") or ""),
            title=str(data.get("title") or ""),
        )


def _parse_millis(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


class ClientStorage(MutableMapping[str, str]):
    """One client's keys inside a ClientStateRegistry.

    The registry holds an entry only while the client has keys: reads never
    allocate one and deleting the last key drops it.
    """

    def __init__(self, data: Dict[str, Dict[str, str]], client_id: str) -> None:
        self._data = data
        self.client_id = client_id

    def _items(self) -> Dict[str, str]:
        return self._data.get(self.client_id, {})

    def __getitem__(self, key: str) -> str:
        return self._items()[key]

    def __setitem__(self, key: str, value: str) -> None:
        self._data.setdefault(self.client_id, {})[key] = value

    def __delitem__(self, key: str) -> None:
        items = self._data.get(self.client_id)
        if items is None:
            raise KeyError(key)
        del items[key]
        if not items:
            self._data.pop(self.client_id, None)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._items()))

    def __len__(self) -> int:
        return len(self._items())


class ClientStateRegistry:
    """In-memory per-client key-value storages, keyed by the opaque client id."""

    def __init__(self):
        self._data: Dict[str, Dict[str, str]] = {}

    def new_client_id(self) -> str:
        return secrets.token_urlsafe(24)

    def storage_for(self, client_id: str) -> ClientStorage:
        return ClientStorage(self._data, client_id)

    def __len__(self) -> int:
        return len(self._data)

    def forget(self, client_id: str) -> None:
        self._data.pop(client_id, None)


@dataclass(frozen=True)
class PersonaCandidate:
    key: str
    label: str
    role: Role


@dataclass
class PendingIdentity:
    challenge: str
    email: str
    candidates: Tuple[PersonaCandidate, ...]
    expires_at: int
    client_id: Optional[str] = None


class PendingIdentityStore:
    """Short-lived challenges for logins that still need a persona choice."""

    def __init__(self):
        self._data: Dict[str, PendingIdentity] = {}
        self._lock = threading.Lock()

    def create(
        self,
        *,
        email: str,
        candidates: Tuple[PersonaCandidate, ...],
        ttl_seconds: int = 300,
        client_id: Optional[str] = None,
    ) -> PendingIdentity:
        challenge = secrets.token_urlsafe(24)
        rec = PendingIdentity(
            challenge=challenge,
            email=email,
            candidates=tuple(candidates),
            expires_at=_now() + ttl_seconds,
            client_id=client_id,
        )
        with self._lock:
            self._purge_expired(_now())
            self._data[challenge] = rec
        return rec

    def pop_valid(self, challenge: str) -> Optional[PendingIdentity]:
        with self._lock:
            rec = self._data.pop(challenge, None)
        if not rec:
            return None
        if rec.expires_at < _now():
            return None
        return rec

    def _purge_expired(self, now: int) -> None:
        for key in [k for k, rec in self._data.items() if rec.expires_at < now]:
            del self._data[key]

    def __len__(self) -> int:
        return len(self._data)


__all__ = [
    "Session",
    "SessionStore",
    "ClientStateRegistry",
    "ClientStorage",
    "PendingIdentity",
    "PendingIdentityStore",
    "PersonaCandidate",
    "MalformedPersistedState",
    "now_millis",
    "new_session_token",
]
