"""
User directory on top of the CRUD collaborator.

Why:
    Auth Flow needs three questions answered about users it does not own:
    "who has these credentials", "is this email taken" and "create this user".
    This adapter answers them over any `CrudBackend` and returns normalized
    user records (title and role defaults applied, names filled in).

Security:
    - Passwords are compared here and never returned to callers or logged.
    - Collaborator failures propagate as `CollaboratorError`; the caller
      decides how to surface them.
"""
from __future__ import annotations

from typing import Optional
import hmac
import re

from crud.ports import CrudBackend
from identity_access.domain import Role, parse_role


_splitter = re.compile(r"[^A-Za-z0-9]+")


def humanize_identifier(s: str) -> str:
    """Turn an email/username into a human display name.

    Rules:
    - For emails, use the part before '@'.
    - Split on non-alphanumeric separators (._- etc.).
    - Title-case each token and join with a single space.
    """
    if not s:
        return ""
    s = str(s)
    if "@" in s:
        s = s.split("@", 1)[0]
    parts = [p for p in _splitter.split(s) if p]
    if not parts:
        return ""
    return " ".join(p[:1].upper() + p[1:].lower() for p in parts)


def _public_record(user: dict) -> dict:
    role = parse_role(user.get("role") or Role.USER.value)
    if not role.is_known:
        role = Role.USER
    email = str(user.get("email") or "")
    return {
        "id": str(user.get("id") or ""),
        "email": email,
        "firstName": str(user.get("firstName") or "") or humanize_identifier(email),
        "lastName": str(user.get("lastName") or ""),
        "title": str(user.get("title") or "") or "Usuario",
        "role": role.value,
        "department": user.get("department") or None,
    }


def _same_email(a: object, b: str) -> bool:
    return str(a or "").strip().lower() == b.strip().lower()


class UserDirectory:
    def __init__(self, crud: CrudBackend):
        self._crud = crud

    def find_by_credentials(self, email: str, password: str) -> Optional[dict]:
        for user in self._crud.list_users():
            if not _same_email(user.get("email"), email):
                continue
            stored = str(user.get("password") or "")
            if stored and hmac.compare_digest(stored.encode(), (password or "").encode()):
                return _public_record(user)
        return None

    def email_exists(self, email: str) -> bool:
        return any(_same_email(u.get("email"), email) for u in self._crud.list_users())

    def create_user(self, *, email: str, password: str, first_name: str, last_name: str, **extra: str) -> dict:
        record = {
            "email": email.strip(),
            "password": password,
            "firstName": first_name.strip(),
            "lastName": last_name.strip(),
            "role": Role.USER.value,
        }
        for key, value in extra.items():
            if value:
                record[key] = value
        return _public_record(self._crud.create_user(record))


__all__ = ["UserDirectory", "humanize_identifier"]
