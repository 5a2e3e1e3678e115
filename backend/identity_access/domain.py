"""
Identity domain constants and simple helpers.

Why:
- Centralize the closed set of roles to avoid drift between the guard, the
  navigation and the auth flow.
- Parse raw role strings exactly once (when a session is loaded) so downstream
  code never compares loosely-typed strings.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class Role(str, Enum):
    """Closed set of roles. Values are the identifiers stored in `userData`."""

    ADMINISTRATOR = "administrador"
    RECRUITER = "talentos_humanos"
    HIRING_MANAGER = "hiring_manager"
    MANAGER = "manager"
    BANK_REPRESENTATIVE = "representante_banco"
    USER = "usuario"
    CANDIDATE = "candidato"
    UNKNOWN = "unknown"

    @property
    def is_known(self) -> bool:
        return self is not Role.UNKNOWN


class Department(str, Enum):
    TECHNOLOGY = "Tecnología"
    MARKETING = "Marketing"
    SALES = "Ventas"
    HR = "Recursos Humanos"
    FINANCE = "Finanzas"
    OPERATIONS = "Operaciones"
    BANKING = "Servicios Bancarios"
    MANAGEMENT = "Gerencia"


# Immutable to prevent accidental mutation.
KNOWN_ROLES = frozenset(r for r in Role if r.is_known)

# English spellings returned by some CRUD deployments.
_ROLE_ALIASES = {
    "admin": Role.ADMINISTRATOR,
    "administrator": Role.ADMINISTRATOR,
    "recruiter": Role.RECRUITER,
    "hr": Role.RECRUITER,
    "hiring-manager": Role.HIRING_MANAGER,
    "bank_representative": Role.BANK_REPRESENTATIVE,
    "bank": Role.BANK_REPRESENTATIVE,
    "user": Role.USER,
    "candidate": Role.CANDIDATE,
}

ROLE_LABELS = {
    Role.ADMINISTRATOR: "Admin",
    Role.RECRUITER: "Recruiter",
    Role.HIRING_MANAGER: "Hiring Manager",
    Role.MANAGER: "Manager",
    Role.BANK_REPRESENTATIVE: "Bank Rep",
    Role.USER: "Usuario",
    Role.CANDIDATE: "Candidato",
    Role.UNKNOWN: "Usuario",
}


def parse_role(value: Any) -> Role:
    """Coerce a raw role value into `Role`; unknown input maps to `Role.UNKNOWN`."""
    if isinstance(value, Role):
        return value
    if not isinstance(value, str):
        return Role.UNKNOWN
    key = value.strip().lower()
    if not key:
        return Role.UNKNOWN
    try:
        return Role(key)
    except ValueError:
        return _ROLE_ALIASES.get(key, Role.UNKNOWN)


def role_label(role: Role) -> str:
    return ROLE_LABELS.get(role, ROLE_LABELS[Role.UNKNOWN])


__all__ = ["Role", "Department", "KNOWN_ROLES", "parse_role", "role_label"]
