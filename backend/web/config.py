"""
Configuration and startup security checks for Catalyst.

Why: A demo-grade auth flow (shared demo password, JSON user file) is fine on
a laptop and dangerous on the internet. This module reads the environment in
one place and refuses to start production with obviously unsafe settings,
without burdening local development.

Permissions: The caller needs no special privileges. The functions only read
environment variables; the startup guard raises `SystemExit` on fatal
misconfiguration.
"""
from __future__ import annotations

import logging
import os

from identity_access.lifecycle import SessionPolicy
from identity_access.roles import DefaultPagePolicy


logger = logging.getLogger("catalyst.web.config")


def _is_prod_like(env: str) -> bool:
    env_l = (env or "").lower()
    return env_l in {"prod", "production", "stage", "staging"}


def current_environment() -> str:
    return (os.getenv("CATALYST_ENV", "dev") or "dev").strip().lower()


def _flag(name: str, default: str) -> bool:
    return (os.getenv(name, default) or "").strip().lower() in ("1", "true", "yes")


def session_policy_from_env() -> SessionPolicy:
    """Session timing from `SESSION_*_SECONDS` variables (defaults: 24h / 5min / 60s / 30s)."""
    return SessionPolicy.from_env()


def default_page_policy() -> DefaultPagePolicy:
    """Policy for pages without a permission entry (`CATALYST_DEFAULT_PAGE_POLICY`)."""
    raw = (os.getenv("CATALYST_DEFAULT_PAGE_POLICY", "allow") or "allow").strip().lower()
    try:
        return DefaultPagePolicy(raw)
    except ValueError:
        logger.warning("Unknown CATALYST_DEFAULT_PAGE_POLICY=%r; using allow", raw)
        return DefaultPagePolicy.ALLOW


def demo_accounts_enabled() -> bool:
    """Demo accounts default to on outside production and off inside it."""
    default = "false" if _is_prod_like(current_environment()) else "true"
    return _flag("CATALYST_DEMO_ACCOUNTS", default)


def ensure_secure_config_on_startup() -> None:
    """Fail fast on insecure production configuration.

    Intent: Abort process startup when obviously insecure settings are detected
    in production/staging. Development remains permissive for convenience.

    Checks:
    - Demo accounts must not be explicitly enabled.
    - The CRUD API and gamification endpoints must use HTTPS.
    - DATABASE_URL must not explicitly disable TLS when sessions live in Postgres.
    - The default page policy must be a known value.
    """
    env = current_environment()
    if not _is_prod_like(env):
        return  # dev/test remain permissive

    # 1) Shared demo password must never be reachable in production
    if _flag("CATALYST_DEMO_ACCOUNTS", "false"):
        raise SystemExit(
            "Refusing to start: CATALYST_DEMO_ACCOUNTS=true is not allowed in production/staging."
        )

    # 2) Collaborator endpoints must use HTTPS
    def _must_be_https(var_name: str) -> None:
        value = (os.getenv(var_name) or "").strip().lower()
        if value.startswith("http://"):
            raise SystemExit(
                f"Refusing to start: {var_name} must use https in production (got http)."
            )

    if (os.getenv("CATALYST_USERS_BACKEND", "json") or "").strip().lower() == "api":
        if not (os.getenv("CATALYST_API_BASE_URL") or "").strip():
            raise SystemExit("Refusing to start: CATALYST_API_BASE_URL is required when CATALYST_USERS_BACKEND=api.")
        _must_be_https("CATALYST_API_BASE_URL")
    _must_be_https("CATALYST_GAMIFICATION_URL")

    # 3) Postgres TLS: basic guard to avoid explicit disable
    if (os.getenv("SESSIONS_BACKEND", "memory") or "").strip().lower() == "db":
        dsn = os.getenv("DATABASE_URL", "")
        if not dsn:
            raise SystemExit("Refusing to start: SESSIONS_BACKEND=db requires DATABASE_URL.")
        if "sslmode=disable" in dsn:
            raise SystemExit(
                "Refusing to start: DATABASE_URL contains sslmode=disable in production. Use sslmode=require or verify TLS."
            )

    # 4) Page policy must be explicit and valid
    raw_policy = (os.getenv("CATALYST_DEFAULT_PAGE_POLICY", "allow") or "").strip().lower()
    if raw_policy not in {p.value for p in DefaultPagePolicy}:
        raise SystemExit(
            f"Refusing to start: CATALYST_DEFAULT_PAGE_POLICY must be one of allow/deny (got {raw_policy!r})."
        )
