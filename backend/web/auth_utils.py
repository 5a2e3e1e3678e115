"""
Shared authentication utilities.

Why:
    Avoid duplicating environment-dependent cookie policy and redirect
    validation across the main app and the auth router.

Design:
    The helpers are framework-agnostic and pure: they accept plain values and
    return plain values. Callers decide where the environment comes from.
"""

from __future__ import annotations

from typing import Optional
import re


# Allowed in-app redirect targets: absolute paths, no "//" and no "..".
INAPP_PATH_PATTERN = re.compile(r"^(?!.*//)(?!.*\.\.)/[A-Za-z0-9._\-/]*$")
MAX_INAPP_REDIRECT_LEN = 256


def cookie_opts(environment: str) -> dict:
    """Return cookie flags for the client cookie.

    Returns a mapping with keys:
      - secure: True in prod-like environments; plain-http dev servers and
        test clients need it off to round-trip the cookie.
      - samesite: "lax" so top-level navigations keep the cookie.
    """
    env_l = (environment or "").lower()
    secure = env_l in {"prod", "production", "stage", "staging"}
    return {"secure": secure, "samesite": "lax"}


def is_inapp_path(value: Optional[str]) -> bool:
    if not isinstance(value, str) or not value:
        return False
    if len(value) > MAX_INAPP_REDIRECT_LEN:
        return False
    path = value.split("?", 1)[0]
    return bool(INAPP_PATH_PATTERN.match(path))


def safe_return_url(value: Optional[str]) -> Optional[str]:
    """Return `value` if it is an in-app path, else None (no open redirects).

    The login page itself is never a valid target.
    """
    if not is_inapp_path(value):
        return None
    if value.split("?", 1)[0].rstrip("/").endswith("/login.html"):
        return None
    return value


CLIENT_COOKIE_NAME = "catalyst_client"


def set_client_cookie(response, client_id: str, environment: str) -> None:
    """Attach the opaque client cookie (httpOnly, path=/, browser-session lifetime)."""
    opts = cookie_opts(environment)
    response.set_cookie(
        key=CLIENT_COOKIE_NAME,
        value=client_id,
        httponly=True,
        secure=opts["secure"],
        samesite=opts["samesite"],
        path="/",
    )
