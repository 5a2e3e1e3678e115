"""
Access guard: decides Allow / RedirectToLogin / Deny for a page request.

The guard is pure. Side effects (302 to the login page, the access-denied
view) belong to the web layer, which treats both non-Allow outcomes as
terminal for the request.
"""
from __future__ import annotations

from enum import Enum
from typing import Optional
import logging

from .domain import Role
from .roles import FEATURE_PERMISSIONS, DefaultPagePolicy, RoleRegistry
from .stores import Session


logger = logging.getLogger("catalyst.identity_access.guard")

LOGIN_PAGE = "pages/login.html"
HOME_PAGE = "index.html"


class AccessDecision(str, Enum):
    ALLOW = "allow"
    REDIRECT_TO_LOGIN = "redirect_to_login"
    DENY = "deny"


class AccessGuard:
    def __init__(self, registry: Optional[RoleRegistry] = None):
        self.registry = registry or RoleRegistry()

    def check_access(
        self,
        page_path: str,
        session: Optional[Session],
        *,
        required_role: Optional[Role] = None,
    ) -> AccessDecision:
        """Decide whether `session` may open `page_path`.

        Behavior:
            - No permission entry: the registry's default policy (allow or deny;
              deny still sends anonymous visitors to the login page first).
            - Wildcard entry: allow, unless `required_role` is given.
            - No session: redirect to login.
            - Role outside the permitted set, or not equal to the page's (or the
              caller's) single required role: deny.
        """
        permission = self.registry.permission_for(page_path)
        strict_role = required_role or (permission.required_role if permission else None)

        if permission is None and strict_role is None:
            if self.registry.default_policy is DefaultPagePolicy.ALLOW:
                return AccessDecision.ALLOW
            if session is None:
                return AccessDecision.REDIRECT_TO_LOGIN
            logger.info("Denying undeclared page %s", page_path)
            return AccessDecision.DENY

        if permission is not None and permission.roles is None and strict_role is None:
            return AccessDecision.ALLOW

        if session is None:
            return AccessDecision.REDIRECT_TO_LOGIN

        if permission is not None and permission.roles is not None and session.role not in permission.roles:
            return AccessDecision.DENY
        if strict_role is not None and session.role is not strict_role:
            return AccessDecision.DENY
        return AccessDecision.ALLOW

    @staticmethod
    def can_use_feature(feature: str, session: Optional[Session]) -> bool:
        """Feature-level check (e.g. `create_job`); unknown features are denied."""
        if session is None:
            return False
        allowed = FEATURE_PERMISSIONS.get(feature)
        return bool(allowed) and session.role in allowed

    @staticmethod
    def home_for(role: Optional[Role]) -> str:
        """Role-appropriate landing page after login."""
        if role is Role.ADMINISTRATOR:
            return "pages/admin-dashboard.html"
        if role in (Role.RECRUITER, Role.HIRING_MANAGER):
            return "pages/hiring-dashboard.html"
        return HOME_PAGE


__all__ = ["AccessDecision", "AccessGuard", "LOGIN_PAGE", "HOME_PAGE"]
