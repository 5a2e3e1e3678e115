"""
Role registry: page permissions, feature permissions and navigation menus.

Why:
    One static table answers "who may open this page" and "what does this role
    see in the navbar". The Access Guard and the Navigation Renderer both read
    from here so visibility and enforcement cannot drift apart.

Paths:
    Page identifiers are paths relative to the site root, e.g.
    `pages/perfil.html`. Menu hrefs carry the placeholders `__INDEX_PATH__` and
    `__PAGES_PATH__`; the Navigation Renderer substitutes them per request.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, Iterable, Mapping, Optional, Tuple, Union

from .domain import KNOWN_ROLES, Role


WILDCARD = "*"


class DefaultPagePolicy(str, Enum):
    """What happens to pages that have no permission entry."""

    ALLOW = "allow"
    DENY = "deny"


@dataclass(frozen=True)
class PagePermission:
    """Either open to everyone (`roles is None`) or restricted to a role set.

    `required_role` adds a stricter single-role check on top of the set.
    """

    roles: Optional[FrozenSet[Role]] = None
    required_role: Optional[Role] = None

    @property
    def is_wildcard(self) -> bool:
        return self.roles is None and self.required_role is None

    @classmethod
    def parse(cls, value: Union[str, Iterable[Union[str, Role]]]) -> "PagePermission":
        """Build from the declaration format: `"*"` or a list of role identifiers."""
        if isinstance(value, str):
            if value == WILDCARD:
                return cls()
            value = [value]
        items = list(value)
        if WILDCARD in items:
            return cls()
        return cls(roles=frozenset(Role(r) if not isinstance(r, Role) else r for r in items))


ADMIN = Role.ADMINISTRATOR
RECRUITER = Role.RECRUITER
HIRING_MANAGER = Role.HIRING_MANAGER
MANAGER = Role.MANAGER
BANK = Role.BANK_REPRESENTATIVE
USER = Role.USER
CANDIDATE = Role.CANDIDATE

_ANY_SIGNED_IN = sorted(r.value for r in KNOWN_ROLES)

PAGE_PERMISSIONS: Dict[str, Union[str, list]] = {
    "index.html": WILDCARD,
    "pages/login.html": WILDCARD,
    "pages/register.html": WILDCARD,
    # Job portal
    "pages/empleos.html": WILDCARD,
    "pages/detalle-empleo.html": WILDCARD,
    "pages/capacitaciones.html": WILDCARD,
    "pages/detalles-curso.html": WILDCARD,
    "pages/clanes.html": WILDCARD,
    "pages/terminos.html": WILDCARD,
    "pages/privacidad.html": WILDCARD,
    "pages/cookies.html": WILDCARD,
    "pages/perfil.html": [r.value for r in (ADMIN, RECRUITER, HIRING_MANAGER, MANAGER, BANK, USER, CANDIDATE)],
    "pages/empresas.html": [ADMIN.value, RECRUITER.value],
    # Any signed-in user
    "pages/mis-cursos.html": _ANY_SIGNED_IN,
    "pages/certificados.html": _ANY_SIGNED_IN,
    "pages/favoritos.html": _ANY_SIGNED_IN,
    "pages/alertas.html": _ANY_SIGNED_IN,
    "pages/publicar-cv.html": _ANY_SIGNED_IN,
    # HR management
    "pages/resume-database.html": [ADMIN.value, RECRUITER.value, HIRING_MANAGER.value, MANAGER.value],
    "pages/hiring-dashboard.html": [ADMIN.value, RECRUITER.value, HIRING_MANAGER.value],
    "pages/reports.html": [ADMIN.value, RECRUITER.value, MANAGER.value],
    "pages/kanban.html": [ADMIN.value, RECRUITER.value, HIRING_MANAGER.value],
    "pages/job-management.html": [ADMIN.value, RECRUITER.value, HIRING_MANAGER.value],
    "pages/user-management.html": [ADMIN.value, RECRUITER.value],
    "pages/metrics.html": [ADMIN.value, MANAGER.value, BANK.value],
    "pages/admin-dashboard.html": [ADMIN.value],
    "pages/gestion-usuarios.html": [ADMIN.value],
    # Banking services
    "pages/financial-services.html": [ADMIN.value, BANK.value],
    "pages/loan-management.html": [ADMIN.value, BANK.value],
    "pages/account-services.html": [ADMIN.value, BANK.value],
    "pages/banking-reports.html": [ADMIN.value, BANK.value],
}

# Stricter single-role checks layered on top of the role sets above.
PAGE_REQUIRED_ROLES: Dict[str, Role] = {
    "pages/admin-dashboard.html": ADMIN,
    "pages/gestion-usuarios.html": ADMIN,
}

# Pages that send the user home when the session expires while they are open.
PROTECTED_PAGES: FrozenSet[str] = frozenset({
    "perfil.html",
    "admin-dashboard.html",
    "hiring-dashboard.html",
    "job-management.html",
    "user-management.html",
    "reports.html",
    "metrics.html",
    "kanban.html",
    "resume-database.html",
})

FEATURE_PERMISSIONS: Dict[str, FrozenSet[Role]] = {
    "create_job": frozenset({ADMIN, RECRUITER, HIRING_MANAGER}),
    "manage_users": frozenset({ADMIN}),
    "view_reports": frozenset({ADMIN, MANAGER, RECRUITER}),
    "manage_candidates": frozenset({ADMIN, RECRUITER, HIRING_MANAGER}),
    "view_metrics": frozenset({ADMIN, MANAGER, BANK}),
    "edit_profile": frozenset({ADMIN, RECRUITER, HIRING_MANAGER, USER, CANDIDATE}),
    "apply_jobs": frozenset({USER, CANDIDATE}),
    "view_salary_info": frozenset({ADMIN, MANAGER, BANK}),
}


# ---------------------------------------------------------------------------
# Navigation menus
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class NavLink:
    href: str
    icon: str
    text: str


@dataclass(frozen=True)
class NavGroup:
    text: str
    icon: str
    links: Tuple[NavLink, ...]


NavEntry = Union[NavLink, NavGroup]


@dataclass(frozen=True)
class NavigationMenu:
    brand: str
    items: Tuple[NavEntry, ...] = field(default_factory=tuple)


def _link(page: str, icon: str, text: str) -> NavLink:
    href = "__INDEX_PATH__" if page == "index.html" else f"__PAGES_PATH__{page}"
    return NavLink(href=href, icon=icon, text=text)


_HOME = _link("index.html", "fa-home", "Inicio")

NAVIGATION_MENUS: Dict[Role, NavigationMenu] = {
    ADMIN: NavigationMenu(
        brand="Catalyst Admin",
        items=(
            _HOME,
            NavGroup("Gestión de RRHH", "fa-users-cog", (
                _link("resume-database.html", "fa-file-alt", "Base de Datos CV"),
                _link("hiring-dashboard.html", "fa-chart-line", "Dashboard Contratación"),
                _link("kanban.html", "fa-columns", "Pipeline Candidatos"),
                _link("reports.html", "fa-chart-pie", "Reportes y Analytics"),
            )),
            NavGroup("Administración", "fa-cogs", (
                _link("job-management.html", "fa-briefcase", "Gestión de Empleos"),
                _link("user-management.html", "fa-users", "Gestión de Usuarios"),
                _link("empresas.html", "fa-building", "Empresas"),
                _link("admin-dashboard.html", "fa-tachometer-alt", "Panel Admin"),
            )),
            _link("empleos.html", "fa-search", "Ver Empleos Públicos"),
        ),
    ),
    RECRUITER: NavigationMenu(
        brand="Catalyst HR",
        items=(
            _HOME,
            NavGroup("Recursos Humanos", "fa-users", (
                _link("resume-database.html", "fa-file-alt", "Base de Datos CV"),
                _link("hiring-dashboard.html", "fa-chart-line", "Dashboard Contratación"),
                _link("kanban.html", "fa-columns", "Pipeline Candidatos"),
                _link("reports.html", "fa-chart-pie", "Reportes"),
            )),
            _link("job-management.html", "fa-briefcase", "Gestión de Empleos"),
            _link("user-management.html", "fa-users-cog", "Usuarios"),
            _link("empleos.html", "fa-search", "Portal de Empleos"),
        ),
    ),
    HIRING_MANAGER: NavigationMenu(
        brand="Catalyst Manager",
        items=(
            _HOME,
            _link("hiring-dashboard.html", "fa-chart-line", "Dashboard Contratación"),
            _link("kanban.html", "fa-columns", "Candidatos"),
            _link("job-management.html", "fa-briefcase", "Mis Empleos"),
            _link("empleos.html", "fa-search", "Portal de Empleos"),
        ),
    ),
    MANAGER: NavigationMenu(
        brand="Catalyst Management",
        items=(
            _HOME,
            _link("metrics.html", "fa-chart-bar", "Métricas"),
            _link("reports.html", "fa-chart-pie", "Reportes"),
            _link("resume-database.html", "fa-file-alt", "Base de Datos CV"),
            _link("empleos.html", "fa-search", "Portal de Empleos"),
            _link("perfil.html", "fa-user", "Mi Perfil"),
        ),
    ),
    BANK: NavigationMenu(
        brand="Catalyst Bank",
        items=(
            _HOME,
            NavGroup("Servicios Bancarios", "fa-university", (
                _link("financial-services.html", "fa-credit-card", "Servicios Financieros"),
                _link("loan-management.html", "fa-hand-holding-usd", "Gestión de Préstamos"),
                _link("account-services.html", "fa-piggy-bank", "Servicios de Cuenta"),
                _link("banking-reports.html", "fa-chart-bar", "Reportes Bancarios"),
            )),
            _link("empleos.html", "fa-search", "Portal de Empleos"),
            _link("perfil.html", "fa-user", "Mi Perfil"),
        ),
    ),
    USER: NavigationMenu(
        brand="Catalyst",
        items=(
            _HOME,
            _link("empleos.html", "fa-briefcase", "Empleos"),
            _link("capacitaciones.html", "fa-graduation-cap", "Capacitaciones"),
            _link("perfil.html", "fa-user", "Mi Perfil"),
        ),
    ),
    CANDIDATE: NavigationMenu(
        brand="Catalyst",
        items=(
            _HOME,
            _link("empleos.html", "fa-briefcase", "Empleos"),
            _link("capacitaciones.html", "fa-graduation-cap", "Capacitaciones"),
        ),
    ),
}

PUBLIC_NAVIGATION = NavigationMenu(
    brand="Catalyst",
    items=(
        _HOME,
        _link("empleos.html", "fa-briefcase", "Empleos"),
        _link("capacitaciones.html", "fa-graduation-cap", "Capacitaciones"),
    ),
)


def page_id_for_href(href: str) -> str:
    """Map a placeholder href back to its page identifier."""
    if href == "__INDEX_PATH__":
        return "index.html"
    return "pages/" + href.replace("__PAGES_PATH__", "", 1)


class RoleRegistry:
    """Read-only lookup over the permission and menu tables."""

    def __init__(
        self,
        permissions: Optional[Mapping[str, Union[str, Iterable[str]]]] = None,
        menus: Optional[Mapping[Role, NavigationMenu]] = None,
        required_roles: Optional[Mapping[str, Role]] = None,
        *,
        default_policy: DefaultPagePolicy = DefaultPagePolicy.ALLOW,
        protected_pages: Iterable[str] = PROTECTED_PAGES,
    ):
        source = PAGE_PERMISSIONS if permissions is None else permissions
        self._permissions: Dict[str, PagePermission] = {
            normalize_page_id(page): PagePermission.parse(value) for page, value in source.items()
        }
        if required_roles is None:
            required_roles = PAGE_REQUIRED_ROLES if permissions is None else {}
        for page, role in required_roles.items():
            key = normalize_page_id(page)
            base = self._permissions.get(key, PagePermission(roles=frozenset({role})))
            self._permissions[key] = PagePermission(roles=base.roles, required_role=role)
        self._menus: Dict[Role, NavigationMenu] = dict(NAVIGATION_MENUS if menus is None else menus)
        self.default_policy = DefaultPagePolicy(default_policy)
        self.protected_pages = frozenset(protected_pages)

    def permission_for(self, page: str) -> Optional[PagePermission]:
        return self._permissions.get(normalize_page_id(page))

    def menu_for(self, role: Optional[Role], authenticated: bool) -> NavigationMenu:
        if not authenticated or role is None:
            return PUBLIC_NAVIGATION
        return self._menus.get(role, PUBLIC_NAVIGATION)

    def is_protected(self, page: str) -> bool:
        name = normalize_page_id(page).rsplit("/", 1)[-1]
        return name in self.protected_pages


def normalize_page_id(path: str) -> str:
    """Turn a request path or page reference into a page identifier.

    `/`, `` and `/index.html` all map to `index.html`; a leading slash and any
    query string or fragment are dropped.
    """
    value = (path or "").split("?", 1)[0].split("#", 1)[0].strip()
    value = value.lstrip("/")
    if not value:
        return "index.html"
    return value


__all__ = [
    "WILDCARD",
    "DefaultPagePolicy",
    "PagePermission",
    "PAGE_PERMISSIONS",
    "PROTECTED_PAGES",
    "PAGE_REQUIRED_ROLES",
    "FEATURE_PERMISSIONS",
    "NavLink",
    "NavGroup",
    "NavigationMenu",
    "NAVIGATION_MENUS",
    "PUBLIC_NAVIGATION",
    "RoleRegistry",
    "normalize_page_id",
    "page_id_for_href",
]
