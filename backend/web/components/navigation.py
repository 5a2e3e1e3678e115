"""
Navigation renderer for Catalyst.

Builds the top navbar from the role registry: the role's menu (or the public
menu for anonymous visitors and unknown roles) plus the auth buttons area.
Hrefs are written with the placeholders `__INDEX_PATH__`, `__PAGES_PATH__` and
`__IMG_PATH__` and substituted in one pass at the end, so the same markup
works from the site root and from the `pages/` subfolder.
"""

from typing import Dict, Optional
import re

from identity_access.domain import Role, role_label
from identity_access.roles import NavGroup, NavLink, RoleRegistry, normalize_page_id, page_id_for_href
from identity_access.stores import Session

from .base import Component


PLACEHOLDER_PATTERN = re.compile(r"__[A-Z]+(?:_[A-Z]+)*_PATH__")

# User text is filled in after substitution so it never reaches the placeholder pass.
USER_NAME_SLOT = "<!--user-name-->"

ROLE_BADGE_CLASSES: Dict[Role, str] = {
    Role.ADMINISTRATOR: "badge--danger",
    Role.RECRUITER: "badge--warning",
    Role.HIRING_MANAGER: "badge--info",
    Role.MANAGER: "badge--success",
    Role.BANK_REPRESENTATIVE: "badge--primary",
    Role.USER: "badge--secondary",
    Role.CANDIDATE: "badge--light",
}


def base_path_prefix_for(path: str) -> str:
    """Relative prefix back to the site root: `../` inside `pages/`, else empty."""
    return "../" if "/pages/" in f"/{(path or '').lstrip('/')}" else ""


def placeholder_values(base_path_prefix: str) -> Dict[str, str]:
    in_subfolder = bool(base_path_prefix)
    return {
        "__INDEX_PATH__": f"{base_path_prefix}index.html",
        "__PAGES_PATH__": "" if in_subfolder else "pages/",
        "__IMG_PATH__": f"{base_path_prefix}img/",
    }


def substitute_placeholders(markup: str, base_path_prefix: str) -> str:
    """Replace every known placeholder; unknown ones raise ValueError.

    The result contains no placeholders, so applying it twice is a no-op.
    """
    values = placeholder_values(base_path_prefix)

    def _replace(match: "re.Match[str]") -> str:
        token = match.group(0)
        if token not in values:
            raise ValueError(f"unknown navigation placeholder: {token}")
        return values[token]

    return PLACEHOLDER_PATTERN.sub(_replace, markup)


class RoleBadge(Component):
    def __init__(self, role: Role):
        self.role = role

    def render(self) -> str:
        if not self.role.is_known:
            return ""
        css = self.classes("badge", ROLE_BADGE_CLASSES.get(self.role, ""))
        return f'<span class="{css}" data-role="{self.escape(self.role.value)}">{self.escape(role_label(self.role))}</span>'


class NavigationRenderer(Component):
    """Render the navbar for a role and auth state.

    Args:
        registry: Role registry providing menus.
        session: Current session (optional); used for the user dropdown.
        current_page: Request path used for active link highlighting.
    """

    def __init__(
        self,
        registry: Optional[RoleRegistry] = None,
        *,
        session: Optional[Session] = None,
        current_page: str = "/",
    ):
        self.registry = registry or RoleRegistry()
        self.session = session
        self.current_page = current_page

    def render(
        self,
        role: Optional[Role] = None,
        authenticated: Optional[bool] = None,
        base_path_prefix: Optional[str] = None,
    ) -> str:
        if role is None and self.session is not None:
            role = self.session.role
        if authenticated is None:
            authenticated = self.session is not None
        if base_path_prefix is None:
            base_path_prefix = base_path_prefix_for(self.current_page)
        markup = substitute_placeholders(self.render_template(role, authenticated), base_path_prefix)
        name = self.session.display_name if self.session is not None else "Usuario"
        return markup.replace(USER_NAME_SLOT, self.escape(name), 1)

    def render_template(self, role: Optional[Role], authenticated: bool) -> str:
        """Navbar markup with placeholders and the user name slot still in place."""
        menu = self.registry.menu_for(role, authenticated)
        active = normalize_page_id(self.current_page)
        items = []
        for entry in menu.items:
            if isinstance(entry, NavGroup):
                items.append(self._render_group(entry, active))
            else:
                items.append(f'<li class="nav-item">{self._render_link(entry, active, "nav-link")}</li>')
        show_user = authenticated and role is not None and role.is_known
        auth_html = self._render_user_menu(role) if show_user else self._render_auth_links()
        return f"""
    <nav class="navbar" role="navigation" aria-label="Navegación principal">
        <div class="navbar-container">
            <a class="navbar-brand" href="__INDEX_PATH__">
                <img src="__IMG_PATH__image.png" alt="Catalyst HR System" height="32" loading="lazy">
                <span class="navbar-title">{self.escape(menu.brand)}</span>
            </a>
            <ul class="navbar-nav">
                {''.join(items)}
            </ul>
            <div class="auth-buttons" id="auth-buttons">
                {auth_html}
            </div>
        </div>
    </nav>"""

    def _render_link(self, link: NavLink, active: str, css: str) -> str:
        is_active = page_id_for_href(link.href) == active
        attrs = self.attributes(
            class_=self.classes(css, active=is_active),
            href=link.href,
            aria_current="page" if is_active else None,
        )
        return f'<a {attrs}><i class="fas {self.escape(link.icon)}" aria-hidden="true"></i> {self.escape(link.text)}</a>'

    def _render_group(self, group: NavGroup, active: str) -> str:
        links = "".join(f"<li>{self._render_link(link, active, 'dropdown-item')}</li>" for link in group.links)
        has_active = any(page_id_for_href(link.href) == active for link in group.links)
        return f"""
                <li class="{self.classes('nav-item', 'dropdown', active=has_active)}">
                    <details>
                        <summary class="nav-link dropdown-toggle"><i class="fas {self.escape(group.icon)}" aria-hidden="true"></i> {self.escape(group.text)}</summary>
                        <ul class="dropdown-menu">{links}</ul>
                    </details>
                </li>"""

    def _render_auth_links(self) -> str:
        return (
            '<a class="btn btn-outline" href="__PAGES_PATH__login.html">Iniciar Sesión</a>'
            '<a class="btn btn-primary" href="__PAGES_PATH__register.html">Registrarse</a>'
        )

    def _render_user_menu(self, role: Role) -> str:
        items = [
            ("perfil.html", "fa-user", "Mi Perfil"),
            ("favoritos.html", "fa-heart", "Favoritos"),
            ("mis-cursos.html", "fa-graduation-cap", "Mis Cursos"),
            ("alertas.html", "fa-bell", "Alertas"),
        ]
        role_items = []
        if role is Role.ADMINISTRATOR:
            role_items += [
                ("admin-dashboard.html", "fa-cog", "Panel Admin"),
                ("metrics.html", "fa-chart-bar", "Métricas"),
            ]
        if role in (Role.ADMINISTRATOR, Role.RECRUITER, Role.HIRING_MANAGER):
            role_items.append(("hiring-dashboard.html", "fa-chart-line", "Dashboard HR"))
        if role is Role.MANAGER:
            role_items.append(("metrics.html", "fa-chart-pie", "Reportes"))
        if role is Role.BANK_REPRESENTATIVE:
            role_items.append(("financial-services.html", "fa-university", "Servicios Bancarios"))

        def _li(page: str, icon: str, text: str) -> str:
            return (
                f'<li><a class="dropdown-item" href="__PAGES_PATH__{page}">'
                f'<i class="fas {icon}" aria-hidden="true"></i> {self.escape(text)}</a></li>'
            )

        role_html = "".join(_li(*item) for item in role_items)
        divider = '<li><hr class="dropdown-divider"></li>' if role_html else ""
        return f"""
                <details class="dropdown user-menu" id="userDropdown">
                    <summary class="btn btn-outline dropdown-toggle">
                        <i class="fas fa-user-circle" aria-hidden="true"></i> {USER_NAME_SLOT} {RoleBadge(role).render()}
                    </summary>
                    <ul class="dropdown-menu dropdown-menu-end">
                        {role_html}{divider}
                        {''.join(_li(*item) for item in items)}
                        <li><hr class="dropdown-divider"></li>
                        <li><a class="dropdown-item" href="/auth/logout" data-action="logout"><i class="fas fa-sign-out-alt" aria-hidden="true"></i> Cerrar Sesión</a></li>
                    </ul>
                </details>"""


__all__ = [
    "NavigationRenderer",
    "RoleBadge",
    "base_path_prefix_for",
    "placeholder_values",
    "substitute_placeholders",
]
