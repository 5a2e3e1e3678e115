"""
Access-denied view shown with HTTP 403 when the guard denies a page.
"""

from typing import Optional

from identity_access.domain import Role

from .base import Component
from .navigation import RoleBadge

DEFAULT_REASON = "No tienes permisos para acceder a esta página"


class AccessDenied(Component):
    def __init__(self, reason: str = DEFAULT_REASON, role: Optional[Role] = None, home_href: str = "/index.html"):
        self.reason = reason
        self.role = role
        self.home_href = home_href

    def render(self) -> str:
        badge = ""
        if self.role is not None and self.role.is_known:
            badge = f'<p class="access-denied__role">Tu rol: {RoleBadge(self.role).render()}</p>'
        return f"""
        <section class="access-denied card" aria-labelledby="access-denied-title">
            <div class="access-denied__icon" aria-hidden="true"><i class="fas fa-shield-alt"></i></div>
            <h1 id="access-denied-title" class="text-danger">Acceso Denegado</h1>
            <p class="text-muted">{self.escape(self.reason)}</p>
            {badge}
            <div class="access-denied__actions">
                <a href="/index.html" class="btn btn-outline" data-action="history-back">Volver</a>
                <a {self.attributes(href=self.home_href, class_="btn btn-primary")}>Ir al Inicio</a>
            </div>
        </section>
        """
