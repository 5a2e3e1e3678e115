"""
Layout Component for Catalyst

Main layout wrapper that combines navbar, toasts, content and footer into a
complete HTML page.
"""

from typing import Iterable, List, Optional

from identity_access.lifecycle import Notice, SessionPolicy
from identity_access.roles import RoleRegistry
from identity_access.stores import Session

from .base import Component
from .navigation import NavigationRenderer, base_path_prefix_for, substitute_placeholders


class Toasts(Component):
    """Server-queued notices rendered as toasts; `session.js` animates them."""

    def __init__(self, notices: Iterable[Notice] = ()):
        self.notices: List[Notice] = list(notices)

    def render(self) -> str:
        items = []
        for notice in self.notices:
            attrs = self.attributes(
                class_=self.classes("toast", f"toast--{notice.level}"),
                role="alert" if notice.level in ("warning", "error") else "status",
                data_redirect=notice.redirect,
                data_delay_ms=str(notice.delay_ms) if notice.redirect else None,
                data_duration_ms=str(notice.duration_ms) if notice.duration_ms else None,
            )
            items.append(f"<div {attrs}>{self.escape(notice.message)}</div>")
        return f'<div id="toast-container" class="toast-container" aria-live="polite">{"".join(items)}</div>'


class Layout(Component):
    """Main layout component that assembles the complete page"""

    def __init__(
        self,
        title: str,
        content: str,
        session: Optional[Session] = None,
        *,
        registry: Optional[RoleRegistry] = None,
        notices: Iterable[Notice] = (),
        policy: Optional[SessionPolicy] = None,
        current_path: str = "/",
        show_nav: bool = True,
    ):
        """
        Args:
            title: Page title (will be escaped)
            content: Main content HTML (pre-rendered components)
            session: Current session (optional)
            registry: Role registry used for the navbar
            notices: Pending notices to show as toasts
            policy: Session policy exposed to the browser poller
            current_path: Current URL path for active navigation highlighting
            show_nav: Whether to show navigation (default: True)
        """
        self.title = title
        self.content = content
        self.session = session
        self.registry = registry
        self.notices = list(notices)
        self.policy = policy or SessionPolicy()
        self.current_path = current_path
        self.show_nav = show_nav

    def render(self) -> str:
        """Render the complete HTML document including navigation and chrome."""
        nav_html = ""
        if self.show_nav:
            nav_html = NavigationRenderer(
                self.registry, session=self.session, current_page=self.current_path
            ).render()
        body_attrs = self.attributes(
            data_authenticated="true" if self.session is not None else "false",
            data_check_interval_ms=str(self.policy.check_interval_ms),
            data_activity_throttle_ms=str(self.policy.activity_throttle_ms),
        )
        return f"""<!DOCTYPE html>
<html lang="es">
<head>
    {self._render_head()}
</head>
<body {body_attrs}>
    <a href="#main-content" class="skip-link">Saltar al contenido principal</a>

    {nav_html}

    <main id="main-content" class="main-content" role="main">
        {self._render_main_inner()}
    </main>
</body>
</html>"""

    def render_fragment(self) -> str:
        """Return only the children of <main> for HTMX swaps."""
        return self._render_main_inner()

    def _render_head(self) -> str:
        return f"""
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <meta name="description" content="Catalyst HR - Portal de empleo y gestión de talento">
    <title>{self.escape(self.title)} - Catalyst</title>
    <link rel="stylesheet" href="/static/css/catalyst.css?v=1">
    <script src="/static/js/session.js?v=1" defer></script>
    """

    def _render_main_inner(self) -> str:
        footer = substitute_placeholders(
            """
        <footer class="content-footer" role="contentinfo">
            <p class="text-center text-muted">
                <a href="__PAGES_PATH__terminos.html">Términos y Condiciones</a>
                –
                <a href="__PAGES_PATH__privacidad.html">Política de Privacidad</a>
                –
                <a href="__PAGES_PATH__cookies.html">Cookies</a>
            </p>
        </footer>""",
            base_path_prefix_for(self.current_path),
        )
        return f"""
        {Toasts(self.notices).render()}
        {self.content}
        {footer}
        """
