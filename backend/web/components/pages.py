"""
Page body components: home page, job list and the placeholder used for pages
whose content lives outside this application.
"""

from typing import Iterable, List, Optional
from urllib.parse import quote

from identity_access.domain import role_label
from identity_access.stores import Session

from .base import Component

PAGE_TITLES = {
    "index.html": "Inicio",
    "pages/empleos.html": "Empleos",
    "pages/detalle-empleo.html": "Detalle de Empleo",
    "pages/capacitaciones.html": "Capacitaciones",
    "pages/detalles-curso.html": "Detalles del Curso",
    "pages/clanes.html": "Clanes",
    "pages/terminos.html": "Términos y Condiciones",
    "pages/privacidad.html": "Política de Privacidad",
    "pages/cookies.html": "Cookies",
    "pages/perfil.html": "Mi Perfil",
    "pages/empresas.html": "Empresas",
    "pages/mis-cursos.html": "Mis Cursos",
    "pages/certificados.html": "Certificados",
    "pages/favoritos.html": "Favoritos",
    "pages/alertas.html": "Alertas de Empleo",
    "pages/publicar-cv.html": "Publicar CV",
    "pages/resume-database.html": "Base de Datos CV",
    "pages/hiring-dashboard.html": "Dashboard Contratación",
    "pages/reports.html": "Reportes y Analytics",
    "pages/kanban.html": "Pipeline Candidatos",
    "pages/job-management.html": "Gestión de Empleos",
    "pages/user-management.html": "Gestión de Usuarios",
    "pages/metrics.html": "Métricas",
    "pages/admin-dashboard.html": "Panel Admin",
    "pages/gestion-usuarios.html": "Gestión de Usuarios",
    "pages/financial-services.html": "Servicios Financieros",
    "pages/loan-management.html": "Gestión de Préstamos",
    "pages/account-services.html": "Servicios de Cuenta",
    "pages/banking-reports.html": "Reportes Bancarios",
}


def page_title(page_id: str) -> str:
    if page_id in PAGE_TITLES:
        return PAGE_TITLES[page_id]
    stem = page_id.rsplit("/", 1)[-1].rsplit(".", 1)[0]
    return " ".join(part.capitalize() for part in stem.split("-") if part) or "Catalyst"


class JobList(Component):
    """Job cards with an optional apply button per job.

    An empty list renders the empty state; `degraded=True` adds a hint that
    the listing could not be loaded.
    """

    def __init__(self, jobs: Iterable[dict], *, query: str = "", can_apply: bool = False, degraded: bool = False):
        self.jobs: List[dict] = list(jobs)
        self.query = query
        self.can_apply = can_apply
        self.degraded = degraded

    def render(self) -> str:
        search = f"""
        <form method="get" action="empleos.html" class="job-search" role="search">
            <input {self.attributes(type="search", name="q", value=self.query, placeholder="Buscar empleos", class_="form-input", aria_label="Buscar empleos")}>
            <button type="submit" class="btn btn-primary">Buscar</button>
        </form>"""
        if not self.jobs:
            hint = "No se pudieron cargar los empleos. Inténtalo más tarde." if self.degraded else "No se encontraron empleos."
            return f'{search}<div class="job-list job-list--empty"><p class="text-muted">{hint}</p></div>'
        cards = "".join(self._render_job(job) for job in self.jobs)
        return f'{search}<div class="job-list">{cards}</div>'

    def _render_job(self, job: dict) -> str:
        company = job.get("company") or {}
        company_name = company.get("name") if isinstance(company, dict) else company
        job_id = str(job.get("id") or "")
        apply_html = ""
        if self.can_apply and job_id:
            apply_html = (
                f'<button type="button" class="btn btn-primary" data-action="apply" '
                f'data-job-id="{self.escape(job_id)}">Aplicar</button>'
            )
        featured = '<span class="badge badge--warning">Destacado</span>' if job.get("featured") else ""
        return f"""
            <article class="job-card card" data-job-id="{self.escape(job_id)}">
                <h3 class="job-card__title">{self.escape(job.get("title") or "")} {featured}</h3>
                <p class="job-card__company">{self.escape(company_name or "")}</p>
                <p class="job-card__location text-muted">{self.escape(job.get("location") or "")}</p>
                <p class="job-card__description">{self.escape(job.get("description") or "")}</p>
                {apply_html}
            </article>"""


class HomePage(Component):
    def __init__(self, session: Optional[Session] = None, featured_jobs: Iterable[dict] = ()):
        self.session = session
        self.featured_jobs = list(featured_jobs)

    def render(self) -> str:
        if self.session is not None:
            greeting = (
                f"<p class=\"lead\">Hola, {self.escape(self.session.display_name)} "
                f"({self.escape(role_label(self.session.role))})</p>"
            )
        else:
            greeting = '<p class="lead">Encuentra tu próximo empleo y desarrolla tu talento.</p>'
        featured = ""
        if self.featured_jobs:
            items = "".join(
                f'<li><a href="pages/empleos.html?q={self.escape(quote(str(job.get("title") or "")))}">'
                f'{self.escape(job.get("title") or "")}</a></li>'
                for job in self.featured_jobs
            )
            featured = f'<section class="featured-jobs"><h2>Empleos destacados</h2><ul>{items}</ul></section>'
        return f"""
        <section class="hero">
            <h1>Catalyst HR</h1>
            {greeting}
            <a class="btn btn-primary" href="pages/empleos.html">Ver Empleos</a>
        </section>
        {featured}
        """


class PlaceholderPage(Component):
    """Heading plus a short note; the page body is provided by other teams."""

    def __init__(self, title: str, page_id: str):
        self.title = title
        self.page_id = page_id

    def render(self) -> str:
        return f"""
        <section class="page-placeholder" data-page="{self.escape(self.page_id)}">
            <h1>{self.escape(self.title)}</h1>
            <p class="text-muted">Contenido en construcción.</p>
        </section>
        """
