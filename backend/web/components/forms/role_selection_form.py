"""
Role Selection Form Component

Shown when one email maps to several personas. Each option posts the
persona key together with the pending challenge to `/auth/select-role`.
"""
from typing import Iterable, Optional

from ..base import Component
from identity_access.stores import PersonaCandidate


class RoleSelectionForm(Component):
    def __init__(
        self,
        challenge: str,
        email: str,
        candidates: Iterable[PersonaCandidate],
        return_url: Optional[str] = None,
    ):
        self.challenge = challenge
        self.email = email
        self.candidates = list(candidates)
        self.return_url = return_url

    def render(self) -> str:
        options = []
        for candidate in self.candidates:
            attrs = self.attributes(
                type="submit",
                name="persona",
                value=candidate.key,
                class_="list-group-item role-option",
                data_role=candidate.role.value,
            )
            options.append(
                f"<button {attrs}><span>{self.escape(candidate.label)}</span>"
                f' <span class="badge badge--primary">{self.escape(candidate.role.value)}</span></button>'
            )
        return_html = (
            f'<input type="hidden" name="returnUrl" value="{self.escape(self.return_url)}">' if self.return_url else ""
        )
        return f"""
        <section class="auth-card card" id="roleSelection">
            <h1>Seleccionar Rol</h1>
            <p>Multiple accounts found for {self.escape(self.email)}. Please select your role:</p>
            <form method="post" action="/auth/select-role" class="role-selection-form">
                <input type="hidden" name="challenge" value="{self.escape(self.challenge)}">
                {return_html}
                <div class="list-group">
                    {''.join(options)}
                </div>
            </form>
        </section>
        """
