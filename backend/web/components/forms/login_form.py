"""
Login Form Component
"""
from typing import Optional

from ..base import Component
from .fields import TextInputField
from .submit import SubmitButton


class LoginForm(Component):
    """Email/password form posting to `/auth/login`.

    `return_url` is carried in a hidden field so the user lands back on the
    page that sent them to the login.
    """

    def __init__(self, error: Optional[str] = None, email: str = "", return_url: Optional[str] = None):
        self.error = error
        self.email = email
        self.return_url = return_url

    def render(self) -> str:
        email_html = TextInputField("email", "Correo electrónico", required=True).render(
            value=self.email, input_type="email", autocomplete="username", class_="form-input", required=True
        )
        password_html = TextInputField("password", "Contraseña", required=True).render(
            input_type="password", autocomplete="current-password", class_="form-input", required=True
        )
        error_html = f'<div class="form-error" role="alert">{self.escape(self.error)}</div>' if self.error else ""
        return_html = (
            f'<input type="hidden" name="returnUrl" value="{self.escape(self.return_url)}">' if self.return_url else ""
        )
        return f"""
        <section class="auth-card card">
            <h1>Iniciar Sesión</h1>
            <form method="post" action="/auth/login" class="login-form">
                {return_html}
                {email_html}
                {password_html}
                {error_html}
                <div class="form-actions">
                    {SubmitButton("Iniciar Sesión").render()}
                </div>
            </form>
            <p class="text-muted">Demo: demo@catalyst.com / 123456 o juan@catalyst.com / 123456</p>
            <p>¿No tienes cuenta? <a href="/pages/register.html">Regístrate</a></p>
        </section>
        """
