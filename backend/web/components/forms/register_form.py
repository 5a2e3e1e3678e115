"""
Registration Form Component
"""
from typing import Optional

from ..base import Component
from .fields import TextInputField
from .submit import SubmitButton


class RegisterForm(Component):
    """Self-service registration form posting to `/auth/register`.

    `error_field` marks the offending input as invalid; password values are
    never echoed back.
    """

    def __init__(self, error: Optional[str] = None, error_field: Optional[str] = None, values: Optional[dict] = None):
        self.error = error
        self.error_field = error_field
        self.values = values or {}

    def render(self) -> str:
        fields = [
            (TextInputField("first_name", "Nombre", required=True), "text", "given-name"),
            (TextInputField("last_name", "Apellido", required=True), "text", "family-name"),
            (TextInputField("email", "Correo electrónico", required=True), "email", "email"),
            (
                TextInputField("password", "Contraseña", required=True, help_text="Mínimo 8 caracteres"),
                "password",
                "new-password",
            ),
            (TextInputField("confirm_password", "Confirmar contraseña", required=True), "password", "new-password"),
        ]
        rendered = []
        for field, input_type, autocomplete in fields:
            invalid = self.error_field == field.field_id or (
                self.error_field == "name" and field.field_id in ("first_name", "last_name")
            )
            value = "" if input_type == "password" else self.values.get(field.field_id, "")
            css = self.classes("form-input", is_invalid=invalid)
            rendered.append(
                field.render(value=value, input_type=input_type, autocomplete=autocomplete, class_=css, required=True)
            )
        error_html = f'<div class="form-error" role="alert">{self.escape(self.error)}</div>' if self.error else ""
        return f"""
        <section class="auth-card card">
            <h1>Crear Cuenta</h1>
            <form method="post" action="/auth/register" class="register-form">
                {''.join(rendered)}
                {error_html}
                <div class="form-actions">
                    {SubmitButton("Registrarse").render()}
                </div>
            </form>
            <p>¿Ya tienes cuenta? <a href="/pages/login.html">Iniciar Sesión</a></p>
        </section>
        """
