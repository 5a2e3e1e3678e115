"""
Form components for Catalyst.

Provides building blocks such as FormField and SubmitButton plus the login,
role selection and registration forms.
"""

from .fields import FormField, TextInputField
from .submit import SubmitButton
from .login_form import LoginForm
from .role_selection_form import RoleSelectionForm
from .register_form import RegisterForm

__all__ = [
    "FormField",
    "TextInputField",
    "SubmitButton",
    "LoginForm",
    "RoleSelectionForm",
    "RegisterForm",
]
