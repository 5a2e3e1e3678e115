# Catalyst Component System
# Pure Python components for HTML generation

from .base import Component
from .layout import Layout, Toasts
from .navigation import NavigationRenderer, RoleBadge
from .access_denied import AccessDenied
from .pages import HomePage, JobList, PlaceholderPage
from .forms import FormField, TextInputField, SubmitButton, LoginForm, RoleSelectionForm, RegisterForm

__all__ = [
    "Component",
    "Layout",
    "Toasts",
    "NavigationRenderer",
    "RoleBadge",
    "AccessDenied",
    "HomePage",
    "JobList",
    "PlaceholderPage",
    "FormField",
    "TextInputField",
    "SubmitButton",
    "LoginForm",
    "RoleSelectionForm",
    "RegisterForm",
]
