"""
Redirect validation and cookie policy helpers.
"""
import pytest

from auth_utils import cookie_opts, safe_return_url


@pytest.mark.parametrize(
    "value,expected",
    [
        ("/pages/perfil.html", "/pages/perfil.html"),
        ("/pages/empleos.html?q=python", "/pages/empleos.html?q=python"),
        ("https://evil.example/", None),
        ("//evil.example/", None),
        ("/pages/../secret", None),
        ("pages/perfil.html", None),
        ("/pages/login.html", None),
        ("", None),
        (None, None),
        ("/" + "a" * 300, None),
    ],
)
def test_safe_return_url(value, expected):
    assert safe_return_url(value) == expected


def test_cookie_opts_secure_only_in_prod():
    assert cookie_opts("dev") == {"secure": False, "samesite": "lax"}
    assert cookie_opts("prod")["secure"] is True
    assert cookie_opts("staging")["secure"] is True
