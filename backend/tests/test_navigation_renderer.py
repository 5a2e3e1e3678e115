"""
Navigation renderer: role menus, placeholder substitution and auth area.
"""
from __future__ import annotations

import pytest

from components.navigation import (
    NavigationRenderer,
    RoleBadge,
    base_path_prefix_for,
    substitute_placeholders,
)
from identity_access.domain import Role
from identity_access.stores import Session


def _session(role: Role) -> Session:
    return Session(user_id="1", role=role, session_start=0, last_activity=0, token="t", first_name="Ana")


def test_anonymous_sees_public_menu_and_auth_links():
    html = NavigationRenderer().render(None, False, "")
    assert "Catalyst</span>" in html
    assert "Empleos" in html
    assert 'href="pages/login.html"' in html
    assert 'href="pages/register.html"' in html
    assert "Cerrar Sesión" not in html


def test_unknown_role_falls_back_to_public_menu():
    html = NavigationRenderer(session=_session(Role.UNKNOWN)).render(Role.UNKNOWN, True, "")
    assert "Catalyst</span>" in html
    assert "Iniciar Sesión" in html
    assert "userDropdown" not in html


def test_admin_menu_has_brand_badge_and_logout():
    html = NavigationRenderer(session=_session(Role.ADMINISTRATOR)).render(Role.ADMINISTRATOR, True, "")
    assert "Catalyst Admin" in html
    assert 'data-role="administrador"' in html
    assert "Panel Admin" in html
    assert 'href="/auth/logout"' in html
    assert "Ana" in html


@pytest.mark.parametrize("prefix,index_href,pages_href", [("", "index.html", "pages/"), ("../", "../index.html", "")])
def test_placeholders_resolve_for_root_and_subfolder(prefix, index_href, pages_href):
    html = NavigationRenderer().render(None, False, prefix)
    assert "__" + "INDEX_PATH__" not in html
    assert "_PATH__" not in html
    assert f'href="{index_href}"' in html
    assert f'href="{pages_href}login.html"' in html
    assert f'src="{prefix}img/image.png"' in html


def test_substitution_is_idempotent():
    template = NavigationRenderer().render_template(Role.USER, True)
    once = substitute_placeholders(template, "../")
    assert substitute_placeholders(once, "../") == once


def test_unknown_placeholder_raises():
    with pytest.raises(ValueError):
        substitute_placeholders('<a href="__DOCS_PATH__x.html">', "")


def test_active_link_is_highlighted():
    html = NavigationRenderer(current_page="/pages/empleos.html").render(None, False)
    assert 'class="nav-link active" href="empleos.html" aria-current="page"' in html


def test_base_path_prefix_for_paths():
    assert base_path_prefix_for("/pages/perfil.html") == "../"
    assert base_path_prefix_for("/index.html") == ""
    assert base_path_prefix_for("/") == ""


def test_role_badge_hidden_for_unknown_role():
    assert RoleBadge(Role.UNKNOWN).render() == ""
    assert "Recruiter" in RoleBadge(Role.RECRUITER).render()


def test_user_name_is_not_treated_as_placeholder():
    session = Session(user_id="1", role=Role.USER, session_start=0, last_activity=0, token="t", first_name="__EVIL_PATH__")
    html = NavigationRenderer(session=session).render(Role.USER, True, "../")
    assert "__EVIL_PATH__" in html
    assert 'href="perfil.html"' in html


def test_user_name_is_escaped():
    session = Session(user_id="1", role=Role.USER, session_start=0, last_activity=0, token="t", first_name="<b>Ana</b>")
    html = NavigationRenderer(session=session).render(Role.USER, True, "")
    assert "&lt;b&gt;Ana&lt;/b&gt;" in html
    assert "<b>Ana</b>" not in html
