"""
Security config guard tests.

Validates that production/staging environments fail fast on unsafe settings
(demo accounts, plain-http collaborators, TLS disabled for the session
database) while development stays permissive.
"""
from __future__ import annotations

import pytest

import config as cfg
from identity_access.roles import DefaultPagePolicy


def test_dev_is_permissive(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("CATALYST_ENV", "dev")
    monkeypatch.setenv("CATALYST_DEMO_ACCOUNTS", "true")
    monkeypatch.setenv("CATALYST_GAMIFICATION_URL", "http://localhost:4000")
    cfg.ensure_secure_config_on_startup()


def test_prod_with_defaults_starts(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("CATALYST_ENV", "prod")
    cfg.ensure_secure_config_on_startup()
    assert cfg.demo_accounts_enabled() is False


def test_prod_refuses_demo_accounts(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("CATALYST_ENV", "production")
    monkeypatch.setenv("CATALYST_DEMO_ACCOUNTS", "true")
    with pytest.raises(SystemExit):
        cfg.ensure_secure_config_on_startup()


@pytest.mark.parametrize(
    "env",
    [
        {"CATALYST_USERS_BACKEND": "api", "CATALYST_API_BASE_URL": "http://crud.example.com/api"},
        {"CATALYST_USERS_BACKEND": "api"},
        {"CATALYST_GAMIFICATION_URL": "http://game.example.com"},
        {"SESSIONS_BACKEND": "db"},
        {"SESSIONS_BACKEND": "db", "DATABASE_URL": "postgresql://u:p@db/catalyst?sslmode=disable"},
        {"CATALYST_DEFAULT_PAGE_POLICY": "maybe"},
    ],
)
def test_prod_refuses_insecure_settings(monkeypatch: pytest.MonkeyPatch, env: dict):
    monkeypatch.setenv("CATALYST_ENV", "staging")
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    with pytest.raises(SystemExit):
        cfg.ensure_secure_config_on_startup()


def test_prod_accepts_https_api(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("CATALYST_ENV", "prod")
    monkeypatch.setenv("CATALYST_USERS_BACKEND", "api")
    monkeypatch.setenv("CATALYST_API_BASE_URL", "https://crud.example.com/api")
    monkeypatch.setenv("SESSIONS_BACKEND", "db")
    monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@db/catalyst?sslmode=require")
    cfg.ensure_secure_config_on_startup()


def test_default_page_policy(monkeypatch: pytest.MonkeyPatch):
    assert cfg.default_page_policy() is DefaultPagePolicy.ALLOW
    monkeypatch.setenv("CATALYST_DEFAULT_PAGE_POLICY", "DENY")
    assert cfg.default_page_policy() is DefaultPagePolicy.DENY
    monkeypatch.setenv("CATALYST_DEFAULT_PAGE_POLICY", "sometimes")
    assert cfg.default_page_policy() is DefaultPagePolicy.ALLOW


def test_demo_accounts_default_on_in_dev():
    assert cfg.demo_accounts_enabled() is True
