"""
Pytest configuration for backend tests.

Why: Force AnyIO to use the asyncio backend to avoid sandbox restrictions
that can affect the Trio backend (e.g., socketpair permission errors), and
give every HTTP test a fresh, in-memory service wiring.
"""
import importlib
import sys
from pathlib import Path

import pytest

# Ensure modules in backend/ and backend/web are importable across tests
REPO_ROOT = Path(__file__).resolve().parents[2]
BACKEND_DIR = REPO_ROOT / "backend"
WEB_DIR = BACKEND_DIR / "web"
TESTS_DIR = BACKEND_DIR / "tests"
for p in (str(REPO_ROOT), str(BACKEND_DIR), str(WEB_DIR), str(TESTS_DIR)):
    if p not in sys.path:
        sys.path.insert(0, p)


class FakeClock:
    """Manually advanced millisecond clock."""

    def __init__(self, start_ms: int = 1_700_000_000_000):
        self.now = start_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(autouse=True)
def _clear_catalyst_env(monkeypatch: pytest.MonkeyPatch):
    """Clear env-driven toggles so a developer shell cannot leak into tests."""
    for var in (
        "CATALYST_ENV",
        "CATALYST_USERS_BACKEND",
        "CATALYST_API_BASE_URL",
        "CATALYST_GAMIFICATION_URL",
        "CATALYST_DEFAULT_PAGE_POLICY",
        "CATALYST_DEMO_ACCOUNTS",
        "CATALYST_TRUST_PROXY",
        "CATALYST_HTTP_TIMEOUT",
        "SESSIONS_BACKEND",
        "DATABASE_URL",
        "SESSION_DATABASE_URL",
        "SESSION_MAX_AGE_SECONDS",
        "SESSION_WARNING_SECONDS",
        "SESSION_CHECK_INTERVAL_SECONDS",
        "SESSION_ACTIVITY_THROTTLE_SECONDS",
    ):
        monkeypatch.delenv(var, raising=False)
    yield


@pytest.fixture
def db_json(tmp_path: Path) -> Path:
    """A small `db.json` with one stored user and three jobs."""
    import json

    path = tmp_path / "db.json"
    path.write_text(
        json.dumps(
            {
                "users": [
                    {
                        "id": "501",
                        "email": "ana@example.com",
                        "password": "secreto123",
                        "firstName": "Ana",
                        "lastName": "Ruiz",
                        "role": "candidato",
                    }
                ],
                "jobs": [
                    {"id": "1", "title": "Backend Developer", "company": {"name": "Acme"}, "description": "Python APIs", "featured": True},
                    {"id": "2", "title": "Data Analyst", "company": {"name": "Globex"}, "description": "SQL y reportes", "featured": False},
                    {"id": "3", "title": "Frontend Developer", "company": {"name": "Initech"}, "description": "React", "featured": True},
                ],
                "applications": [],
            }
        ),
        encoding="utf-8",
    )
    return path


@pytest.fixture
async def web_app(anyio_backend, monkeypatch: pytest.MonkeyPatch, db_json: Path, clock: FakeClock):
    """`main.app` with fresh in-memory services over the temp `db.json`.

    Returns a namespace with `app`, `services` and `clock`.
    """
    import types

    main = importlib.import_module("main")
    from crud.json_file import JsonFileCrud
    from services import build_services

    services = build_services(crud=JsonFileCrud(db_json), clock=clock)
    monkeypatch.setattr(main.app.state, "services", services)
    main.SETTINGS.override_environment(None)
    yield types.SimpleNamespace(app=main.app, services=services, clock=clock, main=main)
    await services.monitors.stop_all()
