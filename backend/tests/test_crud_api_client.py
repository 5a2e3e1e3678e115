"""
CrudApiClient over a fake `requests.Session`: URLs, timeouts and status
mapping.
"""
from __future__ import annotations

import json
from typing import Any, List, Optional

import pytest
import requests

from crud.api_client import CrudApiClient, http_timeout_from_env
from identity_access.errors import (
    CollaboratorError,
    CollaboratorTimeout,
    DuplicateApplication,
    EmailAlreadyRegistered,
)


class _FakeResponse:
    def __init__(self, status_code: int, body: Any = None):
        self.status_code = status_code
        self._body = body
        self.content = b"" if body is None else json.dumps(body).encode()

    def json(self) -> Any:
        return self._body


class _FakeSession:
    def __init__(self, response: Optional[_FakeResponse] = None, exc: Optional[Exception] = None):
        self.response = response
        self.exc = exc
        self.calls: List[dict] = []

    def request(self, method, url, timeout=None, **kwargs):
        self.calls.append({"method": method, "url": url, "timeout": timeout, **kwargs})
        if self.exc is not None:
            raise self.exc
        return self.response


def _client(session: _FakeSession) -> CrudApiClient:
    return CrudApiClient("http://crud.local/api/", timeout=2.5, session=session)


def test_list_jobs_sends_filters_and_timeout():
    session = _FakeSession(_FakeResponse(200, [{"id": 1, "title": "Backend", "featured": True}]))
    jobs = _client(session).list_jobs(query="backend", featured=True)
    assert jobs == [{"id": 1, "title": "Backend", "featured": True}]
    call = session.calls[0]
    assert call["url"] == "http://crud.local/api/jobs"
    assert call["timeout"] == 2.5
    assert call["params"] == {"q": "backend", "featured": "true"}


def test_list_jobs_filters_when_server_ignores_params():
    body = [{"id": 1, "title": "Backend"}, {"id": 2, "title": "Diseño"}]
    jobs = _client(_FakeSession(_FakeResponse(200, body))).list_jobs(query="backend")
    assert [j["id"] for j in jobs] == [1]


def test_list_users_accepts_wrapped_payloads():
    session = _FakeSession(_FakeResponse(200, {"data": [{"id": "1"}, "junk"]}))
    assert _client(session).list_users() == [{"id": "1"}]


def test_timeout_maps_to_collaborator_timeout():
    session = _FakeSession(exc=requests.Timeout("slow"))
    with pytest.raises(CollaboratorTimeout):
        _client(session).list_users()


def test_connection_error_maps_to_collaborator_error():
    session = _FakeSession(exc=requests.ConnectionError("refused"))
    with pytest.raises(CollaboratorError):
        _client(session).list_jobs()


def test_server_error_maps_to_collaborator_error():
    with pytest.raises(CollaboratorError):
        _client(_FakeSession(_FakeResponse(500, {"error": "boom"}))).list_applications()


def test_get_job_404_is_none():
    assert _client(_FakeSession(_FakeResponse(404))).get_job("9") is None


def test_conflicts_map_to_domain_errors():
    conflict = _FakeSession(_FakeResponse(409, {"error": "exists"}))
    with pytest.raises(DuplicateApplication):
        _client(conflict).create_application(job_id="1", user_id="2")
    with pytest.raises(EmailAlreadyRegistered):
        _client(conflict).create_user({"email": "a@b.co"})


def test_create_application_posts_payload():
    session = _FakeSession(_FakeResponse(201, {"id": 10, "job_id": "1", "user_id": "2"}))
    assert _client(session).create_application(job_id="1", user_id="2")["id"] == 10
    call = session.calls[0]
    assert call["method"] == "POST"
    assert call["json"] == {"job_id": "1", "user_id": "2", "status": "applied"}


def test_http_timeout_from_env(monkeypatch: pytest.MonkeyPatch):
    assert http_timeout_from_env() == 5.0
    monkeypatch.setenv("CATALYST_HTTP_TIMEOUT", "1.5")
    assert http_timeout_from_env() == 1.5
    monkeypatch.setenv("CATALYST_HTTP_TIMEOUT", "zero")
    assert http_timeout_from_env() == 5.0
