"""
UserDirectory: credential matching, record normalization and name
formatting.
"""
from __future__ import annotations

from pathlib import Path

import pytest

from crud.json_file import JsonFileCrud
from identity_access.directory import UserDirectory, humanize_identifier


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("maria.lopez@example.com", "Maria Lopez"),
        ("JUAN_perez", "Juan Perez"),
        ("", ""),
        ("...@x.com", ""),
    ],
)
def test_humanize_identifier(raw: str, expected: str):
    assert humanize_identifier(raw) == expected


def test_find_by_credentials_matches_email_case_insensitively(db_json: Path):
    directory = UserDirectory(JsonFileCrud(db_json))
    user = directory.find_by_credentials("ANA@example.com", "secreto123")
    assert user is not None
    assert user["id"] == "501"
    assert user["role"] == "candidato"
    assert "password" not in user


def test_wrong_password_is_no_match(db_json: Path):
    directory = UserDirectory(JsonFileCrud(db_json))
    assert directory.find_by_credentials("ana@example.com", "nope") is None
    assert directory.find_by_credentials("otro@example.com", "secreto123") is None


def test_email_exists(db_json: Path):
    directory = UserDirectory(JsonFileCrud(db_json))
    assert directory.email_exists(" ana@example.com ")
    assert not directory.email_exists("otro@example.com")


def test_create_user_returns_public_record(db_json: Path):
    directory = UserDirectory(JsonFileCrud(db_json))
    user = directory.create_user(
        email="nuevo@example.com", password="password1", first_name=" Nuevo ", last_name="Usuario", phone=""
    )
    assert user["firstName"] == "Nuevo"
    assert user["role"] == "usuario"
    assert user["title"] == "Usuario"
    assert "password" not in user
    assert directory.find_by_credentials("nuevo@example.com", "password1")["id"] == user["id"]


def test_unknown_stored_role_is_downgraded_to_user(tmp_path: Path):
    import json

    path = tmp_path / "db.json"
    path.write_text(
        json.dumps({"users": [{"id": "1", "email": "x@example.com", "password": "pw", "role": "root"}]}),
        encoding="utf-8",
    )
    user = UserDirectory(JsonFileCrud(path)).find_by_credentials("x@example.com", "pw")
    assert user["role"] == "usuario"
    assert user["firstName"] == "X"
