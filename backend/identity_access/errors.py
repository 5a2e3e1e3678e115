"""
Error taxonomy for the identity_access bounded context.

Routes translate these into `{"error": code, "detail": ...}` payloads; the
`code` attribute is the stable machine-readable part.
"""
from __future__ import annotations


class CatalystError(Exception):
    code = "catalyst_error"

    def __init__(self, detail: str = ""):
        super().__init__(detail or self.code)
        self.detail = detail


class CollaboratorError(CatalystError):
    """The CRUD API or the JSON data file failed to answer."""

    code = "collaborator_unavailable"


class CollaboratorTimeout(CollaboratorError):
    code = "collaborator_timeout"


class EmailAlreadyRegistered(CatalystError):
    code = "email_already_registered"


class RegistrationInvalid(CatalystError):
    code = "invalid_registration"

    def __init__(self, field: str, detail: str):
        super().__init__(detail)
        self.field = field


class DuplicateApplication(CatalystError):
    code = "already_applied"


class NotFound(CatalystError):
    code = "not_found"
