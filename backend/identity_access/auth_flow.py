"""
Auth Flow: credentials in, Session out.

Order of resolution:
    1. Built-in demo directory (shared password `123456`). No collaborator call.
       `juan@catalyst.com` owns several personas and yields `AmbiguousIdentity`;
       `resolve(challenge, key)` finishes the login once a persona is chosen.
    2. The user directory (CRUD collaborator). No match is
       `InvalidCredentials`; a collaborator failure is `CollaboratorFailure`.

On success the Session is saved to the given SessionStore (if any) and a
best-effort `login` action is tracked. Failures never touch the store.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Mapping, Optional, Tuple, Union
import logging
import re

from .directory import UserDirectory
from .domain import Department, Role, parse_role
from .errors import CollaboratorError, EmailAlreadyRegistered, RegistrationInvalid
from .gamification import GamificationTracker, track_safely
from .stores import (
    PendingIdentityStore,
    PersonaCandidate,
    Session,
    SessionStore,
    new_session_token,
    now_millis,
)


logger = logging.getLogger("catalyst.identity_access.auth_flow")

DEMO_PASSWORD = "123456"
MULTI_PERSONA_EMAIL = "juan@catalyst.com"

INVALID_CREDENTIALS_MESSAGE = (
    "Invalid credentials. Use demo@catalyst.com / 123456 or juan@catalyst.com / 123456"
)
TRY_AGAIN_MESSAGE = "Authentication error. Please try demo credentials."
SELECTION_EXPIRED_MESSAGE = "Role selection expired. Please log in again."

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD_LENGTH = 8


@dataclass(frozen=True)
class DemoAccount:
    user_id: str
    email: str
    first_name: str
    last_name: str
    title: str
    role: Role
    department: Optional[Department] = None


def _demo(user_id, email, first, last, title, role, department=None) -> DemoAccount:
    return DemoAccount(user_id, email, first, last, title, role, department)


DEMO_ACCOUNTS: Dict[str, DemoAccount] = {
    a.email: a
    for a in (
        _demo("999", "demo@catalyst.com", "Demo", "User", "Full Stack Developer", Role.USER, Department.TECHNOLOGY),
        _demo("998", "admin@catalyst.com", "System", "Administrator", "System Administrator", Role.ADMINISTRATOR, Department.MANAGEMENT),
        _demo("997", "th@catalyst.com", "Human", "Resources", "HR Specialist", Role.RECRUITER, Department.HR),
        _demo("996", "manager@catalyst.com", "General", "Manager", "General Manager", Role.MANAGER, Department.MANAGEMENT),
        _demo("995", "banco@catalyst.com", "Bank", "Representative", "Banking Services Representative", Role.BANK_REPRESENTATIVE, Department.BANKING),
        _demo("994", "hiring@catalyst.com", "Hiring", "Manager", "Hiring Manager", Role.HIRING_MANAGER, Department.TECHNOLOGY),
    )
}

# Personas sharing one email; keys are what the selection form posts back.
PERSONAS: Dict[str, Tuple[Tuple[PersonaCandidate, DemoAccount], ...]] = {
    MULTI_PERSONA_EMAIL: (
        (
            PersonaCandidate("juan-admin", "Administrator", Role.ADMINISTRATOR),
            _demo("993", MULTI_PERSONA_EMAIL, "Juan", "Martínez", "System Administrator", Role.ADMINISTRATOR, Department.MANAGEMENT),
        ),
        (
            PersonaCandidate("juan-hr", "HR Specialist", Role.RECRUITER),
            _demo("992", MULTI_PERSONA_EMAIL, "Juan", "Silva", "HR Specialist", Role.RECRUITER, Department.HR),
        ),
        (
            PersonaCandidate("juan-manager", "Hiring Manager", Role.HIRING_MANAGER),
            _demo("991", MULTI_PERSONA_EMAIL, "Juan", "Torres", "Hiring Manager", Role.HIRING_MANAGER, Department.TECHNOLOGY),
        ),
        (
            PersonaCandidate("juan-employee", "Employee", Role.USER),
            _demo("990", MULTI_PERSONA_EMAIL, "Juan", "Gómez", "Senior Developer", Role.USER, Department.TECHNOLOGY),
        ),
        (
            PersonaCandidate("juan-candidate", "Candidate", Role.USER),
            _demo("989", MULTI_PERSONA_EMAIL, "Juan", "Herrera", "Job Seeker", Role.USER, None),
        ),
    ),
}


@dataclass(frozen=True)
class Authenticated:
    session: Session
    message: str = ""
    action: str = "login"
    metadata: Optional[Mapping[str, object]] = None


@dataclass(frozen=True)
class AmbiguousIdentity:
    challenge: str
    email: str
    candidates: Tuple[PersonaCandidate, ...]


@dataclass(frozen=True)
class InvalidCredentials:
    message: str = INVALID_CREDENTIALS_MESSAGE


@dataclass(frozen=True)
class CollaboratorFailure:
    message: str = TRY_AGAIN_MESSAGE


AuthResult = Union[Authenticated, AmbiguousIdentity, InvalidCredentials, CollaboratorFailure]


class AuthFlow:
    def __init__(
        self,
        directory: Optional[UserDirectory] = None,
        *,
        pending: Optional[PendingIdentityStore] = None,
        tracker: Optional[GamificationTracker] = None,
        demo_accounts: bool = True,
        clock: Callable[[], int] = now_millis,
    ):
        self.directory = directory
        self.pending = pending or PendingIdentityStore()
        self.tracker = tracker
        self.demo_accounts = demo_accounts
        self._clock = clock

    def authenticate(
        self,
        email: str,
        password: str,
        *,
        store: Optional[SessionStore] = None,
        client_id: Optional[str] = None,
    ) -> AuthResult:
        result = self.check_credentials(email, password, client_id=client_id)
        if isinstance(result, Authenticated):
            self.establish(result, store)
        return result

    def check_credentials(self, email: str, password: str, *, client_id: Optional[str] = None) -> AuthResult:
        """Resolve credentials without saving or tracking anything.

        May block on the user directory; the web layer runs it in a worker
        thread and calls `establish()` back on the event loop.
        """
        email = (email or "").strip()
        key = email.lower()

        if self.demo_accounts and password == DEMO_PASSWORD:
            personas = PERSONAS.get(key)
            if personas:
                pending = self.pending.create(
                    email=key,
                    candidates=tuple(c for c, _ in personas),
                    client_id=client_id,
                )
                return AmbiguousIdentity(challenge=pending.challenge, email=key, candidates=pending.candidates)
            account = DEMO_ACCOUNTS.get(key)
            if account is not None:
                session = self._session_from_demo(account)
                return Authenticated(session, f"Welcome {account.first_name}! Login successful.")

        if self.directory is None:
            return InvalidCredentials()
        try:
            user = self.directory.find_by_credentials(email, password)
        except CollaboratorError as exc:
            logger.warning("User lookup failed: %s", exc.code)
            return CollaboratorFailure()
        if user is None:
            return InvalidCredentials()
        return Authenticated(self._session_from_record(user), "Welcome! You have successfully logged in.")

    def resolve(
        self,
        challenge: str,
        choice: str,
        *,
        store: Optional[SessionStore] = None,
        client_id: Optional[str] = None,
    ) -> Union[Authenticated, InvalidCredentials]:
        pending = self.pending.pop_valid(challenge or "")
        if pending is None:
            return InvalidCredentials(SELECTION_EXPIRED_MESSAGE)
        if pending.client_id is not None and pending.client_id != client_id:
            logger.info("Persona selection from a different client rejected")
            return InvalidCredentials(SELECTION_EXPIRED_MESSAGE)
        for candidate, account in PERSONAS.get(pending.email, ()):
            if candidate.key == choice and candidate in pending.candidates:
                result = Authenticated(
                    self._session_from_demo(account),
                    f"Welcome {account.first_name}! Login successful as {account.title}.",
                )
                self.establish(result, store)
                return result
        return InvalidCredentials(SELECTION_EXPIRED_MESSAGE)

    def register(self, fields: Mapping[str, str], *, store: Optional[SessionStore] = None) -> Authenticated:
        """Validate, create the user through the directory and log them in."""
        result = self.create_account(fields)
        self.establish(result, store)
        return result

    def create_account(self, fields: Mapping[str, str]) -> Authenticated:
        """Validate and create the user; the session is not established yet.

        Raises:
            RegistrationInvalid: a field failed validation.
            EmailAlreadyRegistered: the email belongs to a demo or stored user.
            CollaboratorError: the directory could not answer.
        """
        email = (fields.get("email") or "").strip()
        password = fields.get("password") or ""
        confirm = fields.get("confirm_password") or ""
        first_name = (fields.get("first_name") or "").strip()
        last_name = (fields.get("last_name") or "").strip()

        if not _EMAIL_RE.match(email):
            raise RegistrationInvalid("email", "Please enter a valid email")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise RegistrationInvalid("password", "Password must be at least 8 characters")
        if password != confirm:
            raise RegistrationInvalid("confirm_password", "Passwords do not match")
        if not first_name or not last_name:
            raise RegistrationInvalid("name", "First and last name are required")
        if self.directory is None:
            raise CollaboratorError("no user directory configured")

        key = email.lower()
        if key in DEMO_ACCOUNTS or key in PERSONAS or self.directory.email_exists(email):
            raise EmailAlreadyRegistered("This email is already registered")

        user = self.directory.create_user(
            email=email, password=password, first_name=first_name, last_name=last_name
        )
        return Authenticated(
            self._session_from_record(user),
            "Account created successfully!",
            action="profile-update",
            metadata={"completeness": 100},
        )

    def establish(self, result: Authenticated, store: Optional[SessionStore] = None) -> None:
        """Save the session (if a store is given) and track the action.

        Must run on the event loop so tracking can be scheduled.
        """
        session = result.session
        if store is not None:
            store.save(session)
        logger.info("Session established for user %s (%s)", session.user_id, session.role.value)
        track_safely(self.tracker, result.action, result.metadata, user_id=session.user_id)

    @staticmethod
    def logout(store: SessionStore) -> None:
        store.clear()

    # -- helpers -------------------------------------------------------------

    def _session_from_demo(self, account: DemoAccount) -> Session:
        now = self._clock()
        return Session(
            user_id=account.user_id,
            role=account.role,
            session_start=now,
            last_activity=now,
            token=new_session_token(now),
            department=account.department.value if account.department else None,
            email=account.email,
            first_name=account.first_name,
            last_name=account.last_name,
            title=account.title,
        )

    def _session_from_record(self, user: Mapping[str, object]) -> Session:
        now = self._clock()
        department = user.get("department")
        return Session(
            user_id=str(user.get("id") or ""),
            role=parse_role(user.get("role")),
            session_start=now,
            last_activity=now,
            token=new_session_token(now),
            department=str(department) if department else None,
            email=str(user.get("email") or ""),
            first_name=str(user.get("firstName") or ""),
            last_name=str(user.get("lastName") or ""),
            title=str(user.get("title") or "Usuario"),
        )


__all__ = [
    "AuthFlow",
    "AuthResult",
    "Authenticated",
    "AmbiguousIdentity",
    "InvalidCredentials",
    "CollaboratorFailure",
    "DemoAccount",
    "DEMO_ACCOUNTS",
    "DEMO_PASSWORD",
    "PERSONAS",
]
