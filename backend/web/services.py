"""
Service wiring for the web app.

Why:
    Routes and middleware need the same client registry, guard, auth flow and
    monitors. `Services` bundles them; `build_services_from_env()` builds the
    production wiring and tests build their own with in-memory parts and
    assign it to `app.state.services`.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, MutableMapping, Optional, Protocol
import logging
import os
import sys

from crud import build_crud_from_env
from crud.ports import CrudBackend
from identity_access.auth_flow import AuthFlow
from identity_access.directory import UserDirectory
from identity_access.gamification import GamificationTracker, build_tracker_from_env
from identity_access.guard import AccessGuard
from identity_access.lifecycle import MonitorRegistry, SessionMonitor, SessionPolicy
from identity_access.roles import DefaultPagePolicy, RoleRegistry
from identity_access.stores import ClientStateRegistry, PendingIdentityStore, Session, SessionStore, now_millis

try:
    from . import config as _config  # type: ignore
except ImportError:
    import config as _config  # type: ignore


logger = logging.getLogger("catalyst.web.services")


class ClientRegistry(Protocol):
    def new_client_id(self) -> str:
        ...

    def storage_for(self, client_id: str) -> MutableMapping[str, str]:
        ...

    def forget(self, client_id: str) -> None:
        ...


@dataclass
class Services:
    clients: ClientRegistry
    registry: RoleRegistry
    guard: AccessGuard
    auth: AuthFlow
    monitors: MonitorRegistry
    crud: Optional[CrudBackend] = None
    policy: SessionPolicy = field(default_factory=SessionPolicy)

    def store_for(self, client_id: Optional[str]) -> SessionStore:
        if not client_id:
            return SessionStore({})
        return SessionStore(self.clients.storage_for(client_id))


@dataclass
class ClientContext:
    """Per-request view of the caller's client state (set by middleware)."""

    client_id: Optional[str]
    store: SessionStore
    monitor: SessionMonitor
    session: Optional[Session] = None


def build_services(
    *,
    clients: Optional[ClientRegistry] = None,
    crud: Optional[CrudBackend] = None,
    tracker: Optional[GamificationTracker] = None,
    policy: Optional[SessionPolicy] = None,
    default_policy: DefaultPagePolicy = DefaultPagePolicy.ALLOW,
    demo_accounts: bool = True,
    clock: Callable[[], int] = now_millis,
) -> Services:
    policy = policy or SessionPolicy()
    registry = RoleRegistry(default_policy=default_policy)
    directory = UserDirectory(crud) if crud is not None else None
    auth = AuthFlow(
        directory,
        pending=PendingIdentityStore(),
        tracker=tracker,
        demo_accounts=demo_accounts,
        clock=clock,
    )
    return Services(
        clients=clients or ClientStateRegistry(),
        registry=registry,
        guard=AccessGuard(registry),
        auth=auth,
        monitors=MonitorRegistry(policy, registry=registry, clock=clock),
        crud=crud,
        policy=policy,
    )


def _under_pytest() -> bool:
    return "pytest" in sys.modules or bool(os.getenv("PYTEST_CURRENT_TEST"))


def _clients_from_env() -> ClientRegistry:
    if (not _under_pytest()) and os.getenv("SESSIONS_BACKEND", "memory").lower() == "db":
        try:
            from identity_access.stores_db import DBClientStateRegistry

            return DBClientStateRegistry()
        except (ImportError, RuntimeError) as exc:
            logger.warning("DB client state unavailable (%s); using in-memory state", exc)
    return ClientStateRegistry()


def build_services_from_env() -> Services:
    return build_services(
        clients=_clients_from_env(),
        crud=build_crud_from_env(),
        tracker=build_tracker_from_env(),
        policy=_config.session_policy_from_env(),
        default_policy=_config.default_page_policy(),
        demo_accounts=_config.demo_accounts_enabled(),
    )
