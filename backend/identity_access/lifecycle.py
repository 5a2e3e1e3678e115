"""
Session lifecycle: expiry, warnings, activity refresh and visibility checks.

Why:
    The stored Session carries its own start time. Something has to notice
    when that start time is older than the policy allows, warn the user a few
    minutes before, and clear the state once it is over. The SessionMonitor is
    that something: one instance per client, driven by a cancellable asyncio
    poll task plus explicit calls from the web layer (page loads, activity
    pings, visibility changes).

States:
    Absent -> Active -> (Warned) -> Expired

    Expiry is decided on elapsed time since `session_start` only. Activity
    updates `last_activity` but never pushes expiry back; only
    `extend_session()` does.

Notices:
    User-visible messages are queued on the monitor and drained by the web
    layer with the next page render or `/api/session` response.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional
import asyncio
import logging
import os

from .roles import PROTECTED_PAGES, RoleRegistry, normalize_page_id
from .stores import SessionStore, now_millis


logger = logging.getLogger("catalyst.identity_access.lifecycle")

EXPIRED_MESSAGE = "Your session has expired. Please log in again."
EXTENDED_MESSAGE = "Session extended successfully!"
LOGGED_OUT_MESSAGE = "You have been logged out successfully."


def _env_seconds(name: str, default_ms: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default_ms
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r", name, raw)
        return default_ms
    if value <= 0:
        logger.warning("Ignoring non-positive %s=%r", name, raw)
        return default_ms
    return int(value * 1000)


@dataclass(frozen=True)
class SessionPolicy:
    """Timing policy, all values in milliseconds."""

    max_age_ms: int = 24 * 60 * 60 * 1000
    warning_ms: int = 5 * 60 * 1000
    check_interval_ms: int = 60 * 1000
    activity_throttle_ms: int = 30 * 1000
    expiry_redirect_delay_ms: int = 2000
    logout_redirect_delay_ms: int = 1000
    # Ended monitors keep undelivered notices this long before being dropped.
    ended_retention_ms: int = 10 * 60 * 1000

    @classmethod
    def from_env(cls) -> "SessionPolicy":
        base = cls()
        return cls(
            max_age_ms=_env_seconds("SESSION_MAX_AGE_SECONDS", base.max_age_ms),
            warning_ms=_env_seconds("SESSION_WARNING_SECONDS", base.warning_ms),
            check_interval_ms=_env_seconds("SESSION_CHECK_INTERVAL_SECONDS", base.check_interval_ms),
            activity_throttle_ms=_env_seconds("SESSION_ACTIVITY_THROTTLE_SECONDS", base.activity_throttle_ms),
        )


class MonitorState(str, Enum):
    ABSENT = "absent"
    ACTIVE = "active"
    WARNED = "warned"
    EXPIRED = "expired"


@dataclass(frozen=True)
class Notice:
    message: str
    level: str = "info"
    redirect: Optional[str] = None
    delay_ms: int = 0
    duration_ms: Optional[int] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class SessionInfo:
    session_age_ms: int
    time_left_ms: int
    last_activity_ms: Optional[int]
    is_valid: bool

    def to_dict(self) -> dict:
        return asdict(self)


class SessionMonitor:
    """Owns expiry for the session held by one client's SessionStore."""

    def __init__(
        self,
        store: SessionStore,
        policy: Optional[SessionPolicy] = None,
        *,
        clock: Callable[[], int] = now_millis,
        registry: Optional[RoleRegistry] = None,
        home_path: str = "/index.html",
    ):
        self.store = store
        self.policy = policy or SessionPolicy()
        self._clock = clock
        self._protected = registry.protected_pages if registry is not None else PROTECTED_PAGES
        self.home_path = home_path
        self.current_page: Optional[str] = None
        self._warned = False
        self._expired = False
        self._last_activity_write = 0
        self._notices: List[Notice] = []
        self._task: Optional[asyncio.Task] = None
        self._ended_at: Optional[int] = None

    # -- state ---------------------------------------------------------------

    @property
    def state(self) -> MonitorState:
        if self.store.load() is None:
            return MonitorState.EXPIRED if self._expired else MonitorState.ABSENT
        return MonitorState.WARNED if self._warned else MonitorState.ACTIVE

    @property
    def polling(self) -> bool:
        return self._task is not None and not self._task.done()

    def retired(self, now_ms: int) -> bool:
        """True once the session ended and its notices were delivered (or went stale)."""
        if self._ended_at is None or self.polling:
            return False
        return not self._notices or now_ms - self._ended_at >= self.policy.ended_retention_ms

    def initialize(self, current_page: Optional[str] = None) -> bool:
        """Page-load entry point: validate the stored session and touch activity.

        Returns True when a valid session is active afterwards.
        """
        if current_page is not None:
            self.current_page = current_page
        session = self.store.load()
        if session is None:
            return False
        self._expired = False
        if self._elapsed(session.session_start) >= self.policy.max_age_ms:
            self._expire()
            return False
        self._ended_at = None
        self._write_activity()
        return True

    def session_established(self) -> None:
        """Reset per-session flags after a fresh login."""
        self._warned = False
        self._expired = False
        self._ended_at = None
        self._last_activity_write = self._clock()

    def check(self, current_page: Optional[str] = None) -> MonitorState:
        """One poll tick.

        An absent session is left alone; expiry is handled exactly once because
        the first expiry clears the store.
        """
        if current_page is not None:
            self.current_page = current_page
        session = self.store.load()
        if session is None:
            return MonitorState.ABSENT
        elapsed = self._elapsed(session.session_start)
        if elapsed >= self.policy.max_age_ms:
            self._expire()
            return MonitorState.EXPIRED
        time_left = self.policy.max_age_ms - elapsed
        if time_left <= self.policy.warning_ms and not self._warned:
            self._warned = True
            minutes = time_left // 60000
            self._notices.append(
                Notice(
                    f"Your session will expire in {minutes} minutes. Click to extend your session.",
                    level="warning",
                    duration_ms=10000,
                )
            )
            logger.info("Session close to expiry (%d ms left)", time_left)
        return MonitorState.WARNED if self._warned else MonitorState.ACTIVE

    def on_visibility_regained(self, current_page: Optional[str] = None) -> MonitorState:
        if current_page is not None:
            self.current_page = current_page
        session = self.store.load()
        if session is None:
            return MonitorState.ABSENT
        if self._elapsed(session.session_start) >= self.policy.max_age_ms:
            self._expire()
            return MonitorState.EXPIRED
        self._write_activity()
        return MonitorState.WARNED if self._warned else MonitorState.ACTIVE

    def record_activity(self) -> bool:
        """Throttled last-activity update; returns True when a write happened."""
        now = self._clock()
        if now - self._last_activity_write <= self.policy.activity_throttle_ms:
            return False
        self._last_activity_write = now
        session = self.store.load()
        if session is None:
            return False
        self.store.save(session.touched(now))
        return True

    def extend_session(self) -> bool:
        session = self.store.load()
        if session is None:
            return False
        now = self._clock()
        self.store.save(session.restarted(now))
        self._last_activity_write = now
        self._warned = False
        self._notices.append(Notice(EXTENDED_MESSAGE, level="success"))
        return True

    def session_info(self) -> Optional[SessionInfo]:
        session = self.store.load()
        if session is None:
            return None
        age = self._elapsed(session.session_start)
        time_left = self.policy.max_age_ms - age
        return SessionInfo(
            session_age_ms=age,
            time_left_ms=time_left,
            last_activity_ms=session.last_activity,
            is_valid=time_left > 0,
        )

    def perform_logout(self) -> None:
        self._cancel_task()
        self.store.clear()
        self._warned = False
        self._expired = False
        self._ended_at = self._clock()
        self._notices.append(
            Notice(
                LOGGED_OUT_MESSAGE,
                level="info",
                redirect=self.home_path,
                delay_ms=self.policy.logout_redirect_delay_ms,
            )
        )

    def notify(self, message: str, level: str = "success") -> None:
        self._notices.append(Notice(message, level=level))

    def drain_notices(self) -> List[Notice]:
        notices, self._notices = self._notices, []
        return notices

    # -- polling -------------------------------------------------------------

    def start(self) -> None:
        """Start the poll task on the running loop (replaces a previous one)."""
        self._cancel_task()
        self._task = asyncio.get_running_loop().create_task(self.run())

    async def run(self) -> None:
        interval = self.policy.check_interval_ms / 1000
        while True:
            await asyncio.sleep(interval)
            state = self.check()
            if state in (MonitorState.ABSENT, MonitorState.EXPIRED):
                return

    async def stop(self) -> None:
        task = self._task
        self._cancel_task()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass

    def _cancel_task(self) -> None:
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()

    # -- helpers -------------------------------------------------------------

    def _elapsed(self, session_start: int) -> int:
        return self._clock() - session_start

    def _write_activity(self) -> None:
        session = self.store.load()
        if session is None:
            return
        now = self._clock()
        self.store.save(session.touched(now))
        self._last_activity_write = now

    def _expire(self) -> None:
        self.store.clear()
        self._warned = False
        self._expired = True
        self._ended_at = self._clock()
        redirect = None
        if self.current_page and self._is_protected(self.current_page):
            redirect = self.home_path
        self._notices.append(
            Notice(
                EXPIRED_MESSAGE,
                level="warning",
                redirect=redirect,
                delay_ms=self.policy.expiry_redirect_delay_ms if redirect else 0,
            )
        )
        logger.info("Session expired")

    def _is_protected(self, page: str) -> bool:
        name = normalize_page_id(page).rsplit("/", 1)[-1]
        return name in self._protected


class MonitorRegistry:
    """One SessionMonitor per client id."""

    def __init__(
        self,
        policy: Optional[SessionPolicy] = None,
        *,
        registry: Optional[RoleRegistry] = None,
        clock: Callable[[], int] = now_millis,
    ):
        self.policy = policy or SessionPolicy()
        self._registry = registry
        self._clock = clock
        self._monitors: Dict[str, SessionMonitor] = {}

    def get(self, client_id: str, store: SessionStore) -> SessionMonitor:
        monitor = self._monitors.get(client_id)
        if monitor is None:
            self.sweep()
            monitor = SessionMonitor(store, self.policy, clock=self._clock, registry=self._registry)
            self._monitors[client_id] = monitor
        else:
            monitor.store = store
        return monitor

    def lookup(self, client_id: str) -> Optional[SessionMonitor]:
        return self._monitors.get(client_id)

    def ephemeral(self, store: SessionStore) -> SessionMonitor:
        """Unregistered monitor for callers without a client id."""
        return SessionMonitor(store, self.policy, clock=self._clock, registry=self._registry)

    def start(self, client_id: str, store: SessionStore) -> SessionMonitor:
        monitor = self.get(client_id, store)
        monitor.session_established()
        monitor.start()
        return monitor

    async def stop(self, client_id: str) -> None:
        monitor = self._monitors.get(client_id)
        if monitor is not None:
            await monitor.stop()

    async def discard(self, client_id: str) -> None:
        monitor = self._monitors.pop(client_id, None)
        if monitor is not None:
            await monitor.stop()

    def release(self, client_id: str) -> None:
        """Unregister the client's monitor if its session ended and nothing is left to deliver."""
        monitor = self._monitors.get(client_id)
        if monitor is not None and monitor.retired(self._clock()):
            del self._monitors[client_id]

    def sweep(self) -> int:
        """Drop monitors whose session ended and whose notices are gone or stale."""
        now = self._clock()
        retired = [cid for cid, monitor in self._monitors.items() if monitor.retired(now)]
        for client_id in retired:
            del self._monitors[client_id]
        if retired:
            logger.debug("Dropped %d retired session monitors", len(retired))
        return len(retired)

    async def stop_all(self) -> None:
        for monitor in list(self._monitors.values()):
            await monitor.stop()

    def __len__(self) -> int:
        return len(self._monitors)


__all__ = [
    "SessionPolicy",
    "MonitorState",
    "Notice",
    "SessionInfo",
    "SessionMonitor",
    "MonitorRegistry",
]
