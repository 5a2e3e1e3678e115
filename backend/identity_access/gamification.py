"""
Gamification collaborator: fire-and-forget `track_action(name, metadata)`.

Tracking is a side channel. It must never block a login or fail it, so
`track_safely()` schedules the call as a background task on the running loop
and swallows every error (logged at debug).
"""
from __future__ import annotations

from typing import Any, Dict, Optional, Set
import asyncio
import logging
import os

import httpx


logger = logging.getLogger("catalyst.identity_access.gamification")


class GamificationTracker:
    """No-op tracker used when no gamification service is configured."""

    async def track_action(self, name: str, metadata: Optional[Dict[str, Any]] = None, *, user_id: str = "") -> None:
        return None


class HttpGamificationTracker(GamificationTracker):
    """POSTs `{action, metadata, userId}` to `<base_url>/actions`."""

    def __init__(self, base_url: str, *, timeout: float = 5.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def track_action(self, name: str, metadata: Optional[Dict[str, Any]] = None, *, user_id: str = "") -> None:
        payload = {"action": name, "metadata": metadata or {}, "userId": user_id}
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            resp = await client.post(f"{self.base_url}/actions", json=payload)
            resp.raise_for_status()


def build_tracker_from_env() -> GamificationTracker:
    url = (os.getenv("CATALYST_GAMIFICATION_URL") or "").strip()
    if not url:
        return GamificationTracker()
    try:
        timeout = float(os.getenv("CATALYST_HTTP_TIMEOUT", "5") or 5)
    except ValueError:
        timeout = 5.0
    return HttpGamificationTracker(url, timeout=timeout)


_PENDING: Set["asyncio.Task[None]"] = set()


async def _run_tracking(tracker: GamificationTracker, name: str, metadata: Optional[Dict[str, Any]], user_id: str) -> None:
    try:
        await tracker.track_action(name, metadata, user_id=user_id)
    except Exception as exc:  # never surfaces to the user
        logger.debug("track_action %s failed: %s", name, type(exc).__name__)


def track_safely(
    tracker: Optional[GamificationTracker],
    name: str,
    metadata: Optional[Dict[str, Any]] = None,
    *,
    user_id: str = "",
) -> Optional["asyncio.Task[None]"]:
    """Schedule a tracking call without awaiting it.

    Returns the task (for tests) or None when there is nothing to do or no
    running loop.
    """
    if tracker is None:
        return None
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        logger.debug("track_action %s skipped: no running loop", name)
        return None
    task = loop.create_task(_run_tracking(tracker, name, metadata, user_id))
    _PENDING.add(task)
    task.add_done_callback(_PENDING.discard)
    return task


__all__ = ["GamificationTracker", "HttpGamificationTracker", "build_tracker_from_env", "track_safely"]
