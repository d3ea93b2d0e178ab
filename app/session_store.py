"""
In-memory registry: application room id -> vendor recording session.

Single source of truth correlating a room with its vendor session. Not durable;
a restart loses it, which start_session (recovery by name) and the manual
download endpoint (lookup by name) work around.

At most one live mapping per room id: read-then-create runs under a per-room
asyncio.Lock, so concurrent starts for the same room share one vendor session
while unrelated rooms never wait on each other.
"""
from __future__ import annotations

import logging
import time
from typing import Callable

from app.errors import ProviderError, RoomNotTrackedError, SessionNotFoundError
from app.recording.locks import RoomLocks
from app.recording.models import RecordingSession, Role, StartResult
from app.video.base import ProviderSession, VideoProvider

logger = logging.getLogger(__name__)


def session_name_for(room_id: str, now: float | None = None) -> str:
    """Vendor session name; embeds the room id so it can be found again by name."""
    now = time.time() if now is None else now
    return f"room_{room_id}_{int(now * 1000)}"


def _backfilled_start(remote: ProviderSession, now: float) -> float:
    if remote.duration_seconds:
        return now - float(remote.duration_seconds)
    if remote.created_at is not None:
        return remote.created_at.timestamp()
    return now


class SessionRegistry:
    """Owns room -> session mappings; all mutation goes through start/stop."""

    def __init__(
        self,
        provider: Callable[[], VideoProvider],
        clock: Callable[[], float] = time.time,
    ) -> None:
        # provider() raises ProviderNotConfiguredError when credentials are missing
        self._provider = provider
        self._clock = clock
        self._sessions: dict[str, RecordingSession] = {}
        self._locks = RoomLocks()

    def get(self, room_id: str) -> RecordingSession | None:
        """Return the live mapping or None."""
        return self._sessions.get(room_id)

    async def start_session(self, room_id: str, role: Role) -> StartResult:
        """
        Reuse, recover or create the room's vendor session, then issue a credential for role.

        Reuse: the stored session is still in progress at the vendor.
        Recovery (interviewee only): adopt an in-progress vendor session whose name
        contains room_id, for when the interviewer's server restarted in between.
        """
        provider = self._provider()
        async with self._locks.hold(room_id):
            session, reused, recovered = await self._resolve(provider, room_id, role)
        token = provider.issue_token(role.identity, session.session_name)
        logger.info(
            "Recording session for room %s: sid=%s role=%s reused=%s recovered=%s",
            room_id,
            session.session_id,
            role.value,
            reused,
            recovered,
        )
        return StartResult(
            session=session,
            token=token,
            identity=role.identity,
            reused=reused,
            recovered=recovered,
        )

    async def _resolve(
        self, provider: VideoProvider, room_id: str, role: Role
    ) -> tuple[RecordingSession, bool, bool]:
        existing = self._sessions.get(room_id)
        if existing is not None:
            remote: ProviderSession | None
            try:
                remote = await provider.fetch_session(existing.session_id)
            except ProviderError as e:
                logger.warning("Stored session %s for room %s not fetchable: %s", existing.session_id, room_id, e)
                remote = None
            if remote is not None and remote.in_progress:
                return existing, True, False
            logger.info("Dropping stale mapping for room %s (sid=%s)", room_id, existing.session_id)
            self._sessions.pop(room_id, None)

        if not role.is_initiator:
            recovered = await self._recover(provider, room_id)
            if recovered is not None:
                self._sessions[room_id] = recovered
                return recovered, False, True

        now = self._clock()
        remote = await provider.create_session(session_name_for(room_id, now))
        session = RecordingSession(
            room_id=room_id,
            session_id=remote.sid,
            session_name=remote.name or session_name_for(room_id, now),
            started_at=now,
        )
        self._sessions[room_id] = session
        return session, False, False

    async def _recover(self, provider: VideoProvider, room_id: str) -> RecordingSession | None:
        try:
            candidates = await provider.list_sessions(status="in-progress")
        except ProviderError as e:
            logger.warning("Session recovery lookup failed for room %s: %s", room_id, e)
            return None
        for remote in candidates:
            if room_id in remote.name:
                logger.info("Recovered in-progress session %s (%s) for room %s", remote.sid, remote.name, room_id)
                return RecordingSession(
                    room_id=room_id,
                    session_id=remote.sid,
                    session_name=remote.name,
                    started_at=_backfilled_start(remote, self._clock()),
                )
        return None

    async def stop_session(self, room_id: str) -> RecordingSession:
        """
        Finalize the room's vendor session and drop the mapping.

        Raises RoomNotTrackedError when the room has no mapping. Finalizing an
        already-finalized (or vanished) session is not an error. Other provider
        failures propagate and leave the mapping in place for a retry.
        """
        async with self._locks.hold(room_id):
            session = self._sessions.get(room_id)
            if session is None:
                raise RoomNotTrackedError(room_id)
            provider = self._provider()
            try:
                await provider.complete_session(session.session_id)
            except SessionNotFoundError:
                logger.warning("Session %s for room %s no longer exists at the vendor", session.session_id, room_id)
            self._sessions.pop(room_id, None)
        logger.info(
            "Recording session %s for room %s finalized after %ds",
            session.session_id,
            room_id,
            session.duration_seconds(self._clock()),
        )
        return session
