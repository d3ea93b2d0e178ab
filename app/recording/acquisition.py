"""
RecordingAcquisition: finalized session -> labelled local artifact files.

Steps: settle -> poll-list recordings with bounded retry -> list participants
(connected and disconnected) -> resolve speakers -> download per artifact.

An empty listing right after finalize usually means the vendor is still
processing, so it is retried; the outcome is a typed ArtifactListing rather
than an exception. One failed download never aborts the others; only when
every artifact fails does acquire() raise ArtifactDownloadError.
"""
from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from typing import Awaitable, Callable

from app.errors import ArtifactDownloadError, ProviderError, SessionNotFoundError
from app.recording.locks import RoomLocks
from app.recording.models import AcquisitionResult, Artifact, ArtifactListing, ListingStatus
from app.recording.speakers import assign_ordinal_speakers, resolve_recording_speaker
from app.storage import RecordingStorage, safe_component
from app.video.base import ProviderRecording, ProviderSession, VideoProvider

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[None]]


def _is_audio(recording: ProviderRecording) -> bool:
    # Video tracks carry no speech; type may be absent on some listings
    return recording.type in (None, "", "audio")


class RecordingAcquisition:
    def __init__(
        self,
        provider: Callable[[], VideoProvider],
        storage: RecordingStorage,
        *,
        settle_seconds: float = 5.0,
        list_attempts: int = 4,
        list_delay_seconds: float = 6.0,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self._provider = provider
        self._storage = storage
        self._settle_seconds = settle_seconds
        self._list_attempts = max(1, list_attempts)
        self._list_delay_seconds = list_delay_seconds
        self._sleep = sleep
        self._locks = RoomLocks()

    async def list_artifacts(self, provider: VideoProvider, session_id: str) -> ArtifactListing:
        """Poll the vendor until recordings appear or attempts run out."""
        for attempt in range(1, self._list_attempts + 1):
            try:
                recordings = await provider.list_recordings(session_id)
            except SessionNotFoundError:
                logger.warning("Session %s does not exist; nothing to acquire", session_id)
                return ArtifactListing(ListingStatus.PERMANENTLY_ABSENT, attempts=attempt)
            except ProviderError as e:
                logger.warning("Listing recordings for %s failed (attempt %d): %s", session_id, attempt, e)
                recordings = []
            if recordings:
                logger.info("Found %d recording(s) for %s on attempt %d", len(recordings), session_id, attempt)
                return ArtifactListing(ListingStatus.FOUND, recordings=recordings, attempts=attempt)
            if attempt < self._list_attempts:
                logger.info(
                    "No recordings yet for %s (attempt %d/%d); retrying in %.1fs",
                    session_id,
                    attempt,
                    self._list_attempts,
                    self._list_delay_seconds,
                )
                await self._sleep(self._list_delay_seconds)
        return ArtifactListing(ListingStatus.NOT_YET_AVAILABLE, attempts=self._list_attempts)

    async def locate_session(self, room_id: str) -> ProviderSession | None:
        """Find a vendor session by name when the registry has lost the room."""
        provider = self._provider()
        for status in ("in-progress", "completed"):
            try:
                sessions = await provider.list_sessions(status=status)
            except ProviderError as e:
                logger.warning("Listing %s sessions failed: %s", status, e)
                continue
            for session in sessions:
                if room_id in session.name:
                    logger.info("Located %s session %s (%s) for room %s", status, session.sid, session.name, room_id)
                    return session
        return None

    async def acquire(self, room_id: str, session_id: str, settle: bool = True) -> AcquisitionResult:
        """
        Download every audio artifact of session_id into the room's artifact directory.

        Acquisitions of one room run one at a time; a later one finds the
        files already on disk and skips their download.
        """
        if self._locks.locked(room_id):
            logger.info("Acquisition for room %s already running; waiting for it", room_id)
        async with self._locks.hold(room_id):
            return await self._acquire(room_id, session_id, settle)

    async def _acquire(self, room_id: str, session_id: str, settle: bool) -> AcquisitionResult:
        provider = self._provider()
        if settle and self._settle_seconds > 0:
            await self._sleep(self._settle_seconds)

        listing = await self.list_artifacts(provider, session_id)
        if listing.status is not ListingStatus.FOUND:
            return AcquisitionResult(room_id=room_id, status=listing.status)

        recordings = [r for r in listing.recordings if _is_audio(r)]
        skipped = len(listing.recordings) - len(recordings)
        if skipped:
            logger.info("Skipping %d non-audio recording(s) for room %s", skipped, room_id)

        try:
            participants = await provider.list_participants(session_id)
        except ProviderError as e:
            logger.warning("Listing participants for %s failed; falling back to track names: %s", session_id, e)
            participants = []

        resolutions = [resolve_recording_speaker(r, participants) for r in recordings]
        resolutions = assign_ordinal_speakers(resolutions, context=f"room {room_id}")
        artifacts = [
            Artifact(
                artifact_id=r.sid,
                codec=r.codec,
                track_name=r.track_name,
                size_bytes=r.size_bytes,
                duration_seconds=r.duration_seconds,
                resolution=resolution,
            )
            for r, resolution in zip(recordings, resolutions)
        ]

        directory = self._storage.artifacts_dir(room_id, create=True)
        await asyncio.gather(
            *(self._download(provider, r, a, directory) for r, a in zip(recordings, artifacts))
        )

        result = AcquisitionResult(room_id=room_id, status=ListingStatus.FOUND, artifacts=artifacts)
        if artifacts and not result.downloaded:
            raise ArtifactDownloadError(room_id, {a.artifact_id: a.error or "" for a in artifacts})
        logger.info(
            "Acquired %d/%d artifact(s) for room %s",
            len(result.downloaded),
            len(artifacts),
            room_id,
        )
        return result

    async def _download(
        self,
        provider: VideoProvider,
        recording: ProviderRecording,
        artifact: Artifact,
        directory: Path,
    ) -> None:
        try:
            dest = directory / safe_component(artifact.filename)
        except ValueError as e:
            artifact.error = str(e)
            return
        if dest.is_file() and dest.stat().st_size > 0:
            logger.info("Artifact %s already on disk: %s", artifact.artifact_id, dest.name)
            artifact.path = dest
            return

        partial = dest.with_name(dest.name + ".part")
        try:
            written = await provider.download_recording(recording, partial)
            os.replace(partial, dest)
        except (ProviderError, OSError) as e:
            logger.error("Download of artifact %s (%s) failed: %s", artifact.artifact_id, artifact.speaker.value, e)
            artifact.error = str(e)
            try:
                partial.unlink()
            except FileNotFoundError:
                pass
            return
        artifact.path = dest
        logger.info("Downloaded %s (%d bytes)", dest.name, written)
