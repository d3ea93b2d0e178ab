"""
VideoProvider: abstract interface for the cloud video/recording vendor.

Implementation: TwilioVideoProvider. Everything here is I/O bound and async;
every call is a suspension point with no ordering guarantee across rooms.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path


@dataclass
class ProviderSession:
    """Vendor-side recording-enabled room."""

    sid: str
    name: str
    status: str  # "in-progress" | "completed" | "failed"
    duration_seconds: float | None = None
    created_at: datetime | None = None

    @property
    def in_progress(self) -> bool:
        return self.status == "in-progress"


@dataclass
class ProviderParticipant:
    sid: str
    identity: str
    status: str  # "connected" | "disconnected"


@dataclass
class ProviderRecording:
    """One recorded track as listed by the vendor."""

    sid: str
    codec: str
    track_name: str
    media_url: str
    container: str | None = None
    type: str | None = None
    status: str | None = None
    size_bytes: int | None = None
    duration_seconds: float | None = None
    participant_sid: str | None = None  # may be missing or delayed


class VideoProvider(ABC):
    """Recording session lifecycle, participants, artifacts and access credentials."""

    name: str = "video"

    @abstractmethod
    async def create_session(self, name: str) -> ProviderSession:
        """Create a recording-enabled session with a unique name."""
        ...

    @abstractmethod
    async def fetch_session(self, session_id: str) -> ProviderSession:
        """Fetch by id. Raises SessionNotFoundError if it no longer exists."""
        ...

    @abstractmethod
    async def list_sessions(self, status: str = "in-progress") -> list[ProviderSession]:
        """List sessions in the given status (most recent first)."""
        ...

    @abstractmethod
    async def complete_session(self, session_id: str) -> ProviderSession:
        """Finalize (stop recording). Completing a completed session is not an error."""
        ...

    @abstractmethod
    async def list_participants(self, session_id: str) -> list[ProviderParticipant]:
        """All participants ever in the session, connected and disconnected."""
        ...

    @abstractmethod
    async def list_recordings(self, session_id: str) -> list[ProviderRecording]:
        """Recorded tracks. Raises SessionNotFoundError for unknown sessions."""
        ...

    @abstractmethod
    async def download_recording(self, recording: ProviderRecording, dest: Path) -> int:
        """Stream the media payload to dest. Returns bytes written."""
        ...

    @abstractmethod
    def issue_token(self, identity: str, session_name: str) -> str:
        """Access credential for identity, scoped to session_name."""
        ...

    async def aclose(self) -> None:
        """Release network resources."""
        return None
