"""
Domain errors for recording and transcription.

"Nothing to download yet" is not an error; see app.recording.models.ArtifactListing.
"""
from __future__ import annotations


class RecordingError(Exception):
    """Base for recording/transcription failures surfaced to callers."""


class ProviderNotConfiguredError(RecordingError):
    """Credentials for the recording or recognition provider are missing."""

    def __init__(self, provider: str, missing: list[str] | None = None) -> None:
        self.provider = provider
        self.missing = missing or []
        detail = f"{provider} is not configured"
        if self.missing:
            detail += f" (missing: {', '.join(self.missing)})"
        super().__init__(detail)


class ProviderError(RecordingError):
    """A call to an external provider failed."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class SessionNotFoundError(ProviderError):
    """The provider reports that the session does not exist (any more)."""


class RoomNotTrackedError(RecordingError):
    """The in-memory registry has no session for this room (e.g. after a restart)."""

    def __init__(self, room_id: str) -> None:
        self.room_id = room_id
        super().__init__(f"No recording session tracked for room {room_id}")


class ArtifactDownloadError(RecordingError):
    """Every artifact of a session failed to download."""

    def __init__(self, room_id: str, failures: dict[str, str]) -> None:
        self.room_id = room_id
        self.failures = failures
        super().__init__(f"All {len(failures)} artifact downloads failed for room {room_id}")
