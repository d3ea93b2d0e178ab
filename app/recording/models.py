"""
Recording domain types: roles, speaker labels, sessions, artifacts.

Speaker resolution is a tagged result (see SpeakerResolution) so every label
carries the tier that produced it; heuristic labels are never presented as
ground truth downstream.
"""
from __future__ import annotations

import re
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from app.video.base import ProviderRecording

# Characters kept from a track name in an artifact file name
_UNSAFE_CHARS_RE = re.compile(r"[^A-Za-z0-9._-]")


class Speaker(str, Enum):
    INTERVIEWER = "Interviewer"
    INTERVIEWEE = "Interviewee"
    UNKNOWN = "Unknown"

    @property
    def slug(self) -> str:
        """Lowercase form used in file names and credential identities."""
        return self.value.lower()

    def other(self) -> "Speaker":
        if self is Speaker.INTERVIEWER:
            return Speaker.INTERVIEWEE
        if self is Speaker.INTERVIEWEE:
            return Speaker.INTERVIEWER
        return Speaker.UNKNOWN


class Role(str, Enum):
    """Fixed per-peer identity for the lifetime of a room. The interviewer creates the room."""

    INTERVIEWER = "interviewer"
    INTERVIEWEE = "interviewee"

    @property
    def identity(self) -> str:
        """Identity string embedded in the access credential."""
        return self.value

    @property
    def speaker(self) -> Speaker:
        return Speaker.INTERVIEWER if self is Role.INTERVIEWER else Speaker.INTERVIEWEE

    @property
    def is_initiator(self) -> bool:
        return self is Role.INTERVIEWER


class ResolutionKind(str, Enum):
    RESOLVED = "resolved"  # vendor metadata ties the artifact to a participant identity
    INFERRED = "inferred"  # heuristic tier produced a label
    UNRESOLVED = "unresolved"


class ResolutionMethod(str, Enum):
    PARTICIPANT = "participant"
    TRACK_NAME = "track_name"
    FILENAME = "filename"
    ORDINAL = "ordinal"


@dataclass(frozen=True)
class SpeakerResolution:
    kind: ResolutionKind
    speaker: Speaker = Speaker.UNKNOWN
    method: ResolutionMethod | None = None

    @classmethod
    def resolved(cls, speaker: Speaker) -> "SpeakerResolution":
        return cls(ResolutionKind.RESOLVED, speaker, ResolutionMethod.PARTICIPANT)

    @classmethod
    def inferred(cls, speaker: Speaker, method: ResolutionMethod) -> "SpeakerResolution":
        return cls(ResolutionKind.INFERRED, speaker, method)

    @classmethod
    def unresolved(cls) -> "SpeakerResolution":
        return cls(ResolutionKind.UNRESOLVED)

    @property
    def is_unresolved(self) -> bool:
        return self.kind is ResolutionKind.UNRESOLVED

    @property
    def is_last_resort(self) -> bool:
        """Ordinal guess or nothing at all: labels worth flagging loudly."""
        return self.is_unresolved or self.method is ResolutionMethod.ORDINAL

    def as_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "speaker": self.speaker.value,
            "method": self.method.value if self.method else None,
            "heuristic": self.kind is not ResolutionKind.RESOLVED,
        }


@dataclass
class RecordingSession:
    """Registry entry: application room id -> vendor session."""

    room_id: str
    session_id: str
    session_name: str
    started_at: float = field(default_factory=time.time)

    def duration_seconds(self, now: float | None = None) -> int:
        now = time.time() if now is None else now
        return max(0, int(now - self.started_at))

    def as_descriptor(self) -> dict:
        return {"sid": self.session_id, "name": self.session_name}


@dataclass
class StartResult:
    session: RecordingSession
    token: str
    identity: str
    reused: bool = False
    recovered: bool = False


@dataclass
class Artifact:
    """One recorded media file for one participant track."""

    artifact_id: str
    codec: str
    track_name: str
    size_bytes: int | None = None
    duration_seconds: float | None = None
    resolution: SpeakerResolution = field(default_factory=SpeakerResolution.unresolved)
    path: Path | None = None
    error: str | None = None

    @property
    def speaker(self) -> Speaker:
        return self.resolution.speaker

    @property
    def downloaded(self) -> bool:
        return self.path is not None and self.error is None

    @property
    def filename(self) -> str:
        """<speaker>_<track>_<artifactId>.<codec>; speaker is re-derivable from it."""
        track = _UNSAFE_CHARS_RE.sub("-", self.track_name) or "track"
        codec = self.codec or "mka"
        return f"{self.speaker.slug}_{track}_{self.artifact_id}.{codec}"

    def as_dict(self) -> dict:
        return {
            "artifactId": self.artifact_id,
            "speaker": self.speaker.value,
            "trackName": self.track_name,
            "codec": self.codec,
            "size": self.size_bytes,
            "duration": self.duration_seconds,
            "filename": self.path.name if self.path else None,
            "resolution": self.resolution.as_dict(),
            "error": self.error,
        }


class ListingStatus(str, Enum):
    FOUND = "found"
    NOT_YET_AVAILABLE = "not_yet_available"  # empty after all retries; try again later
    PERMANENTLY_ABSENT = "permanently_absent"  # vendor session does not exist


@dataclass
class ArtifactListing:
    """Outcome of polling the vendor for a session's recordings."""

    status: ListingStatus
    recordings: list["ProviderRecording"] = field(default_factory=list)
    attempts: int = 0


@dataclass
class AcquisitionResult:
    room_id: str
    status: ListingStatus
    artifacts: list[Artifact] = field(default_factory=list)

    @property
    def downloaded(self) -> list[Artifact]:
        return [a for a in self.artifacts if a.downloaded]

    @property
    def failed(self) -> list[Artifact]:
        return [a for a in self.artifacts if a.error is not None]
