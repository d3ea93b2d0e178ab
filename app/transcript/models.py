"""
Transcript structures: per-artifact results, the merged conversation, the document.

Segment offsets are seconds relative to the start of their own artifact, not
wall-clock time. Tracks recorded separately may have started at different
moments, so cross-track ordering is approximate; no alignment is guessed.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

from app.asr.base import SegmentTimestamp as Segment
from app.recording.models import Speaker, SpeakerResolution

FAILED_TEXT = "[Transcription failed]"


@dataclass
class TranscriptionResult:
    """One artifact's recognition outcome. Failures are kept, never dropped."""

    artifact_id: str
    file: str
    resolution: SpeakerResolution
    text: str
    segments: list[Segment] = field(default_factory=list)
    duration: float | None = None
    language: str | None = None
    error: str | None = None

    @property
    def speaker(self) -> Speaker:
        return self.resolution.speaker

    @property
    def failed(self) -> bool:
        return self.error is not None

    def as_dict(self) -> dict:
        return {
            "artifactId": self.artifact_id,
            "file": self.file,
            "speaker": self.speaker.value,
            "speakerResolution": self.resolution.as_dict(),
            "text": self.text,
            "segments": [{"start": s.start, "end": s.end, "text": s.text} for s in self.segments],
            "duration": self.duration,
            "language": self.language,
            "error": self.error,
        }


@dataclass
class MergedSegment:
    start: float
    end: float
    text: str
    speaker: Speaker
    artifact_id: str

    def as_dict(self) -> dict:
        return {
            "start": self.start,
            "end": self.end,
            "text": self.text,
            "speaker": self.speaker.value,
            "artifactId": self.artifact_id,
        }


@dataclass
class MergedTranscript:
    """Segments of every artifact, ascending by start; ties keep input order."""

    segments: list[MergedSegment] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.segments)

    def pairs(self) -> list[tuple[Speaker, str]]:
        return [(s.speaker, s.text) for s in self.segments]


@dataclass
class TranscriptDocument:
    room_id: str
    results: list[TranscriptionResult]
    merged: MergedTranscript
    diarization_applied: bool = False
    diarization_method: str = "none"
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def heuristic_speakers(self) -> bool:
        """True when any label came from a heuristic rather than vendor metadata."""
        if self.diarization_applied:
            return True
        return any(r.resolution.as_dict()["heuristic"] for r in self.results)

    @property
    def failed_artifacts(self) -> list[str]:
        return [r.artifact_id for r in self.results if r.failed]

    def as_dict(self) -> dict:
        return {
            "roomId": self.room_id,
            "artifactCount": len(self.results),
            "perArtifactResults": [r.as_dict() for r in self.results],
            "mergedSegments": [s.as_dict() for s in self.merged.segments],
            "diarizationApplied": self.diarization_applied,
            "diarizationMethod": self.diarization_method,
            "speakerLabelsHeuristic": self.heuristic_speakers,
            "failedArtifacts": self.failed_artifacts,
            "generatedAt": self.generated_at.isoformat(),
        }
