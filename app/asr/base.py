"""
ASREngine: abstract interface for Whisper-compatible file transcription.

Implementations: OpenAIWhisperEngine (hosted), LocalWhisperEngine (faster-whisper).
Segment offsets are seconds relative to the start of the transcribed file.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class SegmentTimestamp:
    """One segment: start/end in seconds, text."""

    start: float
    end: float
    text: str


@dataclass
class ASRResult:
    """Result of one file transcription."""

    text: str
    segments: list[SegmentTimestamp] = field(default_factory=list)
    duration: float | None = None
    language: str | None = None


def normalize_text(text: str | None) -> str:
    """Collapse whitespace; segment text never spans lines."""
    return " ".join((text or "").split())


class ASREngine(ABC):
    """Speech recognition over an audio file, with segment-level timestamps."""

    name: str = "asr"

    @abstractmethod
    async def transcribe_file(self, path: Path, language: str | None = None) -> ASRResult:
        """
        Transcribe one audio file. language=None or "auto" lets the engine detect it.
        Raises on failure; callers decide how failures are represented.
        Must not block the event loop.
        """
        ...

    async def aclose(self) -> None:
        return None
