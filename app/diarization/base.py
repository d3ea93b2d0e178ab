"""
ExternalDiarizer: pluggable voice-based diarization.

Implementations relabel merged segments using the audio itself. When one is
configured it takes precedence over the silence-gap heuristic.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

from app.transcript.models import MergedSegment, TranscriptionResult


class ExternalDiarizer(ABC):
    name: str = "external"

    @abstractmethod
    async def diarize(
        self,
        segments: Sequence[MergedSegment],
        results: Sequence[TranscriptionResult],
    ) -> list[MergedSegment]:
        """Return segments with speaker labels reassigned. Order must be preserved."""
        ...
