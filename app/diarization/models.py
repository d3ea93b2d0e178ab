"""Diarization outcome and method names."""
from __future__ import annotations

from dataclasses import dataclass, field

from app.transcript.models import MergedSegment

METHOD_NONE = "none"
METHOD_SILENCE_GAP = "silence-gap"


@dataclass
class DiarizationOutcome:
    """
    Segments after the diarization pass.

    applied: True when speaker labels were rewritten by a diarizer.
    method: METHOD_NONE, METHOD_SILENCE_GAP, or an external diarizer's name.
    """

    segments: list[MergedSegment] = field(default_factory=list)
    applied: bool = False
    method: str = METHOD_NONE
