"""
Speaker diarization fallback for merged transcripts.

Labels produced here are approximate; documents record diarizationApplied and
the method so readers can tell heuristic speakers from metadata.
"""
from __future__ import annotations

from app.diarization.base import ExternalDiarizer
from app.diarization.models import METHOD_NONE, METHOD_SILENCE_GAP, DiarizationOutcome
from app.diarization.speaker_tracker import SpeakerTracker, diarize, needs_fallback

__all__ = [
    "DiarizationOutcome",
    "ExternalDiarizer",
    "METHOD_NONE",
    "METHOD_SILENCE_GAP",
    "SpeakerTracker",
    "diarize",
    "needs_fallback",
]
