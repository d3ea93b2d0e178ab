"""
Merge per-artifact transcription results into one conversation.

Every segment of every result is tagged with its result's speaker and artifact
id, then ordered by start offset. list.sort is stable, so equal starts keep
the input order (artifact order, then segment order within the artifact).
Overlapping speech is kept: both segments appear, adjacent. No deduplication.
"""
from __future__ import annotations

from typing import Iterable

from app.transcript.models import MergedSegment, MergedTranscript, TranscriptionResult


def merge(results: Iterable[TranscriptionResult]) -> MergedTranscript:
    flattened = [
        MergedSegment(
            start=seg.start,
            end=seg.end,
            text=seg.text,
            speaker=result.speaker,
            artifact_id=result.artifact_id,
        )
        for result in results
        for seg in result.segments
    ]
    flattened.sort(key=lambda s: s.start)
    return MergedTranscript(segments=flattened)
