"""Transcripts: per-artifact results, merge, rendering. Orchestration lives in app.transcript.pipeline."""
from .merger import merge
from .models import (
    FAILED_TEXT,
    MergedSegment,
    MergedTranscript,
    Segment,
    TranscriptDocument,
    TranscriptionResult,
)
from .writer import TranscriptWriter, format_timestamp, parse_transcript_text, render_json, render_text

__all__ = [
    "FAILED_TEXT",
    "MergedSegment",
    "MergedTranscript",
    "Segment",
    "TranscriptDocument",
    "TranscriptWriter",
    "TranscriptionResult",
    "format_timestamp",
    "merge",
    "parse_transcript_text",
    "render_json",
    "render_text",
]
