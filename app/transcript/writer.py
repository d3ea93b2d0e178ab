"""
Transcript rendering: human-readable text and the structured JSON document.

Text form, when there is at least one merged segment:

    Interview Transcript
    Room: <roomId>
    ...header lines...
    ============================================================

    CONVERSATION WITH TIMESTAMPS:
    ============================================================

    [MM:SS] Interviewer: text
    [MM:SS] Interviewee: text

Otherwise the per-speaker fallback lists each artifact's full text under its
speaker heading. Timestamps are floor(seconds) within the artifact's own
recording. parse_transcript_text recovers (timestamp, speaker, text) from the
conversation lines so the rendered file stays machine-readable.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from app.recording.models import Speaker
from app.storage import RecordingStorage
from app.transcript.models import TranscriptDocument

logger = logging.getLogger(__name__)

RULE = "=" * 60
SUBRULE = "-" * 40
NO_TRANSCRIPTION = "[No transcription available]"

_LINE_RE = re.compile(
    r"^\[(?P<mm>\d{2,}):(?P<ss>\d{2})\] (?P<speaker>Interviewer|Interviewee|Unknown): (?P<text>.*)$"
)


def format_timestamp(seconds: float) -> str:
    """MM:SS, both floored and zero-padded. Minutes are not wrapped at 60."""
    total = max(0, int(seconds))
    return f"{total // 60:02d}:{total % 60:02d}"


def _header(document: TranscriptDocument) -> list[str]:
    lines = [
        "Interview Transcript",
        f"Room: {document.room_id}",
        f"Generated: {document.generated_at.strftime('%Y-%m-%d %H:%M:%S UTC')}",
        f"Artifacts: {len(document.results)}",
    ]
    if document.diarization_applied:
        lines.append(
            f"Speaker labels: inferred by {document.diarization_method} "
            "(approximate; first speaker assumed to be the Interviewer)"
        )
    elif document.heuristic_speakers:
        lines.append("Speaker labels: partly inferred from track or file names")
    else:
        lines.append("Speaker labels: from recording participant metadata")
    lines.append("Timestamps: offsets within each speaker's own recording")
    failed = document.failed_artifacts
    if failed:
        lines.append(f"Failed artifacts: {', '.join(failed)}")
    return lines


def render_text(document: TranscriptDocument) -> str:
    lines = _header(document)
    lines.append(RULE)
    lines.append("")
    if document.merged.segments:
        lines.append("CONVERSATION WITH TIMESTAMPS:")
        lines.append(RULE)
        lines.append("")
        for seg in document.merged.segments:
            lines.append(f"[{format_timestamp(seg.start)}] {seg.speaker.value}: {seg.text}")
    else:
        lines.append("FULL TRANSCRIPTIONS BY SPEAKER:")
        lines.append(RULE)
        for result in document.results:
            lines.append("")
            lines.append(f"{result.speaker.value.upper()}:")
            lines.append(SUBRULE)
            lines.append(result.text.strip() or NO_TRANSCRIPTION)
    return "\n".join(lines) + "\n"


def render_json(document: TranscriptDocument) -> dict:
    return document.as_dict()


@dataclass(frozen=True)
class TranscriptLine:
    seconds: int
    speaker: Speaker
    text: str


def parse_transcript_text(text: str) -> list[TranscriptLine]:
    """Conversation lines of a rendered transcript, in file order. Other lines are skipped."""
    out: list[TranscriptLine] = []
    for raw in text.splitlines():
        m = _LINE_RE.match(raw)
        if not m:
            continue
        out.append(
            TranscriptLine(
                seconds=int(m.group("mm")) * 60 + int(m.group("ss")),
                speaker=Speaker(m.group("speaker")),
                text=m.group("text"),
            )
        )
    return out


class TranscriptWriter:
    """Persist both renderings of a document for one room."""

    def __init__(self, storage: RecordingStorage) -> None:
        self._storage = storage

    def write(self, document: TranscriptDocument) -> None:
        self._storage.write_transcript(
            document.room_id,
            render_json(document),
            render_text(document),
        )
        logger.info(
            "Transcript written for room %s: %d segments from %d artifacts",
            document.room_id,
            len(document.merged),
            len(document.results),
        )
