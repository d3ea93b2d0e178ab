"""
Speaker labelling for merged transcripts whose per-track labels cannot be trusted.

Gap-based alternation over the merged, time-ordered segments: the first
segment is the Interviewer; each later segment keeps the previous speaker
unless the silence before it exceeds the gap threshold, in which case the
speaker flips.

Limitations (MUST be kept in sync with product behavior):
- Two speakers only; a third voice is folded into one of them.
- A long pause within one speaker's turn flips the label.
- Offsets are per-recording, so tracks that started at different times skew gaps.
"""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Literal, Sequence

from app.diarization.base import ExternalDiarizer
from app.diarization.models import METHOD_NONE, METHOD_SILENCE_GAP, DiarizationOutcome
from app.recording.models import Speaker
from app.transcript.models import MergedSegment, TranscriptionResult

logger = logging.getLogger(__name__)

DiarizationMode = Literal["auto", "always", "off"]


class SpeakerTracker:
    """Assigns speakers to an ordered run of segments by silence-gap alternation."""

    def __init__(self, gap_sec: float = 0.5) -> None:
        self._gap_sec = gap_sec

    def assign(self, segments: Sequence[MergedSegment]) -> list[MergedSegment]:
        out: list[MergedSegment] = []
        speaker = Speaker.INTERVIEWER
        last_end: float | None = None
        for seg in segments:
            if last_end is not None and seg.start - last_end > self._gap_sec:
                speaker = speaker.other()
            out.append(replace(seg, speaker=speaker))
            last_end = seg.end
        return out


def needs_fallback(results: Sequence[TranscriptionResult]) -> bool:
    """True when no result carries a label better than an ordinal guess."""
    return bool(results) and all(r.resolution.is_last_resort for r in results)


async def diarize(
    segments: Sequence[MergedSegment],
    results: Sequence[TranscriptionResult],
    mode: DiarizationMode = "auto",
    gap_sec: float = 0.5,
    external: ExternalDiarizer | None = None,
) -> DiarizationOutcome:
    """
    Optional relabelling pass after merge.

    external diarizer (if given) > silence-gap alternation (mode "always", or
    "auto" when per-track labels are all last-resort) > labels left as merged.
    """
    segments = list(segments)
    if not segments or mode == "off":
        return DiarizationOutcome(segments=segments)

    if external is not None:
        try:
            relabelled = await external.diarize(segments, results)
        except Exception:
            logger.exception("External diarizer %s failed; falling back", external.name)
        else:
            return DiarizationOutcome(segments=list(relabelled), applied=True, method=external.name)

    if mode == "always" or needs_fallback(results):
        logger.warning(
            "Applying silence-gap diarization to %d segments (gap > %.2fs flips speaker)",
            len(segments),
            gap_sec,
        )
        relabelled = SpeakerTracker(gap_sec).assign(segments)
        return DiarizationOutcome(segments=relabelled, applied=True, method=METHOD_SILENCE_GAP)

    return DiarizationOutcome(segments=segments, applied=False, method=METHOD_NONE)
